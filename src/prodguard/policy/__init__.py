"""
Policy Engine module for prodguard.

This module decides whether an intercepted tool call may touch production.

Key concepts:
    - Verdict: ALLOW, or BLOCK with a reason and a suggestion
    - PolicyEngine: Dispatches a tool call to path and command heuristics
    - CompiledMatchers: The command heuristic bank, compiled per config

The engine must be:
    - Fail-open: What it cannot understand, it allows
    - Predictable: Same inputs always produce same verdicts
    - Stateless: Nothing carries over between evaluations
"""

from prodguard.policy.engine import PolicyEngine, evaluate
from prodguard.policy.matchers import CompiledMatchers, compile_matchers
from prodguard.policy.paths import is_production_path, normalize_path

__all__ = [
    "CompiledMatchers",
    "PolicyEngine",
    "compile_matchers",
    "evaluate",
    "is_production_path",
    "normalize_path",
]
