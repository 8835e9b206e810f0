"""
Policy Engine for prodguard.

The Policy Engine is the last line of defense between an automated agent
and a live production system. Every intercepted tool call passes through
it before the host runs the tool.

Design Principles:
    - Fail-open: Input or config the engine cannot understand is allowed
    - First match wins: Heuristics run in a fixed order, the first block
      is the verdict and later heuristics are not consulted
    - Stateless: Same tool call and config always produce the same verdict
    - Explainable: Every block names the resource and suggests an alternative

How it works:
    1. The global override short-circuits to ALLOW
    2. Dispatch on tool kind (Write/Edit, Bash, anything else)
    3. Write/Edit: production path containment
    4. Bash: service guard, docker, pkill/killall, indirect kill,
       port bind, file operations, in that order
    5. Return a Verdict
"""

from collections.abc import Callable

from prodguard.policy.matchers import CompiledMatchers, compile_matchers
from prodguard.policy.paths import is_production_path
from prodguard.schema import ProductionConfig, ToolCall, ToolKind, Verdict


FaultHandler = Callable[[str, Exception], None]


class PolicyEngine:
    """
    Evaluates tool calls against one production config.

    Usage:
        engine = PolicyEngine(config)
        verdict = engine.evaluate(tool_call)
        if not verdict.allowed:
            # tell the host to abort the tool call

    Attributes:
        config: The production config to enforce
        matchers: Patterns compiled from the config
        working_dir: Base directory for relative file paths
    """

    def __init__(
        self,
        config: ProductionConfig,
        working_dir: str | None = None,
        on_fault: FaultHandler | None = None,
    ) -> None:
        """
        Initialize the policy engine.

        Args:
            config: The production config to enforce
            working_dir: Base directory for relative paths (defaults to cwd)
            on_fault: Called with (check name, exception) when a heuristic
                raises; the heuristic then simply does not block
        """
        self.config = config
        self.matchers: CompiledMatchers = compile_matchers(config)
        self.working_dir = working_dir
        self._on_fault = on_fault

    def evaluate(self, tool_call: ToolCall, override: bool = False) -> Verdict:
        """
        Evaluate a tool call.

        Args:
            tool_call: The intercepted tool call
            override: Human-confirmed bypass, allows everything

        Returns:
            Verdict indicating allow/block with reason
        """
        if override:
            return Verdict.allow("Production override is set", rule="override")

        kind = tool_call.kind
        if kind in (ToolKind.WRITE, ToolKind.EDIT):
            return self._evaluate_file_tool(tool_call)
        if kind == ToolKind.BASH:
            return self._evaluate_bash(tool_call)

        # Unknown tool - allow, the engine cannot reason about it
        return Verdict.allow(
            f"Not a guarded tool: {tool_call.tool_name or '<none>'}",
            rule="unguarded_tool",
        )

    # =========================================================================
    # File Tools
    # =========================================================================

    def _evaluate_file_tool(self, tool_call: ToolCall) -> Verdict:
        """Evaluate Write/Edit against production directories."""
        file_path = tool_call.tool_input.file_path
        if not file_path:
            return Verdict.allow("No file path provided", rule="missing_argument")

        if is_production_path(file_path, self.config, self.working_dir):
            return Verdict.block(
                f"Writing to production directory: {file_path}",
                "Work in safe directories (check production.yaml)",
                rule="production_path",
            )
        return Verdict.allow("Path is not in a production directory")

    # =========================================================================
    # Shell Commands
    # =========================================================================

    def _evaluate_bash(self, tool_call: ToolCall) -> Verdict:
        """Run the command heuristics in order, first block wins."""
        command = tool_call.tool_input.command
        if not command or not command.strip():
            return Verdict.allow("No command provided", rule="missing_argument")

        checks = (
            ("system_services", self.matchers.check_system_services),
            ("docker", self.matchers.check_docker),
            ("process_kill", self.matchers.check_process_kill),
            ("indirect_kill", self.matchers.check_indirect_kill),
            ("port_bind", self.matchers.check_port_bind),
            ("file_operations", self.matchers.check_file_operations),
        )
        for name, check in checks:
            try:
                verdict = check(command)
            except Exception as e:
                # A faulty heuristic contributes no block
                if self._on_fault is not None:
                    self._on_fault(name, e)
                continue
            if verdict is not None:
                return verdict

        return Verdict.allow("No production resource affected")


def evaluate(
    tool_call: ToolCall,
    config: ProductionConfig | None,
    override: bool = False,
    working_dir: str | None = None,
) -> Verdict:
    """
    Evaluate a tool call against a config in one call.

    A config of None means no configuration could be loaded, which allows
    the call (fail-open).
    """
    if override:
        return Verdict.allow("Production override is set", rule="override")
    if config is None:
        return Verdict.allow("No production config loaded", rule="no_config")
    return PolicyEngine(config, working_dir=working_dir).evaluate(tool_call)
