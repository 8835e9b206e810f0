"""
Host hook runtime for prodguard.

Implements the PreToolUse contract: one JSON tool call on stdin, the
verdict as the exit status.

    exit 0  allow, nothing written
    exit 2  block, BLOCKED/Suggestion/Override lines on stderr

Every failure on this path (bad JSON, missing config, a bug in a
heuristic) resolves to exit 0 with a warning. Blocking all tool use
because the guard itself is broken is worse than the residual risk.
"""

import io
import sys
import traceback
from typing import TextIO

from rich.console import Console

from prodguard.errors import ConfigError, HookInputError
from prodguard.policy import PolicyEngine
from prodguard.report import block_message_lines
from prodguard.schema import load_config, parse_tool_call
from prodguard.settings import OVERRIDE_ENV_VAR, GuardSettings


EXIT_ALLOW = 0
EXIT_BLOCK = 2

# Warnings go to stderr; stdout stays empty for the host
err_console = Console(stderr=True)


def warn(message: str) -> None:
    """Write a one-line warning to stderr."""
    err_console.print(
        f"Warning: {message}",
        style="yellow",
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _warn_fault(check: str, error: Exception) -> None:
    warn(f"{check} check failed and was skipped: {error}")


def _read_payload(stdin: TextIO) -> str:
    """Read the whole payload, treating undecodable bytes as malformed input."""
    try:
        return stdin.read()
    except UnicodeDecodeError as e:
        raise HookInputError(detail=f"payload is not valid UTF-8: {e}") from e


def payload_stream() -> TextIO:
    """
    The process stdin, decoded as UTF-8 with invalid bytes replaced.

    The host's payload is evaluated even when a command carries bytes the
    locale cannot decode, instead of failing on them.
    """
    buffer = getattr(sys.stdin, "buffer", None)
    if buffer is None:
        return sys.stdin
    return io.StringIO(buffer.read().decode("utf-8", errors="replace"))


def run_hook(
    stdin: TextIO,
    settings: GuardSettings,
    working_dir: str | None = None,
    debug: bool = False,
) -> int:
    """
    Evaluate one intercepted tool call.

    Args:
        stdin: Stream holding the host's JSON payload
        settings: Override flag and config location, read once from the environment
        working_dir: Base for relative file paths (defaults to cwd)
        debug: Print tracebacks for internal failures

    Returns:
        EXIT_ALLOW or EXIT_BLOCK
    """
    # Human-confirmed bypass: no config read, no output
    if settings.override:
        return EXIT_ALLOW

    try:
        tool_call = parse_tool_call(_read_payload(stdin))
    except HookInputError as e:
        warn(f"{e.message} (allowing)")
        return EXIT_ALLOW

    try:
        config = load_config(settings.config_path)
    except ConfigError as e:
        warn(e.message)
        return EXIT_ALLOW

    try:
        engine = PolicyEngine(config, working_dir=working_dir, on_fault=_warn_fault)
        verdict = engine.evaluate(tool_call)
    except Exception as e:
        warn(f"Policy evaluation failed (allowing): {e}")
        if debug:
            err_console.print(traceback.format_exc(), markup=False, highlight=False)
        return EXIT_ALLOW

    if verdict.allowed:
        return EXIT_ALLOW

    for line in block_message_lines(verdict, OVERRIDE_ENV_VAR):
        print(line, file=sys.stderr)
    return EXIT_BLOCK


def main() -> None:
    """Console entry point for hook configurations that call the module directly."""
    sys.exit(run_hook(payload_stream(), GuardSettings.from_env()))
