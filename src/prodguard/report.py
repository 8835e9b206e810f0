"""
Verdict formatting for prodguard.

Two audiences:
    - The host agent, which reads plain diagnostic lines on stderr
      (BLOCKED / Suggestion / Override) next to exit code 2
    - A human at a terminal running `prodguard check`, who gets a Rich panel
"""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from prodguard.schema import Verdict
from prodguard.settings import OVERRIDE_ENV_VAR


# Status icons
ICON_ALLOWED = "[green]✓[/green]"
ICON_BLOCKED = "[red]⊘[/red]"


def block_message_lines(verdict: Verdict, override_var: str = OVERRIDE_ENV_VAR) -> list[str]:
    """
    Diagnostic lines the host shows for a blocked tool call.

    Example:
        BLOCKED: Docker mutation on production container: my-db
        Suggestion: Use docker logs/inspect for read-only operations
        Override: CLAUDE_PROD_OVERRIDE=true <command>
    """
    lines = [f"BLOCKED: {verdict.reason}"]
    if verdict.suggestion:
        lines.append(f"Suggestion: {verdict.suggestion}")
    lines.append(f"Override: {override_var}=true <command>")
    return lines


def verdict_to_dict(verdict: Verdict) -> dict[str, Any]:
    """Convert a verdict to a JSON-friendly dict."""
    return {
        "allowed": verdict.allowed,
        "decision": "allow" if verdict.allowed else "block",
        "reason": verdict.reason,
        "suggestion": verdict.suggestion,
        "rule_matched": verdict.rule_matched,
    }


def render_verdict(verdict: Verdict, console: Console | None = None) -> None:
    """
    Print a verdict for a human.

    Args:
        verdict: The verdict to show
        console: Rich Console instance (creates one if not provided)
    """
    if console is None:
        console = Console()

    if verdict.allowed:
        console.print(f"{ICON_ALLOWED} [green]ALLOW[/green]")
        if verdict.reason:
            console.print(f"[dim]{verdict.reason}[/dim]")
        return

    body = Text()
    body.append(verdict.reason, style="bold")
    if verdict.suggestion:
        body.append("\nSuggestion: ", style="dim")
        body.append(verdict.suggestion)
    if verdict.rule_matched:
        body.append("\nRule: ", style="dim")
        body.append(verdict.rule_matched, style="cyan")

    console.print(f"{ICON_BLOCKED} [red]BLOCK[/red]")
    console.print(Panel(body, title="Blocked", border_style="red"))
