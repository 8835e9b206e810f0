"""
CLI entry point for prodguard.

This module provides the Typer-based command-line interface for prodguard.

Commands:
    hook        PreToolUse hook: read a tool call from stdin, exit 0 or 2
    check       Evaluate a command or file path by hand
    validate    Load a production config and show what it protects

Architecture Note:
    The CLI is intentionally thin. It reads the environment once into
    GuardSettings and delegates to the hook runtime and the policy engine.
"""

import json
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from prodguard import __version__
from prodguard.errors import ConfigError
from prodguard.hook import EXIT_ALLOW, EXIT_BLOCK, payload_stream, run_hook
from prodguard.policy import PolicyEngine
from prodguard.report import render_verdict, verdict_to_dict
from prodguard.schema import (
    ProductionConfig,
    ToolCall,
    ToolInput,
    ToolKind,
    config_problems,
    load_config,
    read_config_data,
)
from prodguard.settings import GuardSettings

# Initialize Typer app with metadata
app = typer.Typer(
    name="prodguard",
    help="Block agent tool calls that would touch production.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]prodguard[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    prodguard - Production guard for agent tool calls.

    Decides, before a Write, Edit or Bash tool call runs, whether it would
    mutate a production directory, container, port or process.
    """
    pass


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        help="Production config YAML. Defaults to $CLAUDE_PROD_CONFIG or ~/.claude/hooks/production.yaml.",
    ),
]


def _settings(config_path: Optional[Path]) -> GuardSettings:
    """Settings from the environment, with an explicit --config taking precedence."""
    settings = GuardSettings.from_env()
    if config_path is not None:
        settings = settings.model_copy(update={"config_path": config_path.expanduser()})
    return settings


@app.command()
def hook(
    config_path: ConfigOption = None,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Show tracebacks for internal failures.",
        ),
    ] = False,
) -> None:
    """
    Run as a PreToolUse hook.

    Reads one tool call as JSON from stdin. Exits 0 to allow it, or 2 to
    block it with the reason on stderr.

    Example:
        $ echo '{"tool_name": "Bash", "tool_input": {"command": "docker stop db"}}' | prodguard hook
    """
    code = run_hook(payload_stream(), _settings(config_path), debug=debug)
    raise typer.Exit(code=code)


@app.command()
def check(
    command: Annotated[
        Optional[str],
        typer.Option(
            "--command",
            "-c",
            help="Shell command to evaluate as a Bash tool call.",
        ),
    ] = None,
    file_path: Annotated[
        Optional[str],
        typer.Option(
            "--file",
            "-f",
            help="File path to evaluate as a Write/Edit tool call.",
        ),
    ] = None,
    tool: Annotated[
        str,
        typer.Option(
            "--tool",
            help="Tool name used with --file (Write or Edit).",
        ),
    ] = ToolKind.WRITE.value,
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the verdict in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Evaluate a command or file path against the production config.

    Exits 0 when allowed and 2 when blocked, like the hook. The override
    variable is ignored here so the config can be tested while it is set.

    Example:
        $ prodguard check --command "docker rm my-db"
        $ prodguard check --file /srv/prod/app.conf
    """
    if (command is None) == (file_path is None):
        console.print("[red]Error: pass exactly one of --command or --file[/red]")
        raise typer.Exit(code=1)

    if tool not in (ToolKind.WRITE.value, ToolKind.EDIT.value):
        console.print(f"[red]Error: --tool must be Write or Edit, got {tool}[/red]")
        raise typer.Exit(code=1)

    settings = _settings(config_path)
    try:
        config = load_config(settings.config_path)
    except ConfigError as e:
        if json_output:
            print(json.dumps({"error": True, **e.to_dict()}, indent=2))
        else:
            console.print(f"[red]Error loading config: {e.message}[/red]")
        raise typer.Exit(code=1)

    if command is not None:
        tool_call = ToolCall(tool_name=ToolKind.BASH.value, tool_input=ToolInput(command=command))
    else:
        tool_call = ToolCall(tool_name=tool, tool_input=ToolInput(file_path=file_path))

    verdict = PolicyEngine(config).evaluate(tool_call)

    if json_output:
        print(json.dumps(verdict_to_dict(verdict), indent=2))
    else:
        render_verdict(verdict, console)

    raise typer.Exit(code=EXIT_ALLOW if verdict.allowed else EXIT_BLOCK)


@app.command()
def validate(
    config_path: ConfigOption = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Show full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Validate a production config.

    Shows the production resources the config protects and every entry
    that is skipped as malformed. Exits 1 if the file is missing or
    cannot be parsed.

    Example:
        $ prodguard validate --config ~/.claude/hooks/production.yaml
    """
    settings = _settings(config_path)
    try:
        data = read_config_data(settings.config_path)
        config = ProductionConfig.model_validate(data)
    except ConfigError as e:
        if json_output:
            print(json.dumps({"valid": False, "error": e.to_dict()}, indent=2))
        else:
            console.print(f"[red]✗ {e.message}[/red]")
            if e.suggestion:
                console.print(f"[dim]Suggestion: {e.suggestion}[/dim]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    problems = config_problems(data)

    if json_output:
        output = {
            "valid": True,
            "path": str(settings.config_path),
            "config": config.model_dump(mode="json"),
            "skipped": problems,
        }
        print(json.dumps(output, indent=2))
        return

    console.print(f"[green]✓[/green] Config is valid: [bold]{settings.config_path}[/bold]")
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Resource", style="cyan")
    table.add_column("Count", justify="right", width=5)
    table.add_column("Values")

    rows = [
        ("directories", config.directories),
        ("safe_directories", config.safe_directories),
        ("containers", config.containers),
        ("ports", config.ports),
        ("process_keywords", config.process_keywords),
        ("dev_ports", config.dev_ports),
    ]
    for name, values in rows:
        shown = ", ".join(str(v) for v in values) if values else "[dim]none[/dim]"
        table.add_row(name, str(len(values)), shown)

    console.print(table)

    if problems:
        console.print()
        console.print(f"[yellow]Skipped {len(problems)} malformed entr{'y' if len(problems) == 1 else 'ies'}:[/yellow]")
        for problem in problems:
            console.print(f"  [yellow]⚠[/yellow] {problem}")


if __name__ == "__main__":
    app()
