"""
Schema definitions for prodguard.

This module defines the Pydantic models used throughout prodguard:
- ProductionConfig: Which directories, containers, ports and processes are live
- ToolCall/ToolInput: The tool invocation the host is about to run
- Verdict: The result of evaluating a tool call (allow/block + reason)

Design Decisions:
    - Config loading is lenient: malformed entries are dropped, not fatal,
      because a broken config must never stop the agent from working
    - Tool calls ignore fields they do not know about
    - Models are immutable (frozen=True)
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from prodguard.errors import (
    ConfigInvalidError,
    ConfigNotFoundError,
    ConfigUnreadableError,
    HookInputError,
)


DEFAULT_DEV_PORTS = (3081, 27018, 7701)

_STRING_LIST_FIELDS = ("containers", "directories", "safe_directories", "process_keywords")
_PORT_LIST_FIELDS = ("ports", "dev_ports")


# =============================================================================
# Enums
# =============================================================================


class ToolKind(str, Enum):
    """The tool surfaces the engine knows how to reason about."""

    WRITE = "Write"
    EDIT = "Edit"
    BASH = "Bash"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "ToolKind":
        """Map a host tool name to a kind. Unknown names map to OTHER."""
        for kind in (cls.WRITE, cls.EDIT, cls.BASH):
            if name == kind.value:
                return kind
        return cls.OTHER


# =============================================================================
# Entry Cleaning
# =============================================================================


def expand_home(value: str) -> str:
    """
    Expand a leading ~, $HOME or ${HOME} to the user's home directory.

    Examples:
        ~/prod -> /home/user/prod
        $HOME/prod -> /home/user/prod
        /srv/prod -> /srv/prod
    """
    home = str(Path.home())
    for token in ("${HOME}", "$HOME"):
        if value == token or value.startswith(token + "/"):
            return home + value[len(token):]
    if value == "~" or value.startswith("~/"):
        return home + value[1:]
    return value


def _clean_ports(field_name: str, values: Any) -> tuple[list[int], list[str]]:
    """Keep valid TCP/UDP port numbers, report everything else."""
    if values is None:
        return [], []
    if not isinstance(values, (list, tuple)):
        return [], [f"{field_name}: expected a list, got {type(values).__name__}"]

    kept: list[int] = []
    problems: list[str] = []
    for value in values:
        port: int | None = None
        if isinstance(value, int) and not isinstance(value, bool):
            port = value
        elif isinstance(value, str) and value.strip().isdigit():
            port = int(value.strip())

        if port is None or not 1 <= port <= 65535:
            problems.append(f"{field_name}: skipped invalid port {value!r}")
            continue
        if port not in kept:
            kept.append(port)
    return kept, problems


def _clean_strings(field_name: str, values: Any) -> tuple[list[str], list[str]]:
    """Keep non-empty strings, report everything else."""
    if values is None:
        return [], []
    if not isinstance(values, (list, tuple)):
        return [], [f"{field_name}: expected a list, got {type(values).__name__}"]

    kept: list[str] = []
    problems: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            problems.append(f"{field_name}: skipped invalid entry {value!r}")
            continue
        if value.strip() not in kept:
            kept.append(value.strip())
    return kept, problems


def config_problems(data: dict[str, Any]) -> list[str]:
    """
    List every entry that loading would skip.

    Args:
        data: Raw config mapping as parsed from YAML

    Returns:
        One human-readable line per skipped entry (empty if the config is clean)
    """
    problems: list[str] = []
    for name in _PORT_LIST_FIELDS:
        if name in data:
            problems.extend(_clean_ports(name, data[name])[1])
    for name in _STRING_LIST_FIELDS:
        if name in data:
            problems.extend(_clean_strings(name, data[name])[1])
    return problems


# =============================================================================
# Config Model
# =============================================================================


class ProductionConfig(BaseModel):
    """
    Declarative description of production resources.

    Attributes:
        ports: Production network ports
        containers: Production container names (exact names, "-dev" variants are not production)
        directories: Production path prefixes, in order
        safe_directories: Path prefixes always allowed, even under a production directory
        process_keywords: Case-insensitive substrings naming production processes
        dev_ports: Ports suggested when a production port bind is blocked
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    ports: tuple[int, ...] = Field(
        default_factory=tuple,
        description="Production network ports",
    )
    containers: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Production container names",
    )
    directories: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Production path prefixes",
    )
    safe_directories: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Path prefixes exempt from production blocking",
    )
    process_keywords: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Substrings identifying production processes",
    )
    dev_ports: tuple[int, ...] = Field(
        default_factory=lambda: DEFAULT_DEV_PORTS,
        description="Development ports suggested instead of production ones",
    )

    @field_validator("ports", "dev_ports", mode="before")
    @classmethod
    def drop_invalid_ports(cls, v: Any, info: ValidationInfo) -> list[int]:
        """Skip entries that are not valid port numbers."""
        if v is None and info.field_name == "dev_ports":
            return list(DEFAULT_DEV_PORTS)
        return _clean_ports(info.field_name, v)[0]

    @field_validator("containers", "process_keywords", mode="before")
    @classmethod
    def drop_invalid_names(cls, v: Any, info: ValidationInfo) -> list[str]:
        """Skip entries that are not non-empty strings."""
        return _clean_strings(info.field_name, v)[0]

    @field_validator("directories", "safe_directories", mode="before")
    @classmethod
    def expand_directories(cls, v: Any, info: ValidationInfo) -> list[str]:
        """Skip invalid entries and expand the home directory."""
        return [expand_home(d) for d in _clean_strings(info.field_name, v)[0]]


# =============================================================================
# Tool Call Models
# =============================================================================


class ToolInput(BaseModel):
    """
    The subset of a host tool input the engine reads.

    Attributes:
        file_path: Target of a Write/Edit tool
        command: Shell command of a Bash tool
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    file_path: str | None = Field(default=None, description="Target file path")
    command: str | None = Field(default=None, description="Shell command")

    @field_validator("file_path", "command", mode="before")
    @classmethod
    def non_strings_are_missing(cls, v: Any) -> str | None:
        """Treat non-string values as absent rather than rejecting the call."""
        return v if isinstance(v, str) else None


class ToolCall(BaseModel):
    """
    A tool invocation intercepted from the host.

    Attributes:
        tool_name: Host tool name (e.g., "Write", "Bash")
        tool_input: Structured tool input
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    tool_name: str = Field(default="", description="Host tool name")
    tool_input: ToolInput = Field(default_factory=ToolInput, description="Tool input")

    @field_validator("tool_name", mode="before")
    @classmethod
    def coerce_tool_name(cls, v: Any) -> str:
        """Missing or non-string tool names become empty (an unknown tool)."""
        return v if isinstance(v, str) else ""

    @field_validator("tool_input", mode="before")
    @classmethod
    def coerce_tool_input(cls, v: Any) -> Any:
        """Missing or non-object tool input becomes empty."""
        return v if isinstance(v, (dict, ToolInput)) else {}

    @property
    def kind(self) -> ToolKind:
        """The tool surface this call belongs to."""
        return ToolKind.from_name(self.tool_name)


# =============================================================================
# Verdict
# =============================================================================


class Verdict(BaseModel):
    """
    Result of evaluating a tool call.

    Attributes:
        allowed: Whether the tool call may proceed
        reason: Human-readable explanation (always set for blocks)
        suggestion: Optional hint for a safer alternative
        rule_matched: Which heuristic produced this verdict
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the tool call may proceed")
    reason: str = Field(default="", description="Human-readable explanation")
    suggestion: str | None = Field(default=None, description="Safer alternative")
    rule_matched: str | None = Field(default=None, description="Heuristic that decided")

    @classmethod
    def allow(cls, reason: str = "", rule: str | None = None) -> "Verdict":
        """Create an ALLOW verdict."""
        return cls(allowed=True, reason=reason, rule_matched=rule)

    @classmethod
    def block(
        cls,
        reason: str,
        suggestion: str | None = None,
        rule: str | None = None,
    ) -> "Verdict":
        """Create a BLOCK verdict."""
        return cls(allowed=False, reason=reason, suggestion=suggestion, rule_matched=rule)


# =============================================================================
# Loading Helpers
# =============================================================================


def parse_config_data(content: str, source: str = "") -> dict[str, Any]:
    """
    Parse config YAML into a raw mapping.

    Raises:
        ConfigInvalidError: If the YAML is unparseable or not a mapping
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigInvalidError(path=source, detail=f"YAML parse error: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigInvalidError(
            path=source,
            detail=f"top level must be a mapping, got {type(data).__name__}",
        )
    return data


def read_config_data(path: Path | str) -> dict[str, Any]:
    """
    Read a config file into a raw mapping.

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigUnreadableError: If the file can't be read
        ConfigInvalidError: If the YAML is unparseable or not a mapping
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigNotFoundError(path=str(path))

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigUnreadableError(path=str(path), underlying_error=str(e)) from e

    return parse_config_data(content, source=str(path))


def load_config(path: Path | str) -> ProductionConfig:
    """
    Load a production config from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated ProductionConfig (malformed entries skipped)
    """
    return ProductionConfig.model_validate(read_config_data(path))


def load_config_from_string(content: str) -> ProductionConfig:
    """Load a production config from a YAML string."""
    return ProductionConfig.model_validate(parse_config_data(content))


def parse_tool_call(content: str) -> ToolCall:
    """
    Parse the host's JSON payload into a ToolCall.

    Raises:
        HookInputError: If the payload is not a JSON object
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise HookInputError(detail=f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise HookInputError(detail=f"expected a JSON object, got {type(data).__name__}")

    try:
        return ToolCall.model_validate(data)
    except ValidationError as e:
        raise HookInputError(detail=str(e)) from e
