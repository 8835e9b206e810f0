"""
Exception hierarchy for prodguard.

All prodguard exceptions inherit from ProdGuardError, allowing callers to
catch every prodguard-specific exception with a single except clause.

Exception Categories:
    - ConfigError: Production config missing, unreadable or malformed
    - HookInputError: Tool call JSON from the host could not be parsed

Policy blocks are not exceptions. The engine returns a Verdict for them,
and the errors below are only raised by the loaders that feed the engine.
The hook recovers from every one of them by allowing the tool call.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Config errors: 1xxx
ERROR_CONFIG_NOT_FOUND = 1001
ERROR_CONFIG_UNREADABLE = 1002
ERROR_CONFIG_INVALID = 1003

# Hook input errors: 2xxx
ERROR_HOOK_INPUT_INVALID = 2001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ProdGuardError(Exception):
    """
    Base exception for all prodguard errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(ProdGuardError):
    """
    Raised when the production config cannot be used.

    The hook treats every ConfigError as fail-open: the tool call is
    allowed and a warning is written to stderr.

    Attributes:
        path: Path of the config file involved
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["path"] = self.path


@dataclass
class ConfigNotFoundError(ConfigError):
    """Raised when the config file does not exist."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Config file not found: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Create the file or point CLAUDE_PROD_CONFIG at it"
        super().__post_init__()


@dataclass
class ConfigUnreadableError(ConfigError):
    """Raised when the config file exists but cannot be read."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot read config file {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_UNREADABLE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ConfigInvalidError(ConfigError):
    """Raised when the config is not valid YAML or not a mapping."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = self.path or "<string>"
            self.message = f"Invalid config {where}: {self.detail}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        if not self.suggestion:
            self.suggestion = "Run `prodguard validate` to see what is wrong"
        super().__post_init__()
        self.context["detail"] = self.detail


# =============================================================================
# Hook Input Errors
# =============================================================================


@dataclass
class HookInputError(ProdGuardError):
    """
    Raised when the host's tool call payload cannot be parsed.

    Attributes:
        detail: What was wrong with the payload
    """

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Malformed hook input: {self.detail}"
        if self.code == 0:
            self.code = ERROR_HOOK_INPUT_INVALID
        self.context["detail"] = self.detail
