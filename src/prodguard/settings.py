"""
Runtime settings for prodguard.

The environment is read once, at process start, into a GuardSettings value
that is then passed explicitly into the hook and the engine. Nothing below
the CLI layer looks at os.environ.
"""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


OVERRIDE_ENV_VAR = "CLAUDE_PROD_OVERRIDE"
CONFIG_ENV_VAR = "CLAUDE_PROD_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.claude/hooks/production.yaml")

_AFFIRMATIVE = ("true", "1", "yes")


def is_affirmative(value: str | None) -> bool:
    """Whether an environment flag value means "yes"."""
    return (value or "").strip().lower() in _AFFIRMATIVE


class GuardSettings(BaseModel):
    """
    Process-wide inputs to an evaluation.

    Attributes:
        override: Human-confirmed bypass, every tool call is allowed
        config_path: Location of the production config YAML
    """

    model_config = ConfigDict(frozen=True)

    override: bool = Field(default=False, description="Skip all evaluation")
    config_path: Path = Field(
        default_factory=lambda: DEFAULT_CONFIG_PATH.expanduser(),
        description="Production config YAML",
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GuardSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
        """
        if environ is None:
            environ = os.environ

        raw_path = environ.get(CONFIG_ENV_VAR, "").strip()
        config_path = Path(raw_path) if raw_path else DEFAULT_CONFIG_PATH
        return cls(
            override=is_affirmative(environ.get(OVERRIDE_ENV_VAR)),
            config_path=config_path.expanduser(),
        )
