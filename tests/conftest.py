"""
Pytest configuration and fixtures for prodguard tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from prodguard.schema import ProductionConfig


@pytest.fixture(autouse=True)
def clean_guard_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own override/config settings out of tests."""
    monkeypatch.delenv("CLAUDE_PROD_OVERRIDE", raising=False)
    monkeypatch.delenv("CLAUDE_PROD_CONFIG", raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def prod_config() -> ProductionConfig:
    """A config with one of every kind of production resource."""
    return ProductionConfig(
        ports=[5432, 6379],
        containers=["my-db", "web"],
        directories=["/srv/prod"],
        safe_directories=["/srv/prod/scratch"],
        process_keywords=["myapp"],
    )


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a config YAML covering every field."""
    return """
ports:
  - 5432
  - 6379
containers:
  - my-db
  - web
directories:
  - /srv/prod
safe_directories:
  - /srv/prod/scratch
process_keywords:
  - myapp
"""


@pytest.fixture
def config_file(temp_dir: Path, sample_config_yaml: str) -> Path:
    """Write the sample config to disk."""
    path = temp_dir / "production.yaml"
    path.write_text(sample_config_yaml)
    return path
