"""
Production path containment.

A path is production when its normalized form starts with a configured
production prefix and with no safe prefix. Matching is textual on purpose:
"/etc/nginx" also covers "/etc/nginx-test". Over-blocking a sibling
directory is preferred to missing a production one.
"""

import os
from pathlib import Path

from prodguard.schema import ProductionConfig


def normalize_path(path: str, working_dir: str | None = None) -> str:
    """
    Turn a path into an absolute, symlink-resolved string.

    Relative paths are resolved against working_dir (or the process cwd).
    Paths that do not exist yet are resolved as far as possible. If
    resolution fails entirely the syntactic absolute path is returned.
    """
    base = working_dir or os.getcwd()
    raw = path if os.path.isabs(path) else os.path.join(base, path)
    try:
        return str(Path(raw).resolve())
    except (OSError, ValueError, RuntimeError):
        return os.path.normpath(raw)


def prefix_forms(prefix: str) -> list[str]:
    """
    The textual forms a configured prefix is matched in.

    The prefix as written, plus its symlink-resolved form when that differs
    (e.g. /tmp/prod vs /private/tmp/prod on macOS). A trailing separator on
    the configured prefix is kept on the resolved form too.
    """
    forms = [prefix]
    try:
        resolved = str(Path(prefix).resolve())
    except (OSError, ValueError, RuntimeError):
        return forms

    if prefix.endswith(os.sep) and not resolved.endswith(os.sep):
        resolved += os.sep
    if resolved != prefix:
        forms.append(resolved)
    return forms


def _starts_with_any(path: str, prefix: str) -> bool:
    return any(path.startswith(form) for form in prefix_forms(prefix))


def is_production_path(
    path: str,
    config: ProductionConfig,
    working_dir: str | None = None,
) -> bool:
    """
    Check whether a path falls under a production directory.

    Production directories are tried in listed order. On the first match,
    any safe directory that also matches wins and the path is not
    production. Safe precedence does not depend on list order.

    Args:
        path: Path as given by the tool call
        config: Production config
        working_dir: Base for relative paths (defaults to the process cwd)

    Returns:
        True if the path is production and not exempted by a safe directory
    """
    normalized = normalize_path(path, working_dir)

    for prod_dir in config.directories:
        if _starts_with_any(normalized, prod_dir):
            for safe_dir in config.safe_directories:
                if _starts_with_any(normalized, safe_dir):
                    return False
            return True

    return False
