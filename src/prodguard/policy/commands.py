"""
Light tokenization of raw shell command text.

This is not a shell parser. Commands are split on separators and each
segment is split into words, which is enough for heuristics that need
"the arguments after pkill" without caring about shell grammar.
"""

import re
import shlex


# ; & | and newlines, including && and ||
_SEPARATOR = re.compile(r"[;&|\n]+")

# Words that may precede the real command in a segment
_PREFIX_WORDS = frozenset({"sudo", "exec", "nohup", "time", "command"})
_ENV_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

# shlex builds tokens by repeated concatenation, quadratic in token length
_SHLEX_MAX_LENGTH = 4096
_QUOTING = re.compile(r"['\"\\]")


def split_segments(command: str) -> list[str]:
    """
    Split a command on shell separators.

    Examples:
        "cd /srv && pkill node" -> ["cd /srv", "pkill node"]
        "ps aux | grep x; ls" -> ["ps aux", "grep x", "ls"]
    """
    return [segment.strip() for segment in _SEPARATOR.split(command) if segment.strip()]


def segment_tokens(segment: str) -> list[str]:
    """
    Split one segment into words.

    Quotes are honored where they balance. Unbalanced quotes fall back to
    plain whitespace splitting so a half-typed command still tokenizes.
    Segments without quotes or escapes, and segments too long for shlex
    to handle in reasonable time, are split on whitespace directly.
    """
    if len(segment) > _SHLEX_MAX_LENGTH or not _QUOTING.search(segment):
        return segment.split()
    try:
        return shlex.split(segment)
    except ValueError:
        return segment.split()


def strip_prefix_words(tokens: list[str]) -> list[str]:
    """Drop leading env assignments, wrappers like sudo/nohup, and wrapper flags."""
    index = 0
    wrapped = False
    while index < len(tokens):
        token = tokens[index]
        if token in _PREFIX_WORDS or _ENV_ASSIGNMENT.match(token):
            wrapped = True
        elif not (wrapped and token.startswith("-")):
            break
        index += 1
    return tokens[index:]


def program_name(token: str) -> str:
    """Executable name without its directory (/usr/bin/pkill -> pkill)."""
    return token.rsplit("/", 1)[-1]
