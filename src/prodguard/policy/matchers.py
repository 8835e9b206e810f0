"""
Command heuristics for shell tool calls.

Each check looks at the raw command text and returns a blocking Verdict on
a hit, or None. The engine runs them in a fixed order and the first block
wins. Everything that depends on the config (container names, directories,
ports, keywords) is compiled once per config in CompiledMatchers.

Security Note:
    Command strings are attacker-influenced. Patterns here avoid nested
    quantifiers over overlapping character classes so matching stays
    linear-ish in the command length.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from re import Pattern

from prodguard.policy.commands import (
    program_name,
    segment_tokens,
    split_segments,
    strip_prefix_words,
)
from prodguard.schema import ProductionConfig, Verdict


# =============================================================================
# Fixed Patterns
# =============================================================================

SYSTEM_SERVICE = re.compile(
    r"systemctl\s+(?:stop|restart|disable)"
    r"|nginx\s+-s\s+(?:stop|quit|reload)"
)

DOCKER_PROGRAMS = frozenset({"docker", "docker-compose"})

# (?!\S) instead of \b so "rmi" or "down.yml" do not count
DOCKER_ACTION = re.compile(
    r"\bdocker\s+(?:container\s+)?(stop|restart|rm|kill|pause|unpause)(?!\S)"
    r"|\bdocker(?:\s+|-)compose(?:\s+-\S+(?:\s+[^-\s]\S*)?)*\s+(down|stop|restart|rm)(?!\S)"
)

# A container reference only counts after "docker <subcommand> "
DOCKER_CONTEXT = re.compile(r"\bdocker(?:-compose)?\s+\S+\s+")

KILL_PROGRAMS = frozenset({"pkill", "killall"})
BROAD_PROCESS_NAMES = frozenset({"node", "python", "java", "docker"})

# Atomic group: only the first "| xargs" after lsof is tried
INDIRECT_KILL = re.compile(
    r"\blsof\b(?>[^\n]*?\|\s*xargs\b)[^\n]*\bkill\b"
    r"|\bfuser\b[^\n|;&]*\s-[a-zA-Z]*k"
    r"|\bkill\b[^\n]*(?:\$\(|`)\s*lsof\b"
)

PORT_BIND_HINT = re.compile(
    r"(?i:port)\s*="
    r"|(?i:--port)\b"
    r"|(?<![\w-])(?:-p|--publish)[\s=]*[\d.]+:"
)

FILE_OPERATION = re.compile(r"\b(?:rm|mv|cp|chmod|chown)\s+-")

_IPV4_PREFIX = r"(?:\d{1,3}(?:\.\d{1,3}){3}:)?"


# =============================================================================
# Reasons and Suggestions
# =============================================================================

SUGGEST_READ_ONLY_DOCKER = "Use docker logs/inspect for read-only operations"
SUGGEST_SAFE_DIRS = "Work in safe directories"
SUGGEST_SPECIFIC_KILL = "Be specific with container names or PIDs"
SUGGEST_PIDS = "Use specific process names or PIDs"
SUGGEST_DOCKER_FOR_CONTAINERS = "Use docker commands for container management"
SUGGEST_MANUAL = "These commands affect all services. Manual intervention required."


def _text_forms(directory: str) -> list[str]:
    """
    Ways a directory can appear in command text.

    Configured directories are already home-expanded, but commands often
    spell them with ~ or $HOME.
    """
    forms = [directory]
    home = str(Path.home())
    if directory.startswith(home + "/"):
        tail = directory[len(home):]
        forms.extend(["~" + tail, "$HOME" + tail, "${HOME}" + tail])
    return forms


def _alternation(values: list[str]) -> str:
    return "|".join(re.escape(value) for value in values)


# =============================================================================
# Compiled Matchers
# =============================================================================


@dataclass(frozen=True)
class CompiledMatchers:
    """
    Config-dependent patterns, compiled once per config.

    Attributes:
        config: The config these patterns were built from
        containers: (name, pattern) for production container references
        compose_dirs: (directory, pattern) for compose runs in production dirs
        keywords: Case-insensitive alternation of process keywords
        indirect_ports: (port, pattern) for lsof/fuser kills
        bind_ports: (port, pattern) for listener binds
        file_op_dirs: (directory, pattern) for rm/mv/cp/chmod/chown
    """

    config: ProductionConfig
    containers: tuple[tuple[str, Pattern[str]], ...]
    compose_dirs: tuple[tuple[str, Pattern[str]], ...]
    keywords: Pattern[str] | None
    indirect_ports: tuple[tuple[int, Pattern[str]], ...]
    bind_ports: tuple[tuple[int, Pattern[str]], ...]
    file_op_dirs: tuple[tuple[str, Pattern[str]], ...]

    @classmethod
    def from_config(cls, config: ProductionConfig) -> "CompiledMatchers":
        """Build every pattern the config needs."""
        containers = tuple(
            # Whole word, and not the "<name>-dev" variant at this occurrence
            (name, re.compile(rf"(?<!\w){re.escape(name)}(?!\w)(?!-dev(?!\w))"))
            for name in config.containers
        )

        compose_dirs = []
        file_op_dirs = []
        for directory in config.directories:
            spelled = _alternation(_text_forms(directory))
            compose_dirs.append((
                directory,
                re.compile(
                    rf"\bdocker(?:\s+|-)compose\b[^\n]*?(?:-f|--file|--project-directory)[\s=]+(?:{spelled})"
                    rf"|\bcd\s+(?:{spelled})[^\n]*?\bdocker(?:\s+|-)compose\b"
                ),
            ))
            file_op_dirs.append((
                directory,
                re.compile(rf"\b(?:rm|mv|cp|chmod|chown)\s+[^\n]*?(?:{spelled})"),
            ))

        keywords = None
        if config.process_keywords:
            keywords = re.compile(_alternation(list(config.process_keywords)), re.IGNORECASE)

        indirect_ports = tuple(
            (port, re.compile(rf"[:=]{port}(?!\d)|(?<![\w.]){port}/(?:tcp|udp)\b"))
            for port in config.ports
        )
        bind_ports = tuple(
            (
                port,
                re.compile(
                    rf"(?i:port)[=\s]+{port}(?!\d)"
                    rf"|(?<![\w-])(?:-p|--publish)[\s=]*{_IPV4_PREFIX}{port}:"
                ),
            )
            for port in config.ports
        )

        return cls(
            config=config,
            containers=containers,
            compose_dirs=tuple(compose_dirs),
            keywords=keywords,
            indirect_ports=indirect_ports,
            bind_ports=bind_ports,
            file_op_dirs=tuple(file_op_dirs),
        )

    # =========================================================================
    # System Services
    # =========================================================================

    def check_system_services(self, command: str) -> Verdict | None:
        """Block service-wide stops and reloads, whatever the config says."""
        if SYSTEM_SERVICE.search(command):
            return Verdict.block(
                "System service modification command detected",
                SUGGEST_MANUAL,
                rule="system_service",
            )
        return None

    # =========================================================================
    # Docker
    # =========================================================================

    def check_docker(self, command: str) -> Verdict | None:
        """
        Block container mutations against production containers.

        Needs a docker invocation at the start of a command segment and a
        mutating subcommand. Then either a production container name after
        a docker subcommand, or a compose run pointed at a production
        directory, blocks.
        """
        if not _invokes_docker(command):
            return None
        if not DOCKER_ACTION.search(command):
            return None

        context = DOCKER_CONTEXT.search(command)
        if context:
            for name, pattern in self.containers:
                if pattern.search(command, context.end()):
                    return Verdict.block(
                        f"Docker mutation on production container: {name}",
                        SUGGEST_READ_ONLY_DOCKER,
                        rule="docker_container",
                    )

        for directory, pattern in self.compose_dirs:
            if pattern.search(command):
                return Verdict.block(
                    f"Docker compose in production directory: {directory}",
                    SUGGEST_SAFE_DIRS,
                    rule="docker_compose_directory",
                )
        return None

    # =========================================================================
    # Process Termination
    # =========================================================================

    def check_process_kill(self, command: str) -> Verdict | None:
        """
        Block pkill/killall patterns that could hit production processes.

        The pattern is everything after the first pkill/killall word of a
        command segment, minus flags. It blocks when it contains a
        production keyword, or when it is just a broad runtime name like
        "node". Each segment is tokenized once.
        """
        for segment in split_segments(command):
            arguments = _kill_arguments(segment_tokens(segment))
            if arguments is None:
                continue
            arguments = [token.strip("'\"") for token in arguments]
            operands = [token for token in arguments if token and not token.startswith("-")]
            if not operands:
                continue

            shown = " ".join(token for token in arguments if token)
            pattern = " ".join(operands)

            if self.keywords and self.keywords.search(pattern):
                return Verdict.block(
                    f"pkill/killall could affect production processes: {shown}",
                    SUGGEST_SPECIFIC_KILL,
                    rule="process_keyword",
                )
            if pattern in BROAD_PROCESS_NAMES:
                return Verdict.block(
                    f"pkill/killall with broad pattern could affect production: {shown}",
                    SUGGEST_PIDS,
                    rule="broad_process_pattern",
                )
        return None

    def check_indirect_kill(self, command: str) -> Verdict | None:
        """Block lsof|xargs kill and fuser -k aimed at a production port."""
        if not INDIRECT_KILL.search(command):
            return None
        for port, pattern in self.indirect_ports:
            if pattern.search(command):
                return Verdict.block(
                    f"Indirect kill on production port: {port}",
                    SUGGEST_DOCKER_FOR_CONTAINERS,
                    rule="indirect_kill_port",
                )
        return None

    # =========================================================================
    # Port Binding
    # =========================================================================

    def check_port_bind(self, command: str) -> Verdict | None:
        """Block PORT=, --port and -p <port>: binds to a production port."""
        if not PORT_BIND_HINT.search(command):
            return None
        for port, pattern in self.bind_ports:
            if pattern.search(command):
                dev_ports = ", ".join(str(p) for p in self.config.dev_ports)
                suggestion = (
                    f"Use development ports ({dev_ports}, etc.)"
                    if dev_ports
                    else "Use a development port"
                )
                return Verdict.block(
                    f"Attempting to bind to production port: {port}",
                    suggestion,
                    rule="port_bind",
                )
        return None

    # =========================================================================
    # File Operations
    # =========================================================================

    def check_file_operations(self, command: str) -> Verdict | None:
        """Block flagged rm/mv/cp/chmod/chown touching a production directory."""
        if not FILE_OPERATION.search(command):
            return None
        for directory, pattern in self.file_op_dirs:
            if pattern.search(command):
                return Verdict.block(
                    f"File operation in production directory: {directory}",
                    SUGGEST_SAFE_DIRS,
                    rule="file_operation",
                )
        return None


def _kill_arguments(tokens: list[str]) -> list[str] | None:
    """Tokens after the first pkill/killall word, or None if there is none."""
    for index, token in enumerate(tokens):
        if program_name(token.lstrip("$(`")) in KILL_PROGRAMS:
            return tokens[index + 1:]
    return None


def _invokes_docker(command: str) -> bool:
    """Whether any command segment runs docker (after sudo/env prefixes)."""
    for segment in split_segments(command):
        tokens = strip_prefix_words(segment_tokens(segment))
        if tokens and program_name(tokens[0]) in DOCKER_PROGRAMS:
            return True
    return False


@lru_cache(maxsize=16)
def compile_matchers(config: ProductionConfig) -> CompiledMatchers:
    """Compiled matchers for a config, cached per distinct config value."""
    return CompiledMatchers.from_config(config)
