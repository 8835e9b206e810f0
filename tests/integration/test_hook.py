"""
Integration tests for the hook runtime.

Tests cover:
- End-to-end verdicts from JSON on stdin to exit code and stderr
- The override bypass
- Fail-open on missing config, bad JSON and heuristic faults
"""

import json
from io import BytesIO, StringIO, TextIOWrapper
from pathlib import Path

import pytest

from prodguard.hook import EXIT_ALLOW, EXIT_BLOCK, main, run_hook
from prodguard.policy.matchers import CompiledMatchers
from prodguard.schema import Verdict
from prodguard.settings import GuardSettings


def payload(tool_name: str, **tool_input: str) -> StringIO:
    return StringIO(json.dumps({"tool_name": tool_name, "tool_input": tool_input}))


def write_config(directory: Path, content: str) -> Path:
    path = directory / "production.yaml"
    path.write_text(content)
    return path


@pytest.fixture
def settings(config_file: Path) -> GuardSettings:
    """Settings pointing at the shared sample config."""
    return GuardSettings(config_path=config_file)


# =============================================================================
# End-to-End Scenarios
# =============================================================================


class TestScenarios:
    """Full runs from payload to exit code."""

    def test_write_to_production_blocked(self, temp_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A write under a production directory blocks with the path in the reason."""
        prod = temp_dir / "prod"
        config = write_config(temp_dir, f"directories: [{prod}]\nsafe_directories: []\n")

        code = run_hook(
            payload("Write", file_path=str(prod / "app.conf"), content="x"),
            GuardSettings(config_path=config),
        )

        captured = capsys.readouterr()
        assert code == EXIT_BLOCK
        assert captured.out == ""
        lines = captured.err.splitlines()
        assert lines[0] == f"BLOCKED: Writing to production directory: {prod / 'app.conf'}"
        assert lines[1] == "Suggestion: Work in safe directories (check production.yaml)"
        assert lines[2] == "Override: CLAUDE_PROD_OVERRIDE=true <command>"

    def test_write_to_safe_directory_allowed(self, temp_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A write under a safe directory inside production is allowed silently."""
        prod = temp_dir / "prod"
        config = write_config(
            temp_dir,
            f"directories: [{prod}]\nsafe_directories: [{prod / 'scratch'}]\n",
        )

        code = run_hook(
            payload("Write", file_path=str(prod / "scratch" / "notes.txt")),
            GuardSettings(config_path=config),
        )

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert captured.out == ""
        assert captured.err == ""

    @pytest.mark.parametrize(
        "config_yaml,command,expected",
        [
            ("containers: [my-db]\n", "docker rm my-db", EXIT_BLOCK),
            ("containers: [my-db]\n", "docker rm my-db-dev", EXIT_ALLOW),
            ("ports: [5432]\n", "PORT=5432 node server.js", EXIT_BLOCK),
            ("ports: [5432]\n", "PORT=5433 node server.js", EXIT_ALLOW),
            ("process_keywords: [myapp]\n", "pkill -f myapp-worker", EXIT_BLOCK),
            ("process_keywords: [myapp]\n", "pkill -f unrelated-script", EXIT_ALLOW),
            ("{}\n", "systemctl restart anything", EXIT_BLOCK),
        ],
    )
    def test_bash_scenarios(
        self,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
        config_yaml: str,
        command: str,
        expected: int,
    ) -> None:
        """Bash commands against single-resource configs."""
        config = write_config(temp_dir, config_yaml)
        code = run_hook(payload("Bash", command=command), GuardSettings(config_path=config))

        captured = capsys.readouterr()
        assert code == expected
        if expected == EXIT_BLOCK:
            assert captured.err.startswith("BLOCKED: ")
        else:
            assert captured.err == ""

    def test_missing_config_allows_with_warning(
        self,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """No config file: allow, warn, exit 0."""
        missing = temp_dir / "nope.yaml"
        code = run_hook(payload("Bash", command="docker rm my-db"), GuardSettings(config_path=missing))

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert "Warning:" in captured.err
        assert "Config file not found" in captured.err
        assert "BLOCKED" not in captured.err


# =============================================================================
# Override
# =============================================================================


class TestOverride:
    """Tests for the human override."""

    @pytest.mark.parametrize(
        "tool_name,tool_input",
        [
            ("Bash", {"command": "docker rm my-db"}),
            ("Bash", {"command": "systemctl stop nginx"}),
            ("Write", {"file_path": "/srv/prod/app.conf"}),
        ],
    )
    def test_override_allows_silently(
        self,
        config_file: Path,
        capsys: pytest.CaptureFixture[str],
        tool_name: str,
        tool_input: dict[str, str],
    ) -> None:
        """Blocked calls pass with no output under the override."""
        code = run_hook(
            payload(tool_name, **tool_input),
            GuardSettings(override=True, config_path=config_file),
        )

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert captured.out == ""
        assert captured.err == ""

    def test_override_skips_config(self, temp_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """The config is not even read, so a missing one does not warn."""
        code = run_hook(
            payload("Bash", command="ls"),
            GuardSettings(override=True, config_path=temp_dir / "nope.yaml"),
        )
        assert code == EXIT_ALLOW
        assert capsys.readouterr().err == ""


# =============================================================================
# Fail-Open
# =============================================================================


class TestFailOpen:
    """Every failure on the hook path allows the call."""

    @pytest.mark.parametrize("raw", ["", "{not json", "[1, 2]", "null"])
    def test_malformed_payload(
        self,
        settings: GuardSettings,
        capsys: pytest.CaptureFixture[str],
        raw: str,
    ) -> None:
        """Unparseable input allows with a warning."""
        code = run_hook(StringIO(raw), settings)

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert "Malformed hook input" in captured.err
        assert "(allowing)" in captured.err

    def test_undecodable_payload(
        self,
        settings: GuardSettings,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A strict UTF-8 stream with a bad byte allows with a warning."""
        raw = b'{"tool_name": "Bash", "tool_input": {"command": "ls \xff"}}'
        code = run_hook(TextIOWrapper(BytesIO(raw), encoding="utf-8"), settings)

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert "Malformed hook input: payload is not valid UTF-8" in captured.err

    def test_missing_fields_allow_silently(
        self,
        settings: GuardSettings,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A well-formed object without the expected fields is a quiet allow."""
        code = run_hook(StringIO('{"tool_name": "Bash"}'), settings)
        assert code == EXIT_ALLOW
        assert capsys.readouterr().err == ""

    def test_invalid_yaml_allows_with_warning(
        self,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A broken config allows with a warning."""
        config = write_config(temp_dir, "ports: [5432\n")
        code = run_hook(payload("Bash", command="PORT=5432 ./run"), GuardSettings(config_path=config))

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert "Invalid config" in captured.err

    def test_malformed_entries_skipped(
        self,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Bad entries are dropped and the good ones still protect."""
        config = write_config(temp_dir, "ports: [abc, 5432]\ncontainers: [42, my-db]\n")
        code = run_hook(payload("Bash", command="docker stop my-db"), GuardSettings(config_path=config))
        assert code == EXIT_BLOCK
        assert "my-db" in capsys.readouterr().err

    def test_heuristic_fault_warns_and_continues(
        self,
        settings: GuardSettings,
        capsys: pytest.CaptureFixture[str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A raising heuristic is reported and skipped."""

        def broken(self: CompiledMatchers, command: str) -> Verdict | None:
            raise RuntimeError("boom")

        monkeypatch.setattr(CompiledMatchers, "check_docker", broken)
        code = run_hook(payload("Bash", command="docker stop my-db"), settings)

        captured = capsys.readouterr()
        assert code == EXIT_ALLOW
        assert "docker check failed and was skipped: boom" in captured.err

    def test_unguarded_tool(self, settings: GuardSettings, capsys: pytest.CaptureFixture[str]) -> None:
        """Tools the engine does not know pass silently."""
        code = run_hook(payload("Read", file_path="/srv/prod/app.conf"), settings)
        assert code == EXIT_ALLOW
        assert capsys.readouterr().err == ""


class TestMain:
    """Tests for the console entry point."""

    def test_main_exits_with_verdict(
        self,
        config_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """main reads settings from the environment and exits with the code."""
        monkeypatch.setenv("CLAUDE_PROD_CONFIG", str(config_file))
        monkeypatch.setattr("sys.stdin", payload("Bash", command="docker kill web"))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == EXIT_BLOCK
        assert "BLOCKED: Docker mutation on production container: web" in capsys.readouterr().err

    def test_main_respects_override(
        self,
        config_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """The override variable is read once at start."""
        monkeypatch.setenv("CLAUDE_PROD_CONFIG", str(config_file))
        monkeypatch.setenv("CLAUDE_PROD_OVERRIDE", "yes")
        monkeypatch.setattr("sys.stdin", payload("Bash", command="docker kill web"))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == EXIT_ALLOW

    def test_main_replaces_invalid_utf8(
        self,
        config_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Undecodable bytes on stdin are replaced and the call is still judged."""
        raw = b'{"tool_name": "Bash", "tool_input": {"command": "docker kill web \xff"}}'
        monkeypatch.setenv("CLAUDE_PROD_CONFIG", str(config_file))
        monkeypatch.setattr("sys.stdin", TextIOWrapper(BytesIO(raw), encoding="utf-8"))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == EXIT_BLOCK
        assert "BLOCKED: Docker mutation on production container: web" in capsys.readouterr().err
