"""Tests for the genbridge command line."""

from __future__ import annotations

import io
import json
import logging
import subprocess
import sys
from pathlib import Path

import pytest

from genbridge.cli import EXIT_ENGINE, EXIT_INPUT, EXIT_OK, EXIT_RELAY, main

REPO_ROOT = Path(__file__).resolve().parent.parent

_ECHO = "import sys\nfor line in sys.stdin:\n    print('CMD:' + line.rstrip('\\n'))\n"
_ENV = (
    "import os\n"
    "print(os.environ['GENBRIDGE_ENTRY_POINT'])\n"
    "print(os.environ['GENBRIDGE_ENGINE_MODULE'])\n"
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("GENBRIDGE_ENGINE", "GENBRIDGE_PROFILE", "GENBRIDGE_ENCODING", "GENBRIDGE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger("genbridge")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True


@pytest.fixture
def stdin(monkeypatch: pytest.MonkeyPatch):
    def _set(data: bytes) -> None:
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data), encoding="utf-8"))

    return _set


class BrokenStdout:
    def write(self, text: str) -> int:
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self) -> None:
        pass


class TestMain:

    def test_end_to_end_prefix(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"foo\nbar\n")
        code = main(["--project-root", str(tmp_path), "--engine", "prefix", "-o", "prefix=GEN:"])
        out, err = capsys.readouterr()
        assert code == EXIT_OK
        assert out == "GEN:foo\nGEN:bar\n"
        assert err == ""

    def test_empty_input_produces_no_output(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"")
        assert main(["--project-root", str(tmp_path), "-e", "prefix"]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_command_after_double_dash(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"a\nb\n")
        code = main(["--project-root", str(tmp_path), "--engine", "command", "--", sys.executable, "-c", _ECHO])
        assert code == EXIT_OK
        assert capsys.readouterr().out == "CMD:a\nCMD:b\n"

    def test_profile_from_config_json(self, stdin, capsys, tmp_path: Path) -> None:
        config_dir = tmp_path / ".genbridge"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(
            json.dumps({"profiles": {"unicode": {"options": {"command": [sys.executable, "-c", _ENV]}}}}),
            encoding="utf-8",
        )
        stdin(b"{}")
        code = main(["--project-root", str(tmp_path), "--profile", "unicode"])
        assert code == EXIT_OK
        assert capsys.readouterr().out == "GenerateUnicode\nUnicode.elm.js\n"

    def test_debug_logging_goes_to_stderr(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"x\n")
        code = main(["--project-root", str(tmp_path), "-e", "prefix", "-o", "prefix=>", "--log-level", "debug"])
        out, err = capsys.readouterr()
        assert code == EXIT_OK
        assert out == ">x\n"
        assert "[DEBUG] genbridge" in err

    def test_list_profiles(self, capsys, tmp_path: Path) -> None:
        assert main(["--project-root", str(tmp_path), "--list-profiles"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "main: engine=command entry_point=Main" in out
        assert "categories: engine=command entry_point=GenerateCategories" in out
        assert "unicode: engine=command entry_point=GenerateUnicode" in out
        assert "engines: command, prefix" in out


class TestMainFailures:

    def test_invalid_input_exits_with_load_error(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"\xff\xfe")
        code = main(["--project-root", str(tmp_path)])
        out, err = capsys.readouterr()
        assert code == EXIT_INPUT
        assert out == ""
        assert "genbridge: load error" in err

    def test_missing_program_exits_with_init_error(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"foo\n")
        code = main(["--project-root", str(tmp_path), "--engine", "command", "--", "genbridge-no-such-program-xyz"])
        out, err = capsys.readouterr()
        assert code == EXIT_ENGINE
        assert out == ""
        assert "genbridge: init error" in err

    def test_main_profile_without_compiled_module_exits_with_init_error(
        self, stdin, capsys, tmp_path: Path
    ) -> None:
        stdin(b"{}")
        code = main(["--project-root", str(tmp_path), "--profile", "main", "-o", f"cwd={tmp_path}"])
        out, err = capsys.readouterr()
        assert code == EXIT_ENGINE
        assert out == ""
        assert "genbridge: init error" in err

    def test_no_engine_runs_main_profile_not_echo(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"foo\nbar\n")
        code = main(["--project-root", str(tmp_path), "-o", f"cwd={tmp_path}"])
        out, err = capsys.readouterr()
        assert code == EXIT_ENGINE
        assert out == ""
        assert "genbridge: init error" in err

    def test_list_profiles_with_bad_config_is_usage_error(self, capsys, tmp_path: Path) -> None:
        config_dir = tmp_path / ".genbridge"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(
            json.dumps({"profiles": {"bad": {"options": ["not", "an", "object"]}}}),
            encoding="utf-8",
        )
        with pytest.raises(SystemExit) as info:
            main(["--project-root", str(tmp_path), "--list-profiles"])
        out, err = capsys.readouterr()
        assert info.value.code == 2
        assert out == ""
        assert "invalid profile 'bad'" in err

    def test_failing_program_exits_with_init_error(self, stdin, capsys, tmp_path: Path) -> None:
        stdin(b"foo\n")
        code = main(["--project-root", str(tmp_path), "-e", "command", "--", sys.executable, "-c", "raise SystemExit(9)"])
        out, err = capsys.readouterr()
        assert code == EXIT_ENGINE
        assert out == ""
        assert "status 9" in err

    def test_broken_stdout_exits_with_relay_error(self, stdin, monkeypatch, capsys, tmp_path: Path) -> None:
        stdin(b"foo\n")
        monkeypatch.setattr(sys, "stdout", BrokenStdout())
        code = main(["--project-root", str(tmp_path), "-e", "prefix"])
        assert code == EXIT_RELAY
        assert "genbridge: relay error" in capsys.readouterr().err

    def test_unknown_engine_is_usage_error(self, capsys, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as info:
            main(["--project-root", str(tmp_path), "--engine", "nope"])
        assert info.value.code == 2
        assert "Unknown engine" in capsys.readouterr().err

    def test_malformed_option_is_usage_error(self, capsys, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as info:
            main(["--project-root", str(tmp_path), "-o", "novalue"])
        assert info.value.code == 2
        assert "KEY=VALUE" in capsys.readouterr().err


class TestModuleEntryPoint:
    """Runs ``python -m genbridge`` as a real child process."""

    def _run(self, args: list[str], data: bytes, tmp_path: Path) -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            [sys.executable, "-m", "genbridge", "--project-root", str(tmp_path), *args],
            input=data,
            cwd=REPO_ROOT,
            capture_output=True,
        )

    def test_end_to_end(self, tmp_path: Path) -> None:
        result = self._run(["-e", "prefix", "-o", "prefix=GEN:"], b"foo\nbar\n", tmp_path)
        assert result.returncode == 0
        assert result.stdout == b"GEN:foo\nGEN:bar\n"
        assert result.stderr == b""

    def test_init_failure_is_non_zero_with_no_output(self, tmp_path: Path) -> None:
        result = self._run(["-e", "command", "--", "genbridge-no-such-program-xyz"], b"foo\n", tmp_path)
        assert result.returncode == EXIT_ENGINE
        assert result.stdout == b""
