"""Tests for rd.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from rd.platform.process import TRUNCATION_MARKER, CommandOutput, run_command


class TestCommandOutput:
    def test_ok_on_zero_exit(self) -> None:
        out = CommandOutput(command=("sfp", "release"), stdout="done", stderr="", exit_code=0)
        assert out.ok is True

    def test_detail_prefers_stderr(self) -> None:
        out = CommandOutput(command=("sfp",), stdout="out", stderr="err", exit_code=1)
        assert out.detail == "err"
        out = CommandOutput(command=("sfp",), stdout="out", stderr="", exit_code=1)
        assert out.detail == "out"

    def test_str_truncates_long_commands(self) -> None:
        out = CommandOutput(
            command=("sfp", "server", "environment", "lock", "--name", "uat"),
            stdout="",
            stderr="",
            exit_code=2,
        )
        assert str(out) == "sfp server environment ... exited with 2"

    def test_frozen(self) -> None:
        out = CommandOutput(("sfp",), "", "", 0)
        with pytest.raises(AttributeError):
            out.exit_code = 1  # type: ignore[misc]


class TestRunCommand:
    def test_captures_stdout(self, tmp_path: Path) -> None:
        out = run_command(sys.executable, ["-c", "print('hello')"], silent=True, cwd=tmp_path)
        assert out.ok
        assert out.stdout == "hello"
        assert out.stderr == ""

    def test_non_zero_exit_is_not_raised(self) -> None:
        out = run_command(
            sys.executable,
            ["-c", "import sys; sys.stderr.write('nope\\n'); sys.exit(3)"],
            silent=True,
        )
        assert out.exit_code == 3
        assert not out.ok
        assert out.stderr == "nope"

    def test_missing_program(self) -> None:
        out = run_command("definitely-not-a-real-binary-xyz", ["--help"], silent=True)
        assert out.exit_code == -1
        assert out.stderr

    def test_nul_byte_argument_is_not_raised(self) -> None:
        out = run_command(sys.executable, ["-c", "pass", "T\x001"], silent=True)
        assert out.exit_code == -1
        assert "null" in out.stderr

    def test_output_is_capped(self) -> None:
        out = run_command(
            sys.executable,
            ["-c", "import sys; sys.stdout.write('x' * 5000)"],
            silent=True,
            max_buffer=100,
        )
        assert out.ok
        assert out.stdout.startswith("x" * 100)
        assert out.stdout.endswith(TRUNCATION_MARKER.strip())
        assert out.stdout.count("x") == 100

    def test_echoes_when_not_silent(self, capsys: pytest.CaptureFixture[str]) -> None:
        out = run_command(sys.executable, ["-c", "print('visible')"])
        assert out.stdout == "visible"
        assert "visible" in capsys.readouterr().out

    def test_env_is_passed(self) -> None:
        out = run_command(
            sys.executable,
            ["-c", "import os; print(os.environ['RD_PROBE'])"],
            silent=True,
            env={"RD_PROBE": "42", "PATH": ""},
        )
        assert out.stdout == "42"
