from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from huff_debug import process
from huff_debug.errors import ProcessExecutionError

from conftest import skip_if_no_sh

pytestmark = skip_if_no_sh


def test_run_returns_stdout(tmp_path: Path) -> None:
    (tmp_path / "marker").write_text("hello")
    assert process.run("cat marker", cwd=tmp_path) == "hello"


def test_run_raises_with_exit_code_and_output(tmp_path: Path) -> None:
    with pytest.raises(ProcessExecutionError) as exc_info:
        process.run("echo partial; echo 'Error: invalid opcode' >&2; exit 3", cwd=tmp_path)

    err = exc_info.value
    assert err.returncode == 3
    assert err.stdout.strip() == "partial"
    assert "invalid opcode" in err.stderr
    assert "exit 3" in err.message
    assert "\n" not in err.message


def test_run_command_file_reads_command_back(tmp_path: Path) -> None:
    command_file = tmp_path / "cmd"
    command_file.write_text("printf '%s' 0x6000")
    assert process.run_command_file(command_file, cwd=tmp_path) == "0x6000"


def test_run_command_file_failure(tmp_path: Path) -> None:
    command_file = tmp_path / "cmd"
    command_file.write_text("exit 7")
    with pytest.raises(ProcessExecutionError) as exc_info:
        process.run_command_file(command_file, cwd=tmp_path)
    assert exc_info.value.returncode == 7


def test_run_in_terminal_returns_exit_code(monkeypatch, tmp_path: Path) -> None:
    calls = []

    def fake_run(command, **kwargs):
        calls.append((command, kwargs))
        return subprocess.CompletedProcess(command, 2)

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert process.run_in_terminal("hevm exec --debug", cwd=tmp_path) == 2
    command, kwargs = calls[0]
    assert command == "hevm exec --debug"
    assert kwargs["shell"] is True
    assert "capture_output" not in kwargs
