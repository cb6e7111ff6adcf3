"""
Shared pytest fixtures for huff-debug tests.

This module provides:
- Fake `huffc` / `hevm` executables on PATH that record their arguments
- A workspace with a Huff source file and an ABI
- Skip conditions for tests that need git or a POSIX shell
"""

from __future__ import annotations

import json
import os
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path

import pytest

FAKE_BYTECODE = "60008060093d393df3"
FAKE_RUNTIME = "0x600035"

BAR_ABI = [
    {"type": "function", "name": "foo", "inputs": [], "outputs": [], "stateMutability": "nonpayable"},
    {
        "type": "function",
        "name": "bar",
        "inputs": [{"name": "x", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {"type": "event", "name": "Bumped", "inputs": [], "anonymous": False},
]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Fake tools
# ---------------------------------------------------------------------------


@dataclass
class FakeTools:
    bin_dir: Path
    log_dir: Path

    def args(self, tool: str) -> str:
        path = self.log_dir / f"{tool}.args"
        return path.read_text().strip() if path.exists() else ""

    def write(self, tool: str, body: str) -> None:
        path = self.bin_dir / tool
        path.write_text("#!/bin/sh\n" + f'echo "$@" >> "{self.log_dir}/{tool}.args"\n' + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch) -> FakeTools:
    """Put recording `huffc` and `hevm` stand-ins first on PATH."""
    bin_dir = tmp_path / "bin"
    log_dir = tmp_path / "tool-logs"
    bin_dir.mkdir()
    log_dir.mkdir()
    tools = FakeTools(bin_dir=bin_dir, log_dir=log_dir)
    tools.write("huffc", f"printf '%s\\n' '{FAKE_BYTECODE}'\n")
    tools.write("hevm", f"printf '%s\\n' '{FAKE_RUNTIME}'\n")
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return tools


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace root holding `src/Counter.huff` and `Counter.abi.json`."""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "src" / "Counter.huff").write_text("#define macro MAIN() = takes(0) returns(0) {}\n")
    (root / "Counter.abi.json").write_text(json.dumps(BAR_ABI))
    return root


# ---------------------------------------------------------------------------
# Skip Conditions
# ---------------------------------------------------------------------------

skip_if_no_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")
skip_if_no_sh = pytest.mark.skipif(os.name == "nt" or shutil.which("sh") is None, reason="POSIX sh not available")
