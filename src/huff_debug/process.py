"""Synchronous shell execution for the compiler, the engine and git.

All calls are blocking and single-shot: no streaming, no timeout, no retry.
Callers that must not block an event loop run these through
`asyncio.to_thread` (see `huff_debug.session`).
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from huff_debug.errors import ProcessExecutionError

logger = logging.getLogger(__name__)


def run(command: str, cwd: Path | str | None = None) -> str:
    """
    Run a shell command and return its standard output.

    Args:
        command: Command line, interpreted by the shell.
        cwd: Working directory (optional).

    Returns:
        Raw stdout text.

    Raises:
        ProcessExecutionError: If the command exits non-zero.
    """
    logger.debug(f"Running: {command} (cwd={cwd})")
    result = subprocess.run(
        command,
        shell=True,
        check=False,
        capture_output=True,
        text=True,
        cwd=str(cwd) if cwd else None,
    )
    if result.returncode != 0:
        raise ProcessExecutionError(command, result.returncode, result.stdout or "", result.stderr or "")
    return result.stdout


def run_command_file(path: Path | str, cwd: Path | str | None = None) -> str:
    """
    Run a command previously cached to a file.

    The command is read back by the shell itself, which sidesteps argument
    length and escaping limits for very long bytecode strings.
    """
    return run(f"sh {shlex.quote(str(path))}", cwd=cwd)


def run_in_terminal(command: str, cwd: Path | str | None = None) -> int:
    """
    Run an interactive command attached to the user's terminal.

    Returns:
        The command's exit code.
    """
    logger.info(f"Launching interactive session: {command}")
    result = subprocess.run(command, shell=True, check=False, cwd=str(cwd) if cwd else None)
    return result.returncode
