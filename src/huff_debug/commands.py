"""Command-line construction for the compiler and the EVM execution engine.

Everything here is pure string building. Bytecode and calldata are passed
through untouched; malformed input only shows up later as a process failure.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from huff_debug.config import DebugConfig
from huff_debug.constants import COMPILER_BIN, ENGINE_BIN, MAX_GAS


def format_even_bytes(hex_str: str) -> str:
    """
    Pad a `0x` hex literal to an even number of digits.

    >>> format_even_bytes("0xabc")
    '0x0abc'
    """
    if len(hex_str) % 2:
        return hex_str.replace("0x", "0x0", 1)
    return hex_str


def state_dir(config: DebugConfig, root: Path | str) -> Path:
    return Path(root) / config.state_path


def _exec_args(code: str, config: DebugConfig) -> list[str]:
    args = [
        ENGINE_BIN,
        "exec",
        "--code",
        code,
        "--address",
        config.contract_address,
    ]
    return args


def _state_args(config: DebugConfig, root: Path | str) -> list[str]:
    if not config.uses_state:
        return []
    return ["--state", shlex.quote(str(state_dir(config, root)))]


def build_deploy_command(bytecode: str, config: DebugConfig, root: Path | str) -> str:
    """
    Build the hevm command that runs the contract's creation code.

    The `--state` flag is only added when state or storage checking is enabled.
    """
    args = _exec_args(bytecode, config)
    args += ["--create", "--caller", config.caller, "--gas", MAX_GAS]
    args += _state_args(config, root)
    return " ".join(args)


def build_compile_command(filename: str) -> str:
    """Build the compiler invocation that prints raw bytecode."""
    return f"{COMPILER_BIN} {shlex.quote(filename)} --bytecode"


def build_debug_command(runtime_bytecode: str, calldata: str, config: DebugConfig, root: Path | str) -> str:
    """
    Build the interactive hevm debugger command for a call into deployed code.
    """
    args = _exec_args(runtime_bytecode, config)
    args += ["--caller", config.caller, "--gas", MAX_GAS]
    args += _state_args(config, root)
    args += ["--debug", "--calldata", calldata]
    return " ".join(args)
