"""Compile, deploy and debug steps.

Each step is a blocking call into `huffc` or `hevm`. A debug run compiles the
source file, runs the creation code in hevm to obtain the runtime bytecode,
encodes calldata for the selected function and builds the interactive
`hevm exec --debug` command for it.
"""

from __future__ import annotations

import logging
import string
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from huff_debug import process, store
from huff_debug.abi import FunctionSelector, encode_calldata
from huff_debug.commands import build_compile_command, build_debug_command, build_deploy_command, format_even_bytes
from huff_debug.config import DebugConfig
from huff_debug.errors import ProcessExecutionError

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True)
class DebugPlan:
    bytecode: str
    runtime_bytecode: str
    calldata: str
    command: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_hex(output: str, *, command: str, what: str) -> str:
    out = output.strip()
    if out.startswith("0x"):
        out = out[2:]
    if not out or not set(out) <= _HEX_DIGITS:
        raise ProcessExecutionError(
            command,
            0,
            stdout=output,
            reason=f"{what} is not a hex string",
        )
    return format_even_bytes("0x" + out)


def compile_contract(source_root: Path | str, filename: str) -> str:
    """
    Compile `filename` (relative to `source_root`) with huffc.

    Returns:
        `0x`-prefixed creation bytecode padded to whole bytes.
    """
    logger.info("Compiling contract...")
    command = build_compile_command(filename)
    out = process.run(command, cwd=source_root)
    return _as_hex(out, command=command, what="Compiler output")


def compile_source(source: str, config: DebugConfig, root: Path | str) -> str:
    """Compile a source string through a temporary file under the cache."""
    store.write_temp_source(source, config.temp_source_filename, root)
    try:
        return compile_contract(root, config.temp_source_filename)
    finally:
        store.delete_temp_source(config.temp_source_filename, root)


def deploy_contract(bytecode: str, config: DebugConfig, root: Path | str) -> str:
    """
    Run creation code in hevm and return the deployed runtime bytecode.

    When state or storage checking is enabled the state repository is reset
    first, so every deploy starts from an empty state.
    """
    if config.uses_state:
        store.reset_state_repository(config.state_path, root)

    command = build_deploy_command(bytecode, config, root)
    command_file = store.write_command_file(command, config.temp_command_filename, root)
    logger.info("Deploying contract...")
    out = process.run_command_file(command_file, cwd=root)
    return _as_hex(out, command=command, what="Deploy output")


def prepare_debug(
    root: Path | str,
    filename: str,
    selected_function: FunctionSelector,
    args: list[list[Any]],
    config: DebugConfig,
) -> DebugPlan:
    """Compile, deploy and build the interactive debug command for one call."""
    try:
        calldata = encode_calldata(selected_function.fn_sig, args)
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Cannot encode arguments for {selected_function.fn_sig}: {e}") from e

    bytecode = compile_contract(root, filename)
    runtime_bytecode = deploy_contract(bytecode, config, root)
    command = build_debug_command(runtime_bytecode, calldata, config, root)
    return DebugPlan(bytecode=bytecode, runtime_bytecode=runtime_bytecode, calldata=calldata, command=command)
