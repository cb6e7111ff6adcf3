"""Deploy configuration.

`DebugConfig` is built once from a raw mapping (CLI flags, a JSON config file
or the panel host) and then handed, unchanged, to the command builder and the
store. Both the snake_case field names and the camelCase keys used by editor
settings (`hevmContractAddress`, `stateChecked`, ...) are accepted.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from huff_debug.constants import (
    DEFAULT_CALLER,
    DEFAULT_CONTRACT_ADDRESS,
    DEFAULT_STATE_PATH,
    DEFAULT_TEMP_COMMAND_FILENAME,
    DEFAULT_TEMP_SOURCE_FILENAME,
)
from huff_debug.errors import InvalidConfigError
from huff_debug.utils import is_hex_address, read_json_file, safe_bool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebugConfig:
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    caller: str = DEFAULT_CALLER
    state_checked: bool = False
    storage_checked: bool = False
    state_path: str = DEFAULT_STATE_PATH
    temp_command_filename: str = DEFAULT_TEMP_COMMAND_FILENAME
    temp_source_filename: str = DEFAULT_TEMP_SOURCE_FILENAME

    @property
    def uses_state(self) -> bool:
        """Whether hevm should run against the persisted state repository."""
        return self.state_checked or self.storage_checked

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# snake_case field -> accepted aliases
_ALIASES: dict[str, tuple[str, ...]] = {
    "contract_address": ("hevmContractAddress", "contractAddress"),
    "caller": ("hevmCaller",),
    "state_checked": ("stateChecked",),
    "storage_checked": ("storageChecked",),
    "state_path": ("statePath",),
    "temp_command_filename": ("tempHevmCommandFilename",),
    "temp_source_filename": ("tempSourceFilename",),
}

KNOWN_CONFIG_FIELDS = frozenset(_ALIASES) | frozenset(a for aliases in _ALIASES.values() for a in aliases)


def _lookup(raw: dict[str, Any], field: str) -> Any:
    if field in raw:
        return raw[field]
    for alias in _ALIASES[field]:
        if alias in raw:
            return raw[alias]
    return None


def _relative_path(raw: dict[str, Any], field: str, default: str) -> str:
    val = _lookup(raw, field)
    if val is None:
        return default
    if not isinstance(val, str) or not val.strip():
        raise InvalidConfigError(field, "must be a non-empty string")
    p = PurePosixPath(val.strip())
    if p.is_absolute() or ".." in p.parts:
        raise InvalidConfigError(field, "must be a path relative to the workspace root")
    return str(p)


def _address(raw: dict[str, Any], field: str, default: str) -> str:
    val = _lookup(raw, field)
    if val is None:
        return default
    if not is_hex_address(val):
        raise InvalidConfigError(field, f"must be a 0x-prefixed 20-byte hex address, got {val!r}")
    return val


def load_config(raw: Any) -> DebugConfig:
    """
    Validate a raw mapping and build a `DebugConfig`.

    Missing keys fall back to the defaults in `huff_debug.constants`.

    Raises:
        InvalidConfigError: If `raw` is not a mapping or a value is invalid.
    """
    if raw is None:
        return DebugConfig()
    if not isinstance(raw, dict):
        raise InvalidConfigError("config", "must be a JSON object")

    return DebugConfig(
        contract_address=_address(raw, "contract_address", DEFAULT_CONTRACT_ADDRESS),
        caller=_address(raw, "caller", DEFAULT_CALLER),
        state_checked=safe_bool(_lookup(raw, "state_checked"), False),
        storage_checked=safe_bool(_lookup(raw, "storage_checked"), False),
        state_path=_relative_path(raw, "state_path", DEFAULT_STATE_PATH),
        temp_command_filename=_relative_path(raw, "temp_command_filename", DEFAULT_TEMP_COMMAND_FILENAME),
        temp_source_filename=_relative_path(raw, "temp_source_filename", DEFAULT_TEMP_SOURCE_FILENAME),
    )


def unknown_config_fields(raw: dict[str, Any]) -> list[str]:
    return sorted(k for k in raw if k not in KNOWN_CONFIG_FIELDS)


def load_config_file(path: Path) -> DebugConfig:
    """Load a `DebugConfig` from a JSON file, warning about unknown keys."""
    raw = read_json_file(path, context="config file")
    if isinstance(raw, dict):
        unknown = unknown_config_fields(raw)
        if unknown:
            logger.warning(f"Ignoring unknown config field(s) in {path}: {', '.join(unknown)}")
    return load_config(raw)
