"""Shared utility functions for parsing, validation and file handling."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def safe_bool(val: Any, default: bool) -> bool:
    """
    Parse a boolean value with common string aliases (true, 1, yes).
    """
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    if isinstance(val, str):
        return val.lower() in ("true", "1", "yes")
    return bool(val)


def is_hex_address(val: Any) -> bool:
    """True for a `0x`-prefixed 20-byte hex address (checksum not enforced)."""
    if not isinstance(val, str) or not val.startswith("0x") or len(val) != 42:
        return False
    try:
        int(val[2:], 16)
    except ValueError:
        return False
    return True


def atomic_write_text(path: Path, content: str) -> None:
    """
    Write text to a file atomically using a temporary file and rename.

    Args:
        path: Destination path.
        content: Text content to write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + f".tmp.{os.getpid()}")
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
    except (OSError, UnicodeEncodeError) as e:
        logger.error(f"Atomic write to {path} failed: {e}")
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass
        raise


def safe_json_loads(text: str, *, context: str = "", max_snippet_len: int = 100) -> Any:
    """
    Parse JSON with an error message that points at the failing position.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        start = max(0, e.pos - max_snippet_len // 2)
        end = min(len(text), e.pos + max_snippet_len // 2)
        snippet = text[start:end]
        if start > 0:
            snippet = "..." + snippet
        if end < len(text):
            snippet = snippet + "..."
        raise ValueError(
            f"JSON parse error{f' in {context}' if context else ''}: {e.msg}\nPosition {e.pos}, snippet: {snippet!r}"
        ) from e


def read_json_file(path: Path, *, context: str = "") -> Any:
    """
    Read and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content is not valid JSON.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}{f' ({context})' if context else ''}")
    return safe_json_loads(path.read_text(encoding="utf-8"), context=context or str(path))
