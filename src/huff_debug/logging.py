"""Per-panel session logs.

Each debug session owns one directory under the workspace cache:

    cache/logs/<session_id>/session.json   workspace, file and deploy config
    cache/logs/<session_id>/events.jsonl   one line per step of every debug run

Event lines always carry `t` (unix seconds, millisecond precision) and
`event`, one of `started`, `deployed`, `failed` or `finished`.
"""

from __future__ import annotations

import json
import os
import re
import secrets
import time
from pathlib import Path
from typing import Any

from huff_debug.constants import LOGS_DIRNAME
from huff_debug.errors import HuffDebugError
from huff_debug.store import cache_dir

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def new_session_id(prefix: str = "panel") -> str:
    """`<prefix>_<utc timestamp>_<pid>_<6 hex chars>`, unique per process and call."""
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    return f"{prefix}_{stamp}_{os.getpid()}_{secrets.token_hex(3)}"


class SessionLog:
    def __init__(self, workspace: Path | str, session_id: str) -> None:
        self.session_id = session_id
        self.root = cache_dir(workspace) / LOGS_DIRNAME / _UNSAFE_CHARS.sub("_", session_id)[:120]
        self.root.mkdir(parents=True, exist_ok=True)
        self.metadata_path = self.root / "session.json"
        self.events_path = self.root / "events.jsonl"

    def write_metadata(self, *, workspace: Path | str, filename: str, config: dict[str, Any]) -> None:
        meta = {
            "session_id": self.session_id,
            "workspace": str(workspace),
            "file": filename,
            "config": config,
            "opened_at": int(time.time()),
        }
        self.metadata_path.write_text(json.dumps(meta, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def _append(self, event: str, **fields: Any) -> None:
        row = {"t": round(time.time(), 3), "event": event, **fields}
        with self.events_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, sort_keys=True) + "\n")

    def started(self, function: str, args: list[list[Any]]) -> None:
        self._append("started", function=function, args=args)

    def deployed(self, runtime_bytecode: str, calldata: str) -> None:
        self._append("deployed", runtime_bytes=(len(runtime_bytecode) - 2) // 2, calldata=calldata)

    def failed(self, error: Exception) -> None:
        code = error.code if isinstance(error, HuffDebugError) else None
        self._append("failed", error_type=type(error).__name__, error=str(error), code=code)

    def finished(self, duration_s: float) -> None:
        self._append("finished", duration_s=round(duration_s, 3))
