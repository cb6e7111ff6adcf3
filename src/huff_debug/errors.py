"""Error types for huff-debug.

Every error carries a numeric code, a single-line message and structured
data so it can be shown to the user or posted back to the panel as-is.
"""

from __future__ import annotations

from typing import Any


class HuffDebugError(Exception):
    """Base class for huff-debug errors."""

    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None):
        self.code = code
        self.message = message
        self.data = data or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }


class ToolMissingError(HuffDebugError):
    """One or more required external binaries are not on PATH."""

    def __init__(self, tools: list[str]):
        super().__init__(
            code=-32010,
            message=f"Required tool(s) not installed: {', '.join(tools)}",
            data={"tools": tools},
        )


class ProcessExecutionError(HuffDebugError):
    """An external command exited non-zero or produced unusable output."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = "", reason: str | None = None):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        output = (stderr or stdout).strip().replace("\n", " ")
        cause = reason or f"Command failed (exit {returncode})"
        super().__init__(
            code=-32011,
            message=f"{cause}: {output[:500]}" if output else cause,
            data={"command": command, "returncode": returncode},
        )


class DeployInFlightError(HuffDebugError):
    """A debug session is already running for this panel."""

    def __init__(self, session_id: str):
        super().__init__(
            code=-32012,
            message=f"A debug session is already in flight for panel {session_id}",
            data={"sessionId": session_id},
        )


class ProtocolError(HuffDebugError):
    """Malformed or unexpected panel message."""

    def __init__(self, reason: str, message_type: Any = None):
        super().__init__(
            code=-32600,  # Invalid request (standard JSON-RPC)
            message=f"Invalid panel message: {reason}",
            data={"type": message_type, "reason": reason},
        )


class InvalidConfigError(HuffDebugError):
    """Invalid configuration provided."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            code=-32602,  # Invalid params (standard JSON-RPC)
            message=f"Invalid config: {field} - {reason}",
            data={"field": field, "reason": reason},
        )
