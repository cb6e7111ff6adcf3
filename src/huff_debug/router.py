"""Host side of the panel message protocol.

Inbound:
    {"type": "loadDocument"}
    {"type": "start-debug", "values": {"selectedFunction": [fn_id, {"fnSig", "args"}], "argsArr": [[arg, value]]}}

Outbound:
    {"type": "receiveContractInterface", "data": {fn_id: {"fnSig", "args"}}}
    {"type": "debugStarted", "data": {...}}
    {"type": "error", "data": {"message", "code"}}

Messages are handled one at a time. `start-debug` runs as a background task so
the loop keeps receiving while a deploy is in flight; a second request for the
same session is answered with a `DeployInFlightError`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from huff_debug.abi import FunctionSelector, SignatureExtractor, table_to_wire
from huff_debug.errors import HuffDebugError, ProtocolError
from huff_debug.session import DebugSession

logger = logging.getLogger(__name__)

PostMessage = Callable[[dict[str, Any]], Awaitable[None]]
DocumentReader = Callable[[], str]


def parse_start_debug(message: dict[str, Any]) -> tuple[FunctionSelector, list[list[Any]]]:
    """
    Validate a `start-debug` payload.

    Raises:
        ProtocolError: If the payload does not match the protocol.
    """
    values = message.get("values")
    if not isinstance(values, dict):
        raise ProtocolError("start-debug without values", "start-debug")

    selected = values.get("selectedFunction")
    if not isinstance(selected, list) or len(selected) != 2:
        raise ProtocolError("selectedFunction must be [fn_id, descriptor]", "start-debug")
    try:
        fn = FunctionSelector.from_wire(str(selected[0]), selected[1])
    except ValueError as e:
        raise ProtocolError(str(e), "start-debug") from e

    args_arr = values.get("argsArr") or []
    if not isinstance(args_arr, list) or not all(isinstance(a, list) and len(a) == 2 for a in args_arr):
        raise ProtocolError("argsArr must be a list of [name, value] pairs", "start-debug")
    return fn, [[str(name), value] for name, value in args_arr]


def error_message(e: Exception) -> dict[str, Any]:
    if isinstance(e, HuffDebugError):
        return {"type": "error", "data": {"message": e.message, "code": e.code}}
    return {"type": "error", "data": {"message": f"{type(e).__name__}: {e}", "code": None}}


class MessageRouter:
    def __init__(
        self,
        *,
        extractor: SignatureExtractor,
        session: DebugSession,
        read_document: DocumentReader,
        post_message: PostMessage,
    ) -> None:
        self.extractor = extractor
        self.session = session
        self.read_document = read_document
        self.post_message = post_message
        self._tasks: set[asyncio.Task] = set()

    async def handle(self, message: Any) -> None:
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            logger.warning(f"Ignoring malformed panel message: {message!r}")
            return

        msg_type = message["type"]
        if msg_type == "loadDocument":
            await self._load_document()
        elif msg_type == "start-debug":
            try:
                fn, args = parse_start_debug(message)
            except ProtocolError as e:
                logger.warning(e.message)
                return
            task = asyncio.create_task(self._start_debug(fn, args))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            logger.debug(f"Ignoring unknown panel message type {msg_type!r}")

    async def drain(self) -> None:
        """Wait for every background `start-debug` task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _load_document(self) -> None:
        try:
            table = self.extractor(self.read_document())
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load contract interface: {e}")
            await self.post_message(error_message(e))
            return
        await self.post_message({"type": "receiveContractInterface", "data": table_to_wire(table)})

    async def _start_debug(self, fn: FunctionSelector, args: list[list[Any]]) -> None:
        try:
            plan = await self.session.start(fn, args)
        except (HuffDebugError, ValueError, OSError) as e:
            await self.post_message(error_message(e))
            return
        await self.post_message(
            {
                "type": "debugStarted",
                "data": {"sessionId": self.session.session_id, "function": fn.fn_sig, **plan.to_dict()},
            }
        )
