from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from huff_debug.abi import FunctionSelector, function_table_from_abi, selector_id, table_to_wire
from huff_debug.config import DebugConfig
from huff_debug.errors import DeployInFlightError, ProcessExecutionError, ProtocolError
from huff_debug.pipeline import DebugPlan
from huff_debug.router import MessageRouter, error_message, parse_start_debug
from huff_debug.session import DebugSession

from conftest import BAR_ABI

BAR_ID = selector_id("bar(uint256)")
START_BAR = {
    "type": "start-debug",
    "values": {
        "selectedFunction": [BAR_ID, {"fnSig": "bar(uint256)", "args": ["uint256"]}],
        "argsArr": [["uint256", "1"]],
    },
}
PLAN = DebugPlan(bytecode="0x6000", runtime_bytecode="0x600035", calldata="0x0c55699c", command="hevm exec --debug")


class StubSession:
    """Stands in for `DebugSession`: records calls, optionally blocks or fails."""

    def __init__(self, error: Exception | None = None) -> None:
        self.session_id = "panel_stub"
        self.calls: list[tuple[FunctionSelector, list]] = []
        self.error = error
        self.gate: asyncio.Event | None = None

    async def start(self, fn: FunctionSelector, args: list) -> DebugPlan:
        if self.gate is not None and self.calls:
            raise DeployInFlightError(self.session_id)
        self.calls.append((fn, args))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return PLAN


def _router(
    session: StubSession | DebugSession | None = None,
    extractor=None,
    document: str = "#define macro MAIN() = {}",
):
    posted: list[dict[str, Any]] = []

    async def post(message: dict[str, Any]) -> None:
        posted.append(message)

    router = MessageRouter(
        extractor=extractor or (lambda text: function_table_from_abi(BAR_ABI)),
        session=session or StubSession(),
        read_document=lambda: document,
        post_message=post,
    )
    return router, posted


def test_parse_start_debug() -> None:
    fn, args = parse_start_debug(START_BAR)
    assert fn == FunctionSelector(fn_id=BAR_ID, fn_sig="bar(uint256)", args=["uint256"])
    assert args == [["uint256", "1"]]


@pytest.mark.parametrize(
    "message",
    [
        {"type": "start-debug"},
        {"type": "start-debug", "values": {"selectedFunction": [BAR_ID]}},
        {"type": "start-debug", "values": {"selectedFunction": [BAR_ID, {"args": []}]}},
        {
            "type": "start-debug",
            "values": {"selectedFunction": [BAR_ID, {"fnSig": "bar(uint256)"}], "argsArr": ["uint256"]},
        },
    ],
)
def test_parse_start_debug_rejects(message) -> None:
    with pytest.raises(ProtocolError):
        parse_start_debug(message)


def test_error_message_shape() -> None:
    assert error_message(DeployInFlightError("p1"))["data"]["code"] == -32012
    assert error_message(ValueError("bad")) == {"type": "error", "data": {"message": "ValueError: bad", "code": None}}


@pytest.mark.anyio
async def test_load_document_posts_interface() -> None:
    seen: list[str] = []

    def extractor(text: str):
        seen.append(text)
        return function_table_from_abi(BAR_ABI)

    router, posted = _router(extractor=extractor, document="source text")
    await router.handle({"type": "loadDocument"})

    assert seen == ["source text"]
    assert posted == [{"type": "receiveContractInterface", "data": table_to_wire(function_table_from_abi(BAR_ABI))}]


@pytest.mark.anyio
async def test_load_document_extractor_failure_posts_error() -> None:
    def extractor(text: str):
        raise ValueError("no ABI")

    router, posted = _router(extractor=extractor)
    await router.handle({"type": "loadDocument"})

    assert posted[0]["type"] == "error"
    assert "no ABI" in posted[0]["data"]["message"]


@pytest.mark.anyio
@pytest.mark.parametrize("message", [{"type": "ping"}, {"values": {}}, "loadDocument", None, {"type": 3}])
async def test_unknown_and_malformed_messages_are_ignored(message) -> None:
    session = StubSession()
    router, posted = _router(session)

    await router.handle(message)
    await router.drain()

    assert posted == []
    assert session.calls == []


@pytest.mark.anyio
async def test_malformed_start_debug_is_ignored() -> None:
    session = StubSession()
    router, posted = _router(session)

    await router.handle({"type": "start-debug", "values": {"argsArr": []}})
    await router.drain()

    assert posted == []
    assert session.calls == []


@pytest.mark.anyio
async def test_start_debug_posts_debug_started() -> None:
    session = StubSession()
    router, posted = _router(session)

    await router.handle(START_BAR)
    await router.drain()

    ((fn, args),) = session.calls
    assert fn.fn_sig == "bar(uint256)"
    assert args == [["uint256", "1"]]
    assert posted == [
        {
            "type": "debugStarted",
            "data": {"sessionId": "panel_stub", "function": "bar(uint256)", **PLAN.to_dict()},
        }
    ]


@pytest.mark.anyio
async def test_start_debug_failure_posts_error() -> None:
    session = StubSession(error=ProcessExecutionError("huffc x --bytecode", 1, stderr="Error: bad macro"))
    router, posted = _router(session)

    await router.handle(START_BAR)
    await router.drain()

    assert posted[0]["type"] == "error"
    assert posted[0]["data"]["code"] == -32011
    assert "bad macro" in posted[0]["data"]["message"]


@pytest.mark.anyio
async def test_router_keeps_receiving_while_deploy_in_flight() -> None:
    session = StubSession()
    session.gate = asyncio.Event()
    router, posted = _router(session)

    await router.handle(START_BAR)
    await asyncio.sleep(0)
    await router.handle({"type": "loadDocument"})
    await router.handle(START_BAR)
    await asyncio.sleep(0)

    assert [m["type"] for m in posted] == ["receiveContractInterface", "error"]
    assert posted[1]["data"]["code"] == -32012

    session.gate.set()
    await router.drain()
    assert posted[-1]["type"] == "debugStarted"
    assert len(session.calls) == 1


@pytest.mark.anyio
async def test_unparseable_signature_is_reported(fake_tools, workspace: Path) -> None:
    session = DebugSession(workspace, "src/Counter.huff", DebugConfig(), session_id="panel_sig")
    router, posted = _router(session)
    message = {
        "type": "start-debug",
        "values": {
            "selectedFunction": [BAR_ID, {"fnSig": "bar(uint256 x)", "args": ["uint256"]}],
            "argsArr": [["uint256", "1"]],
        },
    }

    await router.handle(message)
    await router.drain()

    (error,) = posted
    assert error["type"] == "error"
    assert "Cannot encode arguments for bar(uint256 x)" in error["data"]["message"]
    assert fake_tools.args("huffc") == ""

    (log_dir,) = (workspace / "cache" / "logs").iterdir()
    events = [json.loads(line) for line in (log_dir / "events.jsonl").read_text().splitlines()]
    assert [e["event"] for e in events] == ["started", "failed"]
