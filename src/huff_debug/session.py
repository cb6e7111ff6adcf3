"""One debug session per panel, with a single in-flight guard.

Sessions on the same workspace share the command file, the temp sources and
the state repository, so compile and deploy run under a per-workspace
`threading.Lock` (see `workspace_lock`). With state or storage checking the
lock is held until the debugger exits, since hevm keeps using the state
repository while it runs.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from prometheus_client import Counter, Gauge, Histogram

from huff_debug import installation
from huff_debug.abi import FunctionSelector
from huff_debug.config import DebugConfig
from huff_debug.errors import DeployInFlightError, HuffDebugError
from huff_debug.logging import SessionLog, new_session_id
from huff_debug.pipeline import DebugPlan, prepare_debug

logger = logging.getLogger(__name__)

# Runs the interactive debug command, e.g. `process.run_in_terminal`.
Launcher = Callable[[str, Path], Any]

DEBUG_SESSIONS = Counter(
    "huff_debug_sessions_total",
    "Debug sessions by outcome",
    ["status"],
)
DEBUG_SESSION_DURATION = Histogram(
    "huff_debug_session_duration_seconds",
    "Compile + deploy duration in seconds",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60),
)
ACTIVE_SESSIONS = Gauge(
    "huff_debug_active_sessions",
    "Number of debug sessions currently compiling or deploying",
)

_WORKSPACE_LOCKS: dict[Path, threading.Lock] = {}
_WORKSPACE_LOCKS_GUARD = threading.Lock()


def workspace_lock(workspace: Path | str) -> threading.Lock:
    """Return the process-wide deploy lock for the resolved `workspace`."""
    key = Path(workspace).resolve()
    with _WORKSPACE_LOCKS_GUARD:
        lock = _WORKSPACE_LOCKS.get(key)
        if lock is None:
            lock = _WORKSPACE_LOCKS[key] = threading.Lock()
        return lock


class DebugSession:
    def __init__(
        self,
        workspace: Path,
        filename: str,
        config: DebugConfig,
        *,
        launcher: Launcher | None = None,
        session_id: str | None = None,
        event_log: bool = True,
        deploy_lock: threading.Lock | None = None,
    ) -> None:
        self.workspace = workspace
        self.filename = filename
        self.config = config
        self.launcher = launcher
        self.session_id = session_id or new_session_id()
        self.event_log = event_log
        self.deploy_lock = deploy_lock if deploy_lock is not None else workspace_lock(workspace)
        self._lock = asyncio.Lock()
        self._log: SessionLog | None = None

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def _open_log(self) -> SessionLog | None:
        if not self.event_log:
            return None
        if self._log is None:
            self._log = SessionLog(self.workspace, self.session_id)
            self._log.write_metadata(workspace=self.workspace, filename=self.filename, config=self.config.to_dict())
        return self._log

    def _launch(self, plan: DebugPlan) -> None:
        if self.launcher is not None:
            self.launcher(plan.command, self.workspace)

    def _run(self, selected_function: FunctionSelector, args: list[list[Any]], log: SessionLog | None) -> DebugPlan:
        installation.require_installations()
        with self.deploy_lock:
            plan = prepare_debug(self.workspace, self.filename, selected_function, args, self.config)
            if log:
                log.deployed(plan.runtime_bytecode, plan.calldata)
            if self.config.uses_state:
                self._launch(plan)
                return plan
        self._launch(plan)
        return plan

    async def start(self, selected_function: FunctionSelector, args: list[list[Any]]) -> DebugPlan:
        """
        Compile, deploy and (with a launcher) open the debugger for one call.

        The blocking tool invocations run in a worker thread.

        Raises:
            DeployInFlightError: If this session is already running.
            HuffDebugError: ToolMissingError / ProcessExecutionError from the pipeline.
            ValueError: If the arguments do not fit the function signature.
        """
        if self._lock.locked():
            DEBUG_SESSIONS.labels(status="rejected").inc()
            raise DeployInFlightError(self.session_id)

        async with self._lock:
            ACTIVE_SESSIONS.inc()
            started = time.time()
            log = self._open_log()
            if log:
                log.started(selected_function.fn_sig, args)
            try:
                plan = await asyncio.to_thread(self._run, selected_function, args, log)
            except (HuffDebugError, ValueError, OSError) as e:
                DEBUG_SESSIONS.labels(status="failed").inc()
                logger.error(f"Debug session {self.session_id} failed: {e}")
                if log:
                    log.failed(e)
                raise
            finally:
                ACTIVE_SESSIONS.dec()
                DEBUG_SESSION_DURATION.observe(time.time() - started)

            DEBUG_SESSIONS.labels(status="ok").inc()
            if log:
                log.finished(time.time() - started)
            return plan
