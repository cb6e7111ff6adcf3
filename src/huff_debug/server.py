"""Panel host served over HTTP.

Endpoints:
    WS  /panel    panel message protocol; one debug session per connection
    GET /health   tool installation status (503 when a tool is missing)
    GET /metrics  Prometheus metrics
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from huff_debug import installation
from huff_debug.abi import SignatureExtractor
from huff_debug.config import DebugConfig
from huff_debug.router import MessageRouter
from huff_debug.session import DebugSession, Launcher, workspace_lock

logger = logging.getLogger(__name__)

HTTP_REQUESTS = Counter(
    "huff_debug_http_requests_total",
    "HTTP requests by endpoint and status",
    ["method", "endpoint", "status_code"],
)
HTTP_REQUEST_DURATION = Histogram(
    "huff_debug_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

KNOWN_ENDPOINTS = frozenset({"/health", "/metrics", "/panel"})


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to track HTTP request metrics.
    Records request count, duration, and status codes per endpoint.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        # Normalize endpoint path for metrics
        path = request.url.path
        endpoint = path if path in KNOWN_ENDPOINTS else "other"
        method = request.method
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=500).inc()
            raise
        else:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
            return response
        finally:
            HTTP_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)


def build_app(
    *,
    workspace: Path,
    filename: str,
    extractor: SignatureExtractor,
    config: DebugConfig,
    launcher: Launcher | None = None,
) -> Starlette:
    document = workspace / filename
    deploy_lock = workspace_lock(workspace)

    def read_document() -> str:
        return document.read_text(encoding="utf-8")

    async def health(request: Request) -> JSONResponse:
        checks = installation.run_checks()
        tools_ok = all(ok for _, ok, _, _ in checks)
        status = {
            "status": "ok" if tools_ok else "degraded",
            "tools": {name: {"ok": ok, "detail": message, "install": fix} for name, ok, message, fix in checks},
            "document": {"path": str(document), "exists": document.exists()},
        }
        return JSONResponse(status, status_code=200 if tools_ok else 503)

    async def metrics(request: Request) -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    async def panel(websocket: WebSocket) -> None:
        await websocket.accept()
        session = DebugSession(workspace, filename, config, launcher=launcher, deploy_lock=deploy_lock)
        connected = True

        async def post(message: dict[str, Any]) -> None:
            if not connected:
                logger.info(f"Panel {session.session_id} disconnected, dropping {message.get('type')} message")
                return
            await websocket.send_json(message)

        router = MessageRouter(extractor=extractor, session=session, read_document=read_document, post_message=post)
        logger.info(f"Panel {session.session_id} connected")
        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError as e:
                    logger.warning(f"Ignoring non-JSON panel message: {e}")
                    continue
                await router.handle(message)
        except WebSocketDisconnect:
            connected = False
            logger.info(f"Panel {session.session_id} disconnected")
        await router.drain()

    return Starlette(
        routes=[
            Route("/health", health),
            Route("/metrics", metrics),
            WebSocketRoute("/panel", panel),
        ],
        middleware=[Middleware(MetricsMiddleware)],
    )
