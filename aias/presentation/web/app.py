"""
Gateway HTTP API

Architectural Intent:
- Lightweight HTTP API built entirely on Python stdlib (http.server + asyncio)
- Exposes the tool registry in OpenAI function-calling format and executes
  tool calls posted in OpenAI tool_call or legacy {tool, parameters} form
- The web layer is a thin presentation adapter over ToolExecutor; it holds no
  tool logic of its own

API Surface:
    GET  /                    -> service description
    GET  /health              -> liveness probe
    GET  /api/tools           -> OpenAI tool definitions
    POST /api/tools/execute   -> execute one tool call
    POST /api/tools/batch     -> execute {"requests": [...]} sequentially

Threading Model:
    The stdlib server is synchronous. It runs in a background thread and each
    request gets its own handler thread, so a terminal read that waits for
    output does not hold up other requests. Terminal sessions belong to the
    application event loop, so handlers submit coroutines to that loop with
    run_coroutine_threadsafe and block on the result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from datetime import datetime, UTC
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional

from aias import __version__
from aias.application.tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

# Longest a handler waits on the event loop for one request
REQUEST_TIMEOUT = 600


class GatewayRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the gateway API.

    Attributes on the *server* instance (set by GatewayWebApp):
        executor:  ToolExecutor -- tool dispatch
        loop:      asyncio event loop that owns the terminal sessions
    """

    # Route per-request log lines through logging instead of stderr
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("web: %s", format % args)

    # ---- routing -----------------------------------------------------------

    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/":
            self._serve_info()
        elif self.path == "/health":
            self._send_json(
                {
                    "status": "healthy",
                    "timestamp": datetime.now(UTC).isoformat(),
                    "version": __version__,
                }
            )
        elif self.path.rstrip("/") == "/api/tools":
            self._send_json(self._executor.definitions())
        else:
            self._send_json(
                {"success": False, "error": "Endpoint not found"},
                HTTPStatus.NOT_FOUND,
            )

    def do_POST(self) -> None:  # noqa: N802
        if self.path == "/api/tools/execute":
            self._handle_execute()
        elif self.path == "/api/tools/batch":
            self._handle_batch()
        else:
            self._send_json(
                {"success": False, "error": "Endpoint not found"},
                HTTPStatus.NOT_FOUND,
            )

    # ---- endpoint implementations ------------------------------------------

    @property
    def _executor(self) -> ToolExecutor:
        return self.server.executor  # type: ignore[attr-defined]

    def _serve_info(self) -> None:
        self._send_json(
            {
                "name": "AIAS Executor",
                "description": "Tool executor for OpenAI function calling",
                "version": __version__,
                "endpoints": {"tools": "/api/tools", "health": "/health"},
            }
        )

    def _handle_execute(self) -> None:
        body = self._read_json()
        if body is None:
            return
        try:
            outcome = self._run(self._executor.execute(body))
        except Exception as exc:
            logger.exception("Tool execution failed")
            self._send_json(
                {"success": False, "error": str(exc)},
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )
            return

        if outcome["success"]:
            self._send_json(outcome["result"])
        else:
            self._send_json(
                {"success": False, "error": outcome["error"]},
                HTTPStatus.BAD_REQUEST,
            )

    def _handle_batch(self) -> None:
        body = self._read_json()
        if body is None:
            return
        requests = body.get("requests") if isinstance(body, dict) else None
        if not isinstance(requests, list):
            self._send_json(
                {"success": False, "error": "requests must be a list"},
                HTTPStatus.BAD_REQUEST,
            )
            return
        try:
            outcome = self._run(self._executor.execute_batch(requests))
        except Exception as exc:
            logger.exception("Batch execution failed")
            self._send_json(
                {"success": False, "error": str(exc)},
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )
            return
        self._send_json(outcome)

    # ---- helpers -----------------------------------------------------------

    def _run(self, coro: Any) -> Any:
        loop: asyncio.AbstractEventLoop = self.server.loop  # type: ignore[attr-defined]
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        return future.result(timeout=REQUEST_TIMEOUT)

    def _read_json(self) -> Optional[Any]:
        """Parse the JSON request body, answering 400 when it is malformed."""
        try:
            content_length = int(self.headers.get("Content-Length", 0))
            raw = self.rfile.read(content_length)
            return json.loads(raw) if raw else {}
        except (json.JSONDecodeError, ValueError):
            self._send_json(
                {"success": False, "error": "invalid JSON body"},
                HTTPStatus.BAD_REQUEST,
            )
            return None

    def _send_json(self, data: Any, status: HTTPStatus = HTTPStatus.OK) -> None:
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class GatewayWebApp:
    """Async-friendly HTTP server for the tool gateway.

    Usage::

        app = GatewayWebApp(executor=container.executor)
        await app.start("127.0.0.1", 23777)
        # ... later ...
        app.stop()
    """

    def __init__(self, executor: ToolExecutor) -> None:
        self.executor = executor
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> Optional[int]:
        return self._server.server_address[1] if self._server else None

    async def start(self, host: str = "127.0.0.1", port: int = 23777) -> None:
        """Start the server in a background thread.

        Must be awaited on the loop that owns the terminal sessions; that loop
        is captured for request handlers.
        """
        self._server = ThreadingHTTPServer((host, port), GatewayRequestHandler)
        self._server.daemon_threads = True
        self._server.executor = self.executor  # type: ignore[attr-defined]
        self._server.loop = asyncio.get_running_loop()  # type: ignore[attr-defined]

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="aias-web",
        )
        self._thread.start()
        logger.info("Gateway HTTP API started on http://%s:%d", host, self.port)

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            logger.info("Gateway HTTP API stopped")
        if self._thread is not None:
            self._thread.join(timeout=5)
