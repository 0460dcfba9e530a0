"""
Tool Executor

Architectural Intent:
- Single entry point for executing tool calls from any presentation layer
- Accepts OpenAI tool_call payloads and the legacy {tool, parameters} form
- Converts tool failures into result envelopes; nothing raised by a tool
  escapes to the caller
- Records one telemetry span and metric per call when telemetry is wired

Result Envelope:
    {"success": true, "result": ...}
    {"success": false, "error": "...", "code": "..."}
"""

from __future__ import annotations
import json
import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


class InvalidToolCall(ValueError):
    code = "invalid_request"


class ToolExecutor:
    def __init__(self, tool_server: Any, telemetry: Optional[Any] = None) -> None:
        self.tool_server = tool_server
        self.telemetry = telemetry

    @staticmethod
    def parse_call(request: Any) -> tuple[str, dict[str, Any]]:
        """Extract (tool name, arguments) from an OpenAI or legacy request."""
        if not isinstance(request, dict):
            raise InvalidToolCall("Tool call must be a JSON object")

        if "function" in request:
            function = request["function"]
            if not isinstance(function, dict):
                raise InvalidToolCall("'function' must be an object")
            name = function.get("name")
            arguments = function.get("arguments") or {}
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments) if arguments.strip() else {}
                except json.JSONDecodeError:
                    logger.debug("Unparseable arguments for %s, using {}", name)
                    arguments = {}
        elif "tool" in request:
            name = request["tool"]
            arguments = request.get("parameters") or {}
        else:
            raise InvalidToolCall("Tool call must contain 'function' or 'tool'")

        if not isinstance(name, str) or not name:
            raise InvalidToolCall("Tool name must be a non-empty string")
        if not isinstance(arguments, dict):
            arguments = {}
        return name, arguments

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        span = self.telemetry.start_span(f"tool.{name}") if self.telemetry else None
        started = time.perf_counter()
        error: Optional[str] = None
        try:
            result = await self.tool_server.call_tool(name, arguments)
            return {"success": True, "result": result}
        except Exception as e:
            error = str(e) or e.__class__.__name__
            code = getattr(e, "code", "internal_error")
            logger.info("Tool %s failed (%s): %s", name, code, error)
            return {"success": False, "error": error, "code": code}
        finally:
            if self.telemetry:
                duration_ms = (time.perf_counter() - started) * 1000
                self.telemetry.record_tool_call(name, error is None, duration_ms)
                self.telemetry.end_span(span, error)

    async def execute(self, request: Any) -> dict[str, Any]:
        try:
            name, arguments = self.parse_call(request)
        except InvalidToolCall as e:
            return {"success": False, "error": str(e), "code": e.code}
        return await self.execute_tool(name, arguments)

    async def execute_batch(self, requests: list[Any]) -> dict[str, Any]:
        """Run calls one after another; a failure does not stop the batch."""
        results = []
        for index, request in enumerate(requests):
            outcome = await self.execute(request)
            results.append({"index": index, **outcome})
        successful = sum(1 for r in results if r["success"])
        return {
            "batch_results": results,
            "total": len(results),
            "successful": successful,
            "failed": len(results) - successful,
        }

    def definitions(self) -> list[dict[str, Any]]:
        return self.tool_server.openai_definitions()

    async def available_tools(self) -> list[str]:
        return [tool.name for tool in await self.tool_server.list_tools()]
