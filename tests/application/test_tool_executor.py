"""Tests for ToolExecutor call parsing, envelopes and batches."""

import json
from unittest.mock import MagicMock

import pytest

from aias.application.tool_executor import InvalidToolCall, ToolExecutor
from aias.domain.exceptions import SessionNotFound
from aias.infrastructure.mcp_servers.gateway_server import ToolServer


def _make_server() -> ToolServer:
    server = ToolServer("test")

    @server.tool(
        name="echo",
        description="Echo back the input",
        input_schema={
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        },
    )
    async def echo(message: str) -> dict:
        return {"echoed": message}

    @server.tool(name="lookup", description="Always misses")
    async def lookup() -> dict:
        raise SessionNotFound("t-404")

    return server


class TestParseCall:
    def test_openai_string_arguments(self):
        name, args = ToolExecutor.parse_call(
            {
                "type": "function",
                "function": {"name": "echo", "arguments": json.dumps({"message": "hi"})},
            }
        )
        assert name == "echo"
        assert args == {"message": "hi"}

    def test_openai_object_arguments(self):
        name, args = ToolExecutor.parse_call(
            {"function": {"name": "echo", "arguments": {"message": "hi"}}}
        )
        assert args == {"message": "hi"}

    def test_unparseable_arguments_become_empty(self):
        _, args = ToolExecutor.parse_call(
            {"function": {"name": "list_terminals", "arguments": "{not json"}}
        )
        assert args == {}

    def test_legacy_form(self):
        name, args = ToolExecutor.parse_call(
            {"tool": "echo", "parameters": {"message": "x"}}
        )
        assert (name, args) == ("echo", {"message": "x"})

    def test_legacy_without_parameters(self):
        assert ToolExecutor.parse_call({"tool": "list_terminals"}) == (
            "list_terminals",
            {},
        )

    @pytest.mark.parametrize(
        "request_body",
        [[], "echo", {}, {"function": "echo"}, {"tool": ""}, {"function": {}}],
    )
    def test_invalid_requests(self, request_body):
        with pytest.raises(InvalidToolCall):
            ToolExecutor.parse_call(request_body)


class TestExecute:
    @pytest.mark.asyncio
    async def test_success_envelope(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute({"tool": "echo", "parameters": {"message": "a"}})
        assert outcome == {"success": True, "result": {"echoed": "a"}}

    @pytest.mark.asyncio
    async def test_domain_error_envelope(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute({"tool": "lookup"})
        assert outcome["success"] is False
        assert outcome["code"] == "session_not_found"
        assert "t-404" in outcome["error"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute({"tool": "rm_rf"})
        assert outcome["success"] is False
        assert outcome["code"] == "tool_not_found"

    @pytest.mark.asyncio
    async def test_missing_required_argument(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute({"tool": "echo", "parameters": {}})
        assert outcome["code"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_invalid_request(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute({"nothing": True})
        assert outcome["success"] is False
        assert outcome["code"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_telemetry_recorded(self):
        telemetry = MagicMock()
        span = object()
        telemetry.start_span.return_value = span
        executor = ToolExecutor(_make_server(), telemetry)

        await executor.execute_tool("echo", {"message": "a"})
        await executor.execute_tool("lookup", {})

        telemetry.start_span.assert_any_call("tool.echo")
        calls = telemetry.record_tool_call.call_args_list
        assert calls[0].args[:2] == ("echo", True)
        assert calls[1].args[:2] == ("lookup", False)
        assert telemetry.end_span.call_args_list[0].args == (span, None)
        assert telemetry.end_span.call_args_list[1].args[1] is not None


class TestBatch:
    @pytest.mark.asyncio
    async def test_batch_counts_and_indexes(self):
        executor = ToolExecutor(_make_server())
        outcome = await executor.execute_batch(
            [
                {"tool": "echo", "parameters": {"message": "1"}},
                {"tool": "lookup"},
                {"function": {"name": "echo", "arguments": '{"message": "3"}'}},
            ]
        )
        assert outcome["total"] == 3
        assert outcome["successful"] == 2
        assert outcome["failed"] == 1
        assert [r["index"] for r in outcome["batch_results"]] == [0, 1, 2]
        assert outcome["batch_results"][2]["result"] == {"echoed": "3"}

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        outcome = await ToolExecutor(_make_server()).execute_batch([])
        assert outcome == {"batch_results": [], "total": 0, "successful": 0, "failed": 0}


class TestDefinitions:
    @pytest.mark.asyncio
    async def test_definitions_in_openai_format(self):
        executor = ToolExecutor(_make_server())
        definitions = executor.definitions()
        assert definitions[0]["type"] == "function"
        assert definitions[0]["function"]["name"] == "echo"
        assert definitions[0]["function"]["parameters"]["required"] == ["message"]
        assert await executor.available_tools() == ["echo", "lookup"]
