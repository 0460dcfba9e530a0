"""
MCP Stdio Transport

Architectural Intent:
- JSON-RPC over stdin/stdout transport layer for MCP protocol
- Reads Content-Length framed messages from stdin
- Routes MCP methods to a ToolServer instance
- Writes Content-Length framed JSON-RPC responses to stdout

MCP Integration:
- Handles initialize/initialized handshake
- Routes tools/list, tools/call, resources/list, resources/read
- Tool failures are reported in-band as results with isError set; only
  protocol problems (unknown method, unknown tool) become JSON-RPC errors
- Graceful shutdown on the shutdown request or EOF
"""

import json
import sys
import asyncio
import logging
from typing import Any, Optional

from aias import __version__
from aias.infrastructure.mcp_servers.gateway_server import ToolServer, ToolError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def _encode_message(obj: dict[str, Any]) -> bytes:
    """Encode a JSON-RPC message with Content-Length header."""
    body = json.dumps(obj).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def _parse_header(header_data: bytes) -> int:
    """Parse Content-Length from header bytes. Returns content length."""
    header_str = header_data.decode("ascii")
    for line in header_str.split("\r\n"):
        line = line.strip()
        if line.lower().startswith("content-length:"):
            return int(line.split(":", 1)[1].strip())
    raise ValueError("Missing Content-Length header")


async def _read_message(reader: asyncio.StreamReader) -> Optional[dict[str, Any]]:
    """Read a single JSON-RPC message from the stream.

    Returns None on EOF.
    """
    header_bytes = b""
    while True:
        line = await reader.readline()
        if not line:
            return None
        header_bytes += line
        if header_bytes.endswith(b"\r\n\r\n"):
            break

    content_length = _parse_header(header_bytes)
    body = await reader.readexactly(content_length)
    return json.loads(body.decode("utf-8"))


def _make_response(id: Any, result: Any) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": id,
        "result": result,
    }


def _make_error(id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": id,
        "error": error,
    }


def _text_content(payload: Any) -> list[dict[str, Any]]:
    return [{"type": "text", "text": json.dumps(payload, default=str)}]


async def _handle_initialize(
    server: ToolServer, params: dict[str, Any]
) -> dict[str, Any]:
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "capabilities": {
            "tools": {"listChanged": False},
            "resources": {"subscribe": False, "listChanged": False},
        },
        "serverInfo": {
            "name": server.name,
            "version": __version__,
        },
    }


async def _handle_tools_list(
    server: ToolServer, params: dict[str, Any]
) -> dict[str, Any]:
    tools = await server.list_tools()
    return {
        "tools": [
            {
                "name": t.name,
                "description": t.description,
                "inputSchema": t.input_schema,
            }
            for t in tools
        ]
    }


async def _handle_tools_call(
    server: ToolServer, params: dict[str, Any]
) -> dict[str, Any]:
    name = params.get("name", "")
    arguments = params.get("arguments") or {}
    if not server.has_tool(name):
        raise ToolError("tool_not_found", f"Tool '{name}' not found")
    try:
        result = await server.call_tool(name, arguments)
    except ToolError as e:
        return {"content": _text_content(e.to_dict()), "isError": True}
    return {"content": _text_content(result), "isError": False}


async def _handle_resources_list(
    server: ToolServer, params: dict[str, Any]
) -> dict[str, Any]:
    resources = await server.list_resources()
    return {
        "resources": [
            {
                "uri": r.uri,
                "description": r.description,
                "mimeType": "application/json",
            }
            for r in resources
        ]
    }


async def _handle_resources_read(
    server: ToolServer, params: dict[str, Any]
) -> dict[str, Any]:
    uri = params.get("uri", "")
    content = await server.read_resource(uri)
    return {
        "contents": [
            {
                "uri": uri,
                "mimeType": "application/json",
                "text": content,
            }
        ]
    }


_METHOD_HANDLERS = {
    "initialize": _handle_initialize,
    "tools/list": _handle_tools_list,
    "tools/call": _handle_tools_call,
    "resources/list": _handle_resources_list,
    "resources/read": _handle_resources_read,
}

# Errors that mean the request itself was wrong rather than the server
_INVALID_PARAMS_CODES = {"tool_not_found", "resource_not_found"}


async def _dispatch(
    server: ToolServer, message: dict[str, Any]
) -> Optional[dict[str, Any]]:
    """Dispatch a JSON-RPC message and return the response, or None for notifications."""
    method = message.get("method", "")
    msg_id = message.get("id")
    params = message.get("params") or {}

    # Notifications have no id and never get a response
    if msg_id is None:
        logger.debug("Notification ignored: %s", method)
        return None

    if method == "shutdown":
        return _make_response(msg_id, {})

    handler = _METHOD_HANDLERS.get(method)
    if handler is None:
        return _make_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    try:
        result = await handler(server, params)
        return _make_response(msg_id, result)
    except ToolError as e:
        code = INVALID_PARAMS if e.code in _INVALID_PARAMS_CODES else INTERNAL_ERROR
        return _make_error(msg_id, code, str(e), e.to_dict())
    except Exception as e:
        logger.exception("Failed to handle %s", method)
        return _make_error(msg_id, INTERNAL_ERROR, f"Internal error: {e}")


async def run_stdio(
    server: ToolServer,
    reader: Optional[asyncio.StreamReader] = None,
    writer: Optional[asyncio.StreamWriter] = None,
) -> None:
    """Run the tool server using stdio JSON-RPC transport.

    Args:
        server: The ToolServer instance to serve.
        reader: Optional StreamReader (defaults to stdin).
        writer: Optional StreamWriter (defaults to stdout).
    """
    if reader is None:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), sys.stdin.buffer
        )

    while True:
        try:
            message = await _read_message(reader)
        except (asyncio.IncompleteReadError, ValueError) as e:
            logger.warning("Malformed message, closing transport: %s", e)
            break

        if message is None:
            break

        response = await _dispatch(server, message)

        if response is not None:
            data = _encode_message(response)
            if writer is not None:
                writer.write(data)
                await writer.drain()
            else:
                sys.stdout.buffer.write(data)
                sys.stdout.buffer.flush()

        if message.get("method") == "shutdown":
            break
