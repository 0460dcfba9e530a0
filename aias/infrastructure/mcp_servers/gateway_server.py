"""
Tool Server Infrastructure

Architectural Intent:
- Registry of every named tool the gateway exposes
- Tools = operations invoked by name with JSON arguments
- Resources = read-only views
- The same registry backs the HTTP API (OpenAI function definitions) and the
  MCP stdio transport

MCP Integration:
- Exposed as 'aias-executor' MCP server
- Tools: create_terminal, terminal_input, read_terminal_output,
  close_terminal, list_terminals, execute_command, http_request
- Resources: terminal://sessions
"""

from typing import Any, Callable, Awaitable, Optional
from dataclasses import dataclass
import json
import logging
import os

from aias.domain.exceptions import TerminalError
from aias.domain.ports.http_port import HTTP_METHODS

logger = logging.getLogger(__name__)


@dataclass
class Tool:
    name: str
    description: str
    input_schema: dict[str, Any]
    handler: Callable[..., Awaitable[Any]]

    def openai_definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass
class Resource:
    uri: str
    description: str
    handler: Callable[..., Awaitable[str]]


class ToolError(Exception):
    """Structured tool error."""

    def __init__(self, code: str, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": str(self),
                "details": self.details,
            }
        }


class ToolServer:
    """
    Named-tool registry with JSON-schema described parameters.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._tools: dict[str, Tool] = {}
        self._resources: dict[str, Resource] = {}

    def tool(
        self,
        name: str,
        description: str = "",
        input_schema: Optional[dict[str, Any]] = None,
    ) -> Callable[[Callable[..., Awaitable[Any]]], Tool]:
        def decorator(handler: Callable[..., Awaitable[Any]]) -> Tool:
            tool = Tool(
                name=name,
                description=description,
                input_schema=input_schema or {"type": "object", "properties": {}},
                handler=handler,
            )
            self._tools[name] = tool
            return tool

        return decorator

    def resource(
        self, uri: str, description: str = ""
    ) -> Callable[[Callable[..., Awaitable[str]]], Resource]:
        def decorator(handler: Callable[..., Awaitable[str]]) -> Resource:
            resource = Resource(
                uri=uri,
                description=description,
                handler=handler,
            )
            self._resources[uri] = resource
            return resource

        return decorator

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    async def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    async def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    def openai_definitions(self) -> list[dict[str, Any]]:
        return [tool.openai_definition() for tool in self._tools.values()]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        if name not in self._tools:
            raise ToolError("tool_not_found", f"Tool '{name}' not found")
        tool = self._tools[name]
        kwargs = _bind_arguments(tool, arguments or {})
        try:
            return await tool.handler(**kwargs)
        except ToolError:
            raise
        except TerminalError as e:
            raise ToolError(e.code, str(e), e.details) from e
        except Exception as e:
            logger.exception("Tool %s failed", name)
            raise ToolError("internal_error", str(e)) from e

    async def read_resource(self, uri: str) -> str:
        if uri not in self._resources:
            raise ToolError("resource_not_found", f"Resource '{uri}' not found")
        return await self._resources[uri].handler()


def _bind_arguments(tool: Tool, arguments: dict[str, Any]) -> dict[str, Any]:
    """Check required arguments and drop the ones the schema does not declare."""
    if not isinstance(arguments, dict):
        raise ToolError("invalid_arguments", "Tool arguments must be an object")
    schema = tool.input_schema
    missing = [k for k in schema.get("required", []) if arguments.get(k) is None]
    if missing:
        raise ToolError(
            "invalid_arguments",
            f"Missing required arguments: {', '.join(missing)}",
            {"missing": missing},
        )
    properties = schema.get("properties", {})
    return {k: v for k, v in arguments.items() if k in properties and v is not None}


def _bounded_int(name: str, value: Any, minimum: int, maximum: int) -> int:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ToolError("invalid_arguments", f"{name} must be an integer")
    if not minimum <= value <= maximum:
        raise ToolError(
            "invalid_arguments", f"{name} must be between {minimum} and {maximum}"
        )
    return value


def _string_map(name: str, value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ToolError("invalid_arguments", f"{name} must be an object")
    return {str(k): str(v) for k, v in value.items()}


def _read_params(default_wait: int, default_lines: int) -> dict[str, Any]:
    return {
        "wait_timeout": {
            "type": "integer",
            "description": "Seconds to wait for output before returning",
            "default": default_wait,
            "minimum": 1,
            "maximum": 60,
        },
        "max_lines": {
            "type": "integer",
            "description": "Maximum number of lines to return",
            "default": default_lines,
            "minimum": 1,
            "maximum": 100,
        },
    }


def create_gateway_server(
    terminal_manager: Any = None,
    command_port: Any = None,
    validate_path: Any = None,
    http_port: Any = None,
    default_shell: str = "bash",
    wait_timeout: int = 30,
    max_lines: int = 100,
    command_timeout: int = 30,
    name: str = "aias-executor",
) -> ToolServer:
    """
    Factory function to create the tool server with wired collaborators.

    Terminal tools are registered when a terminal manager is given;
    execute_command when both a command port and a path validator are given;
    http_request when an HTTP port is given.
    """
    server = ToolServer(name)

    if terminal_manager is not None:

        @server.tool(
            name="create_terminal",
            description=(
                "Create an interactive terminal session (for long-running "
                "processes and interactive programs)"
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "shell": {
                        "type": "string",
                        "description": "Shell to run (bash, zsh, sh, powershell...)",
                        "default": default_shell,
                    },
                    "workdir": {
                        "type": "string",
                        "description": "Working directory",
                        "default": ".",
                    },
                    "env": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Extra environment variables",
                    },
                    "description": {
                        "type": "string",
                        "description": "Free-form description of the terminal",
                    },
                    "initial_command": {
                        "type": "string",
                        "description": "Command to run right after creation",
                    },
                },
                "required": [],
            },
        )
        async def create_terminal(
            shell: Optional[str] = None,
            workdir: str = ".",
            env: Optional[dict[str, Any]] = None,
            description: Optional[str] = None,
            initial_command: Optional[str] = None,
        ) -> dict[str, Any]:
            terminal_id = await terminal_manager.create(
                shell or default_shell,
                workdir or ".",
                _string_map("env", env) if env is not None else {},
                description,
                initial_command,
            )
            return {"terminal_id": terminal_id}

        @server.tool(
            name="terminal_input",
            description="Send input to a terminal and wait for its output",
            input_schema={
                "type": "object",
                "properties": {
                    "terminal_id": {"type": "string", "description": "Terminal ID"},
                    "input": {
                        "type": "string",
                        "description": "Command or text to send",
                    },
                    **_read_params(wait_timeout, max_lines),
                },
                "required": ["terminal_id", "input"],
            },
        )
        async def terminal_input(
            terminal_id: str,
            input: str,
            wait_timeout: int = wait_timeout,
            max_lines: int = max_lines,
        ) -> dict[str, Any]:
            if input is None or input == "":
                raise ToolError("invalid_arguments", "input cannot be empty")
            result = await terminal_manager.send_input(
                str(terminal_id),
                str(input),
                _bounded_int("wait_timeout", wait_timeout, 1, 60),
                _bounded_int("max_lines", max_lines, 1, 100),
            )
            return result.to_dict()

        @server.tool(
            name="read_terminal_output",
            description="Read new output from a terminal",
            input_schema={
                "type": "object",
                "properties": {
                    "terminal_id": {"type": "string", "description": "Terminal ID"},
                    **_read_params(wait_timeout, max_lines),
                },
                "required": ["terminal_id"],
            },
        )
        async def read_terminal_output(
            terminal_id: str,
            wait_timeout: int = wait_timeout,
            max_lines: int = max_lines,
        ) -> dict[str, Any]:
            result = await terminal_manager.read_output(
                str(terminal_id),
                _bounded_int("wait_timeout", wait_timeout, 1, 60),
                _bounded_int("max_lines", max_lines, 1, 100),
            )
            return result.to_dict()

        @server.tool(
            name="close_terminal",
            description="Close a terminal session",
            input_schema={
                "type": "object",
                "properties": {
                    "terminal_id": {"type": "string", "description": "Terminal ID"},
                },
                "required": ["terminal_id"],
            },
        )
        async def close_terminal(terminal_id: str) -> dict[str, Any]:
            terminal_manager.close(str(terminal_id))
            return {"success": True}

        @server.tool(
            name="list_terminals",
            description="List all active terminal sessions",
        )
        async def list_terminals() -> dict[str, Any]:
            terminals = terminal_manager.list()
            return {"terminals": terminals, "count": len(terminals)}

        @server.resource(
            uri="terminal://sessions",
            description="Active terminal sessions",
        )
        async def terminal_sessions() -> str:
            terminals = terminal_manager.list()
            return json.dumps({"terminals": terminals, "count": len(terminals)})

    if command_port is not None and validate_path is not None:

        @server.tool(
            name="execute_command",
            description=(
                "Run a command and return its output (for quick commands; "
                "use the terminal tools for interactive sessions)"
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "command": {"type": "string", "description": "Command to run"},
                    "workdir": {
                        "type": "string",
                        "description": "Working directory",
                        "default": ".",
                    },
                    "timeout": {
                        "type": "integer",
                        "description": "Timeout in seconds",
                        "default": command_timeout,
                        "minimum": 1,
                        "maximum": 300,
                    },
                    "env": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Extra environment variables",
                    },
                },
                "required": ["command"],
            },
        )
        async def execute_command(
            command: str,
            workdir: str = ".",
            timeout: int = command_timeout,
            env: Optional[dict[str, Any]] = None,
        ) -> dict[str, Any]:
            if not str(command).strip():
                raise ToolError("invalid_arguments", "command cannot be empty")
            timeout = _bounded_int("timeout", timeout, 1, 300)
            try:
                cwd = validate_path(workdir or ".", True)
            except ValueError as e:
                raise ToolError("invalid_workdir", str(e)) from e
            full_env = {**os.environ}
            if env is not None:
                full_env.update(_string_map("env", env))
            result = await command_port.run(str(command), cwd, full_env, timeout)
            return result.to_dict()

    if http_port is not None:

        @server.tool(
            name="http_request",
            description="Proxy an HTTP request and return the text response",
            input_schema={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Request URL"},
                    "method": {
                        "type": "string",
                        "description": "HTTP method",
                        "default": "GET",
                        "enum": list(HTTP_METHODS),
                    },
                    "headers": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Request headers",
                    },
                    "params": {
                        "type": "object",
                        "additionalProperties": {
                            "type": ["string", "number", "boolean"]
                        },
                        "description": "URL query parameters",
                    },
                    "data": {
                        "type": ["string", "object"],
                        "description": "Request body (form fields or raw text)",
                    },
                    "json_data": {
                        "type": "object",
                        "description": "JSON request body",
                    },
                    "timeout": {
                        "type": "integer",
                        "description": "Timeout in seconds",
                        "default": 30,
                        "minimum": 1,
                        "maximum": 120,
                    },
                },
                "required": ["url"],
            },
        )
        async def http_request(
            url: str,
            method: str = "GET",
            headers: Optional[dict[str, Any]] = None,
            params: Optional[dict[str, Any]] = None,
            data: Any = None,
            json_data: Optional[dict[str, Any]] = None,
            timeout: int = 30,
        ) -> dict[str, Any]:
            if not str(url).strip():
                raise ToolError("invalid_arguments", "url cannot be empty")
            method = str(method or "GET").upper()
            if method not in HTTP_METHODS:
                raise ToolError(
                    "invalid_arguments",
                    f"method must be one of {', '.join(HTTP_METHODS)}",
                )
            if params is not None and not isinstance(params, dict):
                raise ToolError("invalid_arguments", "params must be an object")
            if json_data is not None and not isinstance(json_data, dict):
                raise ToolError("invalid_arguments", "json_data must be an object")
            response = await http_port.request(
                method,
                str(url),
                headers=_string_map("headers", headers) if headers is not None else None,
                params=params,
                data=data,
                json_data=json_data,
                timeout=_bounded_int("timeout", timeout, 1, 120),
            )
            return response.to_dict()

    return server
