"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the gateway
- Single place where adapters, the terminal manager and the tool server are
  wired together
- The terminal manager is created here and passed by reference; nothing
  reaches for a process-wide instance

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies from a GatewayConfig
"""

from dataclasses import dataclass
from typing import Optional

from aias.application.terminal_manager import TerminalSessionManager
from aias.application.tool_executor import ToolExecutor
from aias.infrastructure.adapters.asyncio_shell_adapter import AsyncioShellAdapter
from aias.infrastructure.adapters.httpx_http_adapter import HttpxHttpAdapter
from aias.infrastructure.adapters.subprocess_command_adapter import (
    SubprocessCommandAdapter,
)
from aias.infrastructure.config import (
    GatewayConfig,
    WorkspaceGuard,
    default_shell,
    load_config,
)
from aias.infrastructure.mcp_servers.gateway_server import (
    ToolServer,
    create_gateway_server,
)
from aias.infrastructure.telemetry.otel_exporter import OTELExporter, create_exporter


@dataclass
class GatewayContainer:
    """DI container holding all wired dependencies."""

    config: GatewayConfig
    workspace: WorkspaceGuard
    shell_adapter: AsyncioShellAdapter
    command_adapter: SubprocessCommandAdapter
    http_adapter: HttpxHttpAdapter
    terminal_manager: TerminalSessionManager
    tool_server: ToolServer
    telemetry: OTELExporter
    executor: ToolExecutor

    def shutdown(self) -> None:
        self.terminal_manager.close_all()


def create_container(config: Optional[GatewayConfig] = None) -> GatewayContainer:
    """Create and wire all dependencies."""
    config = config or load_config()

    workspace = WorkspaceGuard(config.workspace)
    shell_adapter = AsyncioShellAdapter()
    command_adapter = SubprocessCommandAdapter()
    http_adapter = HttpxHttpAdapter()

    terminal_manager = TerminalSessionManager(
        shell_adapter,
        workspace.validate_path,
        max_terminals=config.terminal.max_terminals,
        max_buffer_lines=config.terminal.max_buffer_lines,
        idle_timeout=config.terminal.idle_timeout,
        poll_interval=config.terminal.poll_interval,
        snapshot_lines=config.terminal.snapshot_lines,
    )

    tool_server = create_gateway_server(
        terminal_manager=terminal_manager,
        command_port=command_adapter,
        validate_path=workspace.validate_path,
        http_port=http_adapter,
        default_shell=default_shell(),
        wait_timeout=config.terminal.wait_timeout,
        max_lines=config.terminal.max_lines,
        command_timeout=config.command.timeout,
        name=config.mcp.server_name,
    )

    telemetry = create_exporter(
        endpoint=config.telemetry.endpoint,
        insecure=config.telemetry.insecure,
    )
    executor = ToolExecutor(tool_server, telemetry)

    return GatewayContainer(
        config=config,
        workspace=workspace,
        shell_adapter=shell_adapter,
        command_adapter=command_adapter,
        http_adapter=http_adapter,
        terminal_manager=terminal_manager,
        tool_server=tool_server,
        telemetry=telemetry,
        executor=executor,
    )
