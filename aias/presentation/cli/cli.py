"""
CLI Module

Architectural Intent:
- Command-line interface for the AIAS executor
- Entry point for serving the HTTP API, the MCP stdio server and the dashboard
- Delegates to the tool executor via the composition root
- Supports --verbose/--debug flags for log level control
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback

from aias.composition_root import create_container
from aias.infrastructure.config import load_config
from aias.infrastructure.logging import configure_logging, level_from_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AIAS Executor: terminal sessions and commands as OpenAI tools"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config (default aias.json)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP tool API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Port")

    subparsers.add_parser("mcp", help="Serve the tools over MCP stdio")
    subparsers.add_parser("tools", help="List the available tools")

    call_parser = subparsers.add_parser("call", help="Execute a single tool call")
    call_parser.add_argument("tool", help="Tool name")
    call_parser.add_argument(
        "--args", "-a", default="{}", help="Tool arguments as a JSON object"
    )

    dash_parser = subparsers.add_parser(
        "dash", help="Launch the terminal session dashboard"
    )
    dash_parser.add_argument(
        "--url", default=None, help="Base URL of a running executor"
    )
    dash_parser.add_argument(
        "--interval", "-i", type=float, default=5.0, help="Refresh interval in seconds"
    )
    return parser


async def _serve(container, host: str, port: int) -> None:
    from aias.presentation.web.app import GatewayWebApp

    app = GatewayWebApp(container.executor)
    await app.start(host, port)
    print(f"[*] AIAS Executor listening on http://{host}:{app.port}")
    print("[*] Press Ctrl+C to stop.")
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        app.stop()
        container.shutdown()
        container.telemetry.flush()
        print("[*] Server stopped, terminals closed.")


async def async_main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    # Configure logging based on flags
    if args.debug:
        configure_logging(level=logging.DEBUG)
    elif args.verbose:
        configure_logging(level=logging.INFO)
    else:
        configure_logging(level=level_from_name(config.log_level))

    verbose = args.verbose or args.debug

    if args.command == "dash":
        from aias.presentation.tui.dashboard import TerminalDashboard

        url = args.url or f"http://{config.web.host}:{config.web.port}"
        TerminalDashboard(url, args.interval).run()
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    container = create_container(config)

    if args.command == "serve":
        host = args.host or config.web.host
        port = args.port if args.port is not None else config.web.port
        try:
            await _serve(container, host, port)
        except OSError as e:
            print(f"[-] Could not start server: {e}")
            return 1
        return 0

    if args.command == "mcp":
        from aias.infrastructure.mcp_servers.stdio_transport import run_stdio

        try:
            await run_stdio(container.tool_server)
        finally:
            container.shutdown()
        return 0

    if args.command == "tools":
        for definition in container.executor.definitions():
            function = definition["function"]
            print(f"  - {function['name']}: {function['description']}")
        return 0

    if args.command == "call":
        try:
            arguments = json.loads(args.args)
        except json.JSONDecodeError as e:
            print(f"[-] Invalid --args JSON: {e}")
            return 1
        try:
            outcome = await container.executor.execute(
                {"tool": args.tool, "parameters": arguments}
            )
        except Exception as e:
            print(f"[-] Call failed: {e}")
            if verbose:
                traceback.print_exc()
            return 1
        finally:
            container.shutdown()
        print(json.dumps(outcome, indent=2, default=str))
        return 0 if outcome["success"] else 1

    parser.print_help()
    return 0


def main() -> None:
    try:
        code = asyncio.run(async_main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
