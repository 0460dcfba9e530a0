"""
Dashboard TUI

Architectural Intent:
- Textual-based dashboard for monitoring the terminal sessions of a running
  executor
- Polls list_terminals through the HTTP API; holds no session state itself
- Supports severity-colored log messages
- Configurable refresh interval (+/- keys)
"""

from textual.app import App, ComposeResult
from textual.widgets import Header, Footer, DataTable, Log
from textual.containers import Vertical
from typing import Any
import asyncio
import json
import logging
import urllib.request
from datetime import datetime

logger = logging.getLogger(__name__)

SEVERITY_STYLES = {
    "info": "green",
    "warning": "yellow",
    "error": "red",
}

REQUEST_TIMEOUT = 10


def fetch_terminals(base_url: str) -> dict[str, Any]:
    """Call list_terminals on a running executor and return its result."""
    body = json.dumps({"tool": "list_terminals", "parameters": {}}).encode("utf-8")
    request = urllib.request.Request(
        f"{base_url.rstrip('/')}/api/tools/execute",
        data=body,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request, timeout=REQUEST_TIMEOUT) as response:
        return json.loads(response.read().decode("utf-8"))


class TerminalDashboard(App):
    """A Textual app to watch interactive terminal sessions."""

    CSS = """
    Screen {
        layout: vertical;
    }
    DataTable {
        height: 1fr;
        border: solid green;
    }
    Log {
        height: 1fr;
        border: solid yellow;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("+", "increase_interval", "Slower"),
        ("-", "decrease_interval", "Faster"),
    ]

    def __init__(self, base_url: str, interval: float = 5.0):
        super().__init__()
        self.base_url = base_url
        self._refresh_interval: float = max(1.0, interval)
        self._known: set[str] = set()
        self._timer = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(DataTable(id="session_table"), Log(id="activity_log"))
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_columns("Terminal", "Shell", "Workdir", "Created", "Last Activity", "Description")

        self.log_message(f"Watching {self.base_url}", severity="info")
        self.log_message(
            f"Refresh interval: {self._refresh_interval}s (use +/- to adjust)",
            severity="info",
        )
        self._timer = self.set_interval(self._refresh_interval, self._update_sessions)
        self.call_later(self._update_sessions)

    def log_message(self, message: str, severity: str = "info") -> None:
        log_widget = self.query_one(Log)
        timestamp = datetime.now().strftime("%H:%M:%S")
        style = SEVERITY_STYLES.get(severity, "")
        line = f"[{timestamp}] [{severity.upper()}] {message}"
        if style:
            log_widget.write_line(f"[{style}]{line}[/{style}]")
        else:
            log_widget.write_line(line)

    async def action_refresh(self) -> None:
        await self._update_sessions()

    def action_increase_interval(self) -> None:
        self._refresh_interval = min(60.0, self._refresh_interval + 1.0)
        self._restart_timer()
        self.log_message(f"Refresh interval: {self._refresh_interval}s")

    def action_decrease_interval(self) -> None:
        self._refresh_interval = max(1.0, self._refresh_interval - 1.0)
        self._restart_timer()
        self.log_message(f"Refresh interval: {self._refresh_interval}s")

    def _restart_timer(self) -> None:
        if self._timer:
            self._timer.stop()
        self._timer = self.set_interval(self._refresh_interval, self._update_sessions)

    async def _update_sessions(self) -> None:
        try:
            await self.update_sessions()
        except Exception as e:
            self.log_message(f"Cannot reach executor: {e}", severity="error")

    async def update_sessions(self) -> None:
        loop = asyncio.get_running_loop()
        payload = await loop.run_in_executor(None, fetch_terminals, self.base_url)
        terminals = payload.get("terminals", [])

        table = self.query_one(DataTable)
        table.clear()
        for terminal in terminals:
            table.add_row(
                terminal["id"],
                terminal.get("shell", ""),
                terminal.get("workdir", ""),
                terminal.get("created_at", ""),
                terminal.get("last_activity", ""),
                terminal.get("description") or "",
                key=terminal["id"],
            )

        current = {t["id"] for t in terminals}
        for terminal_id in sorted(current - self._known):
            self.log_message(f"Terminal {terminal_id} opened")
        for terminal_id in sorted(self._known - current):
            self.log_message(f"Terminal {terminal_id} gone", severity="warning")
        self._known = current
