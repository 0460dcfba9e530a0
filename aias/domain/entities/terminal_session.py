"""
Terminal Session Module

Architectural Intent:
- TerminalSession is the consistency boundary for one interactive shell
- Owns the shell process handle, the bounded output buffer and the read cursor
- Output chunks arrive per stream and are assembled into whole lines; a
  trailing partial line is held until its newline arrives, the process exits,
  or a reader flushes it after the output has gone quiet (prompts such as
  `Password: ` never end in a newline)
- Whitespace-only lines are not retained

Concurrency:
- All mutation happens on the event loop thread
- `read_lock` serializes read windows so that only one reader moves the cursor
"""

from __future__ import annotations
import asyncio
from datetime import datetime, UTC
from typing import Any, Optional

from aias.domain.entities.output_buffer import OutputBuffer, DEFAULT_MAX_LINES
from aias.domain.ports.shell_port import ShellProcess
from aias.domain.value_objects.terminal_id import TerminalId


class TerminalSession:
    def __init__(
        self,
        terminal_id: TerminalId,
        shell: str,
        workdir: str,
        description: Optional[str] = None,
        max_buffer_lines: int = DEFAULT_MAX_LINES,
    ) -> None:
        self.terminal_id = terminal_id
        self.shell = shell
        self.workdir = workdir
        self.description = description
        self.created_at = datetime.now(UTC)
        self.last_activity = self.created_at
        self.buffer = OutputBuffer(max_buffer_lines)
        self.cursor = 0
        self.read_lock = asyncio.Lock()
        self.process: Optional[ShellProcess] = None
        self.exit_code: Optional[int] = None
        self.chunks_received = 0
        self._partials: dict[str, str] = {}

    @property
    def id(self) -> str:
        return str(self.terminal_id)

    def attach(self, process: ShellProcess) -> None:
        if self.process is not None:
            raise RuntimeError(f"Session {self.id} already owns a process")
        self.process = process

    @property
    def is_alive(self) -> bool:
        if self.exit_code is not None:
            return False
        return self.process is not None and self.process.returncode is None

    def touch(self) -> None:
        self.last_activity = datetime.now(UTC)

    # ---- output ------------------------------------------------------------

    def on_output(self, stream: str, text: str) -> None:
        self.chunks_received += 1
        pending = self._partials.get(stream, "") + text
        *complete, rest = pending.split("\n")
        self._partials[stream] = rest
        for line in complete:
            self._append_line(line)

    def on_exit(self, exit_code: int) -> None:
        self.flush_partials()
        self.exit_code = exit_code

    def flush_partials(self) -> int:
        """Move held partial lines into the buffer; returns how many were kept."""
        kept = 0
        for stream in list(self._partials):
            if self._append_line(self._partials.pop(stream)):
                kept += 1
        return kept

    def _append_line(self, line: str) -> bool:
        line = line.rstrip("\r")
        if not line.strip():
            return False
        self.buffer.append(line)
        return True

    # ---- input -------------------------------------------------------------

    def write_line(self, text: str) -> None:
        if self.process is None:
            raise RuntimeError(f"Session {self.id} has no process")
        self.process.write(text + "\n")

    # ---- cursor ------------------------------------------------------------

    def read_start(self) -> int:
        """First undelivered position that is still retained."""
        return max(self.cursor, self.buffer.floor)

    def consume(self, start: int, stop: int) -> list[str]:
        lines = self.buffer.slice(start, stop)
        self.cursor = max(self.cursor, stop)
        return lines

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workdir": self.workdir,
            "shell": self.shell,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "description": self.description,
        }
