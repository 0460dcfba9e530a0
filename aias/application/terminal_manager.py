"""
Terminal Session Manager

Architectural Intent:
- Owns every interactive terminal session of the gateway
- Creates shell-backed sessions through the ShellPort, buffers their output and
  serves read windows against that buffer
- Constructed once by the composition root and handed to the tool server;
  there is no module-level instance

Read Window:
    A read returns as soon as one of three conditions fires:
    1. `max_lines` new lines are available       -> truncated
    2. `idle_timeout` passes without a new line   -> no_new_output_timeout /
                                                     no_new_output
    3. `wait_timeout` seconds have elapsed        -> timeout
    When nothing new arrived the result carries a snapshot of the last few
    buffered lines instead, and the cursor does not move.

Concurrency:
- Single event loop; reads on one session are serialized by its read_lock
- Creation holds a manager lock across the capacity check and spawn
- The process exit watcher marks a session dead at once. Dead sessions are
  swept out of the map before every capacity check and listing, and the next
  operation against such an id raises SessionTerminated exactly once
"""

from __future__ import annotations
import asyncio
import logging
import os
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional

from aias.domain.entities.output_buffer import DEFAULT_MAX_LINES
from aias.domain.entities.terminal_session import TerminalSession
from aias.domain.exceptions import (
    CapacityExceeded,
    InvalidWorkdir,
    SessionNotFound,
    SessionTerminated,
)
from aias.domain.ports.shell_port import ShellPort
from aias.domain.value_objects.read_result import ReadOutcome, ReadResult
from aias.domain.value_objects.terminal_id import TerminalId

logger = logging.getLogger(__name__)

PathValidator = Callable[[str, bool], Path]

DEFAULT_WAIT_TIMEOUT = 30
DEFAULT_MAX_READ_LINES = 100
IDLE_TIMEOUT = 3.0
POLL_INTERVAL = 0.1
SNAPSHOT_LINES = 5


class TerminalSessionManager:
    def __init__(
        self,
        shell_port: ShellPort,
        validate_path: PathValidator,
        max_terminals: int = 10,
        max_buffer_lines: int = DEFAULT_MAX_LINES,
        idle_timeout: float = IDLE_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        snapshot_lines: int = SNAPSHOT_LINES,
    ) -> None:
        self.shell_port = shell_port
        self.validate_path = validate_path
        self.max_terminals = max_terminals
        self.max_buffer_lines = max_buffer_lines
        self.idle_timeout = idle_timeout
        self.poll_interval = poll_interval
        self.snapshot_lines = snapshot_lines
        self._sessions: dict[str, TerminalSession] = {}
        # exit codes of swept sessions not yet reported to a caller
        self._terminated: dict[str, Optional[int]] = {}
        self._create_lock = asyncio.Lock()

    @property
    def session_count(self) -> int:
        self._sweep()
        return len(self._sessions)

    # ---- lifecycle ---------------------------------------------------------

    async def create(
        self,
        shell: str,
        workdir: str = ".",
        env: Optional[dict[str, str]] = None,
        description: Optional[str] = None,
        initial_command: Optional[str] = None,
    ) -> str:
        """Spawn a new shell session and return its id."""
        async with self._create_lock:
            if self.session_count >= self.max_terminals:
                raise CapacityExceeded(self.max_terminals)

            try:
                path = self.validate_path(workdir, True)
            except ValueError as e:
                raise InvalidWorkdir(workdir, str(e)) from e
            if not path.is_dir():
                raise InvalidWorkdir(workdir, "not a directory")

            session = TerminalSession(
                TerminalId.generate(),
                shell=shell,
                workdir=str(path),
                description=description,
                max_buffer_lines=self.max_buffer_lines,
            )
            full_env = {**os.environ, **(env or {})}
            process = await self.shell_port.spawn(
                shell,
                path,
                full_env,
                on_output=session.on_output,
                on_exit=partial(self._on_exit, session),
            )
            session.attach(process)
            self._sessions[session.id] = session

        logger.info(
            "Terminal created: id=%s shell=%s workdir=%s pid=%s",
            session.id, shell, path, process.pid,
        )
        if initial_command:
            session.write_line(initial_command)
        return session.id

    def close(self, terminal_id: str) -> None:
        session = self._sessions.pop(terminal_id, None)
        if session is None:
            if terminal_id not in self._terminated:
                raise SessionNotFound(terminal_id)
            del self._terminated[terminal_id]
            logger.info("Terminal closed after exit: id=%s", terminal_id)
            return
        self._kill(session)
        logger.info("Terminal closed: id=%s", terminal_id)

    def close_all(self) -> None:
        self._terminated.clear()
        if not self._sessions:
            return
        logger.info("Closing %d terminals", len(self._sessions))
        for terminal_id in list(self._sessions):
            self._kill(self._sessions.pop(terminal_id))

    def list(self) -> list[dict[str, Any]]:
        self._sweep()
        return [session.summary() for session in self._sessions.values()]

    def get(self, terminal_id: str) -> TerminalSession:
        """Return a live session, evicting it first if its process has exited."""
        session = self._sessions.get(terminal_id)
        if session is not None and not session.is_alive:
            self._evict(terminal_id, session)
            session = None
        if session is None:
            if terminal_id in self._terminated:
                raise SessionTerminated(terminal_id, self._terminated.pop(terminal_id))
            raise SessionNotFound(terminal_id)
        return session

    # ---- I/O ---------------------------------------------------------------

    async def send_input(
        self,
        terminal_id: str,
        text: str,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        max_lines: int = DEFAULT_MAX_READ_LINES,
    ) -> ReadResult:
        """
        Write one line to the shell and read the reply.

        The line is written only once this call holds the session's read lock,
        so a reader already in flight cannot consume the reply to it.
        """
        session = self.get(terminal_id)
        session.touch()
        return await self._read_window(
            session, wait_timeout, max_lines, partial(self._write, session, text)
        )

    async def read_output(
        self,
        terminal_id: str,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        max_lines: int = DEFAULT_MAX_READ_LINES,
    ) -> ReadResult:
        session = self.get(terminal_id)
        session.touch()
        return await self._read_window(session, wait_timeout, max_lines)

    async def _read_window(
        self,
        session: TerminalSession,
        wait_timeout: float,
        max_lines: int,
        before_read: Optional[Callable[[], None]] = None,
    ) -> ReadResult:
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")

        async with session.read_lock:
            if before_read is not None:
                before_read()
            loop = asyncio.get_running_loop()
            session.touch()
            start = session.read_start()
            started = loop.time()
            deadline = started + wait_timeout
            last_growth = started
            seen_chunks = session.chunks_received

            while True:
                floor = session.buffer.floor
                if floor > start:
                    logger.warning(
                        "Terminal %s dropped %d undelivered lines (buffer cap %d)",
                        session.id, floor - start, session.buffer.max_lines,
                    )
                    start = floor

                available = session.buffer.total - start
                if available >= max_lines:
                    lines = session.consume(start, start + max_lines)
                    return ReadResult(tuple(lines), ReadOutcome.TRUNCATED, True)

                now = loop.time()
                if session.chunks_received != seen_chunks:
                    seen_chunks = session.chunks_received
                    last_growth = now

                timed_out = now >= deadline
                if timed_out or now - last_growth >= self.idle_timeout:
                    # a quiet partial line is a prompt waiting for input
                    if session.flush_partials():
                        continue
                    if timed_out:
                        outcome = ReadOutcome.TIMEOUT
                    elif available:
                        outcome = ReadOutcome.IDLE_WITH_OUTPUT
                    else:
                        outcome = ReadOutcome.IDLE_NO_OUTPUT
                    return self._finish(session, start, outcome)

                await asyncio.sleep(min(self.poll_interval, deadline - now))

    def _finish(
        self, session: TerminalSession, start: int, outcome: ReadOutcome
    ) -> ReadResult:
        stop = session.buffer.total
        if stop > start:
            lines = session.consume(start, stop)
            return ReadResult(tuple(lines), outcome, True)
        snapshot = session.buffer.tail(self.snapshot_lines)
        return ReadResult(tuple(snapshot), outcome, False)

    # ---- internals ---------------------------------------------------------

    def _write(self, session: TerminalSession, text: str) -> None:
        # the session may have exited or been closed while waiting for the lock
        if self._sessions.get(session.id) is not session or not session.is_alive:
            self.get(session.id)
        try:
            session.write_line(text)
        except (BrokenPipeError, ConnectionResetError) as e:
            self._sessions.pop(session.id, None)
            self._kill(session)
            logger.warning("Terminal %s stdin closed, session removed", session.id)
            raise SessionTerminated(session.id, session.exit_code) from e
        logger.debug("Input sent: id=%s length=%d", session.id, len(text))

    def _sweep(self) -> None:
        for terminal_id, session in list(self._sessions.items()):
            if not session.is_alive:
                self._evict(terminal_id, session)

    def _evict(self, terminal_id: str, session: TerminalSession) -> None:
        self._sessions.pop(terminal_id, None)
        self._kill(session)
        exit_code = session.exit_code
        if exit_code is None and session.process is not None:
            exit_code = session.process.returncode
        self._terminated[terminal_id] = exit_code
        logger.warning(
            "Terminal %s process exited (code=%s), session removed",
            terminal_id, exit_code,
        )

    def _on_exit(self, session: TerminalSession, exit_code: int) -> None:
        session.on_exit(exit_code)
        logger.info("Terminal %s process exited with code %s", session.id, exit_code)

    def _kill(self, session: TerminalSession) -> None:
        if session.process is None:
            return
        try:
            session.process.kill()
        except Exception as e:
            logger.debug("Ignoring kill failure for terminal %s: %s", session.id, e)
