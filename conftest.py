"""Global test configuration.

Provides an in-memory ShellPort so terminal sessions can be exercised without
spawning real processes, plus a manager wired to a temporary workspace.
"""

from pathlib import Path
from typing import Callable, Optional

import pytest

from aias.application.terminal_manager import TerminalSessionManager
from aias.domain.ports.shell_port import ShellPort, ShellProcess
from aias.infrastructure.config import WorkspaceConfig, WorkspaceGuard


class FakeShellProcess(ShellProcess):
    """Scriptable shell: tests push output and exits by hand."""

    def __init__(self, on_output, on_exit, pid: int, responder=None):
        self._on_output = on_output
        self._on_exit = on_exit
        self._pid = pid
        self._returncode: Optional[int] = None
        self.responder = responder
        self.written: list[str] = []
        self.stdin_closed = False
        self.killed = False

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    def write(self, text: str) -> None:
        if self.stdin_closed:
            raise BrokenPipeError("stdin closed")
        self.written.append(text)
        if self.responder:
            self.responder(self, text)

    def close_stdin(self) -> None:
        self.stdin_closed = True

    def kill(self) -> None:
        self.killed = True
        self.stdin_closed = True
        if self._returncode is None:
            self._returncode = -9

    def emit(self, text: str, stream: str = "stdout") -> None:
        self._on_output(stream, text)

    def emit_lines(self, lines, stream: str = "stdout") -> None:
        self._on_output(stream, "".join(f"{line}\n" for line in lines))

    def exit(self, code: int = 0) -> None:
        self._returncode = code
        self.stdin_closed = True
        self._on_exit(code)


class FakeShellPort(ShellPort):
    def __init__(self, responder: Optional[Callable] = None):
        self.responder = responder
        self.processes: list[FakeShellProcess] = []
        self.spawn_calls: list[dict] = []

    async def spawn(self, shell, cwd, env, on_output, on_exit):
        self.spawn_calls.append({"shell": shell, "cwd": cwd, "env": env})
        process = FakeShellProcess(
            on_output, on_exit, pid=1000 + len(self.processes), responder=self.responder
        )
        self.processes.append(process)
        return process


def _echo(process: FakeShellProcess, text: str) -> None:
    for line in text.splitlines():
        process.emit(f"out: {line}\n")


@pytest.fixture()
def echo_responder():
    """Responder answering every line written with `out: <line>`."""
    return _echo


@pytest.fixture()
def workspace(tmp_path: Path) -> WorkspaceGuard:
    return WorkspaceGuard(WorkspaceConfig(root=str(tmp_path)))


@pytest.fixture()
def shell_port() -> FakeShellPort:
    return FakeShellPort()


@pytest.fixture()
def manager(shell_port, workspace) -> TerminalSessionManager:
    return TerminalSessionManager(
        shell_port,
        workspace.validate_path,
        max_terminals=3,
        idle_timeout=0.2,
        poll_interval=0.01,
    )
