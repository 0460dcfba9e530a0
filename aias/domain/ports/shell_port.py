"""
Shell Port

Architectural Intent:
- Port interface for spawning interactive shell processes
- Output and exit are pushed to the caller through callbacks registered at
  spawn time, so the domain never polls pipes directly
- Implemented by AsyncioShellAdapter or by in-memory fakes in tests
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

OutputCallback = Callable[[str, str], None]
ExitCallback = Callable[[int], None]


class ShellProcess(ABC):
    """Handle to one running shell process."""

    @property
    @abstractmethod
    def pid(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def returncode(self) -> Optional[int]:
        """Exit code, or None while the process is still running."""
        pass

    @abstractmethod
    def write(self, text: str) -> None:
        """
        Queue text on the process stdin without waiting for it to drain.
        """
        pass

    @abstractmethod
    def close_stdin(self) -> None:
        pass

    @abstractmethod
    def kill(self) -> None:
        """
        Terminate the process and stop delivering output.
        """
        pass


class ShellPort(ABC):
    """
    Port interface for spawning shell processes.
    """

    @abstractmethod
    async def spawn(
        self,
        shell: str,
        cwd: Path,
        env: dict[str, str],
        on_output: OutputCallback,
        on_exit: ExitCallback,
    ) -> ShellProcess:
        """
        Spawns `shell` with piped stdio. `on_output(stream, text)` receives
        decoded chunks from stdout and stderr; `on_exit(code)` fires once.
        """
        pass
