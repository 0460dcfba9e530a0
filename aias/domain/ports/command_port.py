"""
Command Port

Architectural Intent:
- Port interface for one-shot command execution
- Complements the interactive ShellPort for quick, non-interactive commands
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict:
        stderr = self.stderr.strip()
        if not self.success and not stderr:
            stderr = f"Command exited with code {self.exit_code}"
        return {
            "stdout": self.stdout.strip(),
            "stderr": stderr,
            "success": self.success,
        }


class CommandPort(ABC):
    @abstractmethod
    async def run(
        self,
        command: str,
        cwd: Path,
        env: dict[str, str],
        timeout: float,
    ) -> CommandResult:
        """
        Runs `command` through the platform shell. Raises CommandTimeout when
        it does not finish within `timeout` seconds.
        """
        pass
