"""
Subprocess Command Adapter

Architectural Intent:
- Infrastructure adapter implementing CommandPort via asyncio subprocesses
- Runs a single command through the platform shell and collects its output
"""

import asyncio
import logging
import os
import signal
from pathlib import Path

from aias.domain.exceptions import CommandTimeout
from aias.domain.ports.command_port import CommandPort, CommandResult

logger = logging.getLogger(__name__)


class SubprocessCommandAdapter(CommandPort):
    async def run(
        self,
        command: str,
        cwd: Path,
        env: dict[str, str],
        timeout: float,
    ) -> CommandResult:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=env,
            start_new_session=os.name == "posix",
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Command timed out after %ss: %s", timeout, command)
            self._kill(process)
            await process.wait()
            raise CommandTimeout(timeout)

        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
