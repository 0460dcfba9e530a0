"""
Asyncio Shell Adapter

Architectural Intent:
- Infrastructure adapter implementing ShellPort via asyncio subprocesses
- One pump task per output pipe decodes chunks and hands them to the session
- One watcher task reports the exit code once the process ends

Design Decisions:
- On POSIX the shell leads its own process group so that kill() also stops
  the commands it started
- Output decoding is incremental UTF-8 with replacement, so a multi-byte
  character split across reads is not mangled
"""

import asyncio
import codecs
import logging
import os
import shlex
import signal
from pathlib import Path
from typing import Optional

from aias.domain.ports.shell_port import (
    ExitCallback,
    OutputCallback,
    ShellPort,
    ShellProcess,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096
# Grace period for pipes to drain after the shell exits
DRAIN_TIMEOUT = 1.0


class AsyncioShellProcess(ShellProcess):
    def __init__(
        self,
        process: asyncio.subprocess.Process,
        on_output: OutputCallback,
        on_exit: ExitCallback,
    ) -> None:
        self._process = process
        self._on_output = on_output
        self._on_exit = on_exit
        self._killed = False
        self._pumps = [
            asyncio.create_task(self._pump("stdout", process.stdout)),
            asyncio.create_task(self._pump("stderr", process.stderr)),
        ]
        self._watcher = asyncio.create_task(self._watch())

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    def write(self, text: str) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            raise BrokenPipeError(f"stdin of process {self.pid} is closed")
        stdin.write(text.encode("utf-8"))

    def close_stdin(self) -> None:
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()

    def kill(self) -> None:
        self._killed = True
        for task in self._pumps:
            task.cancel()
        self.close_stdin()
        if self._process.returncode is not None:
            return
        if os.name == "posix":
            os.killpg(self._process.pid, signal.SIGKILL)
        else:
            self._process.kill()

    async def _pump(self, name: str, stream: Optional[asyncio.StreamReader]) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if text:
                self._on_output(name, text)
        tail = decoder.decode(b"", final=True)
        if tail:
            self._on_output(name, tail)

    async def _watch(self) -> None:
        exit_code = await self._process.wait()
        done, pending = await asyncio.wait(self._pumps, timeout=DRAIN_TIMEOUT)
        for task in pending:
            task.cancel()
        self.close_stdin()
        if not self._killed:
            self._on_exit(exit_code)


class AsyncioShellAdapter(ShellPort):
    async def spawn(
        self,
        shell: str,
        cwd: Path,
        env: dict[str, str],
        on_output: OutputCallback,
        on_exit: ExitCallback,
    ) -> ShellProcess:
        argv = shlex.split(shell, posix=os.name == "posix")
        if not argv:
            raise ValueError("Shell command cannot be empty")

        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=env,
            start_new_session=os.name == "posix",
        )
        logger.debug("Spawned %s (pid=%s) in %s", argv, process.pid, cwd)
        return AsyncioShellProcess(process, on_output, on_exit)
