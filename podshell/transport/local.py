"""Local transport - agent runs as a child process of the control process"""

import asyncio
import sys
from typing import List, Optional

from .base import AbstractTransport
from ..utils.exceptions import SpawnError, TransportClosedError
from ..utils.logger import logger

TERMINATE_TIMEOUT = 5.0  # seconds


def default_agent_command(extra_args: Optional[List[str]] = None) -> List[str]:
    return [sys.executable, "-m", "podshell.agent", *(extra_args or [])]


class LocalTransport(AbstractTransport):
    """
    Development transport that spawns the agent locally

    Nothing is connected or uploaded. The agent's stderr is inherited so its
    log lines show up in the same terminal.

    Args:
        command: Full agent command line (default: ``python -m podshell.agent``)
        agent_args: Extra arguments appended to the default command
    """

    name = "local"

    def __init__(
        self,
        command: Optional[List[str]] = None,
        agent_args: Optional[List[str]] = None,
    ):
        self.command = list(command) if command else default_agent_command(agent_args)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._closed = False

    async def connect(self) -> None:
        pass

    async def deploy(self, local_path: Optional[str] = None) -> None:
        pass

    async def start(self) -> None:
        if self._process is not None:
            raise SpawnError("agent already started")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=None,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start agent {self.command[0]}: {e}")
        logger.info(f"Started local agent (pid {self._process.pid})")

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._process is None or self._closed:
            raise TransportClosedError("transport is not started")
        return self._process

    @property
    def reader(self) -> asyncio.StreamReader:
        return self._require_process().stdout

    @property
    def writer(self) -> asyncio.StreamWriter:
        return self._require_process().stdin

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        process = self._process
        if process is None:
            return

        if process.stdin and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Agent pid {process.pid} did not exit, killing")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
        logger.debug(f"Local agent exited with code {process.returncode}")
