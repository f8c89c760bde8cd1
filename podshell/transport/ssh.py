"""SSH transport - agent uploaded over SFTP and run on an exec channel"""

import asyncio
import os
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, TypeVar

import paramiko

from .base import AbstractTransport
from ..utils.config import Config
from ..utils.exceptions import (
    AuthError,
    DeployError,
    NetworkError,
    SpawnError,
    TransportClosedError,
)
from ..utils.logger import logger

T = TypeVar("T")

RECV_CHUNK = 65536
PUMP_JOIN_TIMEOUT = 2.0


class ChannelWriter:
    """
    Async writer over a paramiko channel

    ``write()`` buffers synchronously; ``drain()`` sends the buffer on the
    transport's single writer thread so frames keep their write order.
    """

    def __init__(self, channel: paramiko.Channel, executor: ThreadPoolExecutor):
        self._channel = channel
        self._executor = executor
        self._buffer = bytearray()
        self._lock = asyncio.Lock()
        self._closing = False

    def write(self, data: bytes) -> None:
        if self._closing:
            raise TransportClosedError("agent stdin is closed")
        self._buffer.extend(data)

    async def drain(self) -> None:
        async with self._lock:
            if not self._buffer:
                return
            data = bytes(self._buffer)
            self._buffer.clear()
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(self._executor, self._channel.sendall, data)
            except (OSError, EOFError, paramiko.SSHException) as e:
                raise TransportClosedError(f"write to agent failed: {e}")

    def is_closing(self) -> bool:
        return self._closing

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        try:
            self._channel.shutdown_write()
        except (OSError, EOFError, paramiko.SSHException) as e:
            logger.debug(f"shutdown_write failed: {e}")


def _interactive_handler(password: str) -> Callable:
    def handler(title: str, instructions: str, prompts: List) -> List[str]:
        # Every prompt gets the password
        return [password for _ in prompts]
    return handler


class SSHTransport(AbstractTransport):
    """
    Transport that runs the agent on a remote host over SSH

    Blocking paramiko calls run on a private single-thread executor so the
    event loop never blocks. Channel stdout is pumped into an
    ``asyncio.StreamReader`` by a daemon thread.

    Args:
        host: Remote host name or address
        user: Login user
        port: SSH port
        password: Password (also used for keyboard-interactive prompts)
        key_path: Private key file
        remote_path: Where the agent is uploaded and run from
        timeout: Connect timeout in seconds
    """

    name = "ssh"

    def __init__(
        self,
        host: str,
        user: str,
        port: int = Config.DEFAULT_SSH_PORT,
        password: Optional[str] = None,
        key_path: Optional[str] = None,
        remote_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.host = host
        self.user = user
        self.port = port
        self.password = password
        self.key_path = key_path
        self.remote_path = remote_path or Config.REMOTE_AGENT_PATH
        self.timeout = timeout or Config.CONNECT_TIMEOUT

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="podshell_ssh_")
        self._client: Optional[paramiko.SSHClient] = None
        self._channel: Optional[paramiko.Channel] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[ChannelWriter] = None
        self._pumps: List[threading.Thread] = []
        self._closed = False

    async def _run(self, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    # connect

    async def connect(self) -> None:
        await self._run(self._connect_sync)
        logger.info(f"Connected to {self.user}@{self.host}:{self.port}")

    def _connect_sync(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.user,
                password=self.password,
                key_filename=self.key_path,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                allow_agent=False,
                look_for_keys=self.key_path is None and not self.password,
            )
        except paramiko.AuthenticationException as e:
            if not self._try_interactive(client):
                client.close()
                raise AuthError(f"Authentication failed for {self.user}@{self.host}: {e}")
        except (socket.timeout, OSError, paramiko.SSHException) as e:
            client.close()
            raise NetworkError(f"Failed to connect to {self.host}:{self.port}: {e}")
        self._client = client

    def _try_interactive(self, client: paramiko.SSHClient) -> bool:
        transport = client.get_transport()
        if not self.password or transport is None or not transport.is_active():
            return False
        try:
            transport.auth_interactive(self.user, _interactive_handler(self.password))
        except paramiko.SSHException as e:
            logger.debug(f"keyboard-interactive auth failed: {e}")
            return False
        return transport.is_authenticated()

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None or self._closed:
            raise TransportClosedError("not connected")
        return self._client

    # deploy

    async def deploy(self, local_path: Optional[str] = None) -> None:
        if not local_path:
            logger.info(f"No agent binary given, using existing {self.remote_path}")
            return
        if not os.path.isfile(local_path):
            raise DeployError(f"Agent binary not found: {local_path}")
        await self._run(self._deploy_sync, local_path)
        logger.info(f"Deployed agent to {self.host}:{self.remote_path}")

    def _deploy_sync(self, local_path: str) -> None:
        client = self._require_client()
        try:
            sftp = client.open_sftp()
            try:
                sftp.put(local_path, self.remote_path)
                sftp.chmod(self.remote_path, 0o755)
            finally:
                sftp.close()
        except (OSError, paramiko.SSHException) as e:
            raise DeployError(f"Failed to upload agent: {e}")

    # start

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._reader = asyncio.StreamReader()
        self._channel = await self._run(self._start_sync)
        self._writer = ChannelWriter(self._channel, self._executor)

        for target, name in ((self._pump_stdout, "stdout"), (self._pump_stderr, "stderr")):
            thread = threading.Thread(
                target=target, args=(loop,), name=f"podshell_ssh_{name}", daemon=True
            )
            thread.start()
            self._pumps.append(thread)
        logger.info(f"Agent started on {self.host}")

    def _start_sync(self) -> paramiko.Channel:
        client = self._require_client()
        try:
            transport = client.get_transport()
            if transport is None or not transport.is_active():
                raise SpawnError("SSH session is not active")
            channel = transport.open_session(timeout=self.timeout)
            channel.exec_command(self.remote_path)
        except (OSError, paramiko.SSHException) as e:
            raise SpawnError(f"Failed to start agent: {e}")
        return channel

    def _pump_stdout(self, loop: asyncio.AbstractEventLoop) -> None:
        channel, reader = self._channel, self._reader
        try:
            while True:
                chunk = channel.recv(RECV_CHUNK)
                if not chunk:
                    break
                loop.call_soon_threadsafe(reader.feed_data, chunk)
        except (OSError, EOFError, paramiko.SSHException) as e:
            logger.debug(f"Agent stdout pump stopped: {e}")
        finally:
            try:
                loop.call_soon_threadsafe(reader.feed_eof)
            except RuntimeError:
                # Loop already closed
                pass

    def _pump_stderr(self, loop: asyncio.AbstractEventLoop) -> None:
        channel = self._channel
        pending = b""
        try:
            while True:
                chunk = channel.recv_stderr(RECV_CHUNK)
                if not chunk:
                    break
                pending += chunk
                *lines, pending = pending.split(b"\n")
                for line in lines:
                    logger.debug(f"agent: {line.decode('utf-8', errors='replace')}")
        except (OSError, EOFError, paramiko.SSHException) as e:
            logger.debug(f"Agent stderr pump stopped: {e}")

    @property
    def reader(self) -> asyncio.StreamReader:
        if self._reader is None or self._closed:
            raise TransportClosedError("transport is not started")
        return self._reader

    @property
    def writer(self) -> ChannelWriter:
        if self._writer is None or self._closed:
            raise TransportClosedError("transport is not started")
        return self._writer

    # close

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._writer.close()
        if self._channel is not None:
            self._channel.close()
        if self._client is not None:
            self._client.close()
        loop = asyncio.get_running_loop()
        for thread in self._pumps:
            await loop.run_in_executor(None, thread.join, PUMP_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop after the channel closed")
        self._pumps.clear()
        self._executor.shutdown(wait=False)
        logger.info(f"Disconnected from {self.host}")
