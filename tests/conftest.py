import asyncio
from typing import Optional

import pytest

from podshell.agent.dispatcher import Dispatcher
from podshell.backends import StubBackend
from podshell.core.catalog import Request, TelemetryData
from podshell.core.codec import INCOMPLETE, FrameDecoder, encode_frame
from podshell.transport.base import AbstractTransport


def fake_telemetry(docker_running: bool = False) -> TelemetryData:
    return TelemetryData(timestamp="now", cpu_usage=12.0, ram_usage=40.0, cpu_temp=50.0,
                         docker_running=docker_running)


class LoopbackWriter:
    """Feeds written requests to a dispatcher and queues its responses"""

    def __init__(self, transport: 'LoopbackTransport') -> None:
        self._transport = transport
        self._decoder = FrameDecoder()
        self._closing = False

    def write(self, data: bytes) -> None:
        if self._closing:
            raise ConnectionResetError("closed")
        self._decoder.feed(data)

    async def drain(self) -> None:
        if self._transport.hung_up:
            raise ConnectionResetError("agent exited")
        while True:
            frame = self._decoder.next_frame()
            if frame is INCOMPLETE:
                return
            response = self._transport.dispatcher.handle_request(Request.from_dict(frame))
            self._transport.reader.feed_data(encode_frame(response))

    def is_closing(self) -> bool:
        return self._closing

    def close(self) -> None:
        self._closing = True


class LoopbackTransport(AbstractTransport):
    """In-process transport wired straight to a dispatcher over a stub backend"""

    name = "loopback"

    def __init__(self, backend: Optional[StubBackend] = None) -> None:
        self.backend = backend or StubBackend()
        self.dispatcher = Dispatcher(self.backend, telemetry_fn=fake_telemetry)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[LoopbackWriter] = None
        self.calls = []
        self.closed = False
        self.hung_up = False

    async def connect(self) -> None:
        self.calls.append("connect")

    async def deploy(self, local_path: Optional[str] = None) -> None:
        self.calls.append("deploy")

    async def start(self) -> None:
        self.calls.append("start")
        self._reader = asyncio.StreamReader()
        self._writer = LoopbackWriter(self)

    @property
    def reader(self) -> asyncio.StreamReader:
        return self._reader

    @property
    def writer(self) -> LoopbackWriter:
        return self._writer

    def hang_up(self) -> None:
        """Simulate the agent exiting"""
        self.hung_up = True
        self._reader.feed_eof()

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.hung_up = True
        if self._writer is not None:
            self._writer.close()
        if self._reader is not None and not self._reader.at_eof():
            self._reader.feed_eof()


@pytest.fixture
def loopback_transport() -> LoopbackTransport:
    return LoopbackTransport()
