"""Correlated request/response loop on the control side

The loop owns one transport's streams. ``send()`` writes a request without
waiting for its answer; ``run()`` keeps exactly one read outstanding and hands
each response to the handler registered for its id. Responses are correlated
by id alone. The agent answers in arrival order, so callers that keep at most
one request per id in flight can rely on FIFO matching.

``call()`` layers a pending-request table on top for callers that want to
await a specific answer.
"""

import asyncio
import inspect
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Union

from .catalog import Request, Response
from .codec import AsyncFrameReader, encode_frame
from ..utils.exceptions import (
    DecodeError,
    OrderingViolation,
    PodshellError,
    TransportClosedError,
)
from ..utils.logger import logger

ResponseHandler = Callable[[Response], Union[None, Awaitable[None]]]
FatalHandler = Callable[[PodshellError], Any]


class OrderingMonitor:
    """Checks that responses come back in the order requests were sent"""

    def __init__(self):
        self._expected: Deque[str] = deque()

    def sent(self, req_id: str) -> None:
        self._expected.append(req_id)

    def received(self, resp_id: str) -> None:
        if not self._expected:
            raise OrderingViolation(f"response {resp_id!r} with no request outstanding")
        head = self._expected[0]
        if head != resp_id:
            raise OrderingViolation(f"expected response {head!r}, got {resp_id!r}")
        self._expected.popleft()

    @property
    def outstanding(self) -> int:
        return len(self._expected)


class RPCLoop:
    """
    Request/response loop over an agent stream pair

    Args:
        reader: Agent stdout
        writer: Agent stdin (write/drain/close)
        monitor: Optional ordering check applied to every response
    """

    def __init__(self, reader: asyncio.StreamReader, writer, monitor: Optional[OrderingMonitor] = None):
        self._frames = AsyncFrameReader(reader)
        self._writer = writer
        self.monitor = monitor

        self._handlers: Dict[str, ResponseHandler] = {}
        self._default: Optional[ResponseHandler] = None
        self.on_fatal: Optional[FatalHandler] = None

        self._pending: Dict[str, asyncio.Future] = {}
        self._receiving = False
        self._closed = False
        self.fatal_error: Optional[PodshellError] = None

    @classmethod
    def from_transport(cls, transport, monitor: Optional[OrderingMonitor] = None) -> 'RPCLoop':
        return cls(transport.reader, transport.writer, monitor=monitor)

    @property
    def closed(self) -> bool:
        return self._closed

    def on(self, req_id: str, handler: ResponseHandler) -> None:
        """Register the handler for responses carrying ``req_id``"""
        self._handlers[req_id] = handler

    def on_default(self, handler: ResponseHandler) -> None:
        """Handler for responses no other handler claims"""
        self._default = handler

    async def send(self, request: Request) -> None:
        """
        Write one request and return without waiting for its response

        Raises:
            TransportClosedError: loop is closed or the write failed
        """
        if self._closed:
            raise TransportClosedError("rpc loop is closed")
        if self.monitor is not None:
            self.monitor.sent(request.id)
        try:
            self._writer.write(encode_frame(request))
            await self._writer.drain()
        except (ConnectionError, OSError, RuntimeError) as e:
            raise TransportClosedError(f"failed to send {request.id}: {e}")

    async def receive(self) -> Response:
        """
        Read the next response

        Only one read may be outstanding.

        Raises:
            RuntimeError: another receive() is in progress
            DecodeError: malformed frame
            TransportClosedError: agent stream ended
            OrderingViolation: monitor enabled and order broken
        """
        if self._receiving:
            raise RuntimeError("receive() already in progress")
        self._receiving = True
        try:
            frame = await self._frames.read_frame()
            response = Response.from_dict(frame)
        finally:
            self._receiving = False

        if self.monitor is not None:
            self.monitor.received(response.id)
        return response

    async def call(self, request: Request) -> Response:
        """
        Send a request and wait for the response with the same id

        Raises:
            ValueError: a request with this id is already awaiting a response
            TransportClosedError / DecodeError: the loop failed before the
                response arrived
        """
        if request.id in self._pending:
            raise ValueError(f"request id {request.id!r} already in flight")
        if self.fatal_error is not None:
            raise self.fatal_error

        future = asyncio.get_running_loop().create_future()
        self._pending[request.id] = future
        try:
            await self.send(request)
        except BaseException:
            self._pending.pop(request.id, None)
            raise
        return await future

    async def run(self) -> None:
        """Dispatch responses until the stream fails or the loop is closed"""
        while not self._closed:
            try:
                response = await self.receive()
            except (DecodeError, TransportClosedError, OrderingViolation) as e:
                if not self._closed:
                    await self._fail(e)
                return
            await self._dispatch(response)

    async def _dispatch(self, response: Response) -> None:
        future = self._pending.pop(response.id, None)
        if future is not None:
            if not future.done():
                future.set_result(response)
            return

        handler = self._handlers.get(response.id, self._default)
        if handler is None:
            logger.debug(f"Unclaimed response {response.id}")
            return
        try:
            result = handler(response)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Response handler for {response.id} failed")

    def _fail_pending(self, error: PodshellError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _fail(self, error: PodshellError) -> None:
        logger.error(f"RPC loop stopped: {error}")
        self.fatal_error = error
        self._closed = True
        self._fail_pending(error)
        if self.on_fatal is not None:
            result = self.on_fatal(error)
            if inspect.isawaitable(result):
                await result

    def close(self) -> None:
        """Stop accepting requests and fail anything still pending"""
        if self._closed:
            return
        self._closed = True
        self._fail_pending(TransportClosedError("rpc loop closed"))
