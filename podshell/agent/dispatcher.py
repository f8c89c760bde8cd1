"""Agent request dispatcher

Reads requests from a byte stream, routes each one to the backend and writes
exactly one response per request, echoing the request id. The loop has two
states: LISTENING while frames keep arriving and TERMINATED once the input
ends, a frame cannot be decoded, or the output cannot be written.
"""

import threading
from enum import Enum
from typing import Any, BinaryIO, Callable, Optional

from .telemetry import collect_telemetry
from ..backends.base import AbstractBackend
from ..core.catalog import (
    CommandType,
    CreateEnvPayload,
    InvalidPayload,
    Request,
    Response,
    SendInputPayload,
    TelemetryData,
)
from ..core.codec import FrameReader, write_frame
from ..core.templates import get_template
from ..utils.config import Config
from ..utils.exceptions import BackendError, DecodeError, PodshellError
from ..utils.logger import logger

# Id of the error response sent for an undecodable frame
DECODE_ID = "DECODE"


class DispatcherState(str, Enum):
    LISTENING = "LISTENING"
    TERMINATED = "TERMINATED"


class Dispatcher:
    """Routes requests to a backend and serves a request stream"""

    def __init__(
        self,
        backend: AbstractBackend,
        telemetry_fn: Callable[..., TelemetryData] = collect_telemetry,
        lock: Optional[threading.Lock] = None,
        log_tail: Optional[int] = None,
    ):
        self.backend = backend
        self.telemetry_fn = telemetry_fn
        # Shared between connections in listen mode
        self._lock = lock or threading.Lock()
        self.log_tail = log_tail or Config.LOG_TAIL_LINES
        self.state = DispatcherState.LISTENING

        self._handlers = {
            CommandType.PING: self._ping,
            CommandType.GET_TELEMETRY: self._telemetry,
            CommandType.LIST_CONTAINERS: self._list,
            CommandType.CREATE_ENV: self._create,
            CommandType.START_ENV: self._start,
            CommandType.STOP_ENV: self._stop,
            CommandType.REMOVE_ENV: self._remove,
            CommandType.GET_LOGS: self._logs,
            CommandType.SEND_INPUT: self._input,
        }

    def _call(self, fn: Callable[..., Any], *args) -> Any:
        with self._lock:
            return fn(*args)

    def handle_request(self, request: Request) -> Response:
        """
        Produce the response for one request

        Backend and payload failures are reported in the response; this
        method does not raise for them.
        """
        handler = self._handlers.get(request.type) if isinstance(request.type, CommandType) else None
        if handler is None:
            return Response.fail(request.id, f"Unknown command: {request.type}")

        if isinstance(request.payload, InvalidPayload):
            return Response.fail(request.id, request.payload.message)

        try:
            return handler(request)
        except PodshellError as e:
            return Response.fail(request.id, str(e))
        except Exception as e:
            logger.exception(f"Unhandled error in {request.type.value} handler")
            return Response.fail(request.id, f"internal error: {e}")

    # Handlers

    def _ping(self, request: Request) -> Response:
        return Response.ok(request.id, "PONG")

    def _telemetry(self, request: Request) -> Response:
        running = self._call(self.backend.is_running)
        try:
            data = self.telemetry_fn(docker_running=running)
        except OSError as e:
            raise BackendError(f"failed to read system stats: {e}")
        return Response.ok(request.id, data)

    def _list(self, request: Request) -> Response:
        return Response.ok(request.id, self._call(self.backend.list_containers))

    def _create(self, request: Request) -> Response:
        payload: CreateEnvPayload = request.payload
        payload = get_template(payload.type).apply_defaults(payload)

        container_id = self._call(self.backend.create_container, payload)
        logger.info(f"Created {payload.type.value} environment {container_id}")
        try:
            self._call(self.backend.start_container, container_id)
        except BackendError as e:
            logger.warning(f"Container {container_id} created but failed to start: {e}")
            return Response.ok(
                request.id,
                container_id,
                warning=f"Container created but failed to start: {e}",
            )
        return Response.ok(request.id, container_id)

    def _start(self, request: Request) -> Response:
        self._call(self.backend.start_container, request.payload)
        return Response.ok(request.id)

    def _stop(self, request: Request) -> Response:
        self._call(self.backend.stop_container, request.payload)
        return Response.ok(request.id)

    def _remove(self, request: Request) -> Response:
        self._call(self.backend.remove_container, request.payload)
        return Response.ok(request.id)

    def _logs(self, request: Request) -> Response:
        text = self._call(self.backend.get_logs, request.payload, self.log_tail)
        return Response.ok(request.id, text)

    def _input(self, request: Request) -> Response:
        payload: SendInputPayload = request.payload
        if not payload.id:
            return Response.fail(request.id, "Missing container ID")
        self._call(self.backend.send_input, payload.id, payload.data)
        return Response.ok(request.id)

    # Stream loop

    def serve(self, instream: BinaryIO, outstream: BinaryIO) -> DispatcherState:
        """
        Serve requests until the input ends or the stream breaks

        Args:
            instream: Binary stream carrying request frames
            outstream: Binary stream receiving response frames

        Returns:
            Final state (always TERMINATED)
        """
        reader = FrameReader(instream)
        self.state = DispatcherState.LISTENING

        while self.state == DispatcherState.LISTENING:
            try:
                request = Request.from_dict(reader.read_frame())
            except EOFError:
                logger.info("Request stream closed")
                break
            except DecodeError as e:
                logger.error(f"Failed to decode request: {e}")
                self._send(outstream, Response.fail(DECODE_ID, f"Failed to decode request: {e}"))
                break

            logger.debug(f"-> {request.id} {request.type}")
            response = self.handle_request(request)
            if not response.success:
                logger.debug(f"<- {request.id} failed: {response.error}")
            if not self._send(outstream, response):
                break

        self.state = DispatcherState.TERMINATED
        return self.state

    def _send(self, outstream: BinaryIO, response: Response) -> bool:
        try:
            write_frame(outstream, response)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write response {response.id}: {e}")
            return False
