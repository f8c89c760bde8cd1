"""Control session: transport + RPC loop + pollers + view state"""

import asyncio
import functools
from typing import Any, Optional

from .state import ConnectionStatus, DashboardState
from ..core.catalog import (
    CommandType,
    ContainerInfo,
    CreateEnvPayload,
    Request,
    Response,
    SendInputPayload,
    TelemetryData,
)
from ..core.rpc import OrderingMonitor, RPCLoop
from ..core.scheduler import INVENTORY_ID, TELEMETRY_ID, PollScheduler, logs_id
from ..transport.base import AbstractTransport
from ..utils.exceptions import PodshellError, TransportClosedError, TransportError
from ..utils.logger import Logger, logger

audit = Logger.audit()


class ControlSession:
    """
    One logged-in session against an agent

    ``open()`` establishes the transport, starts the response loop and the
    pollers. Operator actions are request/response calls. Any fatal stream
    error tears the session down and leaves ``state.status`` DISCONNECTED
    with the reason in ``state.last_error``.

    Args:
        transport: Unopened transport
        state: View state to update (a fresh one by default)
        monitor: Ordering check passed to the RPC loop
        poll: Start the periodic pollers after login
    """

    def __init__(
        self,
        transport: AbstractTransport,
        state: Optional[DashboardState] = None,
        monitor: Optional[OrderingMonitor] = None,
        poll: bool = True,
        **intervals: float,
    ):
        self.transport = transport
        self.state = state or DashboardState()
        self.monitor = monitor
        self.poll = poll
        self.intervals = intervals

        self.rpc: Optional[RPCLoop] = None
        self.scheduler: Optional[PollScheduler] = None
        self._run_task: Optional[asyncio.Task] = None
        self.closed_event: Optional[asyncio.Event] = None

    @property
    def connected(self) -> bool:
        return self.state.status == ConnectionStatus.CONNECTED

    async def open(self, agent_binary: Optional[str] = None) -> None:
        """
        Log in and start serving

        Raises:
            TransportError: connect, deploy or start failed
        """
        self.state.reset()
        self.state.status = ConnectionStatus.CONNECTING
        try:
            await self.transport.establish(agent_binary)
        except TransportError as e:
            await self.transport.close()
            self.state.status = ConnectionStatus.DISCONNECTED
            self.state.record_error(str(e))
            raise

        self.rpc = RPCLoop.from_transport(self.transport, monitor=self.monitor)
        self.rpc.on(TELEMETRY_ID, self._on_telemetry)
        self.rpc.on(INVENTORY_ID, self._on_inventory)
        self.rpc.on_default(self._on_unclaimed)
        self.rpc.on_fatal = self._on_fatal
        self._run_task = asyncio.create_task(self.rpc.run(), name="rpc_loop")

        self.scheduler = PollScheduler(
            self.rpc.send,
            telemetry_interval=self.intervals.get("telemetry_interval"),
            inventory_interval=self.intervals.get("inventory_interval"),
            logs_interval=self.intervals.get("logs_interval"),
        )
        if self.poll:
            self.scheduler.start()

        self.closed_event = asyncio.Event()
        self.state.status = ConnectionStatus.CONNECTED
        audit.info(f"session opened via {self.transport.name} transport")

    # Response handlers

    def _on_telemetry(self, response: Response) -> None:
        if not response.success:
            self.state.record_error(f"telemetry: {response.error}")
            return
        try:
            self.state.apply_telemetry(TelemetryData.from_dict(response.data))
        except PodshellError as e:
            self.state.record_error(f"telemetry: {e}")

    def _on_inventory(self, response: Response) -> None:
        if not response.success:
            self.state.record_error(f"inventory: {response.error}")
            return
        try:
            self.state.replace_inventory(ContainerInfo.list_from(response.data))
        except PodshellError as e:
            self.state.record_error(f"inventory: {e}")

    def _on_logs(self, container_id: str, response: Response) -> None:
        watched = self.scheduler.watched if self.scheduler else None
        if watched != container_id:
            return
        if response.success:
            self.state.set_logs(container_id, response.data or "")
        else:
            self.state.record_error(f"logs: {response.error}")

    def _on_unclaimed(self, response: Response) -> None:
        if not response.success:
            self.state.record_error(f"{response.id}: {response.error}")
        logger.debug(f"Unclaimed response {response.id}")

    async def _on_fatal(self, error: PodshellError) -> None:
        logger.error(f"Session lost: {error}")
        self.state.record_error(str(error))
        await self._teardown()

    # Operator actions

    async def _call(self, req_id: str, command: CommandType, payload: Any = None) -> Response:
        if not self.connected or self.rpc is None:
            raise TransportClosedError("not connected")
        return await self.rpc.call(Request(id=req_id, type=command, payload=payload))

    async def _action(self, req_id: str, command: CommandType, payload: Any, what: str) -> Response:
        response = await self._call(req_id, command, payload)
        if response.success:
            audit.info(f"{what}: ok{' (' + response.error + ')' if response.error else ''}")
            if self.scheduler is not None:
                await self.scheduler.refresh_inventory()
        else:
            audit.info(f"{what}: failed ({response.error})")
            self.state.record_error(response.error or f"{what} failed")
        return response

    async def ping(self) -> Response:
        return await self._call("ping", CommandType.PING)

    async def telemetry(self) -> Response:
        return await self._call("telemetry-now", CommandType.GET_TELEMETRY)

    async def list_containers(self) -> Response:
        response = await self._call("list-now", CommandType.LIST_CONTAINERS)
        self._on_inventory(response)
        return response

    async def create_env(self, payload: CreateEnvPayload) -> Response:
        label = payload.name or payload.image or payload.type.value
        return await self._action("create", CommandType.CREATE_ENV, payload, f"create {label}")

    async def start_env(self, container_id: str) -> Response:
        return await self._action("start", CommandType.START_ENV, container_id, f"start {container_id}")

    async def stop_env(self, container_id: str) -> Response:
        return await self._action("stop", CommandType.STOP_ENV, container_id, f"stop {container_id}")

    async def remove_env(self, container_id: str) -> Response:
        return await self._action("remove", CommandType.REMOVE_ENV, container_id, f"remove {container_id}")

    async def get_logs(self, container_id: str) -> Response:
        return await self._call("logs-now", CommandType.GET_LOGS, container_id)

    async def send_input(self, container_id: str, data: str) -> Response:
        payload = SendInputPayload(id=container_id, data=data)
        response = await self._call("input", CommandType.SEND_INPUT, payload)
        audit.info(f"input {container_id}: {'ok' if response.success else response.error}")
        return response

    def watch_logs(self, container_id: str) -> None:
        if self.scheduler is None:
            raise TransportClosedError("not connected")
        if self.rpc is not None:
            self.rpc.on(logs_id(container_id), functools.partial(self._on_logs, container_id))
        self.state.set_logs(container_id, "")
        self.scheduler.watch_logs(container_id)

    def unwatch_logs(self) -> None:
        if self.scheduler is not None:
            self.scheduler.unwatch_logs()
        self.state.set_logs(None, "")

    # Teardown

    async def _teardown(self) -> None:
        if self.state.status == ConnectionStatus.DISCONNECTED:
            return
        self.state.status = ConnectionStatus.DISCONNECTED
        if self.scheduler is not None:
            await self.scheduler.stop()
        if self.rpc is not None:
            self.rpc.close()
        await self.transport.close()
        if self.closed_event is not None:
            self.closed_event.set()
        audit.info("session closed")

    async def close(self) -> None:
        """Log out; safe to call on a session that already failed"""
        await self._teardown()
        task = self._run_task
        self._run_task = None
        if task is not None and task is not asyncio.current_task():
            try:
                await asyncio.wait_for(task, timeout=5.0)
            except asyncio.TimeoutError:
                task.cancel()
            except asyncio.CancelledError:
                pass
