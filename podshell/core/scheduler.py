"""Periodic polling of the agent

Telemetry and inventory poll for the whole session; the log tail polls only
while a container's detail view is open. Each poll sends a request and goes
back to sleep. Answers come back through the RPC loop's handlers.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from .catalog import CommandType, Request
from ..utils.config import Config
from ..utils.exceptions import PodshellError, TransportClosedError
from ..utils.logger import logger

TELEMETRY_ID = "telemetry"
INVENTORY_ID = "list"
LOGS_PREFIX = "logs:"


def logs_id(container_id: str) -> str:
    """Request id used when polling one container's logs"""
    return LOGS_PREFIX + container_id


class PollScheduler:
    """
    Three independent repeating sends

    Args:
        send: Coroutine that writes one request (usually ``RPCLoop.send``)
        telemetry_interval: Seconds between telemetry polls
        inventory_interval: Seconds between inventory polls
        logs_interval: Seconds between log polls for the watched container
    """

    def __init__(
        self,
        send: Callable[[Request], Awaitable[None]],
        telemetry_interval: Optional[float] = None,
        inventory_interval: Optional[float] = None,
        logs_interval: Optional[float] = None,
    ):
        self._send = send
        self.telemetry_interval = telemetry_interval or Config.TELEMETRY_INTERVAL
        self.inventory_interval = inventory_interval or Config.INVENTORY_INTERVAL
        self.logs_interval = logs_interval or Config.LOGS_INTERVAL

        self._tasks: Dict[str, asyncio.Task] = {}
        self.watched: Optional[str] = None

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def start(self) -> None:
        self._spawn(
            "telemetry",
            self.telemetry_interval,
            lambda: Request(id=TELEMETRY_ID, type=CommandType.GET_TELEMETRY),
        )
        self._spawn(
            "inventory",
            self.inventory_interval,
            lambda: Request(id=INVENTORY_ID, type=CommandType.LIST_CONTAINERS),
        )

    def watch_logs(self, container_id: str) -> None:
        """Start tailing a container's logs, replacing any previous watch"""
        self.unwatch_logs()
        self.watched = container_id
        self._spawn(
            "logs",
            self.logs_interval,
            lambda: Request(id=logs_id(container_id), type=CommandType.GET_LOGS, payload=container_id),
        )

    def unwatch_logs(self) -> None:
        self.watched = None
        task = self._tasks.pop("logs", None)
        if task is not None:
            task.cancel()

    async def refresh_inventory(self) -> None:
        """Poll the inventory now instead of waiting for the next tick"""
        await self._send(Request(id=INVENTORY_ID, type=CommandType.LIST_CONTAINERS))

    async def stop(self) -> None:
        """Cancel every poll task and wait for them to finish"""
        self.watched = None
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, name: str, interval: float, make_request: Callable[[], Request]) -> None:
        existing = self._tasks.get(name)
        if existing is not None and not existing.done():
            return
        self._tasks[name] = asyncio.create_task(
            self._repeat(name, interval, make_request), name=f"poll_{name}"
        )

    async def _repeat(self, name: str, interval: float, make_request: Callable[[], Request]) -> None:
        while True:
            try:
                await self._send(make_request())
            except TransportClosedError as e:
                logger.debug(f"{name} poll stopped: {e}")
                return
            except PodshellError as e:
                logger.warning(f"{name} poll failed: {e}")
            await asyncio.sleep(interval)
