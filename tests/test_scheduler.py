import asyncio
from typing import List

import pytest

from podshell.core.catalog import CommandType, Request
from podshell.core.scheduler import PollScheduler
from podshell.utils.exceptions import TransportClosedError


class Recorder:
    def __init__(self) -> None:
        self.sent: List[Request] = []

    async def send(self, request: Request) -> None:
        self.sent.append(request)

    def ids(self) -> List[str]:
        return [r.id for r in self.sent]


def _scheduler(recorder: Recorder) -> PollScheduler:
    return PollScheduler(
        recorder.send,
        telemetry_interval=0.01,
        inventory_interval=0.05,
        logs_interval=0.01,
    )


@pytest.mark.asyncio
async def test_start_polls_telemetry_and_inventory() -> None:
    recorder = Recorder()
    scheduler = _scheduler(recorder)
    scheduler.start()
    await asyncio.sleep(0.12)
    await scheduler.stop()

    ids = recorder.ids()
    assert ids.count("telemetry") > ids.count("list") >= 2
    assert not any(i.startswith("logs:") for i in ids)
    assert {r.type for r in recorder.sent} == {CommandType.GET_TELEMETRY, CommandType.LIST_CONTAINERS}
    assert not scheduler.running


@pytest.mark.asyncio
async def test_watch_and_unwatch_logs() -> None:
    recorder = Recorder()
    scheduler = _scheduler(recorder)
    scheduler.watch_logs("c1")
    await asyncio.sleep(0.05)
    scheduler.watch_logs("c2")
    await asyncio.sleep(0.05)
    scheduler.unwatch_logs()
    await asyncio.sleep(0)
    count = len(recorder.sent)
    await asyncio.sleep(0.05)

    assert len(recorder.sent) == count
    logs = [r for r in recorder.sent if r.type is CommandType.GET_LOGS]
    assert (logs[0].id, logs[0].payload) == ("logs:c1", "c1")
    assert (logs[-1].id, logs[-1].payload) == ("logs:c2", "c2")
    assert scheduler.watched is None
    await scheduler.stop()


@pytest.mark.asyncio
async def test_polling_stops_when_transport_closes() -> None:
    calls = []

    async def closed_send(request: Request) -> None:
        calls.append(request)
        raise TransportClosedError("gone")

    scheduler = PollScheduler(closed_send, telemetry_interval=0.01, inventory_interval=0.01)
    scheduler.start()
    await asyncio.sleep(0.05)
    assert len(calls) == 2
    assert not scheduler.running
    await scheduler.stop()


@pytest.mark.asyncio
async def test_refresh_inventory_sends_immediately() -> None:
    recorder = Recorder()
    await _scheduler(recorder).refresh_inventory()
    assert recorder.sent == [Request(id="list", type=CommandType.LIST_CONTAINERS)]
