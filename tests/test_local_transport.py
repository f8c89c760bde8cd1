import asyncio
import sys

import pytest

from podshell.client.session import ControlSession
from podshell.core.catalog import CommandType, CreateEnvPayload, Request
from podshell.core.rpc import RPCLoop
from podshell.transport import LocalTransport, open_transport
from podshell.utils.exceptions import SpawnError, TransportClosedError


def test_open_transport_dev_is_local() -> None:
    transport = open_transport(dev=True, agent_args=["--stub"])
    assert isinstance(transport, LocalTransport)
    assert transport.command == [sys.executable, "-m", "podshell.agent", "--stub"]


def test_streams_unavailable_before_start() -> None:
    transport = LocalTransport()
    with pytest.raises(TransportClosedError):
        transport.reader


@pytest.mark.asyncio
async def test_missing_executable_is_spawn_error() -> None:
    transport = LocalTransport(command=["/nonexistent/podshell-agent"])
    with pytest.raises(SpawnError):
        await transport.establish()
    await transport.close()


@pytest.mark.asyncio
async def test_child_agent_round_trip() -> None:
    async with LocalTransport(agent_args=["--stub"]) as transport:
        await transport.establish()
        rpc = RPCLoop.from_transport(transport)
        runner = asyncio.ensure_future(rpc.run())

        pong = await asyncio.wait_for(rpc.call(Request(id="1", type=CommandType.PING)), timeout=30)
        assert pong.data == "PONG"

        unknown = await asyncio.wait_for(
            rpc.call(Request(id="2", type=CommandType.START_ENV, payload="abc123")), timeout=30
        )
        assert unknown.success is False
        assert "container not found" in unknown.error

        rpc.close()
    await asyncio.wait_for(runner, timeout=30)
    assert transport.returncode == 0


@pytest.mark.asyncio
async def test_session_against_child_agent() -> None:
    session = ControlSession(LocalTransport(agent_args=["--stub"]), poll=False)
    await asyncio.wait_for(session.open(), timeout=30)
    try:
        created = await asyncio.wait_for(
            session.create_env(CreateEnvPayload(name="web", image="nginx")), timeout=30
        )
        assert created.success
        listed = await asyncio.wait_for(session.list_containers(), timeout=30)
        assert listed.success
        assert [c.name for c in session.state.containers] == ["web"]
        assert session.state.containers[0].status == "running"
    finally:
        await session.close()
