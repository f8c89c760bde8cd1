"""Transport session interface"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional


class AbstractTransport(ABC):
    """
    Connection to an agent process

    A session is established in three steps, each of which may fail with a
    ``TransportError`` subclass:

        connect()  -> reach the host (AuthError, NetworkError)
        deploy()   -> put the agent in place (DeployError)
        start()    -> launch it and open its streams (SpawnError)

    After ``start()`` the ``reader`` and ``writer`` carry protocol frames. The
    streams have a single owner; the RPC loop that wraps them is the only
    thing that should read or write. ``close()`` is the only way to cancel
    an in-flight read.
    """

    name: str = "abstract"

    @abstractmethod
    async def connect(self) -> None:
        """Reach the host and authenticate"""
        pass

    @abstractmethod
    async def deploy(self, local_path: Optional[str] = None) -> None:
        """
        Upload the agent executable

        Args:
            local_path: Agent executable on this machine
        """
        pass

    @abstractmethod
    async def start(self) -> None:
        """Launch the agent and open its stdin/stdout streams"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release every resource held by the session; safe to call twice"""
        pass

    @property
    @abstractmethod
    def reader(self) -> asyncio.StreamReader:
        """Agent stdout"""
        pass

    @property
    @abstractmethod
    def writer(self):
        """Agent stdin; offers write(), drain() and close()"""
        pass

    async def establish(self, agent_binary: Optional[str] = None) -> None:
        """Run connect, deploy and start in order"""
        await self.connect()
        await self.deploy(agent_binary)
        await self.start()

    async def __aenter__(self) -> 'AbstractTransport':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
