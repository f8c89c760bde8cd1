"""Transport layer - how the control process reaches an agent"""

from typing import List, Optional

from .base import AbstractTransport
from .local import LocalTransport
from ..utils.config import Config

__all__ = [
    "AbstractTransport",
    "LocalTransport",
    "SSHTransport",
    "open_transport",
]


def __getattr__(name: str):
    if name == "SSHTransport":
        from .ssh import SSHTransport
        return SSHTransport
    raise AttributeError(f"module 'podshell.transport' has no attribute {name!r}")


def open_transport(
    dev: bool = False,
    host: Optional[str] = None,
    user: Optional[str] = None,
    port: int = Config.DEFAULT_SSH_PORT,
    password: Optional[str] = None,
    key_path: Optional[str] = None,
    agent_args: Optional[List[str]] = None,
) -> AbstractTransport:
    """
    Create the transport for a session (not yet connected)

    Args:
        dev: Run the agent as a local child process instead of over SSH
        host: Remote host (SSH only)
        user: Login user (SSH only)
        port: SSH port
        password: Login password
        key_path: Private key file
        agent_args: Extra agent arguments (local only)

    Returns:
        Transport instance
    """
    if dev:
        return LocalTransport(agent_args=agent_args)

    from .ssh import SSHTransport
    return SSHTransport(
        host=host,
        user=user,
        port=port,
        password=password,
        key_path=key_path,
    )
