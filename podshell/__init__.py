"""
podshell: remote container management over SSH

A control process logs in to a host over SSH, uploads and starts a small
agent, and talks to it with JSON requests on the agent's stdin/stdout. The
agent drives the host's Docker daemon (or an in-memory stub) and reports
host telemetry.

Basic Usage:
    >>> from podshell import ControlSession, open_transport
    >>> session = ControlSession(open_transport(dev=True))
    >>> await session.open()
    >>> (await session.ping()).data
    'PONG'
    >>> await session.close()
"""

from .__version__ import __version__


_LAZY_EXPORTS = {
    "ControlSession": ".client.session",
    "DashboardState": ".client.state",
    "open_transport": ".transport",
    "RPCLoop": ".core.rpc",
    "Dispatcher": ".agent.dispatcher",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        import importlib
        module = importlib.import_module(_LAZY_EXPORTS[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module 'podshell' has no attribute {name!r}")


__all__ = ["__version__", *_LAZY_EXPORTS]
