"""Backend layer - container lifecycle providers used by the agent"""

from .base import AbstractBackend
from .stub import StubBackend
from ..utils.exceptions import BackendError
from ..utils.logger import logger

__all__ = [
    "AbstractBackend",
    "StubBackend",
    "DockerBackend",
    "select_backend",
]


def __getattr__(name: str):
    if name == "DockerBackend":
        from .docker_backend import DockerBackend
        return DockerBackend
    raise AttributeError(f"module 'podshell.backends' has no attribute {name!r}")


def select_backend(force_stub: bool = False) -> AbstractBackend:
    """
    Pick the backend once at startup

    Probes the Docker daemon; when it is not reachable the agent keeps
    working against the in-memory stub.

    Args:
        force_stub: Skip the probe and use the stub

    Returns:
        Backend instance
    """
    if force_stub:
        logger.info("Using stub backend (forced)")
        return StubBackend()

    try:
        from .docker_backend import DockerBackend
        backend = DockerBackend()
    except ImportError as e:
        logger.warning(f"docker SDK unavailable ({e}), using stub backend")
        return StubBackend()
    except BackendError as e:
        logger.warning(f"Docker not available ({e}), using stub backend")
        return StubBackend()

    logger.info("Using docker backend")
    return backend
