"""Utilities for podshell"""

from .exceptions import (
    PodshellError,
    ValidationError,
    TransportError,
    AuthError,
    NetworkError,
    DeployError,
    SpawnError,
    TransportClosedError,
    DecodeError,
    BackendError,
    PayloadShapeError,
    OrderingViolation,
)
from .logger import Logger
from .config import Config

__all__ = [
    "PodshellError",
    "ValidationError",
    "TransportError",
    "AuthError",
    "NetworkError",
    "DeployError",
    "SpawnError",
    "TransportClosedError",
    "DecodeError",
    "BackendError",
    "PayloadShapeError",
    "OrderingViolation",
    "Logger",
    "Config",
]
