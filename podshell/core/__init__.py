"""Core protocol: command catalog, framing, templates, RPC loop and pollers"""

from .catalog import (
    CommandType,
    EnvironmentType,
    GameServerConfig,
    CreateEnvPayload,
    SendInputPayload,
    ContainerInfo,
    TelemetryData,
    InvalidPayload,
    Request,
    Response,
    PAYLOAD_TYPES,
    decode_payload,
)
from .codec import FrameDecoder, FrameReader, AsyncFrameReader, encode_frame, write_frame
from .templates import get_template, list_templates
from .rpc import RPCLoop, OrderingMonitor
from .scheduler import PollScheduler

__all__ = [
    "CommandType",
    "EnvironmentType",
    "GameServerConfig",
    "CreateEnvPayload",
    "SendInputPayload",
    "ContainerInfo",
    "TelemetryData",
    "InvalidPayload",
    "Request",
    "Response",
    "PAYLOAD_TYPES",
    "decode_payload",
    "FrameDecoder",
    "FrameReader",
    "AsyncFrameReader",
    "encode_frame",
    "write_frame",
    "get_template",
    "list_templates",
    "RPCLoop",
    "OrderingMonitor",
    "PollScheduler",
]
