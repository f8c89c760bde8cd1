"""Command catalog shared by the control process and the agent.

Every message on the wire is one JSON object. Requests carry a caller-assigned
``id`` which the agent echoes back unchanged in the matching response:

    -> {"id":"1","type":"PING"}
    <- {"id":"1","success":true,"data":"PONG"}

Payloads are polymorphic by command type. ``PAYLOAD_TYPES`` is the tagged
union: it maps each ``CommandType`` to the shape its payload must have, and
``decode_payload`` turns raw JSON into that shape or raises
``PayloadShapeError``.
"""

from dataclasses import dataclass, field, asdict, is_dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..utils.exceptions import DecodeError, PayloadShapeError


class CommandType(str, Enum):
    """Request types understood by the agent"""

    PING = "PING"
    GET_TELEMETRY = "GET_TELEMETRY"
    LIST_CONTAINERS = "LIST_CONTAINERS"
    CREATE_ENV = "CREATE_ENV"
    START_ENV = "START_ENV"
    STOP_ENV = "STOP_ENV"
    REMOVE_ENV = "REMOVE_ENV"
    GET_LOGS = "GET_LOGS"
    SEND_INPUT = "SEND_INPUT"

    @classmethod
    def parse(cls, value: Any) -> Optional['CommandType']:
        """Return the matching member, or None for an unrecognized literal"""
        try:
            return cls(value)
        except ValueError:
            return None


class EnvironmentType(str, Enum):
    """Template an environment is created from"""

    STANDARD = "STANDARD"
    MINECRAFT = "MINECRAFT"


# Game server feature flags
FEATURE_AIKAR_FLAGS = "AIKAR_FLAGS"
FEATURE_AUTO_UPDATE = "AUTO_UPDATE"

GAME_SERVER_TYPES = ("VANILLA", "FORGE", "FABRIC", "ARCLIGHT")

CONTAINER_STATUSES = (
    "created", "running", "paused", "restarting", "removing", "exited", "dead",
)


def _str_field(obj: Dict[str, Any], key: str, default: str = "") -> str:
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise PayloadShapeError(f"field '{key}' must be a string")
    return value


def _str_list_field(obj: Dict[str, Any], key: str) -> List[str]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise PayloadShapeError(f"field '{key}' must be a list of strings")
    return list(value)


def _str_map_field(obj: Dict[str, Any], key: str) -> Dict[str, str]:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise PayloadShapeError(f"field '{key}' must be a map of strings")
    return dict(value)


@dataclass
class GameServerConfig:
    """Settings specific to MINECRAFT environments"""

    eula: bool = False
    server_type: str = ""
    version: str = ""
    modpack: str = ""
    motd: str = ""
    features: List[str] = field(default_factory=list)
    plugins: List[str] = field(default_factory=list)
    op_users: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self == GameServerConfig()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eula": self.eula,
            "server_type": self.server_type,
            "version": self.version,
            "modpack": self.modpack,
            "motd": self.motd,
            "features": list(self.features),
            "plugins": list(self.plugins),
            "op_users": list(self.op_users),
        }

    @classmethod
    def from_dict(cls, obj: Any) -> 'GameServerConfig':
        if not isinstance(obj, dict):
            raise PayloadShapeError("game server block must be an object")
        eula = obj.get("eula", False)
        if not isinstance(eula, bool):
            raise PayloadShapeError("field 'eula' must be a boolean")
        return cls(
            eula=eula,
            server_type=_str_field(obj, "server_type"),
            version=_str_field(obj, "version"),
            modpack=_str_field(obj, "modpack"),
            motd=_str_field(obj, "motd"),
            features=_str_list_field(obj, "features"),
            plugins=_str_list_field(obj, "plugins"),
            op_users=_str_list_field(obj, "op_users"),
        )


@dataclass
class CreateEnvPayload:
    """Parameters for CREATE_ENV

    ``minecraft`` is the kind-specific block; it is only meaningful when
    ``type`` is MINECRAFT.
    """

    name: str = ""
    type: EnvironmentType = EnvironmentType.STANDARD
    image: str = ""
    ports: List[str] = field(default_factory=list)
    env_vars: Dict[str, str] = field(default_factory=dict)
    ram_limit: str = ""
    minecraft: Optional[GameServerConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "type": EnvironmentType(self.type).value,
            "image": self.image,
            "ports": list(self.ports),
            "env_vars": dict(self.env_vars),
        }
        if self.ram_limit:
            out["ram_limit"] = self.ram_limit
        if self.minecraft is not None:
            out["minecraft"] = self.minecraft.to_dict()
        return out

    @classmethod
    def from_dict(cls, obj: Any) -> 'CreateEnvPayload':
        if not isinstance(obj, dict):
            raise PayloadShapeError("creation payload must be an object")

        raw_type = obj.get("type") or EnvironmentType.STANDARD.value
        try:
            env_type = EnvironmentType(raw_type)
        except ValueError:
            raise PayloadShapeError(f"unknown environment type: {raw_type!r}")

        block = obj.get("minecraft")
        minecraft = GameServerConfig.from_dict(block) if block is not None else None
        if (
            env_type != EnvironmentType.MINECRAFT
            and minecraft is not None
            and not minecraft.is_empty()
        ):
            raise PayloadShapeError(
                f"game server settings given for a {env_type.value} environment"
            )

        return cls(
            name=_str_field(obj, "name"),
            type=env_type,
            image=_str_field(obj, "image"),
            ports=_str_list_field(obj, "ports"),
            env_vars=_str_map_field(obj, "env_vars"),
            ram_limit=_str_field(obj, "ram_limit"),
            minecraft=minecraft if env_type == EnvironmentType.MINECRAFT else None,
        )


@dataclass
class SendInputPayload:
    """Parameters for SEND_INPUT: a line of text for a container's stdin"""

    id: str = ""
    data: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "data": self.data}

    @classmethod
    def from_dict(cls, obj: Any) -> 'SendInputPayload':
        if not isinstance(obj, dict):
            raise PayloadShapeError("Invalid payload format for SEND_INPUT")
        # Wrong-typed members degrade to empty, missing id is reported by the handler
        ident = obj.get("id")
        data = obj.get("data")
        return cls(
            id=ident if isinstance(ident, str) else "",
            data=data if isinstance(data, str) else "",
        )


@dataclass
class ContainerInfo:
    """One entry of a LIST_CONTAINERS inventory snapshot"""

    id: str
    name: str = ""
    image: str = ""
    status: str = ""
    created: int = 0
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "status": self.status,
            "created": self.created,
            "labels": dict(self.labels),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'ContainerInfo':
        return cls(
            id=str(obj.get("id", "")),
            name=str(obj.get("name") or ""),
            image=str(obj.get("image") or ""),
            status=str(obj.get("status") or ""),
            created=int(obj.get("created") or 0),
            labels=dict(obj.get("labels") or {}),
        )

    @classmethod
    def list_from(cls, data: Any) -> List['ContainerInfo']:
        """Decode the ``data`` member of a LIST_CONTAINERS response"""
        if not data:
            return []
        if not isinstance(data, list):
            raise PayloadShapeError("inventory must be a list")
        return [cls.from_dict(item) for item in data if isinstance(item, dict)]


@dataclass
class TelemetryData:
    """System stats reported by GET_TELEMETRY"""

    timestamp: str = ""
    cpu_usage: float = 0.0      # percent
    cpu_temp: float = 0.0       # celsius
    ram_usage: float = 0.0      # percent
    ram_total: int = 0          # bytes
    ram_used: int = 0           # bytes
    disk_free: int = 0          # bytes
    disk_total: int = 0         # bytes
    docker_running: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, obj: Any) -> 'TelemetryData':
        if not isinstance(obj, dict):
            raise PayloadShapeError("telemetry must be an object")
        return cls(
            timestamp=str(obj.get("timestamp") or ""),
            cpu_usage=float(obj.get("cpu_usage") or 0.0),
            cpu_temp=float(obj.get("cpu_temp") or 0.0),
            ram_usage=float(obj.get("ram_usage") or 0.0),
            ram_total=int(obj.get("ram_total") or 0),
            ram_used=int(obj.get("ram_used") or 0),
            disk_free=int(obj.get("disk_free") or 0),
            disk_total=int(obj.get("disk_total") or 0),
            docker_running=bool(obj.get("docker_running", False)),
        )


@dataclass(frozen=True)
class InvalidPayload:
    """Payload that did not match its command's shape

    Kept on the request so the dispatcher can report the problem as a failed
    response instead of treating the frame as undecodable.
    """

    raw: Any
    message: str


def _decode_container_id(raw: Any) -> str:
    if not isinstance(raw, str):
        raise PayloadShapeError("Payload must be a string (container ID)")
    return raw


def _decode_create(raw: Any) -> CreateEnvPayload:
    if raw is None:
        raise PayloadShapeError("Failed to parse creation payload: payload missing")
    try:
        return CreateEnvPayload.from_dict(raw)
    except PayloadShapeError as e:
        raise PayloadShapeError(f"Failed to parse creation payload: {e}")


# Tagged union: payload shape per command. None means "no payload".
PAYLOAD_TYPES: Dict[CommandType, Optional[Callable[[Any], Any]]] = {
    CommandType.PING: None,
    CommandType.GET_TELEMETRY: None,
    CommandType.LIST_CONTAINERS: None,
    CommandType.CREATE_ENV: _decode_create,
    CommandType.START_ENV: _decode_container_id,
    CommandType.STOP_ENV: _decode_container_id,
    CommandType.REMOVE_ENV: _decode_container_id,
    CommandType.GET_LOGS: _decode_container_id,
    CommandType.SEND_INPUT: SendInputPayload.from_dict,
}


def decode_payload(command: CommandType, raw: Any) -> Any:
    """Convert a raw JSON payload into the typed payload for ``command``

    Raises:
        PayloadShapeError: payload does not fit the command's shape
    """
    decoder = PAYLOAD_TYPES[command]
    if decoder is None:
        return None
    return decoder(raw)


def to_wire(value: Any) -> Any:
    """Convert catalog values into plain JSON-compatible data"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value.value if isinstance(value, Enum) else value
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {str(k): to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


@dataclass(frozen=True)
class Request:
    """A command sent from the control process to the agent

    ``type`` is a ``CommandType`` for known commands and the raw literal for
    anything else, so unknown commands survive decoding and can be answered.
    ``payload`` holds the typed payload (or an ``InvalidPayload``).
    """

    id: str
    type: Union[CommandType, str]
    payload: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value if isinstance(self.type, CommandType) else self.type,
        }
        if isinstance(self.payload, InvalidPayload):
            out["payload"] = self.payload.raw
        elif self.payload is not None:
            out["payload"] = to_wire(self.payload)
        return out

    @classmethod
    def from_dict(cls, obj: Any) -> 'Request':
        """Build a request from a decoded JSON document

        Raises:
            DecodeError: document is not a request envelope
        """
        if not isinstance(obj, dict):
            raise DecodeError(f"request must be a JSON object, got {type(obj).__name__}")
        req_id = obj.get("id")
        raw_type = obj.get("type")
        if not isinstance(req_id, str):
            raise DecodeError("request 'id' must be a string")
        if not isinstance(raw_type, str):
            raise DecodeError("request 'type' must be a string")

        command = CommandType.parse(raw_type)
        raw_payload = obj.get("payload")
        if command is None:
            return cls(id=req_id, type=raw_type, payload=raw_payload)

        try:
            payload = decode_payload(command, raw_payload)
        except PayloadShapeError as e:
            payload = InvalidPayload(raw=raw_payload, message=str(e))
        return cls(id=req_id, type=command, payload=payload)


@dataclass
class Response:
    """The agent's single reply to one request"""

    id: str
    success: bool
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, req_id: str, data: Any = None, warning: Optional[str] = None) -> 'Response':
        return cls(id=req_id, success=True, error=warning or None, data=to_wire(data))

    @classmethod
    def fail(cls, req_id: str, error: str) -> 'Response':
        return cls(id=req_id, success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "success": self.success}
        if self.error:
            out["error"] = self.error
        if self.data is not None:
            out["data"] = to_wire(self.data)
        return out

    @classmethod
    def from_dict(cls, obj: Any) -> 'Response':
        """Build a response from a decoded JSON document

        Raises:
            DecodeError: document is not a response envelope
        """
        if not isinstance(obj, dict):
            raise DecodeError(f"response must be a JSON object, got {type(obj).__name__}")
        resp_id = obj.get("id")
        success = obj.get("success")
        if not isinstance(resp_id, str):
            raise DecodeError("response 'id' must be a string")
        if not isinstance(success, bool):
            raise DecodeError("response 'success' must be a boolean")
        error = obj.get("error")
        return cls(
            id=resp_id,
            success=success,
            error=str(error) if error else None,
            data=obj.get("data"),
        )
