"""View state the control session keeps between responses"""

from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from ..core.catalog import ContainerInfo, TelemetryData
from ..utils.config import Config


class ConnectionStatus(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


class DashboardState:
    """
    Latest telemetry, inventory and logs as seen by the control process

    The inventory is a snapshot: every list response replaces it wholesale,
    so containers that disappeared on the host disappear here too.
    """

    def __init__(self, history: Optional[int] = None):
        size = history or Config.TELEMETRY_HISTORY
        self.status = ConnectionStatus.DISCONNECTED
        self.telemetry: Optional[TelemetryData] = None
        self.cpu_history: Deque[float] = deque(maxlen=size)
        self.ram_history: Deque[float] = deque(maxlen=size)
        self.temp_history: Deque[float] = deque(maxlen=size)
        self.containers: List[ContainerInfo] = []
        self.logs_container: Optional[str] = None
        self.logs: str = ""
        self.last_error: Optional[str] = None

    def apply_telemetry(self, telemetry: TelemetryData) -> None:
        self.telemetry = telemetry
        self.cpu_history.append(telemetry.cpu_usage)
        self.ram_history.append(telemetry.ram_usage)
        self.temp_history.append(telemetry.cpu_temp)

    def replace_inventory(self, containers: List[ContainerInfo]) -> None:
        self.containers = list(containers)

    def find_container(self, ref: str) -> Optional[ContainerInfo]:
        """Look up a container by name, full id or unique id prefix"""
        for c in self.containers:
            if c.id == ref or c.name == ref:
                return c
        matches = [c for c in self.containers if c.id.startswith(ref)]
        return matches[0] if len(matches) == 1 else None

    def set_logs(self, container_id: Optional[str], text: str) -> None:
        self.logs_container = container_id
        self.logs = text

    def record_error(self, message: str) -> None:
        self.last_error = message

    def reset(self) -> None:
        """Forget everything learned from the previous session"""
        self.__init__(self.cpu_history.maxlen)
