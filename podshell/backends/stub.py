"""In-memory backend used when no container engine is available"""

import itertools
import threading
import time
from typing import Dict, List

from .base import AbstractBackend
from ..core.catalog import ContainerInfo, CreateEnvPayload
from ..utils.config import Config
from ..utils.exceptions import BackendError
from ..utils.logger import logger


class StubBackend(AbstractBackend):
    """
    Synthetic backend that keeps containers in a dict

    Containers move through the same status vocabulary as real ones
    (created -> running -> exited) so the control side behaves the same
    against a machine without Docker.
    """

    name = "stub"

    def __init__(self):
        self._containers: Dict[str, ContainerInfo] = {}
        self._inputs: Dict[str, List[str]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        logger.debug("StubBackend initialized")

    def is_running(self) -> bool:
        return True

    def list_containers(self) -> List[ContainerInfo]:
        with self._lock:
            return [
                ContainerInfo(
                    id=c.id, name=c.name, image=c.image, status=c.status,
                    created=c.created, labels=dict(c.labels),
                )
                for c in self._containers.values()
            ]

    def create_container(self, payload: CreateEnvPayload) -> str:
        with self._lock:
            container_id = f"mock-{time.time_ns()}-{next(self._counter)}"
            self._containers[container_id] = ContainerInfo(
                id=container_id,
                name=payload.name,
                image=payload.image,
                status="created",
                created=int(time.time()),
                labels={
                    f"{Config.LABEL_PREFIX}.managed": "true",
                    f"{Config.LABEL_PREFIX}.type": payload.type.value,
                },
            )
            self._inputs[container_id] = []
            return container_id

    def _get(self, container_id: str) -> ContainerInfo:
        container = self._containers.get(container_id)
        if container is None:
            raise BackendError(f"container not found: {container_id}")
        return container

    def start_container(self, container_id: str) -> None:
        with self._lock:
            self._get(container_id).status = "running"

    def stop_container(self, container_id: str) -> None:
        with self._lock:
            self._get(container_id).status = "exited"

    def remove_container(self, container_id: str) -> None:
        with self._lock:
            self._get(container_id)
            del self._containers[container_id]
            self._inputs.pop(container_id, None)

    def get_logs(self, container_id: str, tail: int) -> str:
        with self._lock:
            container = self._get(container_id)
            lines = [f"Mock logs for {container.name or container.id}"]
            lines.extend(f"> {line}" for line in self._inputs.get(container_id, []))
            return "\n".join(lines[-tail:]) + "\n"

    def send_input(self, container_id: str, data: str) -> None:
        with self._lock:
            self._get(container_id)
            self._inputs[container_id].append(data)
