"""Docker backend - containers managed through the local Docker daemon"""

from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

import docker

from .base import AbstractBackend
from ..core.catalog import ContainerInfo, CreateEnvPayload
from ..core.templates import get_template
from ..utils.config import Config
from ..utils.exceptions import BackendError
from ..utils.logger import logger

T = TypeVar("T")

PortBinding = Union[int, None, Tuple[str, int]]


def parse_port_specs(specs: List[str]) -> Dict[str, PortBinding]:
    """
    Convert ``host:container`` strings into a docker-py ``ports`` mapping

    Accepted forms: ``"80"``, ``"8080:80"``, ``"127.0.0.1:8080:80"``, each
    optionally suffixed with ``/tcp`` or ``/udp``.

    Raises:
        BackendError: a port mapping cannot be parsed
    """
    ports: Dict[str, PortBinding] = {}
    for spec in specs:
        spec = spec.strip()
        if not spec:
            continue
        proto = "tcp"
        if "/" in spec:
            spec, proto = spec.rsplit("/", 1)
            if proto not in ("tcp", "udp"):
                raise BackendError(f"invalid port protocol in {spec}/{proto}")
        parts = spec.split(":")
        try:
            if len(parts) == 1:
                ports[f"{int(parts[0])}/{proto}"] = None
            elif len(parts) == 2:
                ports[f"{int(parts[1])}/{proto}"] = int(parts[0])
            elif len(parts) == 3:
                ports[f"{int(parts[2])}/{proto}"] = (parts[0], int(parts[1]))
            else:
                raise ValueError(spec)
        except ValueError:
            raise BackendError(f"invalid port mapping: {spec!r}")
    return ports


class DockerBackend(AbstractBackend):
    """
    Backend driving the Docker Engine API via the docker SDK

    Managed containers are labelled ``podshell.managed=true`` and
    ``podshell.type=<kind>`` and restart unless explicitly stopped.
    """

    name = "docker"

    def __init__(self, client: Optional[docker.DockerClient] = None):
        try:
            self.client = client or docker.from_env()
            self.client.ping()
        except Exception as e:
            raise BackendError(f"Failed to connect to Docker daemon: {e}")
        logger.debug("DockerBackend connected to daemon")

    def _call(self, action: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except docker.errors.NotFound as e:
            raise BackendError(f"{action}: container not found ({e.explanation or e})")
        except docker.errors.DockerException as e:
            raise BackendError(f"{action}: {e}")

    def is_running(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception:
            return False

    def list_containers(self) -> List[ContainerInfo]:
        raw = self._call("list containers", lambda: self.client.api.containers(all=True))
        result = []
        for c in raw:
            names = c.get("Names") or []
            result.append(
                ContainerInfo(
                    id=c["Id"][:12],
                    name=names[0].lstrip("/") if names else "",
                    image=c.get("Image", ""),
                    status=c.get("State", ""),
                    created=int(c.get("Created") or 0),
                    labels=c.get("Labels") or {},
                )
            )
        return result

    def _pull(self, image: str) -> None:
        """Best-effort pull; a local image is used if the registry is unreachable"""
        try:
            logger.info(f"Pulling image {image}")
            self.client.images.pull(image)
        except docker.errors.DockerException as e:
            logger.warning(f"Pull of {image} failed, trying local image: {e}")

    def create_container(self, payload: CreateEnvPayload) -> str:
        template = get_template(payload.type)
        ports = parse_port_specs(payload.ports)
        self._pull(payload.image)

        kwargs: Dict[str, Any] = {
            "environment": template.container_env(payload),
            "labels": {
                f"{Config.LABEL_PREFIX}.managed": "true",
                f"{Config.LABEL_PREFIX}.type": payload.type.value,
            },
            "stdin_open": True,
            "restart_policy": {"Name": "unless-stopped"},
        }
        if payload.name:
            kwargs["name"] = payload.name
        if ports:
            kwargs["ports"] = ports
        if payload.ram_limit:
            kwargs["mem_limit"] = payload.ram_limit

        container = self._call(
            "create container",
            lambda: self.client.containers.create(payload.image, **kwargs),
        )
        logger.info(f"Created container {container.short_id} ({payload.name or payload.image})")
        return container.id

    def start_container(self, container_id: str) -> None:
        self._call("start", lambda: self.client.containers.get(container_id).start())

    def stop_container(self, container_id: str) -> None:
        self._call("stop", lambda: self.client.containers.get(container_id).stop())

    def remove_container(self, container_id: str) -> None:
        self._call(
            "remove",
            lambda: self.client.containers.get(container_id).remove(force=True),
        )

    def get_logs(self, container_id: str, tail: int) -> str:
        raw = self._call(
            "logs",
            lambda: self.client.containers.get(container_id).logs(
                stdout=True, stderr=True, tail=tail
            ),
        )
        return raw.decode("utf-8", errors="replace")

    def send_input(self, container_id: str, data: str) -> None:
        def _write() -> None:
            container = self.client.containers.get(container_id)
            sock = container.attach_socket(params={"stdin": 1, "stream": 1})
            try:
                raw = getattr(sock, "_sock", sock)
                raw.sendall((data + "\n").encode("utf-8"))
            finally:
                sock.close()

        try:
            self._call("send input", _write)
        except OSError as e:
            raise BackendError(f"send input: {e}")

    def close(self) -> None:
        try:
            self.client.close()
        except Exception as e:
            logger.debug(f"Error closing docker client: {e}")

