"""Abstract backend interface for container lifecycle operations"""

from abc import ABC, abstractmethod
from typing import List

from ..core.catalog import ContainerInfo, CreateEnvPayload


class AbstractBackend(ABC):
    """Base class for workload backends driven by the agent

    Implementations raise ``BackendError`` for every operation failure. The
    dispatcher turns those into failed responses; they never end a session.
    """

    name: str = "abstract"

    @abstractmethod
    def is_running(self) -> bool:
        """
        Check if the underlying container engine is reachable

        Returns:
            True if the engine answers
        """
        pass

    @abstractmethod
    def list_containers(self) -> List[ContainerInfo]:
        """
        List all containers, stopped ones included

        Returns:
            Fresh inventory snapshot
        """
        pass

    @abstractmethod
    def create_container(self, payload: CreateEnvPayload) -> str:
        """
        Create (but do not start) a container

        Args:
            payload: Creation parameters with template defaults already applied

        Returns:
            Identifier of the new container
        """
        pass

    @abstractmethod
    def start_container(self, container_id: str) -> None:
        """Start a created or stopped container"""
        pass

    @abstractmethod
    def stop_container(self, container_id: str) -> None:
        """Stop a running container"""
        pass

    @abstractmethod
    def remove_container(self, container_id: str) -> None:
        """Remove a container, stopping it first if needed"""
        pass

    @abstractmethod
    def get_logs(self, container_id: str, tail: int) -> str:
        """
        Fetch the most recent output of a container

        Args:
            container_id: Container identifier
            tail: Number of trailing lines to return

        Returns:
            Combined stdout/stderr text
        """
        pass

    @abstractmethod
    def send_input(self, container_id: str, data: str) -> None:
        """Write one line to the container's stdin"""
        pass

    def close(self) -> None:
        """Release engine connections"""
        pass
