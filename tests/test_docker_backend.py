from unittest.mock import MagicMock

import docker
import pytest

from podshell.backends.docker_backend import DockerBackend, parse_port_specs
from podshell.core.catalog import CreateEnvPayload, EnvironmentType, GameServerConfig
from podshell.utils.exceptions import BackendError


# --- port specs -------------------------------------------------------------


def test_parse_port_specs_forms() -> None:
    assert parse_port_specs(["9000", "8080:80", "127.0.0.1:2222:22", "53:53/udp", " "]) == {
        "9000/tcp": None,
        "80/tcp": 8080,
        "22/tcp": ("127.0.0.1", 2222),
        "53/udp": 53,
    }


@pytest.mark.parametrize("spec", ["abc", "80:http", "1:2:3:4", "80/sctp"])
def test_parse_port_specs_rejects_garbage(spec: str) -> None:
    with pytest.raises(BackendError):
        parse_port_specs([spec])


# --- backend with a mocked client ---------------------------------------------


def _backend() -> tuple:
    client = MagicMock()
    return DockerBackend(client=client), client


def test_unreachable_daemon_raises_backend_error() -> None:
    client = MagicMock()
    client.ping.side_effect = docker.errors.DockerException("no socket")
    with pytest.raises(BackendError, match="Failed to connect to Docker daemon"):
        DockerBackend(client=client)


def test_list_containers_maps_fields() -> None:
    backend, client = _backend()
    client.api.containers.return_value = [
        {
            "Id": "0123456789abcdef",
            "Names": ["/web"],
            "Image": "nginx",
            "State": "running",
            "Created": 1700000000,
            "Labels": {"podshell.managed": "true"},
        }
    ]
    [info] = backend.list_containers()
    assert info.id == "0123456789ab"
    assert info.name == "web"
    assert info.status == "running"
    assert info.created == 1700000000
    client.api.containers.assert_called_once_with(all=True)


def test_create_container_arguments() -> None:
    backend, client = _backend()
    client.containers.create.return_value = MagicMock(id="full-id", short_id="full")
    payload = CreateEnvPayload(
        name="mc",
        type=EnvironmentType.MINECRAFT,
        image="itzg/minecraft-server",
        ports=["25565:25565"],
        ram_limit="2g",
        minecraft=GameServerConfig(eula=True, version="latest"),
    )

    assert backend.create_container(payload) == "full-id"

    client.images.pull.assert_called_once_with("itzg/minecraft-server")
    args, kwargs = client.containers.create.call_args
    assert args == ("itzg/minecraft-server",)
    assert kwargs["name"] == "mc"
    assert kwargs["ports"] == {"25565/tcp": 25565}
    assert kwargs["mem_limit"] == "2g"
    assert kwargs["stdin_open"] is True
    assert kwargs["restart_policy"] == {"Name": "unless-stopped"}
    assert kwargs["labels"] == {"podshell.managed": "true", "podshell.type": "MINECRAFT"}
    assert kwargs["environment"]["EULA"] == "TRUE"


def test_create_continues_when_pull_fails() -> None:
    backend, client = _backend()
    client.images.pull.side_effect = docker.errors.APIError("offline")
    client.containers.create.return_value = MagicMock(id="x", short_id="x")
    assert backend.create_container(CreateEnvPayload(image="nginx")) == "x"


def test_not_found_maps_to_backend_error() -> None:
    backend, client = _backend()
    client.containers.get.side_effect = docker.errors.NotFound("No such container")
    with pytest.raises(BackendError, match="container not found"):
        backend.remove_container("gone")


def test_remove_forces() -> None:
    backend, client = _backend()
    backend.remove_container("c1")
    client.containers.get.assert_called_once_with("c1")
    client.containers.get.return_value.remove.assert_called_once_with(force=True)


def test_logs_tail_and_decode() -> None:
    backend, client = _backend()
    client.containers.get.return_value.logs.return_value = b"hello\xff\n"
    assert backend.get_logs("c1", 100) == "hello�\n"
    client.containers.get.return_value.logs.assert_called_once_with(
        stdout=True, stderr=True, tail=100
    )


def test_send_input_appends_newline() -> None:
    backend, client = _backend()
    sock = MagicMock()
    client.containers.get.return_value.attach_socket.return_value = sock
    backend.send_input("c1", "say hi")
    sock._sock.sendall.assert_called_once_with(b"say hi\n")
    sock.close.assert_called_once()
