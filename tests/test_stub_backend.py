import pytest

from podshell.backends import StubBackend, select_backend
from podshell.core.catalog import CreateEnvPayload, EnvironmentType
from podshell.utils.exceptions import BackendError


def _create(backend: StubBackend, name: str = "web") -> str:
    return backend.create_container(CreateEnvPayload(name=name, image="nginx"))


def test_lifecycle_statuses() -> None:
    backend = StubBackend()
    cid = _create(backend)
    assert backend.list_containers()[0].status == "created"
    backend.start_container(cid)
    assert backend.list_containers()[0].status == "running"
    backend.stop_container(cid)
    assert backend.list_containers()[0].status == "exited"
    backend.remove_container(cid)
    assert backend.list_containers() == []


def test_ids_are_unique_and_labelled() -> None:
    backend = StubBackend()
    first = _create(backend, "a")
    second = backend.create_container(
        CreateEnvPayload(name="b", type=EnvironmentType.MINECRAFT, image="itzg/minecraft-server")
    )
    assert first != second
    labels = {c.id: c.labels for c in backend.list_containers()}
    assert labels[first]["podshell.managed"] == "true"
    assert labels[second]["podshell.type"] == "MINECRAFT"


@pytest.mark.parametrize("op", ["start_container", "stop_container", "remove_container"])
def test_unknown_id_raises(op: str) -> None:
    with pytest.raises(BackendError, match="container not found"):
        getattr(StubBackend(), op)("nope")


def test_remove_twice_fails_second_time() -> None:
    backend = StubBackend()
    cid = _create(backend)
    backend.remove_container(cid)
    with pytest.raises(BackendError):
        backend.remove_container(cid)


def test_logs_include_sent_input_and_respect_tail() -> None:
    backend = StubBackend()
    cid = _create(backend, "srv")
    for i in range(5):
        backend.send_input(cid, f"line {i}")
    logs = backend.get_logs(cid, 100)
    assert "Mock logs for srv" in logs
    assert "line 4" in logs
    tail = backend.get_logs(cid, 2).splitlines()
    assert len(tail) == 2
    assert "line 4" in tail[-1]


def test_list_returns_copies() -> None:
    backend = StubBackend()
    _create(backend)
    backend.list_containers()[0].status = "dead"
    assert backend.list_containers()[0].status == "created"


def test_select_backend_forced_stub() -> None:
    assert isinstance(select_backend(force_stub=True), StubBackend)
