import ipaddress
import socket

import pytest

from podshell.client import discovery


@pytest.fixture
def listening_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock.getsockname()[1]
    sock.close()


def test_probe_open_and_closed(listening_port) -> None:
    assert discovery.probe("127.0.0.1", listening_port, 0.5) is True

    closed = socket.socket()
    closed.bind(("127.0.0.1", 0))
    port = closed.getsockname()[1]
    closed.close()
    assert discovery.probe("127.0.0.1", port, 0.5) is False


def test_scan_collects_every_open_host(monkeypatch) -> None:
    open_hosts = {"10.1.2.3", "10.1.2.200", "10.1.2.17"}
    probed = []

    def fake_probe(host: str, port: int, timeout: float) -> bool:
        probed.append(host)
        return host in open_hosts

    monkeypatch.setattr(discovery, "probe", fake_probe)
    found = discovery.scan_subnet(ipaddress.IPv4Network("10.1.2.0/24"), port=22, timeout=0.1)

    assert found == ["10.1.2.3", "10.1.2.17", "10.1.2.200"]
    assert len(probed) == 254


def test_scan_against_loopback_listener(listening_port) -> None:
    found = discovery.scan_subnet(
        ipaddress.IPv4Network("127.0.0.0/30"), port=listening_port, timeout=0.5, workers=4
    )
    assert found == ["127.0.0.1"]


def test_local_subnet_is_slash_24(monkeypatch) -> None:
    class FakeSocket:
        def __init__(self, *args) -> None:
            pass

        def connect(self, addr) -> None:
            pass

        def getsockname(self):
            return ("192.168.7.42", 5555)

        def close(self) -> None:
            pass

    monkeypatch.setattr(discovery.socket, "socket", FakeSocket)
    assert discovery.get_local_subnet() == ipaddress.IPv4Network("192.168.7.0/24")
