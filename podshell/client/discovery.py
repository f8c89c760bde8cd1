"""LAN discovery of hosts with an open SSH port"""

import ipaddress
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from ..utils.config import Config
from ..utils.exceptions import NetworkError
from ..utils.logger import logger


def get_local_subnet() -> ipaddress.IPv4Network:
    """
    The /24 network of this machine's primary IPv4 address

    Raises:
        NetworkError: no non-loopback IPv4 address found
    """
    # Connecting a UDP socket sends nothing; it only selects the outbound interface
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        ip = sock.getsockname()[0]
    except OSError:
        ip = socket.gethostbyname(socket.gethostname())
    finally:
        sock.close()

    address = ipaddress.IPv4Address(ip)
    if address.is_loopback:
        raise NetworkError("no local IP found")
    return ipaddress.IPv4Network(f"{ip}/24", strict=False)


def probe(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def scan_subnet(
    subnet: Optional[ipaddress.IPv4Network] = None,
    port: int = Config.DEFAULT_SSH_PORT,
    timeout: Optional[float] = None,
    workers: Optional[int] = None,
) -> List[str]:
    """
    Probe every host of ``subnet`` and return those accepting on ``port``

    All probes finish before this returns. Results are sorted by address.
    """
    subnet = subnet or get_local_subnet()
    timeout = timeout or Config.DISCOVERY_TIMEOUT
    workers = workers or Config.DISCOVERY_WORKERS

    found: List[str] = []
    lock = threading.Lock()

    def check(host: str) -> None:
        if probe(host, port, timeout):
            with lock:
                found.append(host)

    hosts = [str(h) for h in subnet.hosts()]
    logger.info(f"Scanning {len(hosts)} hosts in {subnet} for port {port}")
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="podshell_scan_") as pool:
        list(pool.map(check, hosts))

    return sorted(found, key=ipaddress.IPv4Address)
