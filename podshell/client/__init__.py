"""Control side: session, view state, LAN discovery and persisted settings"""

from .config import ClientConfig, load_client_config, save_client_config
from .discovery import get_local_subnet, scan_subnet
from .session import ControlSession
from .state import ConnectionStatus, DashboardState

__all__ = [
    "ClientConfig",
    "load_client_config",
    "save_client_config",
    "get_local_subnet",
    "scan_subnet",
    "ControlSession",
    "ConnectionStatus",
    "DashboardState",
]
