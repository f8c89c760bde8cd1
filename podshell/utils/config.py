"""Global configuration with environment variable overrides"""

import os


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    """Global configuration with sensible defaults"""

    # Transport
    CONNECT_TIMEOUT: float = _env_float("PODSHELL_CONNECT_TIMEOUT", 10.0)  # seconds
    REMOTE_AGENT_PATH: str = os.getenv("PODSHELL_REMOTE_AGENT_PATH", "./podshell-agent")
    DEFAULT_SSH_PORT: int = 22

    # Poll cadences (seconds)
    TELEMETRY_INTERVAL: float = _env_float("PODSHELL_TELEMETRY_INTERVAL", 1.0)
    INVENTORY_INTERVAL: float = _env_float("PODSHELL_INVENTORY_INTERVAL", 6.0)
    LOGS_INTERVAL: float = _env_float("PODSHELL_LOGS_INTERVAL", 0.25)

    # Agent
    LOG_TAIL_LINES: int = _env_int("PODSHELL_LOG_TAIL_LINES", 100)
    MAX_FRAME_BYTES: int = 16 * 1024 * 1024

    # Control-side view state
    TELEMETRY_HISTORY: int = 300

    # LAN discovery
    DISCOVERY_WORKERS: int = _env_int("PODSHELL_DISCOVERY_WORKERS", 50)
    DISCOVERY_TIMEOUT: float = _env_float("PODSHELL_DISCOVERY_TIMEOUT", 0.5)

    # Labels stamped on managed containers
    LABEL_PREFIX: str = "podshell"

    # Logging
    LOG_LEVEL: str = os.getenv("PODSHELL_LOG_LEVEL", "INFO")

    # Client settings file
    CLIENT_CONFIG_PATH: str = os.getenv(
        "PODSHELL_CONFIG",
        os.path.join(os.path.expanduser("~"), ".config", "podshell", "client.yaml"),
    )

    @classmethod
    def get_log_level(cls) -> str:
        """Get log level from env or default"""
        return os.getenv("PODSHELL_LOG_LEVEL", cls.LOG_LEVEL)
