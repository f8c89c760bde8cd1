"""Persisted client settings (last login, debug flag)"""

import os
from dataclasses import asdict, dataclass, fields
from typing import Optional

import yaml

from ..utils.config import Config
from ..utils.logger import logger


@dataclass
class ClientConfig:
    last_host: str = ""
    last_user: str = ""
    last_port: int = Config.DEFAULT_SSH_PORT
    debug: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'ClientConfig':
        known = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in known})
        try:
            cfg.last_port = int(cfg.last_port)
        except (TypeError, ValueError):
            cfg.last_port = Config.DEFAULT_SSH_PORT
        cfg.debug = bool(cfg.debug)
        cfg.last_host = str(cfg.last_host or "")
        cfg.last_user = str(cfg.last_user or "")
        return cfg


def load_client_config(path: Optional[str] = None) -> ClientConfig:
    """
    Read the settings file, writing defaults on first use

    A file that cannot be parsed is logged and replaced by defaults in
    memory; it is not overwritten.
    """
    path = path or Config.CLIENT_CONFIG_PATH
    if not os.path.exists(path):
        cfg = ClientConfig()
        save_client_config(cfg, path)
        return cfg

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return ClientConfig()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring malformed settings file {path}")
        return ClientConfig()
    return ClientConfig.from_dict(data)


def save_client_config(cfg: ClientConfig, path: Optional[str] = None) -> None:
    path = path or Config.CLIENT_CONFIG_PATH
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(asdict(cfg), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        logger.warning(f"Could not save settings to {path}: {e}")
