"""Centralized logging for podshell"""

import logging
import sys
from typing import Optional


class Logger:
    """Centralized logging with structured format

    The handler always writes to stderr: in stdio mode the agent's stdout
    carries protocol frames.
    """

    _instance: Optional['Logger'] = None

    def __init__(self, level: str = "INFO"):
        self.logger = logging.getLogger("podshell")
        self.logger.setLevel(getattr(logging, level.upper()))

        # Avoid adding multiple handlers
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter(
                '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    @classmethod
    def get(cls, level: str = "INFO") -> logging.Logger:
        """Get or create logger instance"""
        if cls._instance is None:
            cls._instance = Logger(level)
        return cls._instance.logger

    @classmethod
    def set_level(cls, level: str):
        """Change log level"""
        logger = cls.get()
        logger.setLevel(getattr(logging, level.upper()))

    @classmethod
    def audit(cls) -> logging.Logger:
        """Logger for operator actions (create/start/stop/remove/input)"""
        return cls.get().getChild("audit")


# Global logger instance
logger = Logger.get()
