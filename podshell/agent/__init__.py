"""Agent side: request dispatcher, telemetry and the podshell-agent entry point"""

from .dispatcher import Dispatcher, DispatcherState, DECODE_ID
from .telemetry import collect_telemetry

__all__ = ["Dispatcher", "DispatcherState", "DECODE_ID", "collect_telemetry"]
