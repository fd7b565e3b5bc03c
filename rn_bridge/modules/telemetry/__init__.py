"""
Telemetry Module

Bounded in-memory buffers for console logs and network requests, plus the
decoder that fills them from transport session events.
"""

from .log_buffer import LogBuffer, map_console_type
from .network_table import NetworkTable
from .event_decoder import TelemetryEventDecoder

__all__ = [
    "LogBuffer",
    "map_console_type",
    "NetworkTable",
    "TelemetryEventDecoder",
]
