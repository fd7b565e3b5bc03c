"""
rn_bridge - debugging bridge for React Native apps.

Discovers Metro bundler endpoints, attaches to app instances over the Chrome
DevTools Protocol, buffers their console and network telemetry, and runs
expressions against them.
"""

from rn_bridge.bridge import DebugBridge
from rn_bridge.config import BridgeSettings, load_settings
from rn_bridge.context import BridgeContext
from rn_bridge.models import ExecutionOutcome, InstanceDescriptor, LogRecord, NetworkRecord, PortScanResult

__version__ = "0.1.0"

__all__ = [
    "DebugBridge",
    "BridgeContext",
    "BridgeSettings",
    "load_settings",
    "ExecutionOutcome",
    "InstanceDescriptor",
    "LogRecord",
    "NetworkRecord",
    "PortScanResult",
]
