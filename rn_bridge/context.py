"""
Bridge Context

Owns the state that lives as long as one bridge: settings, the instance
registry, the shared telemetry buffers and the components built around them.
Buffers are shared by every attached instance; a new context starts empty.
"""

import logging
from typing import Optional

from rn_bridge.config import BridgeSettings
from rn_bridge.registry import InstanceRegistry
from rn_bridge.modules.discovery import PortScanner
from rn_bridge.modules.execution import RemoteObjectRenderer, Executor
from rn_bridge.modules.telemetry import LogBuffer, NetworkTable, TelemetryEventDecoder

logger = logging.getLogger(__name__)


class BridgeContext:
    """Wires components together from one BridgeSettings instance."""

    def __init__(self, settings: Optional[BridgeSettings] = None):
        self.settings = settings or BridgeSettings()

        self.registry = InstanceRegistry()
        self.log_buffer = LogBuffer(capacity=self.settings.log_buffer_capacity)
        self.network_table = NetworkTable(capacity=self.settings.network_buffer_capacity)
        self.renderer = RemoteObjectRenderer(
            max_depth=self.settings.render_max_depth,
            max_properties=self.settings.render_max_properties,
            max_length=self.settings.render_max_length,
            property_timeout=self.settings.call_timeout,
        )
        self.decoder = TelemetryEventDecoder(self.log_buffer, self.network_table, self.renderer)
        self.scanner = PortScanner.from_settings(self.settings)
        self.executor = Executor(self.registry, self.renderer, call_timeout=self.settings.call_timeout)

        logger.debug(
            f"BridgeContext created (log capacity {self.settings.log_buffer_capacity}, "
            f"network capacity {self.settings.network_buffer_capacity})"
        )
