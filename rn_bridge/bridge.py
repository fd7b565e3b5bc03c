"""
Debug Bridge

Consumer-facing operations: discovery and attach, telemetry queries and
execution requests. Everything returned is plain data (records, dicts or
ExecutionOutcomes); discovery and execution failures are reported in the
returned values rather than raised.
"""

import logging
from typing import Dict, Any, List, Optional, Callable

from rn_bridge.config import BridgeSettings
from rn_bridge.context import BridgeContext
from rn_bridge.models import (
    AttachedInstance, ExecutionOutcome, InstanceDescriptor, LogRecord, NetworkRecord, PortScanResult,
)
from rn_bridge.modules.discovery import select_main_instance
from rn_bridge.modules.transport import TransportSession, TransportError, AttachError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[InstanceDescriptor], TransportSession]


class DebugBridge:
    """
    Entry point for agents and the CLI.

    Args:
        settings: Settings used to build a fresh context (ignored if context is given)
        context: Pre-built context to operate on
        session_factory: Builds the transport session for a descriptor
    """

    def __init__(self,
                 settings: Optional[BridgeSettings] = None,
                 context: Optional[BridgeContext] = None,
                 session_factory: Optional[SessionFactory] = None):
        self.context = context or BridgeContext(settings)
        self._session_factory = session_factory or self._default_session

    @property
    def settings(self) -> BridgeSettings:
        return self.context.settings

    async def __aenter__(self) -> 'DebugBridge':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _default_session(self, descriptor: InstanceDescriptor) -> TransportSession:
        return TransportSession(
            descriptor.web_socket_debugger_url,
            instance_id=descriptor.id,
            default_timeout=self.settings.call_timeout,
            max_message_size=self.settings.max_message_size,
        )

    # --- Connection management ---

    async def discover_and_connect(self, start_port: Optional[int] = None,
                                   end_port: Optional[int] = None) -> List[PortScanResult]:
        """
        Scan a port range and attach the main instance of every endpoint found.

        Returns:
            One result per reachable port, in port order. Empty if nothing answered.
        """
        start = self.settings.scan_start_port if start_port is None else start_port
        end = self.settings.scan_end_port if end_port is None else end_port

        endpoints = await self.context.scanner.scan(start, end)
        results = []
        for port, descriptors in sorted(endpoints.items()):
            result = PortScanResult(port=port, instances=descriptors)
            result.selected = select_main_instance(descriptors)
            if result.selected is None:
                result.error = "No selectable app instance on this port"
                logger.info(f"Port {port}: {len(descriptors)} instance(s), none selectable")
            else:
                try:
                    await self.attach(result.selected, port)
                    result.attached = True
                except TransportError as e:
                    result.error = str(e)
                    logger.warning(f"Port {port}: attach to {result.selected.id} failed: {e}")
            results.append(result)
        return results

    async def connect_port(self, port: int) -> Dict[str, Any]:
        """Attach every instance one endpoint lists."""
        descriptors = await self.context.scanner.fetch_instances(port)
        if not descriptors:
            return {"success": False, "port": port, "attached": [], "failed": {},
                    "error": f"No app instances found on port {port}"}

        attached: List[str] = []
        failed: Dict[str, str] = {}
        for descriptor in descriptors:
            try:
                await self.attach(descriptor, port)
                attached.append(descriptor.id)
            except TransportError as e:
                failed[descriptor.id] = str(e)
        return {"success": bool(attached), "port": port, "attached": attached, "failed": failed}

    async def attach(self, descriptor: InstanceDescriptor, port: int) -> AttachedInstance:
        """
        Attach to one instance and start ingesting its telemetry.

        An instance that is already connected is returned as is.

        Raises:
            AttachError: if the socket or any domain enable call fails
        """
        existing = self.context.registry.get(descriptor.id)
        if existing is not None and existing.is_connected:
            logger.debug(f"Instance {descriptor.id} already attached, skipping")
            return existing

        session = self._session_factory(descriptor)
        session.subscribe(self.context.decoder)
        try:
            await session.attach(self.settings.enable_domains)
        except AttachError:
            raise
        except TransportError as e:
            await session.close(reason="attach failed")
            raise AttachError(str(e)) from e

        instance = AttachedInstance(session=session, descriptor=descriptor, port=port)
        await self.context.registry.add(instance)
        return instance

    async def detach(self, instance_id: str) -> bool:
        return await self.context.registry.detach(instance_id)

    def list_instances(self) -> List[Dict[str, Any]]:
        return [instance.to_dict() for instance in self.context.registry.list()]

    async def close(self) -> None:
        """Detach every instance."""
        closed = await self.context.registry.close_all()
        if closed:
            logger.info(f"Closed {closed} session(s)")

    # --- Logs ---

    def get_logs(self, count: Optional[int] = None, level: Optional[str] = None,
                 start_from_text: Optional[str] = None, newest_first: bool = False) -> List[LogRecord]:
        return self.context.log_buffer.get(count=count, level=level,
                                           start_from_text=start_from_text, newest_first=newest_first)

    def search_logs(self, text: str, max_results: Optional[int] = None) -> List[LogRecord]:
        return self.context.log_buffer.search(text, max_results=max_results)

    def log_summary(self, last_n: int = 5) -> Dict[str, Any]:
        summary = self.context.log_buffer.summary(last_n=last_n)
        summary["recent"] = [record.to_dict() for record in summary["recent"]]
        return summary

    def clear_logs(self) -> int:
        return self.context.log_buffer.clear()

    # --- Network ---

    def get_network_requests(self, count: Optional[int] = None, method: Optional[str] = None,
                             url_pattern: Optional[str] = None, status: Optional[int] = None,
                             completed_only: bool = False) -> List[NetworkRecord]:
        return self.context.network_table.list(count=count, method=method, url_pattern=url_pattern,
                                               status=status, completed_only=completed_only)

    def search_network(self, url_pattern: str, max_results: int = 50) -> List[NetworkRecord]:
        return self.context.network_table.search(url_pattern, max_results=max_results)

    def get_request(self, request_id: str) -> Optional[NetworkRecord]:
        return self.context.network_table.get(request_id)

    def network_stats(self) -> Dict[str, Any]:
        return self.context.network_table.stats()

    def clear_network(self) -> int:
        return self.context.network_table.clear()

    # --- Execution ---

    async def evaluate(self, expression: str, await_promise: bool = True,
                       instance_id: Optional[str] = None) -> ExecutionOutcome:
        return await self.context.executor.evaluate(expression, await_promise=await_promise,
                                                    instance_id=instance_id)

    async def list_globals(self, instance_id: Optional[str] = None) -> ExecutionOutcome:
        return await self.context.executor.list_globals(instance_id=instance_id)

    async def inspect_global(self, name: str, instance_id: Optional[str] = None) -> ExecutionOutcome:
        return await self.context.executor.inspect_global(name, instance_id=instance_id)

    async def reload(self, instance_id: Optional[str] = None) -> ExecutionOutcome:
        return await self.context.executor.reload(instance_id=instance_id)
