"""
Instance Registry

Tracks the application instances currently attached, keyed by instance id.
Membership is the sole source of truth for "is connected": a session that
closes removes itself from the registry.
"""

import asyncio
import logging
from typing import Dict, Optional, List, Set

from rn_bridge.models import AttachedInstance
from rn_bridge.modules.transport.session import TransportSession

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """
    Mapping of instance id to AttachedInstance.

    Attach/detach mutations are serialized through an asyncio.Lock. Reads are
    plain dictionary lookups and never block.
    """

    def __init__(self):
        self._instances: Dict[str, AttachedInstance] = {}
        self._lock = asyncio.Lock()
        self._background_tasks: Set[asyncio.Task] = set()
        logger.debug("InstanceRegistry initialized.")

    # --- Queries ---

    def get(self, instance_id: str) -> Optional[AttachedInstance]:
        return self._instances.get(instance_id)

    def list(self) -> List[AttachedInstance]:
        return list(self._instances.values())

    def first_connected(self) -> Optional[AttachedInstance]:
        """The earliest attached instance whose session is still connected."""
        for instance in self._instances.values():
            if instance.is_connected:
                return instance
        return None

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, instance_id: str) -> bool:
        return instance_id in self._instances

    # --- Mutations ---

    async def add(self, instance: AttachedInstance) -> None:
        """
        Register a freshly attached instance.

        An existing entry for the same id is replaced and its session closed.
        """
        async with self._lock:
            previous = self._instances.get(instance.instance_id)
            self._instances[instance.instance_id] = instance

        session = instance.session
        session.on_close(lambda closed_session: self._on_session_closed(instance.instance_id, closed_session))
        logger.info(f"Registered instance {instance.instance_id} ({instance.descriptor.title}) from port {instance.port}")

        if not session.is_connected:
            # Closed before the callback was registered
            self._pop(instance.instance_id, session)
        if previous is not None and previous.session is not session:
            logger.info(f"Replacing previous session for instance {instance.instance_id}")
            await previous.session.close(reason="replaced by a new attach")

    async def remove(self, instance_id: str, session: Optional[TransportSession] = None) -> Optional[AttachedInstance]:
        """
        Drop an instance. When a session is given, only drop the entry if it
        still belongs to that session.
        """
        async with self._lock:
            return self._pop(instance_id, session)

    async def detach(self, instance_id: str) -> bool:
        """Remove an instance and close its session. Returns False if unknown."""
        instance = await self.remove(instance_id)
        if instance is None:
            return False
        await instance.session.close(reason="detached")
        return True

    async def close_all(self) -> int:
        """Detach every instance. Returns how many were closed."""
        async with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()
        for instance in instances:
            await instance.session.close(reason="registry shutdown")
        return len(instances)

    # --- Internal ---

    def _pop(self, instance_id: str, session: Optional[TransportSession]) -> Optional[AttachedInstance]:
        current = self._instances.get(instance_id)
        if current is None:
            return None
        if session is not None and current.session is not session:
            return None
        logger.info(f"Instance {instance_id} removed from registry")
        return self._instances.pop(instance_id)

    def _on_session_closed(self, instance_id: str, session: TransportSession) -> None:
        if not self._lock.locked():
            self._pop(instance_id, session)
            return
        # A mutation is in progress; drop the entry once it finishes
        task = asyncio.get_running_loop().create_task(self.remove(instance_id, session))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
