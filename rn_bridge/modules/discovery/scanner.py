"""
Endpoint Discovery

Finds live bundler endpoints by probing ports in parallel, then asks each
reachable endpoint for its list of debuggable instances.

Discovery never fails outright: unreachable ports are skipped and bad
metadata yields an empty instance list. "No servers found" is an empty
mapping.
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional, Iterable

import aiohttp

from rn_bridge.models import InstanceDescriptor

logger = logging.getLogger(__name__)

# Primary bundler port plus the secondary Expo block
DEFAULT_COMMON_PORTS = (8081, 8082, 19000, 19001, 19002)
DEFAULT_METADATA_PATH = "/json/list"
DEFAULT_MAX_CONCURRENT_PROBES = 256


class PortScanner:
    """
    Parallel TCP probe plus metadata fetch against bundler endpoints.

    Args:
        host: Host the bundler listens on
        common_ports: Well-known ports probed when they fall inside a scan range
        probe_timeout: Per-port TCP connect timeout (seconds)
        scan_timeout: Upper bound for probing a whole range (seconds)
        http_timeout: Timeout for one metadata request (seconds)
        metadata_path: Path of the instance list endpoint
        max_concurrent_probes: Upper bound on simultaneous TCP probes
    """

    def __init__(self,
                 host: str = "localhost",
                 common_ports: Iterable[int] = DEFAULT_COMMON_PORTS,
                 probe_timeout: float = 0.5,
                 scan_timeout: float = 5.0,
                 http_timeout: float = 2.0,
                 metadata_path: str = DEFAULT_METADATA_PATH,
                 max_concurrent_probes: int = DEFAULT_MAX_CONCURRENT_PROBES):
        self.host = host
        self.common_ports = sorted(set(common_ports))
        self.probe_timeout = probe_timeout
        self.scan_timeout = scan_timeout
        self.http_timeout = http_timeout
        self.metadata_path = metadata_path
        self.max_concurrent_probes = max(1, max_concurrent_probes)

    @classmethod
    def from_settings(cls, settings: Any) -> 'PortScanner':
        return cls(
            host=settings.host,
            common_ports=settings.common_ports,
            probe_timeout=settings.probe_timeout,
            scan_timeout=settings.scan_timeout,
            http_timeout=settings.http_timeout,
            metadata_path=settings.metadata_path,
            max_concurrent_probes=settings.max_concurrent_probes,
        )

    def candidate_ports(self, start_port: int, end_port: int) -> List[int]:
        """
        Ports to probe for an inclusive range: the common ports inside it, or
        every port of the range when it contains none of them.
        """
        if end_port < start_port:
            start_port, end_port = end_port, start_port
        common = [p for p in self.common_ports if start_port <= p <= end_port]
        if common:
            return common
        return list(range(start_port, end_port + 1))

    async def is_port_open(self, port: int) -> bool:
        """Bounded-time TCP reachability probe."""
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(self.host, port), timeout=self.probe_timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def find_open_ports(self, start_port: int, end_port: int) -> List[int]:
        """Probe all candidate ports concurrently; ports still probing at the scan deadline count as closed."""
        ports = self.candidate_ports(start_port, end_port)
        if not ports:
            return []

        limit = asyncio.Semaphore(self.max_concurrent_probes)

        async def probe(port: int) -> bool:
            async with limit:
                return await self.is_port_open(port)

        tasks = {asyncio.create_task(probe(port)): port for port in ports}
        done, pending = await asyncio.wait(tasks.keys(), timeout=self.scan_timeout)
        if pending:
            logger.debug(f"Scan timeout reached with {len(pending)} probes unfinished")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        open_ports = sorted(
            tasks[task] for task in done
            if not task.cancelled() and task.exception() is None and task.result()
        )
        logger.debug(f"Open ports in {start_port}-{end_port}: {open_ports}")
        return open_ports

    async def fetch_instances(self, port: int,
                              http_session: Optional[aiohttp.ClientSession] = None) -> List[InstanceDescriptor]:
        """Fetch and parse the instance list of one endpoint. Any failure yields []."""
        if http_session is None:
            async with aiohttp.ClientSession() as owned_session:
                return await self._fetch_instances(port, owned_session)
        return await self._fetch_instances(port, http_session)

    async def _fetch_instances(self, port: int, http_session: aiohttp.ClientSession) -> List[InstanceDescriptor]:
        url = f"http://{self.host}:{port}{self.metadata_path}"
        try:
            async with http_session.get(url, timeout=aiohttp.ClientTimeout(total=self.http_timeout)) as response:
                if response.status != 200:
                    logger.warning(f"Instance list at {url} returned HTTP {response.status}")
                    return []
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Failed to fetch instance list from {url}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Instance list at {url} is not a JSON array")
            return []

        descriptors = []
        for item in data:
            descriptor = InstanceDescriptor.from_dict(item)
            if descriptor is None:
                logger.debug(f"Skipping malformed instance entry on port {port}: {item!r}")
                continue
            descriptors.append(descriptor)
        logger.debug(f"Port {port}: {len(descriptors)} instance(s)")
        return descriptors

    async def scan(self, start_port: int, end_port: int) -> Dict[int, List[InstanceDescriptor]]:
        """
        Discover bundler endpoints in an inclusive port range.

        Returns:
            Mapping of reachable port to its instance list (possibly empty)
        """
        open_ports = await self.find_open_ports(start_port, end_port)
        if not open_ports:
            logger.info(f"No bundler endpoints found in ports {start_port}-{end_port}")
            return {}

        async with aiohttp.ClientSession() as http_session:
            instance_lists = await asyncio.gather(
                *(self._fetch_instances(port, http_session) for port in open_ports)
            )
        results = dict(zip(open_ports, instance_lists))
        logger.info(f"Discovery found {len(results)} endpoint(s): {sorted(results)}")
        return results
