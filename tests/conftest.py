"""
Shared fixtures for rn_bridge tests.
"""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from rn_bridge.config import BridgeSettings
from rn_bridge.models import InstanceDescriptor, LogRecord, NetworkRecord

from fake_peers import CdpPeer

# --- Mocks and Fixtures ---

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def make_log():
    counter = {"n": 0}

    def _make(message: str, level: str = "log") -> LogRecord:
        counter["n"] += 1
        return LogRecord(timestamp=BASE_TIME + timedelta(seconds=counter["n"]), level=level, message=message)
    return _make


@pytest.fixture
def make_request():
    def _make(request_id: str, url: str = "https://api.example.com/items", method: str = "GET", **fields) -> NetworkRecord:
        return NetworkRecord(request_id=request_id, timestamp=BASE_TIME, method=method, url=url, **fields)
    return _make


@pytest.fixture
def make_descriptor():
    def _make(title: str, instance_id: str = None, description: str = "", type: str = "node") -> InstanceDescriptor:
        return InstanceDescriptor(
            id=instance_id or title,
            title=title,
            description=description,
            app_id="com.example.app",
            type=type,
            device_name="Pixel 8",
            web_socket_debugger_url=f"ws://localhost:8081/inspector/debug?page={instance_id or title}",
        )
    return _make


@pytest.fixture
def settings():
    return BridgeSettings(
        host="127.0.0.1",
        call_timeout=2.0,
        probe_timeout=0.5,
        scan_timeout=2.0,
        http_timeout=2.0,
        log_buffer_capacity=100,
        network_buffer_capacity=50,
    )


@pytest_asyncio.fixture
async def cdp_peer():
    peer = CdpPeer()
    await peer.start()
    yield peer
    await peer.close()
