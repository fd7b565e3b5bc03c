"""
End-to-end tests: discovery, attach and telemetry through DebugBridge.
"""

import pytest
from aiohttp.test_utils import unused_port

from rn_bridge.bridge import DebugBridge

from fake_peers import wait_for


@pytest.fixture
def bridge(settings, cdp_peer):
    settings.common_ports = [cdp_peer.port]
    return DebugBridge(settings=settings)


@pytest.mark.asyncio
async def test_discover_and_connect(bridge, cdp_peer):
    async with bridge:
        results = await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        assert len(results) == 1
        assert results[0].attached is True
        assert results[0].selected.id == "page-1"
        assert cdp_peer.methods() == ["Runtime.enable", "Log.enable", "Network.enable"]
        assert [i["id"] for i in bridge.list_instances()] == ["page-1"]

    assert bridge.list_instances() == []


@pytest.mark.asyncio
async def test_second_discovery_skips_connected_instance(bridge, cdp_peer):
    async with bridge:
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        assert len(cdp_peer.sockets) == 1


@pytest.mark.asyncio
async def test_nothing_to_discover(settings):
    port = unused_port()
    settings.common_ports = [port]
    bridge = DebugBridge(settings=settings)

    assert await bridge.discover_and_connect(port, port) == []


@pytest.mark.asyncio
async def test_attach_failure_is_reported_per_port(bridge, cdp_peer):
    cdp_peer.fail("Network.enable")
    async with bridge:
        results = await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        assert results[0].attached is False
        assert "Network" in results[0].error
        assert bridge.list_instances() == []


@pytest.mark.asyncio
async def test_telemetry_is_captured(bridge, cdp_peer):
    async with bridge:
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        await cdp_peer.send_event("Runtime.consoleAPICalled", {
            "type": "error", "args": [{"type": "string", "value": "Something failed"}],
        })
        await cdp_peer.send_event("Network.requestWillBeSent", {
            "requestId": "42", "timestamp": 10.0,
            "request": {"url": "https://api.example.com/users", "method": "GET", "headers": {}},
        })
        await cdp_peer.send_event("Network.loadingFinished", {"requestId": "42", "timestamp": 10.2})
        await wait_for(lambda: bridge.get_request("42") is not None and bridge.get_request("42").completed)

        assert [r.message for r in bridge.get_logs(level="error")] == ["Something failed"]
        assert len(bridge.search_logs("something")) == 1
        assert bridge.log_summary()["by_level"] == {"error": 1}
        assert [r.request_id for r in bridge.search_network("users")] == ["42"]
        assert bridge.network_stats()["completed"] == 1

        assert bridge.clear_logs() == 1
        assert bridge.clear_network() == 1


@pytest.mark.asyncio
async def test_evaluate_through_bridge(bridge, cdp_peer):
    cdp_peer.respond("Runtime.evaluate", {"result": {"type": "number", "value": 42, "description": "42"}})
    async with bridge:
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        outcome = await bridge.evaluate("6 * 7")

    assert outcome.success is True
    assert outcome.result == "42"


@pytest.mark.asyncio
async def test_evaluate_without_instance(bridge):
    outcome = await bridge.evaluate("1")

    assert outcome.success is False


@pytest.mark.asyncio
async def test_connect_port_attaches_every_instance(bridge, cdp_peer):
    cdp_peer.instances = [cdp_peer.descriptor_entry("a", title="Hermes"), cdp_peer.descriptor_entry("b", title="Reanimated")]
    async with bridge:
        outcome = await bridge.connect_port(cdp_peer.port)

        assert outcome["success"] is True
        assert outcome["attached"] == ["a", "b"]
        assert len(bridge.list_instances()) == 2


@pytest.mark.asyncio
async def test_remote_disconnect_drops_instance(bridge, cdp_peer):
    async with bridge:
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)
        await cdp_peer.drop_connections()

        await wait_for(lambda: bridge.list_instances() == [])
        outcome = await bridge.evaluate("1")
        assert outcome.success is False


@pytest.mark.asyncio
async def test_detach(bridge, cdp_peer):
    async with bridge:
        await bridge.discover_and_connect(cdp_peer.port, cdp_peer.port)

        assert await bridge.detach("page-1") is True
        assert bridge.list_instances() == []
