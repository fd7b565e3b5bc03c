import pytest

from rn_bridge.models import AttachedInstance
from rn_bridge.registry import InstanceRegistry

from fake_peers import FakeSession


def attached(make_descriptor, instance_id="page-1", port=8081, session=None):
    return AttachedInstance(session=session or FakeSession(), descriptor=make_descriptor("Hermes", instance_id), port=port)


@pytest.mark.asyncio
async def test_add_and_query(make_descriptor):
    registry = InstanceRegistry()
    instance = attached(make_descriptor)
    await registry.add(instance)

    assert "page-1" in registry
    assert registry.get("page-1") is instance
    assert registry.list() == [instance]
    assert registry.first_connected() is instance


@pytest.mark.asyncio
async def test_closed_session_removes_itself(make_descriptor):
    registry = InstanceRegistry()
    instance = attached(make_descriptor)
    await registry.add(instance)

    instance.session.simulate_remote_close()

    assert "page-1" not in registry
    assert registry.first_connected() is None


@pytest.mark.asyncio
async def test_adding_already_closed_session_is_not_kept(make_descriptor):
    registry = InstanceRegistry()
    await registry.add(attached(make_descriptor, session=FakeSession(connected=False)))

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_replacing_closes_previous_session(make_descriptor):
    registry = InstanceRegistry()
    first = attached(make_descriptor)
    second = attached(make_descriptor)
    await registry.add(first)
    await registry.add(second)

    assert registry.get("page-1") is second
    assert not first.session.is_connected
    assert first.session.close_reason == "replaced by a new attach"


@pytest.mark.asyncio
async def test_stale_close_does_not_remove_replacement(make_descriptor):
    registry = InstanceRegistry()
    first = attached(make_descriptor)
    second = attached(make_descriptor)
    await registry.add(first)
    await registry.add(second)

    await registry.remove("page-1", session=first.session)

    assert registry.get("page-1") is second


@pytest.mark.asyncio
async def test_detach(make_descriptor):
    registry = InstanceRegistry()
    instance = attached(make_descriptor)
    await registry.add(instance)

    assert await registry.detach("page-1") is True
    assert await registry.detach("page-1") is False
    assert instance.session.close_reason == "detached"


@pytest.mark.asyncio
async def test_close_all(make_descriptor):
    registry = InstanceRegistry()
    await registry.add(attached(make_descriptor, "a"))
    await registry.add(attached(make_descriptor, "b", port=8082))

    assert await registry.close_all() == 2
    assert len(registry) == 0
