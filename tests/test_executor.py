"""
Tests for the execution façade's outcome contract.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from rn_bridge.models import AttachedInstance
from rn_bridge.modules.execution import Executor
from rn_bridge.modules.execution.executor import NO_INSTANCE_ERROR
from rn_bridge.modules.execution.scripts import inspect_global_script
from rn_bridge.modules.transport import CallTimeoutError, ConnectionClosedError
from rn_bridge.registry import InstanceRegistry

# --- Mocks and Fixtures ---

@pytest.fixture
def mock_session():
    session = MagicMock()
    session.is_connected = True
    session.call = AsyncMock(return_value={"result": {"type": "string", "value": "ok"}})
    return session


@pytest.fixture
def registry(mock_session, make_descriptor):
    registry = InstanceRegistry()
    registry._instances["page-1"] = AttachedInstance(
        session=mock_session, descriptor=make_descriptor("Hermes", "page-1"), port=8081
    )
    return registry


@pytest.fixture
def executor(registry):
    return Executor(registry, call_timeout=5.0)

# --- Test Cases ---

@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["evaluate", "list_globals", "inspect_global", "reload"])
async def test_every_operation_fails_without_instance(operation):
    executor = Executor(InstanceRegistry())
    args = {"evaluate": ("1",), "inspect_global": ("__DEV__",)}.get(operation, ())

    outcome = await getattr(executor, operation)(*args)

    assert outcome.success is False
    assert outcome.error == NO_INSTANCE_ERROR
    assert outcome.result is None


@pytest.mark.asyncio
async def test_evaluate_success(executor, mock_session):
    outcome = await executor.evaluate("'ok'")

    assert outcome.success is True
    assert outcome.result == "ok"
    assert outcome.to_dict() == {"success": True, "result": "ok"}
    mock_session.call.assert_awaited_once_with(
        "Runtime.evaluate",
        {"expression": "'ok'", "returnByValue": False, "generatePreview": True, "awaitPromise": True},
        timeout=5.0,
    )


@pytest.mark.asyncio
async def test_evaluate_without_awaiting_promise(executor, mock_session):
    await executor.evaluate("fetchData()", await_promise=False)

    params = mock_session.call.await_args.args[1]
    assert params["awaitPromise"] is False


@pytest.mark.asyncio
async def test_evaluate_exception_is_failure(executor, mock_session):
    mock_session.call.return_value = {
        "result": {"type": "object", "subtype": "error"},
        "exceptionDetails": {
            "text": "Uncaught",
            "lineNumber": 0,
            "columnNumber": 5,
            "exception": {"type": "object", "subtype": "error", "description": "ReferenceError: nope is not defined"},
        },
    }

    outcome = await executor.evaluate("nope")

    assert outcome.success is False
    assert outcome.error == "ReferenceError: nope is not defined (line 0, column 5)"


@pytest.mark.asyncio
async def test_evaluate_timeout_is_failure(executor, mock_session):
    mock_session.call.side_effect = CallTimeoutError("Runtime.evaluate", 5.0)

    outcome = await executor.evaluate("while(true){}")

    assert outcome.success is False
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_evaluate_on_unknown_instance(executor):
    outcome = await executor.evaluate("1", instance_id="other")

    assert outcome.success is False
    assert "other" in outcome.error


@pytest.mark.asyncio
async def test_reload_on_unknown_instance(executor, mock_session):
    outcome = await executor.reload(instance_id="other")

    assert outcome.success is False
    assert outcome.error == "Instance other is not attached"
    mock_session.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_disconnected_instance_is_not_used(executor, mock_session):
    mock_session.is_connected = False

    outcome = await executor.evaluate("1")

    assert outcome.error == NO_INSTANCE_ERROR
    mock_session.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_inspect_global_embeds_name_as_json(executor, mock_session):
    name = 'weird"name\'); alert(1); //'
    await executor.inspect_global(name)

    expression = mock_session.call.await_args.args[1]["expression"]
    assert json.dumps(name) in expression
    assert "getOwnPropertyDescriptor" in expression


def test_inspect_script_reads_root_through_descriptor():
    script = inspect_global_script("__REDUX_STORE__")

    assert "globalThis[name]" not in script
    assert "Object.getOwnPropertyDescriptor(holder, name)" in script
    assert "var target = rootDesc.value;" in script


@pytest.mark.asyncio
async def test_inspect_global_rejects_empty_name(executor, mock_session):
    outcome = await executor.inspect_global("")

    assert outcome.success is False
    mock_session.call.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_globals_mentions_known_hooks(executor, mock_session):
    await executor.list_globals()

    expression = mock_session.call.await_args.args[1]["expression"]
    assert "__REDUX_STORE__" in expression
    assert "__APOLLO_CLIENT__" in expression


@pytest.mark.asyncio
async def test_reload(executor, mock_session):
    outcome = await executor.reload()

    assert outcome.success is True
    mock_session.call.assert_awaited_once_with("Page.reload", {}, timeout=5.0)


@pytest.mark.asyncio
async def test_reload_on_closed_connection(executor, mock_session):
    mock_session.call.side_effect = ConnectionClosedError("socket closed")

    outcome = await executor.reload()

    assert outcome.success is False
    assert outcome.error == "socket closed"
