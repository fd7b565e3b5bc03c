"""
Execution Façade

Runs expressions and introspection scripts in an attached app instance and
reports every result as an ExecutionOutcome. None of these operations raise:
a missing instance, a transport failure or a thrown exception all become a
failure outcome.
"""

import logging
from typing import Dict, Any, Optional

from rn_bridge.models import AttachedInstance, ExecutionOutcome
from rn_bridge.modules.execution.renderer import RemoteObjectRenderer
from rn_bridge.modules.execution.scripts import LIST_GLOBALS_SCRIPT, inspect_global_script
from rn_bridge.modules.transport.session import TransportError
from rn_bridge.registry import InstanceRegistry

logger = logging.getLogger(__name__)

NO_INSTANCE_ERROR = "No app instance attached. Run discovery and connect first."


class Executor:
    """
    Args:
        registry: Registry the target instance is resolved from
        renderer: Renderer for evaluation results
        call_timeout: Timeout for each protocol call (session default if None)
    """

    def __init__(self, registry: InstanceRegistry,
                 renderer: Optional[RemoteObjectRenderer] = None,
                 call_timeout: Optional[float] = None):
        self.registry = registry
        self.renderer = renderer or RemoteObjectRenderer()
        self.call_timeout = call_timeout

    def _resolve(self, instance_id: Optional[str]) -> Optional[AttachedInstance]:
        if instance_id is None:
            return self.registry.first_connected()
        instance = self.registry.get(instance_id)
        if instance is None or not instance.is_connected:
            return None
        return instance

    async def evaluate(self, expression: str, await_promise: bool = True,
                       instance_id: Optional[str] = None) -> ExecutionOutcome:
        """
        Evaluate a JavaScript expression in the app's global scope.

        Args:
            expression: Source text to evaluate
            await_promise: Wait for a returned promise to settle
            instance_id: Target instance (first connected instance if None)

        Returns:
            Outcome with the rendered result, or the error text
        """
        instance = self._resolve(instance_id)
        if instance is None:
            return _unavailable(instance_id)

        params: Dict[str, Any] = {
            "expression": expression,
            "returnByValue": False,
            "generatePreview": True,
            "awaitPromise": await_promise,
        }
        try:
            response = await instance.session.call("Runtime.evaluate", params, timeout=self.call_timeout)
        except TransportError as e:
            logger.info(f"Evaluation on {instance.instance_id} failed: {e}")
            return ExecutionOutcome.failed(str(e))
        except Exception as e:
            logger.error(f"Unexpected error evaluating on {instance.instance_id}: {e}", exc_info=True)
            return ExecutionOutcome.failed(f"Unexpected error: {e}")

        details = response.get("exceptionDetails")
        if details:
            return ExecutionOutcome.failed(self.renderer.format_exception(details))

        result = response.get("result")
        if not isinstance(result, dict):
            return ExecutionOutcome.failed("Malformed evaluation response")
        return ExecutionOutcome.ok(await self.renderer.render_dict(result, instance.session))

    async def list_globals(self, instance_id: Optional[str] = None) -> ExecutionOutcome:
        """Report known debug globals present in the app plus other "__"-prefixed globals, as JSON."""
        return await self.evaluate(LIST_GLOBALS_SCRIPT, await_promise=False, instance_id=instance_id)

    async def inspect_global(self, name: str, instance_id: Optional[str] = None) -> ExecutionOutcome:
        """Describe a global's properties (name, type, callable) without invoking anything on it."""
        if not name:
            return ExecutionOutcome.failed("Global name must not be empty")
        return await self.evaluate(inspect_global_script(name), await_promise=False, instance_id=instance_id)

    async def reload(self, instance_id: Optional[str] = None) -> ExecutionOutcome:
        """Ask the attached app to reload its JavaScript bundle."""
        instance = self._resolve(instance_id)
        if instance is None:
            return _unavailable(instance_id)
        try:
            await instance.session.call("Page.reload", {}, timeout=self.call_timeout)
        except TransportError as e:
            logger.info(f"Reload of {instance.instance_id} failed: {e}")
            return ExecutionOutcome.failed(str(e))
        except Exception as e:
            logger.error(f"Unexpected error reloading {instance.instance_id}: {e}", exc_info=True)
            return ExecutionOutcome.failed(f"Unexpected error: {e}")
        logger.info(f"Reload requested for {instance.instance_id}")
        return ExecutionOutcome.ok("App reload triggered")


def _unavailable(instance_id: Optional[str]) -> ExecutionOutcome:
    if instance_id is not None:
        return ExecutionOutcome.failed(f"Instance {instance_id} is not attached")
    return ExecutionOutcome.failed(NO_INSTANCE_ERROR)
