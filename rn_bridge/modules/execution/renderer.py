"""
Remote-Object Renderer

Turns CDP RemoteObjects into bounded, human-readable text.

Handle-bearing objects are expanded with follow-up Runtime.getProperties
calls, recursing until max_depth; deeper values become placeholders such as
"[Object]" or "[Array]". The remote object graph may be cyclic and is never
transferred as a whole, so the depth bound is what guarantees termination.
"""

import json
import logging
import re
from typing import Dict, Any, List, Optional, Protocol, Tuple

from rn_bridge.models import RemoteValue
from rn_bridge.modules.transport.session import TransportError

logger = logging.getLogger(__name__)

UNRENDERABLE = "[Unrenderable]"
COLLECTION_SAMPLE_SIZE = 10

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_FUNCTION_NAME_RE = re.compile(r"^(?:async\s+)?(?:function\*?\s*|class\s+)([A-Za-z_$][A-Za-z0-9_$]*)")


class CallableSession(Protocol):
    async def call(self, method: str, params: Optional[Dict[str, Any]] = None,
                   timeout: Optional[float] = None) -> Dict[str, Any]:
        ...


class RemoteObjectRenderer:
    """
    Depth-bounded renderer for remote values.

    Args:
        max_depth: Nesting levels expanded through property fetches
        max_properties: Properties / elements shown per object before eliding
        max_length: Rendered text is truncated beyond this many characters
        property_timeout: Timeout for each Runtime.getProperties call (session default if None)
    """

    def __init__(self, max_depth: int = 2, max_properties: int = 50, max_length: int = 10000,
                 property_timeout: Optional[float] = None):
        self.max_depth = max_depth
        self.max_properties = max_properties
        self.max_length = max_length
        self.property_timeout = property_timeout

    # --- Public API ---

    async def render(self, value: RemoteValue, session: CallableSession) -> str:
        """Render a value, fetching nested properties through the session as needed."""
        try:
            text = await self._render(value, session, depth=0, nested=False)
        except Exception as e:
            logger.warning(f"Rendering remote value failed: {e}", exc_info=True)
            text = value.description or UNRENDERABLE
        return self._truncate(text)

    async def render_dict(self, data: Dict[str, Any], session: CallableSession) -> str:
        """Render a raw RemoteObject dictionary."""
        try:
            value = RemoteValue.from_dict(data)
        except ValueError as e:
            logger.debug(f"Malformed remote object: {e}")
            return UNRENDERABLE
        return await self.render(value, session)

    def render_inline(self, value: RemoteValue) -> str:
        """
        Render without any protocol calls, using only the inline value,
        description and preview. Used on the event path, which must never wait.
        """
        scalar = self._render_scalar(value, nested=False)
        if scalar is not None:
            return self._truncate(scalar)
        if value.type == "function":
            return self._function_label(value)
        if value.subtype == "null":
            return "null"
        if value.preview:
            return self._truncate(self._render_preview(value.preview, value))
        if value.has_value:
            return self._truncate(_to_json(value.value))
        return self._truncate(value.description or self._placeholder(value))

    def render_inline_dict(self, data: Any) -> str:
        try:
            return self.render_inline(RemoteValue.from_dict(data))
        except ValueError:
            return UNRENDERABLE

    def format_exception(self, details: Dict[str, Any]) -> str:
        """Error text for an exceptionDetails payload: message plus line/column when present."""
        if not isinstance(details, dict):
            return "Unknown error"
        exception = details.get("exception") if isinstance(details.get("exception"), dict) else {}
        message = exception.get("description") or details.get("text") or "Unknown error"
        if exception.get("description") is None and exception.get("value") is not None:
            # Thrown non-Error values carry them inline
            message = f"{details.get('text') or 'Uncaught'} {_to_json(exception['value'])}"

        head, _, rest = str(message).partition("\n")
        line = details.get("lineNumber")
        column = details.get("columnNumber")
        if line is not None and column is not None:
            head = f"{head} (line {line}, column {column})"
        elif line is not None:
            head = f"{head} (line {line})"
        return self._truncate(f"{head}\n{rest}" if rest else head)

    # --- Recursive rendering ---

    async def _render(self, value: RemoteValue, session: CallableSession, depth: int, nested: bool) -> str:
        scalar = self._render_scalar(value, nested)
        if scalar is not None:
            return scalar

        if value.type == "function":
            return self._function_label(value) if depth < self.max_depth else "[Function]"

        subtype = value.subtype
        if subtype == "null":
            return "null"
        if subtype in ("date", "regexp", "error"):
            return value.description or self._placeholder(value)

        if not value.object_id:
            if value.has_value:
                return _to_json(value.value)
            return value.description or self._placeholder(value)

        if depth >= self.max_depth:
            return self._placeholder(value)

        fetched = await self._fetch_properties(value.object_id, session)
        if fetched is None:
            return value.description or self._placeholder(value)
        properties, internal = fetched

        if subtype in ("array", "typedarray"):
            return await self._render_array(properties, session, depth)
        if subtype in ("map", "set"):
            return await self._render_collection(value, internal, session, depth)
        if subtype == "promise":
            return await self._render_promise(value, internal, session, depth)
        return await self._render_object(value, properties, session, depth)

    async def _render_array(self, properties: List[Dict[str, Any]], session: CallableSession, depth: int) -> str:
        elements = sorted(
            (p for p in properties if isinstance(p.get("name"), str) and p["name"].isdigit()),
            key=lambda p: int(p["name"]),
        )
        parts = []
        for prop in elements[:self.max_properties]:
            parts.append(await self._render_property_value(prop, session, depth + 1))
        if len(elements) > self.max_properties:
            parts.append(f"... {len(elements) - self.max_properties} more items")
        return "[" + ", ".join(parts) + "]"

    async def _render_object(self, value: RemoteValue, properties: List[Dict[str, Any]],
                             session: CallableSession, depth: int) -> str:
        visible = [
            p for p in properties
            if isinstance(p.get("name"), str) and p["name"] != "__proto__" and p.get("enumerable", True)
        ]
        parts = []
        for prop in visible[:self.max_properties]:
            rendered = await self._render_property_value(prop, session, depth + 1)
            parts.append(f"{_format_key(prop['name'])}: {rendered}")
        if len(visible) > self.max_properties:
            parts.append(f"... {len(visible) - self.max_properties} more properties")

        body = "{" + ", ".join(parts) + "}"
        if value.class_name and value.class_name != "Object":
            return f"{value.class_name} {body}"
        return body

    async def _render_collection(self, value: RemoteValue, internal: List[Dict[str, Any]],
                                 session: CallableSession, depth: int) -> str:
        label = value.description or value.class_name or value.subtype
        entries_prop = _find_named(internal, "[[Entries]]")
        entries_value = _remote_value(entries_prop.get("value")) if entries_prop else None
        if entries_value is None or not entries_value.object_id:
            return label

        fetched = await self._fetch_properties(entries_value.object_id, session)
        if fetched is None:
            return label
        entries = sorted(
            (p for p in fetched[0] if isinstance(p.get("name"), str) and p["name"].isdigit()),
            key=lambda p: int(p["name"]),
        )

        parts = []
        for entry in entries[:COLLECTION_SAMPLE_SIZE]:
            entry_value = _remote_value(entry.get("value"))
            if entry_value is None or not entry_value.object_id:
                parts.append(UNRENDERABLE)
                continue
            entry_fetched = await self._fetch_properties(entry_value.object_id, session)
            if entry_fetched is None:
                parts.append(entry_value.description or UNRENDERABLE)
                continue
            item = _find_named(entry_fetched[0], "value")
            rendered_value = await self._render_property_value(item, session, depth + 1) if item else "undefined"
            key = _find_named(entry_fetched[0], "key")
            if value.subtype == "map" and key:
                rendered_key = await self._render_property_value(key, session, depth + 1)
                parts.append(f"{rendered_key} => {rendered_value}")
            else:
                parts.append(rendered_value)
        if len(entries) > COLLECTION_SAMPLE_SIZE:
            parts.append("...")
        return f"{label} {{{', '.join(parts)}}}"

    async def _render_promise(self, value: RemoteValue, internal: List[Dict[str, Any]],
                              session: CallableSession, depth: int) -> str:
        state_prop = _find_named(internal, "[[PromiseState]]")
        state = _remote_value(state_prop.get("value")) if state_prop else None
        if state is None or state.value is None:
            return value.description or "Promise"
        result_prop = _find_named(internal, "[[PromiseResult]]")
        if state.value == "pending" or result_prop is None:
            return f"Promise {{<{state.value}>}}"
        rendered = await self._render_property_value(result_prop, session, depth + 1)
        return f"Promise {{<{state.value}>: {rendered}}}"

    async def _render_property_value(self, prop: Dict[str, Any], session: CallableSession, depth: int) -> str:
        if "value" not in prop:
            if prop.get("get") and prop.get("set"):
                return "[Getter/Setter]"
            if prop.get("get"):
                return "[Getter]"
            if prop.get("set"):
                return "[Setter]"
            return "undefined"
        child = _remote_value(prop.get("value"))
        if child is None:
            return UNRENDERABLE
        try:
            return await self._render(child, session, depth, nested=True)
        except Exception as e:
            logger.debug(f"Rendering property {prop.get('name')!r} failed: {e}")
            return child.description or UNRENDERABLE

    async def _fetch_properties(self, object_id: str,
                                session: CallableSession) -> Optional[Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]]:
        try:
            result = await session.call(
                "Runtime.getProperties",
                {"objectId": object_id, "ownProperties": True},
                timeout=self.property_timeout,
            )
        except TransportError as e:
            logger.debug(f"Runtime.getProperties failed for {object_id}: {e}")
            return None
        properties = result.get("result")
        internal = result.get("internalProperties")
        if not isinstance(properties, list):
            return None
        return (
            [p for p in properties if isinstance(p, dict)],
            [p for p in internal if isinstance(p, dict)] if isinstance(internal, list) else [],
        )

    # --- Leaf rendering ---

    def _render_scalar(self, value: RemoteValue, nested: bool) -> Optional[str]:
        kind = value.type
        if kind == "undefined":
            return "undefined"
        if kind == "string":
            text = value.value if isinstance(value.value, str) else (value.description or "")
            return json.dumps(text, ensure_ascii=False) if nested else text
        if kind == "number":
            if value.unserializable_value:
                return value.unserializable_value
            if value.has_value and isinstance(value.value, (int, float)) and not isinstance(value.value, bool):
                return _format_number(value.value)
            return value.description or "NaN"
        if kind == "boolean":
            if isinstance(value.value, bool):
                return "true" if value.value else "false"
            return value.description or "false"
        if kind == "symbol":
            return value.description or "Symbol()"
        if kind == "bigint":
            return value.unserializable_value or value.description or "0n"
        return None

    def _render_preview(self, preview: Dict[str, Any], value: RemoteValue) -> str:
        properties = preview.get("properties")
        if not isinstance(properties, list):
            return value.description or self._placeholder(value)

        parts = []
        for prop in properties:
            if not isinstance(prop, dict):
                continue
            prop_value = prop.get("value")
            if prop.get("type") == "string" and isinstance(prop_value, str):
                prop_value = json.dumps(prop_value, ensure_ascii=False)
            elif prop_value is None:
                prop_value = "undefined" if prop.get("type") == "undefined" else self._placeholder_for(prop.get("type"), prop.get("subtype"))
            if preview.get("subtype") == "array":
                parts.append(str(prop_value))
            else:
                parts.append(f"{_format_key(str(prop.get('name', '')))}: {prop_value}")
        if preview.get("overflow"):
            parts.append("...")

        if preview.get("subtype") == "array":
            return "[" + ", ".join(parts) + "]"
        body = "{" + ", ".join(parts) + "}"
        if value.class_name and value.class_name != "Object":
            return f"{value.class_name} {body}"
        return body

    def _function_label(self, value: RemoteValue) -> str:
        match = _FUNCTION_NAME_RE.match(value.description or "")
        if match:
            return f"[Function: {match.group(1)}]"
        return "[Function (anonymous)]"

    def _placeholder(self, value: RemoteValue) -> str:
        if value.type == "object" and value.class_name and value.class_name not in ("Object", "Array", "Function"):
            return f"[{value.class_name}]"
        return self._placeholder_for(value.type, value.subtype)

    @staticmethod
    def _placeholder_for(kind: Optional[str], subtype: Optional[str]) -> str:
        if kind == "function":
            return "[Function]"
        if subtype == "array":
            return "[Array]"
        if subtype == "null":
            return "null"
        return "[Object]"

    def _truncate(self, text: str) -> str:
        if self.max_length > 0 and len(text) > self.max_length:
            return text[:self.max_length] + f"...[{len(text)} chars]"
        return text


def _remote_value(data: Any) -> Optional[RemoteValue]:
    try:
        return RemoteValue.from_dict(data)
    except ValueError:
        return None


def _find_named(properties: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    for prop in properties:
        if prop.get("name") == name:
            return prop
    return None


def _format_key(name: str) -> str:
    return name if _IDENTIFIER_RE.match(name) else json.dumps(name, ensure_ascii=False)


def _format_number(number: Any) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def _to_json(data: Any) -> str:
    try:
        return json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)
