"""
Core data structures shared by the bridge components.

These are the contract between discovery, the transport session, the
telemetry buffers and the consumer-facing operations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Any, Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from rn_bridge.modules.transport.session import TransportSession

LOG_LEVELS = ("log", "info", "warn", "error", "debug")


@dataclass(frozen=True)
class InstanceDescriptor:
    """One debuggable application instance as listed by a bundler endpoint."""
    id: str
    title: str
    description: str
    app_id: str
    type: str
    device_name: str
    web_socket_debugger_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['InstanceDescriptor']:
        """Build a descriptor from bundler JSON; returns None for malformed entries."""
        if not isinstance(data, dict):
            return None
        instance_id = data.get("id")
        ws_url = data.get("webSocketDebuggerUrl")
        if not instance_id or not ws_url:
            return None
        return cls(
            id=str(instance_id),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            app_id=str(data.get("appId") or ""),
            type=str(data.get("type") or ""),
            device_name=str(data.get("deviceName") or ""),
            web_socket_debugger_url=str(ws_url),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "appId": self.app_id,
            "type": self.type,
            "deviceName": self.device_name,
            "webSocketDebuggerUrl": self.web_socket_debugger_url,
        }


@dataclass
class AttachedInstance:
    """A live transport session plus the descriptor and port it came from."""
    session: 'TransportSession'
    descriptor: InstanceDescriptor
    port: int
    attached_at: datetime = field(default_factory=datetime.now)

    @property
    def instance_id(self) -> str:
        return self.descriptor.id

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.descriptor.id,
            "title": self.descriptor.title,
            "deviceName": self.descriptor.device_name,
            "port": self.port,
            "connected": self.is_connected,
            "attachedAt": self.attached_at.isoformat(),
        }


@dataclass
class RemoteValue:
    """Decoded CDP RemoteObject. Transient, built per call."""
    type: str
    subtype: Optional[str] = None
    class_name: Optional[str] = None
    value: Any = None
    unserializable_value: Optional[str] = None
    description: Optional[str] = None
    object_id: Optional[str] = None
    preview: Optional[Dict[str, Any]] = None
    has_value: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RemoteValue':
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise ValueError(f"Malformed remote object: {data!r}")
        return cls(
            type=data["type"],
            subtype=data.get("subtype"),
            class_name=data.get("className"),
            value=data.get("value"),
            unserializable_value=data.get("unserializableValue"),
            description=data.get("description"),
            object_id=data.get("objectId"),
            preview=data.get("preview"),
            has_value="value" in data,
        )


@dataclass(frozen=True)
class LogRecord:
    """A captured console entry. Never mutated after insertion."""
    timestamp: datetime
    level: str
    message: str
    args: Optional[List[Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }


@dataclass
class NetworkRecord:
    """A captured network request, completed in place by later events."""
    request_id: str
    timestamp: datetime
    method: str
    url: str
    headers: Dict[str, Any] = field(default_factory=dict)
    post_data: Optional[str] = None
    status: Optional[int] = None
    status_text: Optional[str] = None
    response_headers: Optional[Dict[str, Any]] = None
    mime_type: Optional[str] = None
    content_length: Optional[int] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None
    completed: bool = False
    # Protocol monotonic timestamp of the request start, in seconds
    started_at: Optional[float] = None

    def copy(self) -> 'NetworkRecord':
        return replace(
            self,
            headers=dict(self.headers),
            response_headers=dict(self.response_headers) if self.response_headers is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requestId": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "postData": self.post_data,
            "status": self.status,
            "statusText": self.status_text,
            "responseHeaders": self.response_headers,
            "mimeType": self.mime_type,
            "contentLength": self.content_length,
            "durationMs": self.duration_ms,
            "error": self.error,
            "completed": self.completed,
        }


@dataclass
class ExecutionOutcome:
    """Result of an execution request. Either a result or an error, never both."""
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: str) -> 'ExecutionOutcome':
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error: str) -> 'ExecutionOutcome':
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "result": self.result}
        return {"success": False, "error": self.error}


@dataclass
class PortScanResult:
    """Per-port outcome of discover-and-connect."""
    port: int
    instances: List[InstanceDescriptor] = field(default_factory=list)
    selected: Optional[InstanceDescriptor] = None
    attached: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "port": self.port,
            "instances": [d.to_dict() for d in self.instances],
            "selected": self.selected.to_dict() if self.selected else None,
            "attached": self.attached,
            "error": self.error,
        }
