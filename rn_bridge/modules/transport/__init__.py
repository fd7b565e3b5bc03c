"""
Transport Module

Persistent CDP websocket sessions with request/response correlation,
per-call timeouts and event fan-out.
"""

from .session import (
    TransportSession,
    PendingCall,
    TransportError,
    ConnectionClosedError,
    CallTimeoutError,
    ProtocolError,
    AttachError,
)

__all__ = [
    "TransportSession",
    "PendingCall",
    "TransportError",
    "ConnectionClosedError",
    "CallTimeoutError",
    "ProtocolError",
    "AttachError",
]
