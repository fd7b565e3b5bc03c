"""
Telemetry event decoder.

Subscribed to every transport session; converts console, log and network
events into LogRecords and NetworkRecord mutations. Runs on the session's
dispatch path, so it never awaits a protocol call.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Callable, Optional

from rn_bridge.models import LogRecord, NetworkRecord
from rn_bridge.modules.execution.renderer import RemoteObjectRenderer
from rn_bridge.modules.telemetry.log_buffer import LogBuffer, map_console_type
from rn_bridge.modules.telemetry.network_table import NetworkTable

logger = logging.getLogger(__name__)


class TelemetryEventDecoder:
    """Callable event handler: decoder(method, params)."""

    def __init__(self, log_buffer: LogBuffer, network_table: NetworkTable,
                 renderer: Optional[RemoteObjectRenderer] = None):
        self.log_buffer = log_buffer
        self.network_table = network_table
        self.renderer = renderer or RemoteObjectRenderer()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "Runtime.consoleAPICalled": self._on_console_api_called,
            "Runtime.exceptionThrown": self._on_exception_thrown,
            "Log.entryAdded": self._on_log_entry_added,
            "Network.requestWillBeSent": self._on_request_will_be_sent,
            "Network.responseReceived": self._on_response_received,
            "Network.loadingFinished": self._on_loading_finished,
            "Network.loadingFailed": self._on_loading_failed,
        }

    def __call__(self, method: str, params: Dict[str, Any]) -> None:
        self.handle(method, params)

    def handle(self, method: str, params: Dict[str, Any]) -> None:
        handler = self._handlers.get(method)
        if handler is None:
            return
        try:
            handler(params)
        except Exception as e:
            logger.warning(f"Dropping malformed {method} event: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))

    # --- Console ---

    def _on_console_api_called(self, params: Dict[str, Any]) -> None:
        args = params.get("args") or []
        message = " ".join(self.renderer.render_inline_dict(arg) for arg in args)
        self.log_buffer.append(LogRecord(
            timestamp=_from_epoch_millis(params.get("timestamp")),
            level=map_console_type(params.get("type")),
            message=message,
            args=list(args),
        ))

    def _on_log_entry_added(self, params: Dict[str, Any]) -> None:
        entry = params["entry"]
        self.log_buffer.append(LogRecord(
            timestamp=_from_epoch_millis(entry.get("timestamp")),
            level=map_console_type(entry.get("level")),
            message=str(entry.get("text", "")),
        ))

    def _on_exception_thrown(self, params: Dict[str, Any]) -> None:
        details = params["exceptionDetails"]
        self.log_buffer.append(LogRecord(
            timestamp=_from_epoch_millis(params.get("timestamp")),
            level="error",
            message=self.renderer.format_exception(details),
        ))

    # --- Network ---

    def _on_request_will_be_sent(self, params: Dict[str, Any]) -> None:
        request_id = str(params["requestId"])
        request = params["request"]
        url = str(request["url"])
        method = str(request.get("method", "GET"))
        headers = dict(request.get("headers") or {})

        if request_id in self.network_table:
            # Redirect: same request id, new target
            self.network_table.update(request_id, url=url, method=method, headers=headers,
                                      post_data=request.get("postData"))
            return

        wall_time = params.get("wallTime")
        self.network_table.add(NetworkRecord(
            request_id=request_id,
            timestamp=datetime.fromtimestamp(wall_time) if isinstance(wall_time, (int, float)) else datetime.now(),
            method=method,
            url=url,
            headers=headers,
            post_data=request.get("postData"),
            started_at=_as_float(params.get("timestamp")),
        ))

    def _on_response_received(self, params: Dict[str, Any]) -> None:
        request_id = str(params["requestId"])
        record = self.network_table.get(request_id)
        if record is None:
            logger.debug(f"responseReceived for unknown request {request_id} dropped")
            return
        response = params["response"]
        fields: Dict[str, Any] = {
            "status": int(response["status"]),
            "status_text": response.get("statusText"),
            "response_headers": dict(response.get("headers") or {}),
            "mime_type": response.get("mimeType"),
        }
        duration = _elapsed_ms(record, params.get("timestamp"))
        if duration is not None:
            fields["duration_ms"] = duration
        self.network_table.update(request_id, **fields)

    def _on_loading_finished(self, params: Dict[str, Any]) -> None:
        request_id = str(params["requestId"])
        record = self.network_table.get(request_id)
        if record is None:
            logger.debug(f"loadingFinished for unknown request {request_id} dropped")
            return
        fields: Dict[str, Any] = {"completed": True}
        length = params.get("encodedDataLength")
        if isinstance(length, (int, float)):
            fields["content_length"] = int(length)
        duration = _elapsed_ms(record, params.get("timestamp"))
        if duration is not None:
            fields["duration_ms"] = duration
        self.network_table.update(request_id, **fields)

    def _on_loading_failed(self, params: Dict[str, Any]) -> None:
        request_id = str(params["requestId"])
        record = self.network_table.get(request_id)
        if record is None:
            logger.debug(f"loadingFailed for unknown request {request_id} dropped")
            return
        error = params.get("errorText") or ("canceled" if params.get("canceled") else "failed")
        fields: Dict[str, Any] = {"completed": True, "error": str(error)}
        duration = _elapsed_ms(record, params.get("timestamp"))
        if duration is not None:
            fields["duration_ms"] = duration
        self.network_table.update(request_id, **fields)


def _from_epoch_millis(timestamp: Any) -> datetime:
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        return datetime.fromtimestamp(timestamp / 1000.0)
    return datetime.now()


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _elapsed_ms(record: NetworkRecord, timestamp: Any) -> Optional[float]:
    end = _as_float(timestamp)
    if end is None or record.started_at is None:
        return None
    return round((end - record.started_at) * 1000.0, 1)
