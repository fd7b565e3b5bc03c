"""
Transport Session - one persistent CDP websocket to one application instance.

Responsibilities:
- Owns the socket exclusively through a single read-loop task
- Assigns call ids and correlates responses to in-flight calls
- Applies a per-call timeout; exactly one of response / timeout / close completes a call
- Fans unsolicited event frames out to subscribers, synchronously and in arrival order

The session never reconnects. Once closed it stays closed; reconnecting is a
fresh discovery + attach cycle.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable, Iterable

import aiohttp

from rn_bridge.observability import get_tracer

tracer = get_tracer(__name__)

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT = 10.0
DEFAULT_MAX_MESSAGE_SIZE = 50 * 1024 * 1024

# Event handler signature: handler(method, params)
EventHandler = Callable[[str, Dict[str, Any]], None]
CloseCallback = Callable[['TransportSession'], None]


class TransportError(Exception):
    """Base class for every failure surfaced by a transport session."""


class ConnectionClosedError(TransportError):
    """The socket is closed, or closed while the call was in flight."""


class CallTimeoutError(TransportError):
    """No response arrived within the call timeout."""

    def __init__(self, method: str, timeout: float):
        super().__init__(f"{method} timed out after {timeout}s")
        self.method = method
        self.timeout = timeout


class ProtocolError(TransportError):
    """The remote side answered the call with an error object."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None):
        super().__init__(f"{method} failed: {message}" + (f" (code {code})" if code is not None else ""))
        self.method = method
        self.code = code
        self.message = message
        self.data = data


class AttachError(TransportError):
    """Enabling a telemetry domain failed; the attach attempt was aborted."""


@dataclass
class PendingCall:
    """An in-flight request awaiting its response."""
    call_id: int
    method: str
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None


class TransportSession:
    """
    Duplex CDP connection over an aiohttp websocket.

    call() suspends the caller until response, timeout or socket closure.
    Frames carrying an "id" are responses; every other frame is an event.
    """

    def __init__(self,
                 ws_url: str,
                 instance_id: Optional[str] = None,
                 default_timeout: float = DEFAULT_CALL_TIMEOUT,
                 max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
                 http_session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            ws_url: Debugger websocket URL from the instance descriptor
            instance_id: Identifier used in logs and spans
            default_timeout: Timeout applied when call() gets none
            max_message_size: Largest inbound frame accepted
            http_session: Shared aiohttp session (a private one is created if None)
        """
        self.ws_url = ws_url
        self.instance_id = instance_id or ws_url
        self.default_timeout = default_timeout
        self.max_message_size = max_message_size

        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None

        self._next_call_id = 0
        self._pending: Dict[int, PendingCall] = {}
        self._subscribers: List[EventHandler] = []
        self._close_callbacks: List[CloseCallback] = []

        self._closed = False
        self.close_reason: Optional[str] = None

    # --- Properties ---

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._closed and not self._ws.closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # --- Lifecycle ---

    async def open(self) -> None:
        """Connect the websocket and start the read loop."""
        if self._ws is not None or self._closed:
            raise TransportError(f"Session for {self.instance_id} was already opened")

        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        try:
            self._ws = await asyncio.wait_for(
                self._http_session.ws_connect(self.ws_url, max_msg_size=self.max_message_size),
                timeout=self.default_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._closed = True
            self.close_reason = f"connect failed: {e}"
            await self._release_http_session()
            raise ConnectionClosedError(f"Failed to connect to {self.ws_url}: {e}") from e

        self._reader_task = asyncio.create_task(self._read_loop(), name=f"cdp-reader-{self.instance_id}")
        logger.debug(f"Transport session opened for {self.instance_id} at {self.ws_url}")

    async def attach(self, domains: Iterable[str]) -> None:
        """
        Open the socket and enable each telemetry domain, in order.

        Raises:
            AttachError: if connecting or any enable call fails (the socket is closed)
        """
        with tracer.start_as_current_span("cdp.attach") as span:
            span.set_attribute("cdp.instance_id", self.instance_id)
            try:
                await self.open()
            except TransportError as e:
                raise AttachError(str(e)) from e

            for domain in domains:
                try:
                    await self.call(f"{domain}.enable")
                except TransportError as e:
                    logger.error(f"Enabling {domain} on {self.instance_id} failed, aborting attach: {e}")
                    await self.close(reason=f"attach aborted: {domain}.enable failed")
                    raise AttachError(f"Failed to enable {domain}: {e}") from e
            logger.info(f"Attached to {self.instance_id}")

    async def close(self, reason: str = "closed locally") -> None:
        """Close the socket. Pending calls are rejected with ConnectionClosedError."""
        if self.close_reason is None:
            self.close_reason = reason
        if self._ws is not None and not self._ws.closed:
            try:
                await self._ws.close()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                logger.debug(f"Error while closing websocket for {self.instance_id}: {e}")

        task = self._reader_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._finalize(reason)
        await self._release_http_session()

    # --- Subscriptions ---

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler. Returns a callable that unsubscribes it."""
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback fired once when the session closes."""
        self._close_callbacks.append(callback)

    # --- Calls ---

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None,
                   timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Send a request and wait for its response.

        Returns:
            The "result" object of the response

        Raises:
            CallTimeoutError, ProtocolError, ConnectionClosedError
        """
        if not self.is_connected:
            raise ConnectionClosedError(f"Session for {self.instance_id} is not connected")

        timeout = self.default_timeout if timeout is None else timeout
        self._next_call_id += 1
        call_id = self._next_call_id

        loop = asyncio.get_running_loop()
        pending = PendingCall(call_id=call_id, method=method, future=loop.create_future())
        pending.timer = loop.call_later(timeout, self._expire, call_id, timeout)
        self._pending[call_id] = pending

        envelope = {"id": call_id, "method": method, "params": params or {}}

        with tracer.start_as_current_span("cdp.call") as span:
            span.set_attribute("cdp.method", method)
            span.set_attribute("cdp.call_id", call_id)
            span.set_attribute("cdp.instance_id", self.instance_id)

            try:
                await self._ws.send_str(json.dumps(envelope))
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                self._complete(call_id, error=ConnectionClosedError(f"Failed to send {method}: {e}"))

            try:
                return await pending.future
            except asyncio.CancelledError:
                # Caller went away; drop the entry so a late response is discarded
                self._discard(call_id)
                raise

    # --- Completion ---

    def _complete(self, call_id: int, result: Optional[Dict[str, Any]] = None,
                  error: Optional[BaseException] = None) -> bool:
        """Complete a pending call exactly once. Returns False if it was no longer pending."""
        pending = self._discard(call_id)
        if pending is None:
            return False
        if not pending.future.done():
            if error is not None:
                pending.future.set_exception(error)
            else:
                pending.future.set_result(result if result is not None else {})
        return True

    def _discard(self, call_id: int) -> Optional[PendingCall]:
        pending = self._pending.pop(call_id, None)
        if pending is not None and pending.timer is not None:
            pending.timer.cancel()
        return pending

    def _expire(self, call_id: int, timeout: float) -> None:
        pending = self._pending.get(call_id)
        if pending is None:
            return
        logger.warning(f"Call {call_id} ({pending.method}) on {self.instance_id} timed out after {timeout}s")
        self._complete(call_id, error=CallTimeoutError(pending.method, timeout))

    # --- Read loop ---

    async def _read_loop(self) -> None:
        reason = "closed by remote"
        try:
            async for message in self._ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(message.data)
                elif message.type == aiohttp.WSMsgType.BINARY:
                    self._handle_frame(message.data.decode("utf-8", errors="replace"))
                elif message.type == aiohttp.WSMsgType.ERROR:
                    reason = f"socket error: {self._ws.exception()}"
                    logger.warning(f"Websocket error on {self.instance_id}: {self._ws.exception()}")
                    break
        except asyncio.CancelledError:
            reason = "closed locally"
            raise
        except Exception as e:
            reason = f"read loop failed: {e}"
            logger.error(f"Read loop for {self.instance_id} failed: {e}", exc_info=True)
        finally:
            self._finalize(reason)
            await self._release_http_session()

    def _handle_frame(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping undecodable frame from {self.instance_id}: {e}")
            return
        if not isinstance(frame, dict):
            logger.warning(f"Dropping non-object frame from {self.instance_id}")
            return

        if "id" in frame:
            self._handle_response(frame)
            return

        method = frame.get("method")
        if not isinstance(method, str):
            logger.warning(f"Dropping frame without id or method from {self.instance_id}")
            return
        params = frame.get("params")
        self._dispatch(method, params if isinstance(params, dict) else {})

    def _handle_response(self, frame: Dict[str, Any]) -> None:
        call_id = frame.get("id")
        if not isinstance(call_id, int) or call_id not in self._pending:
            logger.debug(f"Discarding unmatched response id={call_id!r} on {self.instance_id}")
            return

        method = self._pending[call_id].method
        if "error" in frame:
            error = frame.get("error") or {}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            self._complete(call_id, error=ProtocolError(
                method,
                error.get("code"),
                error.get("message", "Unknown protocol error"),
                error.get("data"),
            ))
        else:
            result = frame.get("result")
            self._complete(call_id, result=result if isinstance(result, dict) else {})

    def _dispatch(self, method: str, params: Dict[str, Any]) -> None:
        for handler in list(self._subscribers):
            try:
                handler(method, params)
            except Exception as e:
                logger.error(f"Event handler failed for {method} on {self.instance_id}: {e}", exc_info=True)

    # --- Teardown ---

    def _finalize(self, reason: str) -> None:
        """Mark closed, reject pending calls and notify close callbacks. Runs once."""
        if self.close_reason is None:
            self.close_reason = reason
        if not self._closed:
            self._closed = True
            logger.info(f"Transport session for {self.instance_id} closed: {self.close_reason}")

        for call_id in list(self._pending):
            self._complete(call_id, error=ConnectionClosedError(
                f"Connection to {self.instance_id} closed ({self.close_reason})"
            ))

        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Close callback failed for {self.instance_id}: {e}", exc_info=True)

    async def _release_http_session(self) -> None:
        session, self._http_session = self._http_session, None
        if session is not None and self._owns_http_session and not session.closed:
            await session.close()
