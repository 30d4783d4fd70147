"""RpcClient - request/response correlation over a byte transport

Responsibilities:
- assign per-connection msgids, register pending requests with deadlines
- feed incoming bytes through the StreamDecoder
- resolve / reject pending futures (exactly once per msgid)
- dispatch notifications to per-method handlers, directly or through the
  inbound EventQueue

Not responsible for:
- opening or reopening the transport (ConnectionManager)
- interpreting notification payloads (RedrawRouter, MuxClient)
"""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..config import METRICS_ENABLED, REQUEST_TIMEOUT_SECONDS
from ..core.queue import EventQueue, InboundEvent
from ..errors import ConnectionLostError, RpcError, RpcTimeoutError
from ..telemetry import get_logger, metrics
from .codec import Notification, Request, Response, RpcCodec, StreamDecoder

logger = get_logger(__name__)

SendFn = Callable[[bytes], Any]
NotificationHandler = Callable[[Any], Any]


@dataclass
class PendingRequest:
    """Pending table entry."""

    msgid: int
    method: str
    future: asyncio.Future
    timeout: float
    timer: asyncio.TimerHandle | None = None


class RpcClient:
    """msgpack-RPC client endpoint.

    Usage:
        rpc = RpcClient()
        rpc.attach(writer.write)
        rpc.on("redraw", handle_redraw)
        result = await rpc.request("list_sessions")
        rpc.notify("write_pty", [pty_id, b"ls\\r"])
        # reader side:
        rpc.feed_data(chunk)
    """

    def __init__(
        self,
        send: SendFn | None = None,
        inbox: EventQueue | None = None,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self._codec = RpcCodec()
        self._decoder = StreamDecoder(self._codec)
        self._send = send
        self._inbox = inbox
        self._request_timeout = request_timeout
        self._next_msgid = 1
        self._pending: dict[int, PendingRequest] = {}
        self._handlers: dict[str, NotificationHandler] = {}
        self._handler_tasks: set[asyncio.Task] = set()

    # === Transport binding ===

    def attach(self, send: SendFn) -> None:
        """Bind the write side of a (new) transport."""
        self._send = send

    def detach_transport(self) -> None:
        self._send = None

    @property
    def is_attached(self) -> bool:
        return self._send is not None

    def bind_inbox(self, inbox: EventQueue | None) -> None:
        """Route notifications through an EventQueue instead of inline dispatch."""
        self._inbox = inbox

    # === Outbound ===

    def encode_request(
        self, method: str, params: Any = None, timeout: float | None = None
    ) -> tuple[int, bytes, asyncio.Future]:
        """Assign the next msgid, register it as pending and encode it.

        Returns:
            (msgid, wire bytes, future completed by the matching response)
        """
        loop = asyncio.get_running_loop()
        timeout = self._request_timeout if timeout is None else timeout

        msgid = self._next_msgid
        self._next_msgid += 1

        data = self._codec.encode_request(msgid, method, params)
        future = loop.create_future()
        pending = PendingRequest(msgid=msgid, method=method, future=future, timeout=timeout)
        pending.timer = loop.call_later(timeout, self._expire, msgid)
        self._pending[msgid] = pending
        return msgid, data, future

    def request(
        self, method: str, params: Any = None, timeout: float | None = None
    ) -> asyncio.Future:
        """Send a request; the returned future resolves with its result.

        The future fails with RpcError on a server error, RpcTimeoutError when
        no response arrives in time, ConnectionLostError if the transport is
        reset first.
        """
        msgid, data, future = self.encode_request(method, params, timeout)
        try:
            self._write(data)
        except (ConnectionError, OSError) as e:
            pending = self._pending.pop(msgid, None)
            if pending is not None:
                self._settle(pending, error=ConnectionLostError(f"failed to send {method!r}: {e}"))
        logger.debug(f"[Rpc] -> {method} (id={msgid})")
        return future

    def notify(self, method: str, params: Any = None) -> None:
        """Send a notification; nothing is correlated.

        Send failures are logged, matching fire-and-forget semantics.
        """
        data = self._codec.encode_notification(method, params)
        try:
            self._write(data)
        except (ConnectionError, OSError) as e:
            logger.warning(f"[Rpc] Failed to send notification {method!r}: {e}")

    def _write(self, data: bytes) -> None:
        if self._send is None:
            raise ConnectionLostError("not connected")
        self._send(data)

    # === Notification handlers ===

    def on(self, method: str, handler: NotificationHandler) -> None:
        """Register the handler for a notification method (replaces any previous)."""
        if method in self._handlers:
            logger.debug(f"[Rpc] Replacing handler for {method!r}")
        self._handlers[method] = handler

    def off(self, method: str) -> bool:
        return self._handlers.pop(method, None) is not None

    def dispatch_notification(self, method: str, params: Any) -> bool:
        """Invoke the registered handler; returns False if there is none.

        Handler exceptions are logged and swallowed so one bad notification
        cannot stop the stream.
        """
        handler = self._handlers.get(method)
        if handler is None:
            logger.debug(f"[Rpc] No handler for notification {method!r}")
            return False
        try:
            result = handler(params)
            if inspect.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._handler_tasks.add(task)
                task.add_done_callback(lambda t: self._on_handler_done(method, t))
        except Exception as e:
            logger.error(f"[Rpc] Handler for {method!r} failed: {e}")
            if METRICS_ENABLED:
                metrics.inc("rpc.handler_errors", {"method": method})
        return True

    def _on_handler_done(self, method: str, task: asyncio.Task) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[Rpc] Handler for {method!r} failed: {error}")
            if METRICS_ENABLED:
                metrics.inc("rpc.handler_errors", {"method": method})

    @property
    def pending_handlers(self) -> int:
        """Async notification handlers still running."""
        return len(self._handler_tasks)

    # === Inbound ===

    def feed_data(self, data: bytes) -> int:
        """Decode a chunk from the transport and dispatch every complete message.

        Returns:
            number of messages decoded
        """
        messages = self._decoder.feed(data)
        for message in messages:
            if isinstance(message, Response):
                self._handle_response(message)
            elif isinstance(message, Notification):
                self._handle_notification(message)
            else:
                self._handle_request(message)
        return len(messages)

    def _handle_response(self, response: Response) -> None:
        pending = self._pending.pop(response.msgid, None)
        if pending is None:
            # Timed out already, or never ours
            logger.debug(f"[Rpc] Dropped stale response id={response.msgid}")
            if METRICS_ENABLED:
                metrics.inc("rpc.stale_responses")
            return

        if response.error is not None:
            self._settle(pending, error=RpcError(pending.method, pending.msgid, response.error))
        else:
            self._settle(pending, result=response.result)

    def _handle_notification(self, notification: Notification) -> None:
        if self._inbox is not None:
            self._inbox.put(InboundEvent.notification(notification.method, notification.params))
            return
        self.dispatch_notification(notification.method, notification.params)

    def _handle_request(self, request: Request) -> None:
        # The server never calls into the client; answer so it does not wait.
        logger.warning(f"[Rpc] Unexpected request {request.method!r} from server")
        try:
            self._write(self._codec.encode_response(request.msgid, "method not found", None))
        except (ConnectionError, OSError) as e:
            logger.debug(f"[Rpc] Could not answer request id={request.msgid}: {e}")

    # === Pending table ===

    def _expire(self, msgid: int) -> None:
        pending = self._pending.pop(msgid, None)
        if pending is None:
            return
        logger.warning(f"[Rpc] {pending.method} (id={msgid}) timed out after {pending.timeout:g}s")
        if METRICS_ENABLED:
            metrics.inc("rpc.timeouts", {"method": pending.method})
        self._settle(pending, error=RpcTimeoutError(pending.method, msgid, pending.timeout))

    @staticmethod
    def _settle(pending: PendingRequest, result: Any = None, error: BaseException | None = None) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
            pending.timer = None
        if pending.future.done():
            # Caller cancelled the await; nothing to deliver
            return
        if error is not None:
            pending.future.set_exception(error)
        else:
            pending.future.set_result(result)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, msgid: int) -> bool:
        return msgid in self._pending

    def reset(self, error: BaseException | None = None) -> int:
        """Forget connection-scoped state.

        Rejects every pending request, restarts msgids at 1 and drops any
        partially decoded input. Handlers stay registered.

        Returns:
            number of requests rejected
        """
        error = error or ConnectionLostError("connection reset")
        pending = list(self._pending.values())
        self._pending.clear()
        for entry in pending:
            self._settle(entry, error=error)
        self._next_msgid = 1
        self._decoder.reset()
        if pending:
            logger.info(f"[Rpc] Reset: rejected {len(pending)} pending request(s)")
        return len(pending)
