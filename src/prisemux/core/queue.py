"""EventQueue - single inbound event queue

Every asynchronous source (socket notifications, connection lifecycle
changes, key presses, terminal resizes) posts into one queue; a single
consumer loop drains it, so state owned by the consumer is never mutated
concurrently.

Behaviour:
- bounded (EVENT_QUEUE_MAX_SIZE)
- debug log above the high watermark
- on overflow the oldest NOTIFICATION is dropped; lifecycle and STOP events are
  never dropped
- drops are counted in the queue.dropped metric
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..config import EVENT_QUEUE_HIGH_WATERMARK, EVENT_QUEUE_MAX_SIZE, METRICS_ENABLED
from ..telemetry import get_logger, metrics

logger = get_logger(__name__)


class EventKind(Enum):
    NOTIFICATION = "notification"
    DISCONNECTED = "disconnected"
    RECONNECTED = "reconnected"
    CONNECTION_FAILED = "connection_failed"
    KEY = "key"
    RESIZE = "resize"
    STOP = "stop"

    @property
    def droppable(self) -> bool:
        return self is EventKind.NOTIFICATION


@dataclass(frozen=True)
class InboundEvent:
    """One item for the consumer loop.

    Attributes:
        kind: event kind
        method: notification method (NOTIFICATION only)
        params: notification params, the KeyEvent (KEY) or (width, height) (RESIZE)
        error: failure reason (DISCONNECTED / CONNECTION_FAILED)
    """

    kind: EventKind
    method: str = ""
    params: Any = None
    error: BaseException | None = None

    @classmethod
    def notification(cls, method: str, params: Any) -> "InboundEvent":
        return cls(EventKind.NOTIFICATION, method=method, params=params)

    @classmethod
    def key_press(cls, event: Any) -> "InboundEvent":
        return cls(EventKind.KEY, params=event)

    @classmethod
    def terminal_resize(cls, width: int, height: int) -> "InboundEvent":
        return cls(EventKind.RESIZE, params=(width, height))

    @classmethod
    def stop_request(cls) -> "InboundEvent":
        return cls(EventKind.STOP)


class EventQueue:
    """FIFO of InboundEvent with an awaitable get()."""

    def __init__(
        self,
        max_size: int = EVENT_QUEUE_MAX_SIZE,
        high_watermark: float = EVENT_QUEUE_HIGH_WATERMARK,
    ):
        self._max_size = max_size
        self._high_watermark = high_watermark
        self._queue: deque[InboundEvent] = deque()
        self._ready = asyncio.Event()

    def put(self, event: InboundEvent) -> None:
        """Append an event, dropping the oldest notification when full."""
        if len(self._queue) >= self._max_size:
            self._drop_oldest_notification()

        self._queue.append(event)
        self._ready.set()

        depth = len(self._queue)
        if METRICS_ENABLED:
            metrics.gauge("queue.depth", depth)
        if depth >= self._max_size * self._high_watermark:
            logger.debug(
                f"[Queue] High watermark: {depth}/{self._max_size} "
                f"({depth / self._max_size * 100:.0f}%)"
            )

    def _drop_oldest_notification(self) -> None:
        for i, item in enumerate(self._queue):
            if item.kind.droppable:
                del self._queue[i]
                logger.warning(f"[Queue] Dropped oldest notification {item.method!r} (queue full)")
                if METRICS_ENABLED:
                    metrics.inc("queue.dropped")
                return

    def get_nowait(self) -> InboundEvent | None:
        if not self._queue:
            return None
        item = self._queue.popleft()
        if not self._queue:
            self._ready.clear()
        if METRICS_ENABLED:
            metrics.gauge("queue.depth", len(self._queue))
        return item

    async def get(self) -> InboundEvent:
        """Wait for and remove the next event."""
        while True:
            item = self.get_nowait()
            if item is not None:
                return item
            await self._ready.wait()

    def drain(self) -> list[InboundEvent]:
        """Remove and return everything queued."""
        items = list(self._queue)
        self._queue.clear()
        self._ready.clear()
        return items

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def is_empty(self) -> bool:
        return not self._queue
