"""ConnectionManager - transport lifecycle and bounded reconnect

States:
    DISCONNECTED -> CONNECTING -> CONNECTED -> (close/error) DISCONNECTED
    DISCONNECTED --(reconnect attempts exhausted)--> FAILED

The reader task feeds every chunk to RpcClient.feed_data. When the
transport drops unexpectedly the RPC client is reset (pending requests are
rejected with ConnectionLostError) and up to RECONNECT_MAX_ATTEMPTS
reconnects are tried, waiting base_delay * attempt before each one.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ..config import (
    METRICS_ENABLED,
    READ_CHUNK_SIZE,
    RECONNECT_BASE_DELAY_SECONDS,
    RECONNECT_MAX_ATTEMPTS,
    default_socket_path,
)
from ..core.queue import EventKind, EventQueue, InboundEvent
from ..errors import ConnectError, ConnectionLostError, ReconnectExhaustedError
from ..rpc.client import RpcClient
from ..telemetry import get_logger, metrics

logger = get_logger(__name__)

Opener = Callable[[str], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
ReconnectCallback = Callable[[], Any]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


async def open_unix(address: str) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    return await asyncio.open_unix_connection(address)


def _retrieve_failure(future: asyncio.Future) -> None:
    # wait_closed() is optional; mark the failure as retrieved
    if not future.cancelled():
        future.exception()


class ConnectionManager:
    """Owns the socket, the reader task and the reconnect policy."""

    def __init__(
        self,
        rpc: RpcClient,
        inbox: EventQueue | None = None,
        opener: Opener = open_unix,
        max_attempts: int = RECONNECT_MAX_ATTEMPTS,
        base_delay: float = RECONNECT_BASE_DELAY_SECONDS,
    ):
        self._rpc = rpc
        self._inbox = inbox
        self._opener = opener
        self._max_attempts = max_attempts
        self._base_delay = base_delay

        self._state = ConnectionState.DISCONNECTED
        self._address: str | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task | None = None
        self._closing = False
        self._on_reconnect: ReconnectCallback | None = None
        self._failure: asyncio.Future | None = None

    # === Properties ===

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def address(self) -> str | None:
        return self._address

    @property
    def rpc(self) -> RpcClient:
        return self._rpc

    def set_reconnect_callback(self, callback: ReconnectCallback | None) -> None:
        """Called after every successful reconnect (after RECONNECTED is posted)."""
        self._on_reconnect = callback

    # === Lifecycle ===

    async def connect(self, address: str | None = None) -> None:
        """Open the transport and start reading.

        Raises:
            ConnectError: the socket could not be opened
        """
        address = address or self._address or default_socket_path()
        self._address = address
        self._closing = False
        if self._failure is None or self._failure.done():
            self._failure = asyncio.get_running_loop().create_future()
            self._failure.add_done_callback(_retrieve_failure)

        self._state = ConnectionState.CONNECTING
        logger.info(f"[Conn] Connecting to {address}")
        try:
            reader, writer = await self._opener(address)
        except (OSError, asyncio.TimeoutError) as e:
            self._state = ConnectionState.DISCONNECTED
            logger.error(f"[Conn] Failed to connect: {e}")
            raise ConnectError(address, str(e)) from e

        self._writer = writer
        self._rpc.attach(writer.write)
        self._state = ConnectionState.CONNECTED
        self._reader_task = asyncio.create_task(self._read_loop(reader), name="prisemux-reader")
        logger.info(f"[Conn] Connected to {address}")

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        error: BaseException | None = None
        try:
            while True:
                data = await reader.read(READ_CHUNK_SIZE)
                if not data:
                    break
                self._rpc.feed_data(data)
        except asyncio.CancelledError:
            return
        except (ConnectionError, OSError) as e:
            error = e
            logger.error(f"[Conn] Socket error: {e}")

        if self._closing:
            return
        logger.info("[Conn] Connection closed")
        await self._handle_lost(error)

    async def _handle_lost(self, error: BaseException | None) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._drop_transport()
        self._rpc.reset(ConnectionLostError(str(error) if error else "connection closed"))
        self._post(InboundEvent(EventKind.DISCONNECTED, error=error))

        if await self._reconnect():
            return

        self._state = ConnectionState.FAILED
        failure = ReconnectExhaustedError(self._address or "?", self._max_attempts)
        logger.error(f"[Conn] {failure}")
        self._post(InboundEvent(EventKind.CONNECTION_FAILED, error=failure))
        if self._failure is not None and not self._failure.done():
            self._failure.set_exception(failure)

    async def _reconnect(self) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            delay = self._base_delay * attempt
            logger.info(f"[Conn] Reconnect attempt {attempt}/{self._max_attempts} in {delay:g}s")
            if METRICS_ENABLED:
                metrics.inc("reconnect.attempts")
            await asyncio.sleep(delay)
            if self._closing:
                return True

            try:
                await self.connect(self._address)
            except ConnectError as e:
                logger.warning(f"[Conn] Reconnect failed: {e}")
                continue

            self._post(InboundEvent(EventKind.RECONNECTED))
            if self._on_reconnect is not None:
                try:
                    self._on_reconnect()
                except Exception as e:
                    logger.error(f"[Conn] Reconnect callback failed: {e}")
            return True

        return False

    def _post(self, event: InboundEvent) -> None:
        if self._inbox is not None:
            self._inbox.put(event)

    def _drop_transport(self) -> None:
        self._rpc.detach_transport()
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    async def wait_closed(self) -> None:
        """Wait until the connection fails for good.

        Raises:
            ReconnectExhaustedError: when reconnecting gave up
        """
        if self._failure is None:
            return
        await self._failure

    async def close(self) -> None:
        """Shut down without reconnecting."""
        self._closing = True
        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._drop_transport()
        self._rpc.reset(ConnectionLostError("connection closed by client"))
        self._state = ConnectionState.DISCONNECTED
        if self._failure is not None and not self._failure.done():
            self._failure.set_result(None)
        logger.info("[Conn] Closed")
