"""msgpack-RPC wire codec

Message format (positional msgpack arrays, no outer length framing):
    Request:      [0, msgid, method, params]
    Response:     [1, msgid, error, result]
    Notification: [2, method, params]

StreamDecoder recovers message boundaries from arbitrarily chunked input.
A partial message at the end of a chunk stays buffered until the rest
arrives; only complete-but-malformed values are reported and dropped.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import msgpack

from ..config import METRICS_ENABLED
from ..errors import ProtocolError
from ..telemetry import get_logger, metrics

logger = get_logger(__name__)


class MessageType(IntEnum):
    REQUEST = 0
    RESPONSE = 1
    NOTIFICATION = 2


@dataclass(frozen=True)
class Request:
    msgid: int
    method: str
    params: Any = None


@dataclass(frozen=True)
class Response:
    msgid: int
    error: Any = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Notification:
    method: str
    params: Any = None


Message = Request | Response | Notification


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RpcCodec:
    """Encodes messages to bytes and validates decoded envelopes."""

    def encode_request(self, msgid: int, method: str, params: Any = None) -> bytes:
        return self._pack([MessageType.REQUEST, msgid, method, params])

    def encode_response(self, msgid: int, error: Any, result: Any) -> bytes:
        return self._pack([MessageType.RESPONSE, msgid, error, result])

    def encode_notification(self, method: str, params: Any = None) -> bytes:
        return self._pack([MessageType.NOTIFICATION, method, params])

    def encode(self, message: Message) -> bytes:
        if isinstance(message, Request):
            return self.encode_request(message.msgid, message.method, message.params)
        if isinstance(message, Response):
            return self.encode_response(message.msgid, message.error, message.result)
        return self.encode_notification(message.method, message.params)

    def to_message(self, value: Any) -> Message:
        """Convert one decoded msgpack value into a Message.

        Raises:
            ProtocolError: value is not a valid RPC envelope
        """
        if not isinstance(value, list) or len(value) < 3:
            raise ProtocolError("message is not an RPC array", value)

        kind = value[0]
        if not _is_int(kind):
            raise ProtocolError(f"invalid message type {kind!r}", value)

        if kind == MessageType.REQUEST and len(value) == 4:
            _, msgid, method, params = value
            if not _is_int(msgid) or not isinstance(method, str):
                raise ProtocolError("invalid request envelope", value)
            return Request(msgid, method, params)

        if kind == MessageType.RESPONSE and len(value) == 4:
            _, msgid, error, result = value
            if not _is_int(msgid):
                raise ProtocolError("invalid response msgid", value)
            return Response(msgid, error, result)

        if kind == MessageType.NOTIFICATION and len(value) == 3:
            _, method, params = value
            if not isinstance(method, str):
                raise ProtocolError("invalid notification method", value)
            return Notification(method, params)

        raise ProtocolError(f"unknown message type {kind!r} / arity {len(value)}", value)

    @staticmethod
    def _pack(obj: list) -> bytes:
        # IntEnum packs as a plain int
        obj[0] = int(obj[0])
        return msgpack.packb(obj, use_bin_type=True)


class StreamDecoder:
    """Incremental decoder for a stream of concatenated msgpack messages."""

    def __init__(self, codec: RpcCodec | None = None):
        self._codec = codec or RpcCodec()
        self._unpacker = self._new_unpacker()

    @staticmethod
    def _new_unpacker() -> msgpack.Unpacker:
        return msgpack.Unpacker(raw=False, strict_map_key=False, use_list=True)

    def feed(self, data: bytes) -> list[Message]:
        """Append a chunk and return every message completed by it.

        Never raises: truncated input stays buffered, malformed messages
        are logged and dropped.
        """
        self._unpacker.feed(data)
        messages: list[Message] = []

        try:
            for value in self._unpacker:
                try:
                    messages.append(self._codec.to_message(value))
                except ProtocolError as e:
                    logger.warning(f"[Codec] Dropped malformed message: {e}")
                    if METRICS_ENABLED:
                        metrics.inc("protocol.dropped")
        except (ValueError, msgpack.exceptions.UnpackException) as e:
            # Undecodable bytes: the unpacker cannot resynchronise, so the
            # buffered input is discarded and decoding restarts on the next chunk.
            logger.warning(f"[Codec] Undecodable input, buffer discarded: {e}")
            if METRICS_ENABLED:
                metrics.inc("protocol.dropped")
            self._unpacker = self._new_unpacker()

        return messages

    def reset(self) -> None:
        """Discard any buffered partial message."""
        self._unpacker = self._new_unpacker()
