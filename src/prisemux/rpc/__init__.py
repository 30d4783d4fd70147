"""RPC module

- codec: msgpack-RPC envelopes and the incremental StreamDecoder
- client: RpcClient (pending table, timeouts, notification dispatch)
- accessors: validating readers for untyped payloads
"""

from .client import PendingRequest, RpcClient
from .codec import (
    Message,
    MessageType,
    Notification,
    Request,
    Response,
    RpcCodec,
    StreamDecoder,
)

__all__ = [
    "RpcClient",
    "PendingRequest",
    "RpcCodec",
    "StreamDecoder",
    "MessageType",
    "Message",
    "Request",
    "Response",
    "Notification",
]
