"""Error taxonomy

- ProtocolError: a complete message with an invalid shape; dropped, stream continues
- RpcError: the server reported a failure for one request
- RpcTimeoutError: no response before the request deadline
- ConnectError: the transport could not be opened
- ConnectionLostError: the transport closed while requests were outstanding
- ReconnectExhaustedError: every reconnect attempt failed

Layout operations on missing panes/tabs and redraw events for unknown PTYs
are no-ops; they have no exception type.
"""

from typing import Any


class PriseError(Exception):
    """Base class for prisemux errors."""


class ProtocolError(PriseError):
    """Malformed (but complete) wire message."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class RpcError(PriseError):
    """Server-side failure for a single request."""

    def __init__(self, method: str, msgid: int, error: Any):
        super().__init__(f"RPC {method!r} (id={msgid}) failed: {error!r}")
        self.method = method
        self.msgid = msgid
        self.error = error


class RpcTimeoutError(PriseError, TimeoutError):
    """No response arrived before the deadline."""

    def __init__(self, method: str, msgid: int, timeout: float):
        super().__init__(f"RPC {method!r} (id={msgid}) timed out after {timeout:g}s")
        self.method = method
        self.msgid = msgid
        self.timeout = timeout


class ConnectError(PriseError, ConnectionError):
    """The transport could not be established."""

    def __init__(self, address: str, reason: str = ""):
        msg = f"cannot connect to {address}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.address = address


class ConnectionLostError(PriseError, ConnectionError):
    """The transport went away; outstanding requests are rejected with this."""


class ReconnectExhaustedError(PriseError, ConnectionError):
    """All reconnect attempts failed; the server is unreachable."""

    def __init__(self, address: str, attempts: int):
        super().__init__(f"server at {address} unreachable after {attempts} reconnect attempts")
        self.address = address
        self.attempts = attempts
