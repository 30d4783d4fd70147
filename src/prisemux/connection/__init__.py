"""Connection module - socket lifecycle and reconnect policy"""

from .manager import ConnectionManager, ConnectionState, open_unix

__all__ = ["ConnectionManager", "ConnectionState", "open_unix"]
