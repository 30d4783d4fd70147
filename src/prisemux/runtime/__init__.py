"""Runtime module - event consumer and component wiring"""

from .bootstrap import ClientComponents, bootstrap
from .client import ClientMode, MuxClient

__all__ = [
    "bootstrap",
    "ClientComponents",
    "MuxClient",
    "ClientMode",
]
