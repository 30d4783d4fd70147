"""Sessions module - roster parsing, directory and picker"""

from .directory import (
    DirectorySnapshot,
    Session,
    SessionDirectory,
    parse_list_ptys,
    parse_list_sessions,
)
from .picker import PickerRow, PickerView, SessionPicker

__all__ = [
    "Session",
    "SessionDirectory",
    "DirectorySnapshot",
    "parse_list_sessions",
    "parse_list_ptys",
    "SessionPicker",
    "PickerRow",
    "PickerView",
]
