"""Core module - id helpers shared by layout and runtime"""

from .ids import IdAllocator, PaneId, PtyId, TabId, format_pane_list

__all__ = [
    "IdAllocator",
    "PaneId",
    "TabId",
    "PtyId",
    "format_pane_list",
]
