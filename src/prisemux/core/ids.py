"""Id utilities

Pane and tab ids are small positive integers handed out by an IdAllocator.
Each LayoutState owner keeps its own allocator, so tests and multiple
clients never share counters.

PTY ids are opaque integers issued by the server; they are never mixed
with pane ids.
"""

import itertools
from typing import NewType

PaneId = NewType("PaneId", int)
TabId = NewType("TabId", int)
PtyId = int


class IdAllocator:
    """Monotonic pane/tab id source."""

    def __init__(self, start: int = 1):
        self._start = start
        self._panes = itertools.count(start)
        self._tabs = itertools.count(start)

    def next_pane_id(self) -> PaneId:
        return PaneId(next(self._panes))

    def next_tab_id(self) -> TabId:
        return TabId(next(self._tabs))

    def reset(self) -> None:
        """Restart both counters (for tests)."""
        self._panes = itertools.count(self._start)
        self._tabs = itertools.count(self._start)


def format_pane_list(pane_ids: list[PaneId], focused: PaneId | None = None) -> str:
    """Render pane ids for logs, marking the focused one with '*'.

    Example:
        format_pane_list([1, 2, 3], focused=2) -> "1, *2, 3"
    """
    return ", ".join(f"*{pid}" if pid == focused else str(pid) for pid in pane_ids)
