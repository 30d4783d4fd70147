"""Tab/pane layout state

LayoutState is an immutable value: every operation returns a new state (or
the same object when nothing changed). Operations that reference a pane or
tab that does not exist are no-ops, never exceptions.

Invariants (checked by validate_layout):
- at least one tab
- active_tab_id resolves
- each tab's focused_pane_id resolves inside its own tree
"""

from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum

from ..core.ids import IdAllocator, PaneId, PtyId, TabId, format_pane_list
from ..telemetry import get_logger
from . import tree
from .geometry import Rect
from .tree import Divider, LayoutNode, PaneNode, SplitDirection

logger = get_logger(__name__)


class FocusDirection(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"

    @property
    def is_forward(self) -> bool:
        return self in (FocusDirection.RIGHT, FocusDirection.DOWN)


@dataclass(frozen=True)
class Tab:
    id: TabId
    root: LayoutNode
    focused_pane_id: PaneId


@dataclass(frozen=True)
class LayoutState:
    tabs: tuple[Tab, ...]
    active_tab_id: TabId

    @property
    def active_tab(self) -> Tab | None:
        return get_active_tab(self)


# === Tabs ===


def create_tab(ids: IdAllocator) -> Tab:
    pane_id = ids.next_pane_id()
    return Tab(ids.next_tab_id(), PaneNode(pane_id, None), pane_id)


def init_layout(ids: IdAllocator) -> LayoutState:
    """One tab holding one empty pane."""
    tab = create_tab(ids)
    return LayoutState((tab,), tab.id)


def add_tab(state: LayoutState, ids: IdAllocator) -> LayoutState:
    """Append a single-pane tab and make it active."""
    tab = create_tab(ids)
    return LayoutState(state.tabs + (tab,), tab.id)


def close_tab(state: LayoutState, tab_id: TabId) -> LayoutState:
    """Remove a tab; refused when it is the only one.

    If the closed tab was active, the previous tab becomes active, or the
    next one when the closed tab was first.
    """
    if len(state.tabs) <= 1:
        logger.debug(f"[Layout] Refusing to close the last tab {tab_id}")
        return state

    index = tab_index(state, tab_id)
    if index is None:
        return state

    remaining = state.tabs[:index] + state.tabs[index + 1 :]
    active = state.active_tab_id
    if active == tab_id:
        active = state.tabs[index - 1].id if index > 0 else state.tabs[index + 1].id
    return LayoutState(remaining, active)


def set_active_tab(state: LayoutState, tab_id: TabId) -> LayoutState:
    if tab_index(state, tab_id) is None or state.active_tab_id == tab_id:
        return state
    return replace(state, active_tab_id=tab_id)


def cycle_tab(state: LayoutState, delta: int) -> LayoutState:
    """Activate the tab `delta` positions away, wrapping around."""
    index = tab_index(state, state.active_tab_id)
    if index is None or len(state.tabs) <= 1:
        return state
    target = state.tabs[(index + delta) % len(state.tabs)]
    return set_active_tab(state, target.id)


def tab_index(state: LayoutState, tab_id: TabId) -> int | None:
    for index, tab in enumerate(state.tabs):
        if tab.id == tab_id:
            return index
    return None


def get_active_tab(state: LayoutState) -> Tab | None:
    for tab in state.tabs:
        if tab.id == state.active_tab_id:
            return tab
    return None


def _update_tab(state: LayoutState, updated: Tab) -> LayoutState:
    tabs = tuple(updated if tab.id == updated.id else tab for tab in state.tabs)
    return replace(state, tabs=tabs)


# === Focused pane ===


def split_focused(
    state: LayoutState, direction: SplitDirection, ids: IdAllocator
) -> LayoutState:
    """Split the focused pane of the active tab; the new pane gets focus."""
    tab = get_active_tab(state)
    if tab is None:
        return state

    new_pane_id = ids.next_pane_id()
    root = tree.split_pane(tab.root, tab.focused_pane_id, direction, new_pane_id)
    if root is tab.root:
        return state
    return _update_tab(state, Tab(tab.id, root, new_pane_id))


def close_focused(state: LayoutState) -> LayoutState:
    """Close the focused pane; an emptied tab is closed.

    When the emptied tab is the only tab, closing is refused and the state
    is returned unchanged, so the pane stays focused.
    """
    tab = get_active_tab(state)
    if tab is None:
        return state

    root = tree.close_pane(tab.root, tab.focused_pane_id)
    if root is None:
        return close_tab(state, tab.id)

    focused = tree.all_pane_ids(root)[0]
    return _update_tab(state, Tab(tab.id, root, focused))


def focus_pane(state: LayoutState, pane_id: PaneId) -> LayoutState:
    tab = get_active_tab(state)
    if tab is None or tab.focused_pane_id == pane_id or not tree.has_pane(tab.root, pane_id):
        return state
    return _update_tab(state, replace(tab, focused_pane_id=pane_id))


def focus_next(state: LayoutState, direction: FocusDirection) -> LayoutState:
    """Cycle focus through the active tab's panes in pre-order.

    right/down move forward, left/up move backward; both wrap around.
    """
    tab = get_active_tab(state)
    if tab is None:
        return state

    pane_ids = tree.all_pane_ids(tab.root)
    if len(pane_ids) <= 1 or tab.focused_pane_id not in pane_ids:
        return state

    step = 1 if direction.is_forward else -1
    index = (pane_ids.index(tab.focused_pane_id) + step) % len(pane_ids)
    return focus_pane(state, pane_ids[index])


def resize_focused(state: LayoutState, delta: float) -> LayoutState:
    """Grow (or shrink, with a negative delta) the focused pane's share."""
    tab = get_active_tab(state)
    if tab is None:
        return state
    root = tree.adjust_ratio(tab.root, tab.focused_pane_id, delta)
    if root is tab.root:
        return state
    return _update_tab(state, replace(tab, root=root))


def focused_pane_id(state: LayoutState) -> PaneId | None:
    tab = get_active_tab(state)
    return tab.focused_pane_id if tab else None


# === PTY binding ===


def assign_pty_to_focused(state: LayoutState, pty_id: PtyId) -> LayoutState:
    tab = get_active_tab(state)
    if tab is None:
        return state
    return assign_pty(state, tab.focused_pane_id, pty_id)


def assign_pty(state: LayoutState, pane_id: PaneId, pty_id: PtyId | None) -> LayoutState:
    """Bind (or with None, unbind) a pane in any tab to a PTY."""
    for tab in state.tabs:
        if tree.has_pane(tab.root, pane_id):
            root = tree.set_pty_id(tab.root, pane_id, pty_id)
            if root is tab.root:
                return state
            return _update_tab(state, replace(tab, root=root))
    return state


def clear_pty(state: LayoutState, pty_id: PtyId) -> LayoutState:
    """Unbind every pane showing `pty_id` (after pty_closed)."""
    for pane_id, bound in list(iter_bound_panes(state)):
        if bound == pty_id:
            state = assign_pty(state, pane_id, None)
    return state


def focused_pty_id(state: LayoutState) -> PtyId | None:
    tab = get_active_tab(state)
    if tab is None:
        return None
    pane = tree.find_pane(tab.root, tab.focused_pane_id)
    return pane.pty_id if pane else None


def iter_bound_panes(state: LayoutState) -> Iterator[tuple[PaneId, PtyId]]:
    """(pane id, pty id) for every pane of every tab that has a PTY."""
    for tab in state.tabs:
        for pane in tree.iter_panes(tab.root):
            if pane.pty_id is not None:
                yield pane.id, pane.pty_id


def pane_for_pty(state: LayoutState, pty_id: PtyId) -> PaneId | None:
    for pane_id, bound in iter_bound_panes(state):
        if bound == pty_id:
            return pane_id
    return None


# === Geometry ===


def get_pane_rect(state: LayoutState, pane_id: PaneId, bounds: Rect) -> Rect | None:
    """Rectangle of a pane of the active tab, or None."""
    tab = get_active_tab(state)
    if tab is None:
        return None
    return tree.rect_for(tab.root, pane_id, bounds)


def all_pane_rects(state: LayoutState, bounds: Rect) -> dict[PaneId, Rect]:
    tab = get_active_tab(state)
    if tab is None:
        return {}
    return tree.all_rects(tab.root, bounds)


def dividers(state: LayoutState, bounds: Rect) -> list[Divider]:
    tab = get_active_tab(state)
    if tab is None:
        return []
    return tree.dividers(tab.root, bounds)


# === Validation & debugging ===


def validate_layout(state: LayoutState) -> list[str]:
    """List invariant violations; empty when the state is consistent."""
    errors: list[str] = []

    if not state.tabs:
        errors.append("Layout must have at least one tab")

    if get_active_tab(state) is None:
        errors.append(f"Active tab {state.active_tab_id} does not exist")

    seen: set[PaneId] = set()
    for tab in state.tabs:
        pane_ids = tree.all_pane_ids(tab.root)
        if not pane_ids:
            errors.append(f"Tab {tab.id}: has no panes")
        if tab.focused_pane_id not in pane_ids:
            errors.append(f"Tab {tab.id}: focused pane {tab.focused_pane_id} does not exist")
        duplicates = seen.intersection(pane_ids)
        if duplicates or len(set(pane_ids)) != len(pane_ids):
            errors.append(f"Tab {tab.id}: duplicate pane ids")
        seen.update(pane_ids)

    return errors


def debug_info(state: LayoutState) -> str:
    tab = get_active_tab(state)
    if tab is None:
        return "No active tab"

    pane_ids = tree.all_pane_ids(tab.root)
    return (
        f"Active Tab: {tab.id}\n"
        f"Panes: {len(pane_ids)} total\n"
        f"Focused: {tab.focused_pane_id}\n"
        f"Pane list: {format_pane_list(pane_ids, tab.focused_pane_id)}"
    )
