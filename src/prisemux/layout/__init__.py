"""Layout module

- geometry: Rect helpers
- tree: persistent split tree (PaneNode / SplitNode) and its transforms
- state: tabs, focus and PTY binding on top of the tree
"""

from .geometry import Rect, inner_rect, point_in_rect, rect_intersection
from .state import (
    FocusDirection,
    LayoutState,
    Tab,
    add_tab,
    all_pane_rects,
    assign_pty,
    assign_pty_to_focused,
    clear_pty,
    close_focused,
    close_tab,
    cycle_tab,
    debug_info,
    dividers,
    focus_next,
    focus_pane,
    focused_pane_id,
    focused_pty_id,
    get_active_tab,
    get_pane_rect,
    init_layout,
    iter_bound_panes,
    pane_for_pty,
    resize_focused,
    set_active_tab,
    split_focused,
    validate_layout,
)
from .tree import Divider, LayoutNode, PaneNode, SplitDirection, SplitNode

__all__ = [
    "Rect",
    "inner_rect",
    "point_in_rect",
    "rect_intersection",
    "SplitDirection",
    "PaneNode",
    "SplitNode",
    "LayoutNode",
    "Divider",
    "FocusDirection",
    "Tab",
    "LayoutState",
    "init_layout",
    "add_tab",
    "close_tab",
    "set_active_tab",
    "cycle_tab",
    "get_active_tab",
    "split_focused",
    "close_focused",
    "focus_pane",
    "focus_next",
    "resize_focused",
    "focused_pane_id",
    "assign_pty_to_focused",
    "assign_pty",
    "clear_pty",
    "focused_pty_id",
    "iter_bound_panes",
    "pane_for_pty",
    "get_pane_rect",
    "all_pane_rects",
    "dividers",
    "validate_layout",
    "debug_info",
]
