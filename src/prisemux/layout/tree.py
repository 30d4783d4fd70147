"""Persistent binary split tree

Nodes are frozen dataclasses without parent pointers. Every transform
returns a new tree that shares the untouched subtrees with the old one;
when nothing changes the very same node object is returned, so callers can
detect no-ops with `is`.

Direction naming:
- HORIZONTAL: children side by side (divider column)
- VERTICAL: children stacked top/bottom (divider row)
"""

import math
from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum

from ..core.ids import PaneId, PtyId
from .geometry import Rect


class SplitDirection(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


MIN_RATIO = 0.1
MAX_RATIO = 0.9


@dataclass(frozen=True)
class PaneNode:
    """Leaf: a rendering slot, bound to a PTY once attach completes."""

    id: PaneId
    pty_id: PtyId | None = None


@dataclass(frozen=True)
class SplitNode:
    """Internal node; `ratio` is the share of the first child, in (0, 1)."""

    direction: SplitDirection
    ratio: float
    first: "LayoutNode"
    second: "LayoutNode"


LayoutNode = PaneNode | SplitNode


@dataclass(frozen=True)
class Divider:
    """A divider line between two split children."""

    direction: SplitDirection
    x: int
    y: int
    length: int


# === Queries ===


def iter_panes(node: LayoutNode) -> Iterator[PaneNode]:
    """Leaves in pre-order (first child before second)."""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, PaneNode):
            yield current
        else:
            stack.append(current.second)
            stack.append(current.first)


def all_pane_ids(node: LayoutNode) -> list[PaneId]:
    return [pane.id for pane in iter_panes(node)]


def pane_count(node: LayoutNode) -> int:
    return sum(1 for _ in iter_panes(node))


def find_pane(node: LayoutNode, pane_id: PaneId) -> PaneNode | None:
    for pane in iter_panes(node):
        if pane.id == pane_id:
            return pane
    return None


def has_pane(node: LayoutNode, pane_id: PaneId) -> bool:
    return find_pane(node, pane_id) is not None


def find_pane_by_pty(node: LayoutNode, pty_id: PtyId) -> PaneNode | None:
    for pane in iter_panes(node):
        if pane.pty_id == pty_id:
            return pane
    return None


def find_parent_split(node: LayoutNode, pane_id: PaneId) -> SplitNode | None:
    """The split directly above a pane; None for a root leaf or unknown id."""
    if isinstance(node, PaneNode):
        return None
    for child in (node.first, node.second):
        if isinstance(child, PaneNode) and child.id == pane_id:
            return node
    return find_parent_split(node.first, pane_id) or find_parent_split(node.second, pane_id)


# === Transforms ===


def split_pane(
    node: LayoutNode, pane_id: PaneId, direction: SplitDirection, new_pane_id: PaneId
) -> LayoutNode:
    """Replace a leaf by Split(direction, 0.5, leaf, new empty leaf).

    Unknown pane id: returns `node` unchanged.
    """
    if isinstance(node, PaneNode):
        if node.id != pane_id:
            return node
        return SplitNode(direction, 0.5, node, PaneNode(new_pane_id, None))

    first = split_pane(node.first, pane_id, direction, new_pane_id)
    if first is not node.first:
        return replace(node, first=first)
    second = split_pane(node.second, pane_id, direction, new_pane_id)
    if second is not node.second:
        return replace(node, second=second)
    return node


def close_pane(node: LayoutNode, pane_id: PaneId) -> LayoutNode | None:
    """Remove a leaf; its parent split collapses into the surviving sibling.

    Returns:
        the new tree, or None when the closed pane was the only one
    """
    if isinstance(node, PaneNode):
        return None if node.id == pane_id else node

    first = close_pane(node.first, pane_id)
    if first is None:
        return node.second
    if first is not node.first:
        return replace(node, first=first)

    second = close_pane(node.second, pane_id)
    if second is None:
        return node.first
    if second is not node.second:
        return replace(node, second=second)
    return node


def set_pty_id(node: LayoutNode, pane_id: PaneId, pty_id: PtyId | None) -> LayoutNode:
    if isinstance(node, PaneNode):
        if node.id == pane_id and node.pty_id != pty_id:
            return replace(node, pty_id=pty_id)
        return node

    first = set_pty_id(node.first, pane_id, pty_id)
    if first is not node.first:
        return replace(node, first=first)
    second = set_pty_id(node.second, pane_id, pty_id)
    if second is not node.second:
        return replace(node, second=second)
    return node


def adjust_ratio(node: LayoutNode, pane_id: PaneId, delta: float) -> LayoutNode:
    """Move the divider of the split directly above `pane_id`.

    A positive delta grows the pane. Ratios are clamped to [MIN_RATIO, MAX_RATIO].
    """
    if isinstance(node, PaneNode):
        return node

    for index, child in enumerate((node.first, node.second)):
        if isinstance(child, PaneNode) and child.id == pane_id:
            signed = delta if index == 0 else -delta
            ratio = min(MAX_RATIO, max(MIN_RATIO, node.ratio + signed))
            if ratio == node.ratio:
                return node
            return replace(node, ratio=ratio)

    first = adjust_ratio(node.first, pane_id, delta)
    if first is not node.first:
        return replace(node, first=first)
    second = adjust_ratio(node.second, pane_id, delta)
    if second is not node.second:
        return replace(node, second=second)
    return node


# === Geometry ===


def partition(split: SplitNode, bounds: Rect) -> tuple[Rect, Rect, Divider]:
    """Split bounds into (first, second, divider), reserving one divider line."""
    if split.direction is SplitDirection.VERTICAL:
        first_height = math.floor(bounds.height * split.ratio)
        second_height = max(0, bounds.height - first_height - 1)
        first = Rect(bounds.x, bounds.y, bounds.width, first_height)
        second = Rect(bounds.x, bounds.y + first_height + 1, bounds.width, second_height)
        divider = Divider(split.direction, bounds.x, bounds.y + first_height, bounds.width)
    else:
        first_width = math.floor(bounds.width * split.ratio)
        second_width = max(0, bounds.width - first_width - 1)
        first = Rect(bounds.x, bounds.y, first_width, bounds.height)
        second = Rect(bounds.x + first_width + 1, bounds.y, second_width, bounds.height)
        divider = Divider(split.direction, bounds.x + first_width, bounds.y, bounds.height)
    return first, second, divider


def rect_for(node: LayoutNode, pane_id: PaneId, bounds: Rect) -> Rect | None:
    """Outer rectangle of a pane within `bounds`, or None if absent."""
    if isinstance(node, PaneNode):
        return bounds if node.id == pane_id else None
    first, second, _ = partition(node, bounds)
    return rect_for(node.first, pane_id, first) or rect_for(node.second, pane_id, second)


def all_rects(node: LayoutNode, bounds: Rect) -> dict[PaneId, Rect]:
    """Rectangles of every pane, in pre-order."""
    rects: dict[PaneId, Rect] = {}

    def walk(current: LayoutNode, area: Rect) -> None:
        if isinstance(current, PaneNode):
            rects[current.id] = area
            return
        first, second, _ = partition(current, area)
        walk(current.first, first)
        walk(current.second, second)

    walk(node, bounds)
    return rects


def dividers(node: LayoutNode, bounds: Rect) -> list[Divider]:
    """Every divider line of the tree, outermost first."""
    lines: list[Divider] = []

    def walk(current: LayoutNode, area: Rect) -> None:
        if isinstance(current, PaneNode) or area.is_empty:
            return
        first, second, divider = partition(current, area)
        lines.append(divider)
        walk(current.first, first)
        walk(current.second, second)

    walk(node, bounds)
    return lines
