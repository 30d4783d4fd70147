"""Rectangle helpers shared by the layout tree and the painter."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Cell rectangle: top-left (x, y) plus size."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """One past the last column."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """One past the last row."""
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


def inner_rect(rect: Rect) -> Rect | None:
    """Content area inside a one-cell border, or None when too small (w/h <= 2)."""
    if rect.width <= 2 or rect.height <= 2:
        return None
    return Rect(rect.x + 1, rect.y + 1, rect.width - 2, rect.height - 2)


def point_in_rect(x: int, y: int, rect: Rect) -> bool:
    return rect.x <= x < rect.right and rect.y <= y < rect.bottom


def rect_intersection(a: Rect, b: Rect) -> Rect | None:
    x = max(a.x, b.x)
    y = max(a.y, b.y)
    right = min(a.right, b.right)
    bottom = min(a.bottom, b.bottom)
    if x >= right or y >= bottom:
        return None
    return Rect(x, y, right - x, bottom - y)
