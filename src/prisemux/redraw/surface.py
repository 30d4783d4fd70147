"""Paint surfaces

The engines never emit escape sequences; they hand resolved cells to a
PaintSurface. RichSurface is an in-memory implementation rendered through
Rich, used for snapshots, debugging and tests.
"""

import io
import re
from typing import Protocol

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ..config import DEFAULT_BG, DEFAULT_FG
from ..layout.geometry import Rect
from .colors import (
    ATTR_BLINK,
    ATTR_BOLD,
    ATTR_DIM,
    ATTR_INVERSE,
    ATTR_ITALIC,
    ATTR_STRIKETHROUGH,
    ATTR_UNDERLINE,
    RGB,
    rgb_to_hex,
)

# XML 1.0 forbids these; export_svg would produce an invalid document
_INVALID_XML_CHARS_RE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ud800-\udfff\ufffe\uffff]"
)

BORDER_CHARS = {
    "top_left": "┌",
    "top_right": "┐",
    "bottom_left": "└",
    "bottom_right": "┘",
    "horizontal": "─",
    "vertical": "│",
}


class PaintSurface(Protocol):
    def set_cell(self, x: int, y: int, glyph: str, fg: RGB, bg: RGB, attrs: int) -> None: ...


SurfaceCell = tuple[str, RGB, RGB, int]


def paint_rect(surface: PaintSurface, rect: Rect, background: RGB = DEFAULT_BG) -> None:
    """Fill a region with blanks."""
    for y in range(rect.y, rect.bottom):
        for x in range(rect.x, rect.right):
            surface.set_cell(x, y, " ", background, background, 0)


def draw_border(
    surface: PaintSurface,
    rect: Rect,
    focused: bool,
    fg: RGB = DEFAULT_FG,
    bg: RGB = DEFAULT_BG,
) -> None:
    """Box border drawn inside `rect`; unfocused borders are dim."""
    if rect.width <= 0 or rect.height <= 0:
        return

    attrs = 0 if focused else ATTR_DIM
    left, top = rect.x, rect.y
    right, bottom = rect.right - 1, rect.bottom - 1

    for x in range(left + 1, right):
        surface.set_cell(x, top, BORDER_CHARS["horizontal"], fg, bg, attrs)
        surface.set_cell(x, bottom, BORDER_CHARS["horizontal"], fg, bg, attrs)
    for y in range(top + 1, bottom):
        surface.set_cell(left, y, BORDER_CHARS["vertical"], fg, bg, attrs)
        surface.set_cell(right, y, BORDER_CHARS["vertical"], fg, bg, attrs)

    surface.set_cell(left, top, BORDER_CHARS["top_left"], fg, bg, attrs)
    surface.set_cell(right, top, BORDER_CHARS["top_right"], fg, bg, attrs)
    surface.set_cell(left, bottom, BORDER_CHARS["bottom_left"], fg, bg, attrs)
    surface.set_cell(right, bottom, BORDER_CHARS["bottom_right"], fg, bg, attrs)


def draw_text(
    surface: PaintSurface,
    x: int,
    y: int,
    text: str,
    max_width: int,
    fg: RGB = DEFAULT_FG,
    bg: RGB = DEFAULT_BG,
    attrs: int = 0,
) -> None:
    """One line of text, truncated to max_width cells."""
    for offset, char in enumerate(text[: max(0, max_width)]):
        surface.set_cell(x + offset, y, char, fg, bg, attrs)


def rich_style(fg: RGB, bg: RGB, attrs: int) -> Style:
    return Style(
        color=rgb_to_hex(fg),
        bgcolor=rgb_to_hex(bg),
        bold=bool(attrs & ATTR_BOLD),
        dim=bool(attrs & ATTR_DIM),
        italic=bool(attrs & ATTR_ITALIC),
        underline=bool(attrs & ATTR_UNDERLINE),
        blink=bool(attrs & ATTR_BLINK),
        reverse=bool(attrs & ATTR_INVERSE),
        strike=bool(attrs & ATTR_STRIKETHROUGH),
    )


class RichSurface:
    """Fixed-size cell buffer that renders through Rich.

    Writes outside the surface are ignored.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self._cells: dict[tuple[int, int], SurfaceCell] = {}
        self.writes = 0

    def set_cell(self, x: int, y: int, glyph: str, fg: RGB, bg: RGB, attrs: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        self._cells[(x, y)] = (glyph, fg, bg, attrs)
        self.writes += 1

    def get_cell(self, x: int, y: int) -> SurfaceCell | None:
        return self._cells.get((x, y))

    def glyph_at(self, x: int, y: int) -> str:
        cell = self._cells.get((x, y))
        return cell[0] if cell else " "

    def clear(self) -> None:
        self._cells.clear()
        self.writes = 0

    def line(self, y: int) -> str:
        return "".join(self.glyph_at(x, y) for x in range(self.width))

    def lines(self) -> list[str]:
        return [self.line(y) for y in range(self.height)]

    def to_text(self) -> Text:
        """All cells as one Rich Text, one line per row."""
        text = Text()
        for y in range(self.height):
            for x in range(self.width):
                cell = self._cells.get((x, y))
                if cell is None:
                    text.append(" ")
                    continue
                glyph, fg, bg, attrs = cell
                text.append(_INVALID_XML_CHARS_RE.sub("", glyph) or " ", style=rich_style(fg, bg, attrs))
            if y < self.height - 1:
                text.append("\n")
        return text

    def _console(self) -> Console:
        return Console(
            record=True,
            width=self.width,
            height=self.height,
            force_terminal=True,
            color_system="truecolor",
            file=io.StringIO(),
        )

    def export_text(self) -> str:
        console = self._console()
        console.print(self.to_text(), end="")
        return console.export_text()

    def export_svg(self, title: str = "") -> str:
        console = self._console()
        console.print(self.to_text(), end="")
        return console.export_svg(title=title)
