"""Redraw module

- colors: palette and attribute resolution
- engine: RedrawEngine (per-PTY grid replica) and the shared StyleTable
- router: RedrawRouter, applies `redraw` batches to engines by PTY id
- surface: PaintSurface protocol, drawing helpers and RichSurface
"""

from .colors import (
    ATTR_BLINK,
    ATTR_BOLD,
    ATTR_DIM,
    ATTR_HIDDEN,
    ATTR_INVERSE,
    ATTR_ITALIC,
    ATTR_STRIKETHROUGH,
    ATTR_UNDERLINE,
    resolve_style,
    xterm_index_to_rgb,
)
from .engine import Cell, Cursor, CursorShape, RedrawEngine, Selection, StyleTable
from .router import RedrawRouter
from .surface import PaintSurface, RichSurface, draw_border, draw_text, paint_rect

__all__ = [
    "ATTR_BOLD",
    "ATTR_DIM",
    "ATTR_ITALIC",
    "ATTR_UNDERLINE",
    "ATTR_BLINK",
    "ATTR_INVERSE",
    "ATTR_HIDDEN",
    "ATTR_STRIKETHROUGH",
    "resolve_style",
    "xterm_index_to_rgb",
    "Cell",
    "Cursor",
    "CursorShape",
    "Selection",
    "StyleTable",
    "RedrawEngine",
    "RedrawRouter",
    "PaintSurface",
    "RichSurface",
    "draw_border",
    "draw_text",
    "paint_rect",
]
