"""RedrawEngine - local replica of one attached PTY's screen

State is built only from the server's semantic redraw events:
resize, write, cursor_pos, cursor_shape, title, selection. Styles live in a
StyleTable shared by every engine of one connection.

Dirty tracking:
- every cell mutation (and both cursor positions on a move) is recorded
- resize sets `full_repaint`
- nothing is cleared until the consumer calls clear_dirty() after painting
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config import DEFAULT_COLS, DEFAULT_ROWS
from ..layout.geometry import Rect
from ..rpc.accessors import WriteCell
from ..telemetry import format_pty_log, get_logger
from .colors import ATTR_UNDERLINE, RGB, resolve_style

if TYPE_CHECKING:
    from .surface import PaintSurface

logger = get_logger(__name__)


class StyleTable:
    """Server-issued style id -> attributes, scoped to one connection."""

    def __init__(self):
        self._styles: dict[int, dict[str, Any]] = {}
        self._resolved: dict[int, tuple[RGB, RGB, int]] = {}

    def set(self, style_id: int, attrs: dict[str, Any]) -> None:
        """Insert or overwrite one style."""
        self._styles[style_id] = attrs
        self._resolved.pop(style_id, None)

    def get(self, style_id: int | None) -> dict[str, Any] | None:
        if style_id is None:
            return None
        return self._styles.get(style_id)

    def resolve(self, style_id: int | None) -> tuple[RGB, RGB, int]:
        """(fg, bg, attrs); unknown ids resolve to the defaults."""
        if style_id is None:
            return resolve_style(None)
        cached = self._resolved.get(style_id)
        if cached is None:
            cached = resolve_style(self._styles.get(style_id))
            if style_id in self._styles:
                self._resolved[style_id] = cached
        return cached

    def clear(self) -> None:
        self._styles.clear()
        self._resolved.clear()

    def __len__(self) -> int:
        return len(self._styles)

    def __contains__(self, style_id: int) -> bool:
        return style_id in self._styles


@dataclass(frozen=True)
class Cell:
    grapheme: str = " "
    style_id: int | None = None


BLANK = Cell()


class CursorShape(Enum):
    BLOCK = "block"
    BEAM = "beam"
    UNDERLINE = "underline"

    @classmethod
    def from_wire(cls, value: int) -> "CursorShape":
        """0 block, 1 beam, 2 underline; anything else is a block."""
        shapes = (cls.BLOCK, cls.BEAM, cls.UNDERLINE)
        return shapes[value] if 0 <= value < len(shapes) else cls.BLOCK


@dataclass
class Cursor:
    row: int = 0
    col: int = 0
    visible: bool = False
    shape: CursorShape = CursorShape.BLOCK


@dataclass(frozen=True)
class Selection:
    start_row: int | None = None
    start_col: int | None = None
    end_row: int | None = None
    end_col: int | None = None

    @property
    def is_empty(self) -> bool:
        return None in (self.start_row, self.start_col, self.end_row, self.end_col)


@dataclass
class EngineState:
    """Read-only summary for status bars and debugging."""

    rows: int
    cols: int
    cursor: Cursor
    title: str
    selection: Selection
    style_count: int
    dirty_count: int = 0
    full_repaint: bool = False


class RedrawEngine:
    """Grid, cursor, title and selection of one PTY."""

    def __init__(
        self,
        rows: int = DEFAULT_ROWS,
        cols: int = DEFAULT_COLS,
        styles: StyleTable | None = None,
        pty_id: int | None = None,
    ):
        self.pty_id = pty_id
        self.styles = styles if styles is not None else StyleTable()
        self._rows = max(0, rows)
        self._cols = max(0, cols)
        self._grid = self._blank_grid()
        self.cursor = Cursor()
        self.selection = Selection()
        self.title = ""
        self.dirty: set[tuple[int, int]] = set()
        self.full_repaint = True

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    def _blank_grid(self) -> list[list[Cell]]:
        return [[BLANK] * self._cols for _ in range(self._rows)]

    # === Events ===

    def resize(self, rows: int, cols: int) -> None:
        """Reallocate a blank grid; no-op when the size is unchanged."""
        if rows < 0 or cols < 0:
            return
        if rows == self._rows and cols == self._cols:
            return
        logger.debug(format_pty_log("Redraw", self.pty_id, f"resize {self._rows}x{self._cols} -> {rows}x{cols}"))
        self._rows = rows
        self._cols = cols
        self._grid = self._blank_grid()
        self.dirty.clear()
        self.full_repaint = True

    def write(self, row: int, col: int, cells: list[WriteCell]) -> None:
        """Apply cells left to right from (row, col).

        A missing style id reuses the last explicit one of this call. A
        width-2 cell also writes a blank continuation with the same style,
        unless it sits on the last column. Nothing wraps: cells past the end
        of the row are dropped.
        """
        if row < 0 or row >= self._rows or col < 0:
            return

        line = self._grid[row]
        current_style: int | None = None
        c = col

        for cell in cells:
            if c >= self._cols:
                break
            if cell.style_id is not None:
                current_style = cell.style_id

            repeat = cell.repeat if cell.repeat is not None else 1
            wide = cell.width == 2
            for _ in range(repeat):
                if c >= self._cols:
                    break
                line[c] = Cell(cell.grapheme, current_style)
                self.dirty.add((row, c))
                if wide and c + 1 < self._cols:
                    line[c + 1] = Cell(" ", current_style)
                    self.dirty.add((row, c + 1))
                    c += 2
                else:
                    c += 1

    def cursor_pos(self, row: int, col: int, visible: bool) -> None:
        self.dirty.add((self.cursor.row, self.cursor.col))
        self.cursor.row = row
        self.cursor.col = col
        self.cursor.visible = visible
        self.dirty.add((row, col))

    def cursor_shape(self, shape: int) -> None:
        self.cursor.shape = CursorShape.from_wire(shape)
        self.dirty.add((self.cursor.row, self.cursor.col))

    def set_title(self, text: str) -> None:
        self.title = text

    def set_selection(
        self,
        start_row: int | None,
        start_col: int | None,
        end_row: int | None,
        end_col: int | None,
    ) -> None:
        self.selection = Selection(start_row, start_col, end_row, end_col)

    # === Painting ===

    def clear_dirty(self) -> None:
        """Called by the consumer once a paint has completed."""
        self.dirty.clear()
        self.full_repaint = False

    def cell_at(self, row: int, col: int) -> Cell | None:
        if 0 <= row < self._rows and 0 <= col < self._cols:
            return self._grid[row][col]
        return None

    def resolve_cell(self, row: int, col: int, focused: bool) -> tuple[str, RGB, RGB, int]:
        """(glyph, fg, bg, attrs) for one cell including the cursor overlay."""
        cell = self._grid[row][col]
        glyph = cell.grapheme or " "
        fg, bg, attrs = self.styles.resolve(cell.style_id)

        cursor = self.cursor
        if focused and cursor.visible and cursor.row == row and cursor.col == col:
            if cursor.shape is CursorShape.BLOCK:
                fg, bg = bg, fg
            else:
                attrs |= ATTR_UNDERLINE
        return glyph, fg, bg, attrs

    def paint(self, surface: "PaintSurface", rect: Rect, focused: bool, full: bool = False) -> int:
        """Write cells into `rect` of the surface.

        Only dirty cells are written unless `full` is set or a resize is
        pending. Cells outside the rect are clipped.

        Returns:
            number of cells written
        """
        max_rows = min(rect.height, self._rows)
        max_cols = min(rect.width, self._cols)
        if max_rows <= 0 or max_cols <= 0:
            return 0

        if full or self.full_repaint:
            positions = [(r, c) for r in range(max_rows) for c in range(max_cols)]
        else:
            positions = sorted(
                (r, c) for r, c in self.dirty if 0 <= r < max_rows and 0 <= c < max_cols
            )

        for row, col in positions:
            glyph, fg, bg, attrs = self.resolve_cell(row, col, focused)
            surface.set_cell(rect.x + col, rect.y + row, glyph, fg, bg, attrs)
        return len(positions)

    # === Snapshots ===

    def row_text(self, row: int) -> str:
        if not 0 <= row < self._rows:
            return ""
        return "".join(cell.grapheme or " " for cell in self._grid[row])

    def snapshot(self) -> list[str]:
        """Plain text of every row."""
        return [self.row_text(r) for r in range(self._rows)]

    def get_state(self) -> EngineState:
        return EngineState(
            rows=self._rows,
            cols=self._cols,
            cursor=self.cursor,
            title=self.title,
            selection=self.selection,
            style_count=len(self.styles),
            dirty_count=len(self.dirty),
            full_repaint=self.full_repaint,
        )
