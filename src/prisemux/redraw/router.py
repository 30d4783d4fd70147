"""RedrawRouter - routes `redraw` notifications to per-PTY engines

Notification params are a list of [event_name, args] pairs. `style`
updates the shared StyleTable; every other event carries the PTY id as
args[0] and is applied to that PTY's engine. Events for PTYs without an
engine (e.g. right after a close) are skipped and counted as redraw.skew.

Malformed events are skipped one at a time; the rest of the batch is
still applied.
"""

from typing import Any

from ..config import DEFAULT_COLS, DEFAULT_ROWS, METRICS_ENABLED
from ..rpc.accessors import arg, as_bool, as_int, as_list, as_str, parse_style_attrs, parse_write_cells
from ..telemetry import format_pty_log, get_logger, metrics
from .engine import RedrawEngine, StyleTable

logger = get_logger(__name__)

KNOWN_EVENTS = frozenset(
    {"resize", "write", "style", "cursor_pos", "cursor_shape", "title", "selection", "flush"}
)


def _unwrap_events(params: Any) -> list:
    """Accept both [[name, args], ...] and [[[name, args], ...]]."""
    events = as_list(params)
    if events is None:
        return []
    if len(events) == 1:
        inner = as_list(events[0])
        if inner is not None and (not inner or as_list(inner[0]) is not None):
            return inner
    return events


class RedrawRouter:
    """Owns every RedrawEngine of one connection plus their StyleTable."""

    def __init__(self, styles: StyleTable | None = None):
        self.styles = styles if styles is not None else StyleTable()
        self._engines: dict[int, RedrawEngine] = {}

    # === Engine lifecycle ===

    def ensure(self, pty_id: int, rows: int = DEFAULT_ROWS, cols: int = DEFAULT_COLS) -> RedrawEngine:
        """Engine for a PTY, created on first use and resized otherwise."""
        engine = self._engines.get(pty_id)
        if engine is None:
            engine = RedrawEngine(rows, cols, self.styles, pty_id=pty_id)
            self._engines[pty_id] = engine
            logger.debug(format_pty_log("Redraw", pty_id, f"engine created {rows}x{cols}"))
        else:
            engine.resize(rows, cols)
        return engine

    def get(self, pty_id: int | None) -> RedrawEngine | None:
        if pty_id is None:
            return None
        return self._engines.get(pty_id)

    def discard(self, pty_id: int) -> bool:
        engine = self._engines.pop(pty_id, None)
        if engine is not None:
            logger.debug(format_pty_log("Redraw", pty_id, "engine discarded"))
        return engine is not None

    def handle_pty_closed(self, pty_id: int) -> None:
        if self.discard(pty_id):
            logger.info(format_pty_log("Redraw", pty_id, "pty closed"))

    def reset_styles(self) -> None:
        """Forget every style (the server re-sends them after a reconnect)."""
        self.styles.clear()
        for engine in self._engines.values():
            engine.full_repaint = True

    def clear(self) -> None:
        self._engines.clear()
        self.styles.clear()

    @property
    def pty_ids(self) -> list[int]:
        return list(self._engines)

    def __contains__(self, pty_id: int) -> bool:
        return pty_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    # === Event application ===

    def apply(self, params: Any) -> set[int]:
        """Apply one redraw batch.

        Returns:
            PTY ids whose frame is ready (flushed); a flush without a PTY id
            flushes every engine
        """
        flushed: set[int] = set()

        for event in _unwrap_events(params):
            pair = as_list(event)
            if pair is None or len(pair) != 2:
                continue
            name = as_str(pair[0])
            args = as_list(pair[1])
            if name is None or args is None:
                continue
            self._apply_event(name, args, flushed)

        return flushed

    def _apply_event(self, name: str, args: list, flushed: set[int]) -> None:
        if name == "style":
            style_id = as_int(arg(args, 0))
            if style_id is not None:
                self.styles.set(style_id, parse_style_attrs(arg(args, 1)))
            return

        if name == "flush":
            pty_id = as_int(arg(args, 0))
            if pty_id is None:
                flushed.update(self._engines)
            elif pty_id in self._engines:
                flushed.add(pty_id)
            else:
                self._skew(name, pty_id)
            return

        if name not in KNOWN_EVENTS:
            logger.debug(f"[Redraw] Ignoring unknown event {name!r}")
            return

        pty_id = as_int(arg(args, 0))
        if pty_id is None:
            return
        engine = self._engines.get(pty_id)
        if engine is None:
            self._skew(name, pty_id)
            return

        if name == "resize":
            rows, cols = as_int(arg(args, 1)), as_int(arg(args, 2))
            if rows is not None and cols is not None:
                engine.resize(rows, cols)

        elif name == "write":
            row, col = as_int(arg(args, 1)), as_int(arg(args, 2))
            if row is not None and col is not None:
                engine.write(row, col, parse_write_cells(arg(args, 3)))

        elif name == "cursor_pos":
            row, col = as_int(arg(args, 1)), as_int(arg(args, 2))
            if row is not None and col is not None:
                engine.cursor_pos(row, col, as_bool(arg(args, 3)))

        elif name == "cursor_shape":
            shape = as_int(arg(args, 1))
            if shape is not None:
                engine.cursor_shape(shape)

        elif name == "title":
            title = as_str(arg(args, 1))
            if title is not None:
                engine.set_title(title)

        elif name == "selection":
            engine.set_selection(
                as_int(arg(args, 1)),
                as_int(arg(args, 2)),
                as_int(arg(args, 3)),
                as_int(arg(args, 4)),
            )

    def _skew(self, name: str, pty_id: int) -> None:
        logger.debug(format_pty_log("Redraw", pty_id, f"no engine for {name}, skipped"))
        if METRICS_ENABLED:
            metrics.inc("redraw.skew", {"event": name})
