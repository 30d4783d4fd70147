"""MuxClient - the single consumer of the inbound event queue

Owns the layout state, the redraw router, the key interpreter and the
session directory. Everything that mutates them runs inside process_event,
one event at a time; awaits happen only on RPC round trips.

Modes:
- PICKER: session list with a filter; Enter attaches
- TERMINAL: tabs of split panes, each bound to a PTY

Screen layout in TERMINAL mode: tab bar (row 0), panes, status line (last row).
"""

import asyncio
from collections.abc import Awaitable
from enum import Enum
from typing import Any, TypeVar

from ..api import PriseApi
from ..config import DEFAULT_COLS, DEFAULT_ROWS
from ..core.ids import IdAllocator, PaneId
from ..core.queue import EventKind, EventQueue, InboundEvent
from ..errors import PriseError
from ..input.keybinds import (
    Action,
    ClosePane,
    Detach,
    Focus,
    KeyEventInterpreter,
    NewTab,
    NextTab,
    PrevTab,
    SendInput,
    Split,
)
from ..input.keys import KeyEvent
from ..layout import state as layout_ops
from ..layout import tree
from ..layout.geometry import Rect, inner_rect
from ..layout.state import LayoutState
from ..redraw.router import RedrawRouter
from ..redraw.surface import PaintSurface, draw_border, draw_text, paint_rect
from ..rpc.accessors import arg, as_int, as_list
from ..sessions.directory import SessionDirectory
from ..sessions.picker import SessionPicker
from ..telemetry import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

BAR_FG = (0, 0, 0)
BAR_BG = (220, 220, 220)
DIVIDER_FG = (90, 90, 90)
BORDER_FG = (180, 180, 180)
BACKGROUND = (0, 0, 0)


class ClientMode(Enum):
    PICKER = "picker"
    TERMINAL = "terminal"


class MuxClient:
    """Maps events and actions onto layout mutations and server calls."""

    def __init__(
        self,
        api: PriseApi,
        inbox: EventQueue,
        router: RedrawRouter | None = None,
        interpreter: KeyEventInterpreter | None = None,
        directory: SessionDirectory | None = None,
        ids: IdAllocator | None = None,
    ):
        self.api = api
        self.inbox = inbox
        self.router = router or RedrawRouter()
        self.interpreter = interpreter or KeyEventInterpreter()
        self.directory = directory or SessionDirectory()
        self.picker = SessionPicker(self.directory)
        self.ids = ids or IdAllocator()

        self.mode = ClientMode.PICKER
        self.layout: LayoutState | None = None
        self.status = "Connecting..."
        self.width = DEFAULT_COLS
        self.height = DEFAULT_ROWS

        self.repaint_requested = False
        self.full_repaint = True
        self.exit_error: BaseException | None = None
        self._running = False

    # === Event loop ===

    async def run(self) -> BaseException | None:
        """Consume the inbox until stop() or a terminal connection failure.

        Returns:
            the failure that ended the session, or None after stop()
        """
        self._running = True
        logger.info("[Client] Event loop started")
        while self._running:
            event = await self.inbox.get()
            if event.kind is EventKind.STOP:
                continue
            await self.process_event(event)
        logger.info("[Client] Event loop stopped")
        return self.exit_error

    def stop(self) -> None:
        """Stop the loop; the STOP event wakes a consumer blocked in get()."""
        self._running = False
        self.inbox.put(InboundEvent.stop_request())

    @property
    def running(self) -> bool:
        return self._running

    def post_key(self, event: KeyEvent) -> None:
        self.inbox.put(InboundEvent.key_press(event))

    def post_resize(self, width: int, height: int) -> None:
        self.inbox.put(InboundEvent.terminal_resize(width, height))

    async def process_event(self, event: InboundEvent) -> None:
        if event.kind is EventKind.NOTIFICATION:
            self.on_notification(event.method, event.params)
        elif event.kind is EventKind.KEY:
            await self.handle_key(event.params)
        elif event.kind is EventKind.RESIZE:
            width, height = event.params
            await self.sync_geometry(width, height)
        elif event.kind is EventKind.DISCONNECTED:
            self.set_status("Disconnected, reconnecting...")
        elif event.kind is EventKind.RECONNECTED:
            await self.on_reconnected()
        elif event.kind is EventKind.CONNECTION_FAILED:
            self.exit_error = event.error
            self.set_status(f"Connection lost: {event.error}")
            logger.error(f"[Client] Giving up: {event.error}")
            self.stop()

    # === Notifications ===

    def on_notification(self, method: str, params: Any) -> None:
        if method == "redraw":
            self.on_redraw(params)
        elif method == "pty_closed":
            pty_id = as_int(params)
            if pty_id is None:
                pty_id = as_int(arg(as_list(params) or [], 0))
            if pty_id is not None:
                self.on_pty_closed(pty_id)
        else:
            logger.debug(f"[Client] Unhandled notification {method!r}")

    def on_redraw(self, params: Any) -> set[int]:
        flushed = self.router.apply(params)
        if flushed:
            self.repaint_requested = True
        return flushed

    def on_pty_closed(self, pty_id: int) -> None:
        logger.info(f"[Client] PTY {pty_id} closed")
        self.router.handle_pty_closed(pty_id)
        if self.layout is not None:
            self.layout = layout_ops.clear_pty(self.layout, pty_id)
        if self.directory.current_session_id == pty_id:
            self.directory.set_current(None)
        self.request_repaint(full=True)

    async def on_reconnected(self) -> None:
        """Styles and attachments do not survive a reconnect; redo both."""
        self.router.reset_styles()
        self.set_status("Reconnected")
        if self.layout is None:
            await self.refresh_sessions()
            return

        for pane_id, pty_id in list(layout_ops.iter_bound_panes(self.layout)):
            await self._guard(f"re-attach pty {pty_id}", self._attach(pane_id, pty_id))
        self.request_repaint(full=True)

    # === Sessions ===

    async def refresh_sessions(self) -> None:
        sessions = await self._guard("list sessions", self.api.list_sessions())
        if sessions is not None:
            self.directory.update(sessions)
            self.request_repaint(full=True)

    async def attach_session(self, pty_id: int) -> bool:
        """Open a fresh single-pane layout showing an existing PTY."""
        self.set_status(f"Attaching to PTY {pty_id}...")
        layout = layout_ops.init_layout(self.ids)
        self.layout = layout_ops.assign_pty_to_focused(layout, pty_id)
        self.mode = ClientMode.TERMINAL

        pane_id = layout_ops.focused_pane_id(self.layout)
        try:
            await self._attach(pane_id, pty_id)
        except PriseError as e:
            logger.warning(f"[Client] Attach to pty {pty_id} failed: {e}")
            self.router.discard(pty_id)
            self.layout = None
            self.mode = ClientMode.PICKER
            self.set_status(f"Attach failed: {e}")
            return False

        self.directory.set_current(pty_id)
        self.set_status(f"Attached to PTY {pty_id}. Ctrl+b for commands.")
        self.request_repaint(full=True)
        return True

    async def detach(self) -> None:
        """Detach every PTY and go back to the picker."""
        pty_ids = sorted(self.router.pty_ids)
        if pty_ids:
            await self._guard("detach", self.api.detach_ptys(pty_ids))
        for pty_id in pty_ids:
            self.router.discard(pty_id)

        self.layout = None
        self.mode = ClientMode.PICKER
        self.directory.set_current(None)
        self.set_status("Detached")
        await self.refresh_sessions()

    # === Keys and actions ===

    async def handle_key(self, event: KeyEvent) -> None:
        if self.mode is ClientMode.PICKER:
            await self.handle_picker_key(event)
            return
        await self.perform(self.interpreter.handle_key_event(event))

    async def handle_picker_key(self, event: KeyEvent) -> None:
        key = event.lower
        if event.ctrl and key == "c":
            self.stop()
        elif key == "up":
            self.picker.select_up()
        elif key == "down":
            self.picker.select_down()
        elif key == "home":
            self.picker.select_first()
        elif key == "end":
            self.picker.select_last()
        elif key == "backspace":
            self.picker.backspace()
        elif key == "escape":
            self.picker.clear_query()
        elif key in ("enter", "return"):
            selected = self.picker.selected()
            if selected is not None:
                await self.attach_session(selected.id)
        elif len(event.key) == 1 and event.key.isprintable() and not (event.ctrl or event.alt or event.meta):
            self.picker.add_char(event.key)
        else:
            return
        self.request_repaint(full=True)

    async def perform(self, action: Action) -> None:
        """Apply one interpreted action."""
        if self.layout is None:
            return

        if isinstance(action, SendInput):
            pty_id = layout_ops.focused_pty_id(self.layout)
            if pty_id is not None:
                self.api.write_pty(pty_id, action.data)

        elif isinstance(action, Focus):
            self._set_layout(layout_ops.focus_next(self.layout, action.direction))

        elif isinstance(action, NextTab):
            self._set_layout(layout_ops.cycle_tab(self.layout, 1))

        elif isinstance(action, PrevTab):
            self._set_layout(layout_ops.cycle_tab(self.layout, -1))

        elif isinstance(action, Split):
            self._set_layout(layout_ops.split_focused(self.layout, action.direction, self.ids))
            await self._resize_bound_panes()
            await self.spawn_and_attach(layout_ops.focused_pane_id(self.layout))

        elif isinstance(action, NewTab):
            self._set_layout(layout_ops.add_tab(self.layout, self.ids))
            await self.spawn_and_attach(layout_ops.focused_pane_id(self.layout))

        elif isinstance(action, ClosePane):
            await self.close_focused_pane()

        elif isinstance(action, Detach):
            await self.detach()

    async def close_focused_pane(self) -> None:
        if self.layout is None:
            return
        pty_id = layout_ops.focused_pty_id(self.layout)
        closed = layout_ops.close_focused(self.layout)
        if closed is self.layout:
            self.set_status("Cannot close the last pane")
            return

        self._set_layout(closed)
        if pty_id is not None:
            self.router.discard(pty_id)
            await self._guard(f"close pty {pty_id}", self.api.close_pty(pty_id))
        await self._resize_bound_panes()

    async def spawn_and_attach(self, pane_id: PaneId | None) -> int | None:
        """Give an empty pane a new PTY.

        Returns:
            the new PTY id, or None if nothing was spawned
        """
        if self.layout is None or pane_id is None:
            return None
        pane = self._find_pane(pane_id)
        if pane is None or pane.pty_id is not None:
            return None

        rows, cols = self.pane_size(pane_id)
        pty_id = await self._guard("spawn pty", self.api.spawn_pty(rows, cols))
        if pty_id is None:
            return None

        if self.layout is None or self._find_pane(pane_id) is None:
            # The pane went away while the spawn was in flight
            await self._guard(f"close pty {pty_id}", self.api.close_pty(pty_id))
            return None

        self.layout = layout_ops.assign_pty(self.layout, pane_id, pty_id)
        await self._guard(f"attach pty {pty_id}", self._attach(pane_id, pty_id))
        self.request_repaint(full=True)
        return pty_id

    async def _attach(self, pane_id: PaneId, pty_id: int) -> None:
        size = self.pane_interior(pane_id)
        if size is not None:
            self.router.ensure(pty_id, *size)
        elif pty_id not in self.router:
            self.router.ensure(pty_id)
        await self.api.attach_pty(pty_id)
        if size is not None:
            await self.api.resize_pty(pty_id, *size)

    # === Geometry ===

    def content_rect(self) -> Rect:
        if self.mode is ClientMode.TERMINAL:
            return Rect(0, 1, self.width, max(1, self.height - 2))
        return Rect(0, 0, self.width, max(1, self.height - 1))

    def pane_interior(self, pane_id: PaneId) -> tuple[int, int] | None:
        """(rows, cols) of a pane's interior, or None when it has no room inside its border."""
        if self.layout is None:
            return None
        for tab in self.layout.tabs:
            outer = tree.rect_for(tab.root, pane_id, self.content_rect())
            if outer is None:
                continue
            inner = inner_rect(outer)
            if inner is None:
                return None
            return max(1, inner.height), max(1, inner.width)
        return None

    def pane_size(self, pane_id: PaneId) -> tuple[int, int]:
        """pane_interior(), falling back to the default terminal size."""
        return self.pane_interior(pane_id) or (DEFAULT_ROWS, DEFAULT_COLS)

    async def sync_geometry(self, width: int, height: int) -> None:
        """Adopt a new terminal size and resize every attached PTY."""
        if width <= 0 or height <= 0:
            return
        self.width = width
        self.height = height
        await self._resize_bound_panes()
        self.request_repaint(full=True)

    async def _resize_bound_panes(self) -> None:
        if self.layout is None:
            return
        for pane_id, pty_id in list(layout_ops.iter_bound_panes(self.layout)):
            size = self.pane_interior(pane_id)
            if size is None:
                continue
            rows, cols = size
            engine = self.router.get(pty_id)
            if engine is not None:
                if engine.rows == rows and engine.cols == cols:
                    continue
                engine.resize(rows, cols)
            await self._guard(f"resize pty {pty_id}", self.api.resize_pty(pty_id, rows, cols))

    # === Painting ===

    def request_repaint(self, full: bool = False) -> None:
        self.repaint_requested = True
        if full:
            self.full_repaint = True

    def tab_bar(self) -> str:
        if self.layout is None:
            return "(no tabs)"
        return " ".join(
            f"[*{i + 1}*]" if tab.id == self.layout.active_tab_id else f"[{i + 1}]"
            for i, tab in enumerate(self.layout.tabs)
        )

    def status_line(self) -> str:
        prefix = f"{self.status} | " if self.status else ""
        if self.mode is ClientMode.PICKER:
            return prefix + "Select session (Enter attach, Ctrl+C quit)"
        focused = layout_ops.focused_pty_id(self.layout) if self.layout else None
        focus_hint = f" | focused pty {focused}" if focused is not None else ""
        return f"{prefix}PTYS {len(self.router)}{focus_hint} (Ctrl+b prefix)"

    def paint(self, surface: PaintSurface, width: int | None = None, height: int | None = None) -> None:
        """Draw the whole screen and acknowledge every engine's dirty set."""
        if width is not None:
            self.width = width
        if height is not None:
            self.height = height
        full = self.full_repaint

        if self.mode is ClientMode.TERMINAL and self.layout is not None:
            draw_text(surface, 0, 0, self.tab_bar().ljust(self.width), self.width, BAR_FG, BAR_BG)
            self._paint_panes(surface, full)
        else:
            self._paint_picker(surface)

        draw_text(surface, 0, self.height - 1, self.status_line().ljust(self.width), self.width, BAR_FG, BAR_BG)
        self.repaint_requested = False
        self.full_repaint = False

    def _paint_panes(self, surface: PaintSurface, full: bool) -> None:
        tab = layout_ops.get_active_tab(self.layout)
        if tab is None:
            return
        bounds = self.content_rect()

        if full:
            paint_rect(surface, bounds, BACKGROUND)
            for divider in tree.dividers(tab.root, bounds):
                horizontal_line = divider.direction is tree.SplitDirection.VERTICAL
                for offset in range(divider.length):
                    if horizontal_line:
                        surface.set_cell(divider.x + offset, divider.y, "─", DIVIDER_FG, BACKGROUND, 0)
                    else:
                        surface.set_cell(divider.x, divider.y + offset, "│", DIVIDER_FG, BACKGROUND, 0)

        for pane_id, rect in tree.all_rects(tab.root, bounds).items():
            focused = pane_id == tab.focused_pane_id
            if full:
                draw_border(surface, rect, focused, BORDER_FG, BACKGROUND)
            inner = inner_rect(rect)
            pane = tree.find_pane(tab.root, pane_id)
            engine = self.router.get(pane.pty_id if pane else None)
            if inner is None or engine is None:
                continue
            engine.paint(surface, inner, focused, full=full)
            engine.clear_dirty()

    def _paint_picker(self, surface: PaintSurface) -> None:
        area = self.content_rect()
        paint_rect(surface, area, BACKGROUND)
        for offset, line in enumerate(self.picker.render()[: area.height]):
            draw_text(surface, area.x, area.y + offset, line, area.width)

    # === Helpers ===

    def set_status(self, text: str) -> None:
        self.status = text
        self.repaint_requested = True

    def _set_layout(self, layout: LayoutState) -> None:
        if layout is not self.layout:
            self.layout = layout
            self.request_repaint(full=True)

    def _find_pane(self, pane_id: PaneId) -> tree.PaneNode | None:
        if self.layout is None:
            return None
        for tab in self.layout.tabs:
            pane = tree.find_pane(tab.root, pane_id)
            if pane is not None:
                return pane
        return None

    async def _guard(self, what: str, call: Awaitable[T]) -> T | None:
        """Await a server call; failures are logged and shown, not raised."""
        try:
            return await call
        except PriseError as e:
            logger.warning(f"[Client] Failed to {what}: {e}")
            self.set_status(f"Failed to {what}: {e}")
        except asyncio.TimeoutError as e:
            logger.warning(f"[Client] Timed out trying to {what}: {e}")
            self.set_status(f"Timed out trying to {what}")
        return None
