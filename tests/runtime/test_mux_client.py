"""MuxClient tests"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from prisemux.api import PriseApi
from prisemux.core.ids import IdAllocator
from prisemux.core.queue import EventKind, EventQueue, InboundEvent
from prisemux.errors import ReconnectExhaustedError, RpcError
from prisemux.input.keybinds import ClosePane, Detach, Focus, NewTab, NextTab, SendInput, Split
from prisemux.input.keys import KeyEvent
from prisemux.layout import state as layout_ops
from prisemux.layout.state import FocusDirection
from prisemux.layout.tree import SplitDirection
from prisemux.redraw.surface import RichSurface
from prisemux.runtime.client import ClientMode, MuxClient
from prisemux.sessions.directory import Session
from prisemux.telemetry import metrics


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics around each test"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def api():
    mock = Mock(spec=PriseApi)
    mock.list_sessions = AsyncMock(return_value=[Session(id=5, name="main"), Session(id=6, name="logs")])
    mock.spawn_pty = AsyncMock(side_effect=[11, 12, 13])
    mock.attach_pty = AsyncMock(return_value=None)
    mock.resize_pty = AsyncMock(return_value=None)
    mock.detach_ptys = AsyncMock(return_value=None)
    mock.close_pty = AsyncMock(return_value=None)
    mock.write_pty = Mock()
    return mock


@pytest.fixture
def inbox():
    return EventQueue()


@pytest.fixture
def client(api, inbox):
    return MuxClient(api, inbox, ids=IdAllocator())


@pytest_asyncio.fixture
async def attached(client):
    """Client attached to PTY 5 at the default 80x24 size"""
    assert await client.attach_session(5)
    client.api.attach_pty.reset_mock()
    client.api.resize_pty.reset_mock()
    return client


class TestAttach:
    """Attaching to an existing session"""

    @pytest.mark.asyncio
    async def test_attach_binds_single_pane(self, client, api):
        assert await client.attach_session(5)

        assert client.mode is ClientMode.TERMINAL
        assert layout_ops.focused_pty_id(client.layout) == 5
        assert 5 in client.router
        assert client.directory.current_session_id == 5
        api.attach_pty.assert_awaited_once_with(5)
        # 80x24 minus tab bar, status line and border
        api.resize_pty.assert_awaited_once_with(5, 20, 78)

    @pytest.mark.asyncio
    async def test_attach_failure_returns_to_picker(self, client, api):
        api.attach_pty.side_effect = RpcError("attach_pty", 1, "no such pty")

        assert not await client.attach_session(5)
        assert client.mode is ClientMode.PICKER
        assert client.layout is None
        assert 5 not in client.router
        assert client.status.startswith("Attach failed")


class TestActions:
    """Actions in terminal mode"""

    @pytest.mark.asyncio
    async def test_send_input_goes_to_focused_pty(self, attached, api):
        await attached.perform(SendInput(b"ls\r"))
        api.write_pty.assert_called_once_with(5, b"ls\r")

    @pytest.mark.asyncio
    async def test_split_spawns_into_new_pane(self, attached, api):
        await attached.perform(Split(SplitDirection.HORIZONTAL))

        # 80 columns: 40 | divider | 39, each minus its border
        api.spawn_pty.assert_awaited_once_with(20, 37)
        api.resize_pty.assert_any_await(5, 20, 38)
        api.attach_pty.assert_awaited_once_with(11)
        assert layout_ops.focused_pty_id(attached.layout) == 11
        assert sorted(attached.router.pty_ids) == [5, 11]

    @pytest.mark.asyncio
    async def test_focus_and_tabs(self, attached):
        await attached.perform(Split(SplitDirection.VERTICAL))
        await attached.perform(Focus(FocusDirection.UP))
        assert layout_ops.focused_pty_id(attached.layout) == 5

        await attached.perform(NewTab())
        assert attached.tab_bar() == "[1] [*2*]"
        assert layout_ops.focused_pty_id(attached.layout) == 12

        await attached.perform(NextTab())
        assert attached.tab_bar() == "[*1*] [2]"

    @pytest.mark.asyncio
    async def test_close_last_pane_is_refused(self, attached, api):
        await attached.perform(ClosePane())
        assert attached.status == "Cannot close the last pane"
        assert attached.layout is not None
        api.close_pty.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_pane_closes_its_pty(self, attached, api):
        await attached.perform(Split(SplitDirection.HORIZONTAL))
        api.resize_pty.reset_mock()

        await attached.perform(ClosePane())

        api.close_pty.assert_awaited_once_with(11)
        assert 11 not in attached.router
        assert layout_ops.focused_pty_id(attached.layout) == 5
        api.resize_pty.assert_awaited_once_with(5, 20, 78)

    @pytest.mark.asyncio
    async def test_spawned_pty_closed_if_pane_vanished(self, attached, api):
        async def spawn_and_lose_pane(rows, cols):
            attached.layout = layout_ops.close_focused(attached.layout)
            return 11

        api.spawn_pty.side_effect = spawn_and_lose_pane
        await attached.perform(Split(SplitDirection.HORIZONTAL))

        api.close_pty.assert_awaited_once_with(11)
        api.attach_pty.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_spawn_failure_is_reported(self, attached, api):
        api.spawn_pty.side_effect = RpcError("spawn_pty", 2, "fork failed")
        await attached.perform(Split(SplitDirection.HORIZONTAL))
        assert attached.status.startswith("Failed to spawn pty")
        assert attached.router.pty_ids == [5]

    @pytest.mark.asyncio
    async def test_detach(self, attached, api):
        await attached.perform(Split(SplitDirection.HORIZONTAL))
        await attached.perform(Detach())

        api.detach_ptys.assert_awaited_once_with([5, 11])
        assert attached.mode is ClientMode.PICKER
        assert attached.layout is None
        assert len(attached.router) == 0
        assert not attached.directory.is_attached()
        api.list_sessions.assert_awaited()


class TestNotifications:
    """Server notifications"""

    @pytest.mark.asyncio
    async def test_redraw_flush_requests_repaint(self, attached):
        attached.repaint_requested = False
        attached.on_notification("redraw", [["write", [5, 0, 0, [["x"]]]], ["flush", [5]]])
        assert attached.repaint_requested
        assert attached.router.get(5).row_text(0).startswith("x")

    @pytest.mark.asyncio
    async def test_redraw_for_unknown_pty(self, attached):
        attached.repaint_requested = False
        attached.on_notification("redraw", [["flush", [99]]])
        assert not attached.repaint_requested
        assert metrics.get_counter("redraw.skew", {"event": "flush"}) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [5, [5]])
    async def test_pty_closed(self, attached, params):
        attached.on_notification("pty_closed", params)
        assert 5 not in attached.router
        assert layout_ops.focused_pty_id(attached.layout) is None
        assert not attached.directory.is_attached()

    @pytest.mark.asyncio
    async def test_input_to_closed_pane_is_dropped(self, attached, api):
        attached.on_pty_closed(5)
        await attached.perform(SendInput(b"x"))
        api.write_pty.assert_not_called()


class TestLifecycleEvents:
    """Connection lifecycle and the event loop"""

    @pytest.mark.asyncio
    async def test_reconnect_reattaches_bound_panes(self, attached, api):
        attached.router.styles.set(1, {"bold": True})

        await attached.process_event(InboundEvent(EventKind.RECONNECTED))

        assert len(attached.router.styles) == 0
        api.attach_pty.assert_awaited_once_with(5)
        api.resize_pty.assert_awaited_once_with(5, 20, 78)

    @pytest.mark.asyncio
    async def test_reconnect_in_picker_refreshes_sessions(self, client, api):
        await client.process_event(InboundEvent(EventKind.RECONNECTED))
        api.list_sessions.assert_awaited_once()
        assert len(client.directory) == 2

    @pytest.mark.asyncio
    async def test_disconnect_sets_status(self, client):
        await client.process_event(InboundEvent(EventKind.DISCONNECTED))
        assert client.status.startswith("Disconnected")

    @pytest.mark.asyncio
    async def test_connection_failed_ends_run(self, client, inbox):
        error = ReconnectExhaustedError("/tmp/x.sock", 5)
        inbox.put(InboundEvent(EventKind.CONNECTION_FAILED, error=error))

        assert await asyncio.wait_for(client.run(), timeout=1) is error
        assert not client.running
        assert client.status.startswith("Connection lost")

    @pytest.mark.asyncio
    async def test_stop_wakes_idle_loop(self, client):
        run_task = asyncio.create_task(client.run())
        await asyncio.sleep(0)
        assert client.running

        client.stop()

        assert await asyncio.wait_for(run_task, timeout=1) is None
        assert not client.running

    @pytest.mark.asyncio
    async def test_stale_stop_does_not_end_next_run(self, client, inbox):
        client.stop()
        error = ReconnectExhaustedError("/tmp/x.sock", 5)
        inbox.put(InboundEvent(EventKind.CONNECTION_FAILED, error=error))

        assert await asyncio.wait_for(client.run(), timeout=1) is error

    @pytest.mark.asyncio
    async def test_resize_event_resizes_ptys(self, attached, api):
        attached.post_resize(100, 30)
        await attached.process_event(attached.inbox.get_nowait())
        assert (attached.width, attached.height) == (100, 30)
        api.resize_pty.assert_awaited_once_with(5, 26, 98)

    @pytest.mark.asyncio
    async def test_same_size_does_not_resize(self, attached, api):
        await attached.sync_geometry(80, 24)
        api.resize_pty.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pane_without_interior_is_not_resized(self, attached, api):
        await attached.sync_geometry(80, 3)

        assert attached.pane_interior(layout_ops.focused_pane_id(attached.layout)) is None
        api.resize_pty.assert_not_awaited()
        engine = attached.router.get(5)
        assert (engine.rows, engine.cols) == (20, 78)

    def test_pane_size_falls_back_to_default(self, attached):
        attached.height = 3
        assert attached.pane_size(layout_ops.focused_pane_id(attached.layout)) == (24, 80)

    @pytest.mark.asyncio
    async def test_terminal_keys_go_through_prefix(self, attached, api):
        attached.post_key(KeyEvent("b", ctrl=True))
        attached.post_key(KeyEvent("%"))
        attached.post_key(KeyEvent("a"))
        for event in attached.inbox.drain():
            await attached.process_event(event)

        api.spawn_pty.assert_awaited_once()
        api.write_pty.assert_called_once_with(11, b"a")


class TestPicker:
    """Picker mode keys"""

    @pytest.mark.asyncio
    async def test_filter_and_enter_attaches(self, client, api):
        await client.refresh_sessions()
        for char in "log":
            await client.handle_key(KeyEvent(char))
        await client.handle_key(KeyEvent("enter"))

        assert client.mode is ClientMode.TERMINAL
        api.attach_pty.assert_awaited_once_with(6)

    @pytest.mark.asyncio
    async def test_navigation(self, client):
        await client.refresh_sessions()
        await client.handle_key(KeyEvent("down"))
        assert client.picker.selected().id == 6
        await client.handle_key(KeyEvent("up"))
        assert client.picker.selected().id == 5

    @pytest.mark.asyncio
    async def test_ctrl_c_quits(self, client, inbox):
        client.post_key(KeyEvent("c", ctrl=True))
        assert await asyncio.wait_for(client.run(), timeout=1) is None

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_roster(self, client, api):
        await client.refresh_sessions()
        api.list_sessions.side_effect = asyncio.TimeoutError()
        await client.refresh_sessions()
        assert len(client.directory) == 2
        assert client.status.startswith("Timed out")


class TestPaint:
    """Painting onto a surface"""

    @pytest.mark.asyncio
    async def test_terminal_screen(self, attached):
        attached.set_status("ok")
        attached.on_notification("redraw", [["write", [5, 0, 0, [["h"], ["i"]]]], ["flush", [5]]])
        surface = RichSurface(40, 10)

        attached.paint(surface, 40, 10)

        assert surface.line(0).startswith("[*1*]")
        assert surface.line(1).startswith("┌")
        assert surface.line(2)[1:3] == "hi"
        assert "PTYS 1" in surface.line(9)
        assert not attached.repaint_requested
        assert not attached.router.get(5).dirty

    @pytest.mark.asyncio
    async def test_incremental_paint(self, attached):
        surface = RichSurface(80, 24)
        attached.paint(surface)
        surface.clear()

        attached.on_notification("redraw", [["write", [5, 3, 4, [["z"]]]], ["flush", [5]]])
        attached.paint(surface)

        assert surface.glyph_at(5, 5) == "z"
        # tab bar and status line are redrawn every time, plus one cell
        assert surface.writes == 80 + 80 + 1

    @pytest.mark.asyncio
    async def test_split_draws_divider(self, attached):
        await attached.perform(Split(SplitDirection.HORIZONTAL))
        surface = RichSurface(80, 24)
        attached.paint(surface)
        assert surface.glyph_at(40, 5) == "│"

    @pytest.mark.asyncio
    async def test_picker_screen(self, client):
        await client.refresh_sessions()
        surface = RichSurface(60, 20)
        client.paint(surface, 60, 20)
        assert surface.line(1).startswith("Filter: (empty)")
        assert surface.line(3).startswith("▶ main")
        assert "Select session" in surface.line(19)
