"""RpcClient tests"""

import asyncio
from unittest.mock import Mock

import msgpack
import pytest

from prisemux.core.queue import EventKind, EventQueue
from prisemux.errors import ConnectionLostError, RpcError, RpcTimeoutError
from prisemux.rpc.client import RpcClient
from prisemux.rpc.codec import RpcCodec
from prisemux.telemetry import metrics

codec = RpcCodec()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics around each test"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def sent():
    """Frames written to the fake transport, decoded"""
    return []


@pytest.fixture
def rpc(sent):
    return RpcClient(send=lambda data: sent.append(msgpack.unpackb(data, raw=False)))


class TestRequest:
    """Request/response correlation"""

    @pytest.mark.asyncio
    async def test_response_resolves_request(self, rpc, sent):
        future = rpc.request("list_sessions")
        assert sent == [[0, 1, "list_sessions", None]]

        rpc.feed_data(codec.encode_response(1, None, [{"id": 1}]))
        assert await future == [{"id": 1}]
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_msgids_increase(self, rpc, sent):
        rpc.request("a")
        rpc.request("b")
        assert [frame[1] for frame in sent] == [1, 2]

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, rpc):
        first = rpc.request("a")
        second = rpc.request("b")
        rpc.feed_data(codec.encode_response(2, None, "B") + codec.encode_response(1, None, "A"))
        assert await first == "A"
        assert await second == "B"

    @pytest.mark.asyncio
    async def test_error_response_raises_rpc_error(self, rpc):
        future = rpc.request("spawn_pty", {"rows": 1})
        rpc.feed_data(codec.encode_response(1, "no shell", None))

        with pytest.raises(RpcError) as exc_info:
            await future
        assert exc_info.value.method == "spawn_pty"
        assert exc_info.value.error == "no shell"

    @pytest.mark.asyncio
    async def test_timeout_then_stale_response(self, rpc):
        future = rpc.request("resize_pty", [1, 24, 80], timeout=0.01)

        with pytest.raises(RpcTimeoutError):
            await future
        assert not rpc.is_pending(1)
        assert metrics.get_counter("rpc.timeouts", {"method": "resize_pty"}) == 1

        rpc.feed_data(codec.encode_response(1, None, True))
        assert metrics.get_counter("rpc.stale_responses") == 1

    @pytest.mark.asyncio
    async def test_timeout_is_a_builtin_timeout_error(self, rpc):
        with pytest.raises(TimeoutError):
            await rpc.request("x", timeout=0.01)

    @pytest.mark.asyncio
    async def test_request_without_transport_fails(self):
        rpc = RpcClient()
        with pytest.raises(ConnectionLostError):
            await rpc.request("list_sessions")
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_send_failure_rejects_request(self):
        rpc = RpcClient(send=Mock(side_effect=BrokenPipeError("gone")))
        with pytest.raises(ConnectionLostError):
            await rpc.request("list_sessions")

    @pytest.mark.asyncio
    async def test_reset_rejects_pending_and_restarts_ids(self, rpc, sent):
        future = rpc.request("a")
        assert rpc.reset() == 1
        with pytest.raises(ConnectionLostError):
            await future

        rpc.request("b")
        assert sent[-1][1] == 1


class TestNotify:
    """Outbound notifications"""

    def test_notify_wire_shape(self, rpc, sent):
        rpc.notify("write_pty", [3, b"x"])
        assert sent == [[2, "write_pty", [3, b"x"]]]

    def test_notify_without_transport_is_logged_not_raised(self):
        RpcClient().notify("write_pty", [3, b"x"])


class TestInboundNotifications:
    """Notification dispatch"""

    def test_inline_handler(self, rpc):
        handler = Mock()
        rpc.on("redraw", handler)
        rpc.feed_data(codec.encode_notification("redraw", [["flush", []]]))
        handler.assert_called_once_with([["flush", []]])

    def test_missing_handler(self, rpc):
        assert rpc.dispatch_notification("unknown", None) is False

    def test_handler_error_is_contained(self, rpc):
        rpc.on("redraw", Mock(side_effect=ValueError("bad")))
        rpc.feed_data(codec.encode_notification("redraw", []))
        assert metrics.get_counter("rpc.handler_errors", {"method": "redraw"}) == 1

    @pytest.mark.asyncio
    async def test_async_handler_task_is_tracked(self, rpc):
        seen = []

        async def handler(params):
            await asyncio.sleep(0)
            seen.append(params)

        rpc.on("redraw", handler)
        rpc.feed_data(codec.encode_notification("redraw", [1]))
        assert rpc.pending_handlers == 1

        for _ in range(5):
            await asyncio.sleep(0)
        assert seen == [[1]]
        assert rpc.pending_handlers == 0

    @pytest.mark.asyncio
    async def test_async_handler_error_is_counted(self, rpc):
        async def handler(params):
            raise ValueError("bad")

        rpc.on("redraw", handler)
        rpc.feed_data(codec.encode_notification("redraw", []))
        for _ in range(5):
            await asyncio.sleep(0)

        assert rpc.pending_handlers == 0
        assert metrics.get_counter("rpc.handler_errors", {"method": "redraw"}) == 1

    def test_off(self, rpc):
        rpc.on("redraw", Mock())
        assert rpc.off("redraw") is True
        assert rpc.off("redraw") is False

    def test_notifications_go_to_inbox(self, sent):
        inbox = EventQueue()
        rpc = RpcClient(send=sent.append, inbox=inbox)
        handler = Mock()
        rpc.on("pty_closed", handler)

        rpc.feed_data(codec.encode_notification("pty_closed", [4]))

        event = inbox.get_nowait()
        assert event.kind is EventKind.NOTIFICATION
        assert event.method == "pty_closed"
        assert event.params == [4]
        handler.assert_not_called()

    def test_server_request_gets_error_response(self, rpc, sent):
        rpc.feed_data(codec.encode_request(11, "ping", None))
        assert sent == [[1, 11, "method not found", None]]
