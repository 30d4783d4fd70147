"""RedrawRouter tests"""

import pytest

from prisemux.redraw.router import RedrawRouter
from prisemux.telemetry import metrics


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics around each test"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def router():
    r = RedrawRouter()
    r.ensure(1, 3, 10)
    return r


class TestEngineLifecycle:
    """ensure / discard"""

    def test_ensure_creates_then_resizes(self, router):
        engine = router.ensure(1, 5, 20)
        assert router.get(1) is engine
        assert (engine.rows, engine.cols) == (5, 20)
        assert len(router) == 1

    def test_engines_share_styles(self, router):
        assert router.ensure(2).styles is router.get(1).styles

    def test_pty_closed_discards(self, router):
        router.handle_pty_closed(1)
        assert 1 not in router
        assert router.get(None) is None

    def test_reset_styles_forces_repaint(self, router):
        router.apply([["style", [1, {"bold": True}]]])
        router.get(1).clear_dirty()
        router.reset_styles()
        assert len(router.styles) == 0
        assert router.get(1).full_repaint


class TestApply:
    """apply tests"""

    def test_write_and_flush(self, router):
        flushed = router.apply(
            [
                ["style", [7, {"fg": 0xFF0000}]],
                ["write", [1, 0, 0, [["h", 7], ["i"]]]],
                ["cursor_pos", [1, 0, 2, True]],
                ["flush", [1]],
            ]
        )
        engine = router.get(1)
        assert flushed == {1}
        assert engine.row_text(0).startswith("hi")
        assert engine.cell_at(0, 1).style_id == 7
        assert engine.cursor.col == 2 and engine.cursor.visible
        assert 7 in router.styles

    def test_accepts_extra_wrapping_list(self, router):
        router.apply([[["title", [1, "top"]]]])
        assert router.get(1).title == "top"

    def test_resize_event(self, router):
        router.apply([["resize", [1, 4, 6]]])
        assert (router.get(1).rows, router.get(1).cols) == (4, 6)

    def test_selection_and_shape(self, router):
        router.apply([["selection", [1, 0, 0, 0, 3]], ["cursor_shape", [1, 2]]])
        engine = router.get(1)
        assert not engine.selection.is_empty
        assert engine.cursor.shape.value == "underline"

    def test_flush_without_pty_flushes_all(self, router):
        router.ensure(2)
        assert router.apply([["flush", []]]) == {1, 2}

    def test_unknown_pty_is_skew(self, router):
        flushed = router.apply([["write", [9, 0, 0, [["x"]]]], ["flush", [9]]])
        assert flushed == set()
        assert metrics.get_counter("redraw.skew", {"event": "write"}) == 1
        assert metrics.get_counter("redraw.skew", {"event": "flush"}) == 1

    def test_malformed_events_skipped(self, router):
        flushed = router.apply(
            [
                "junk",
                ["write"],
                ["write", "notalist"],
                [5, [1]],
                ["write", [1, "a", 0, []]],
                ["explode", [1]],
                ["title", [1, "ok"]],
                ["flush", [1]],
            ]
        )
        assert flushed == {1}
        assert router.get(1).title == "ok"

    def test_non_list_params(self, router):
        assert router.apply(None) == set()
        assert router.apply({"a": 1}) == set()
