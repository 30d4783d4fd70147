"""Rect helper tests"""

from prisemux.layout.geometry import Rect, inner_rect, point_in_rect, rect_intersection


class TestRect:
    """Rect properties and helpers"""

    def test_edges(self):
        rect = Rect(2, 3, 10, 5)
        assert rect.right == 12
        assert rect.bottom == 8
        assert not rect.is_empty
        assert Rect(0, 0, 0, 4).is_empty

    def test_inner_rect(self):
        assert inner_rect(Rect(0, 0, 10, 5)) == Rect(1, 1, 8, 3)

    def test_inner_rect_too_small(self):
        assert inner_rect(Rect(0, 0, 2, 10)) is None
        assert inner_rect(Rect(0, 0, 10, 2)) is None

    def test_point_in_rect(self):
        rect = Rect(1, 1, 3, 3)
        assert point_in_rect(1, 1, rect)
        assert point_in_rect(3, 3, rect)
        assert not point_in_rect(4, 1, rect)

    def test_intersection(self):
        assert rect_intersection(Rect(0, 0, 5, 5), Rect(3, 3, 5, 5)) == Rect(3, 3, 2, 2)
        assert rect_intersection(Rect(0, 0, 2, 2), Rect(2, 0, 2, 2)) is None
