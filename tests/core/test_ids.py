"""Id utilities tests"""

from prisemux.core.ids import IdAllocator, format_pane_list


class TestIdAllocator:
    """IdAllocator tests"""

    def test_pane_ids_are_monotonic(self):
        ids = IdAllocator()
        assert [ids.next_pane_id() for _ in range(3)] == [1, 2, 3]

    def test_tab_and_pane_counters_are_independent(self):
        ids = IdAllocator()
        ids.next_pane_id()
        ids.next_pane_id()
        assert ids.next_tab_id() == 1
        assert ids.next_pane_id() == 3

    def test_custom_start(self):
        ids = IdAllocator(start=10)
        assert ids.next_pane_id() == 10
        assert ids.next_tab_id() == 10

    def test_reset(self):
        ids = IdAllocator()
        ids.next_pane_id()
        ids.next_tab_id()
        ids.reset()
        assert ids.next_pane_id() == 1
        assert ids.next_tab_id() == 1

    def test_allocators_do_not_share_state(self):
        a = IdAllocator()
        b = IdAllocator()
        a.next_pane_id()
        assert b.next_pane_id() == 1


class TestFormatPaneList:
    """format_pane_list tests"""

    def test_marks_focused(self):
        assert format_pane_list([1, 2, 3], focused=2) == "1, *2, 3"

    def test_no_focus(self):
        assert format_pane_list([4, 5]) == "4, 5"

    def test_empty(self):
        assert format_pane_list([]) == ""
