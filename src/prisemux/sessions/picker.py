"""SessionPicker - filterable, scrollable session list"""

from dataclasses import dataclass

from ..config import PICKER_MAX_HEIGHT
from .directory import Session, SessionDirectory

RULE = "─" * 40


@dataclass(frozen=True)
class PickerRow:
    session: Session
    is_selected: bool
    is_current: bool


@dataclass(frozen=True)
class PickerView:
    rows: tuple[PickerRow, ...]
    total_count: int
    offset: int

    @property
    def visible_count(self) -> int:
        return len(self.rows)


class SessionPicker:
    """Selection state over a SessionDirectory.

    Editing the filter resets the selection to the first match; moving the
    selection scrolls a window of at most `max_height` rows.
    """

    def __init__(
        self,
        directory: SessionDirectory,
        max_height: int = PICKER_MAX_HEIGHT,
        show_attach_count: bool = True,
    ):
        self.directory = directory
        self.max_height = max(1, max_height)
        self.show_attach_count = show_attach_count
        self._query = ""
        self._selected = 0
        self._offset = 0

    # === Filter ===

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, query: str) -> None:
        self._query = query
        self._reset_selection()

    def add_char(self, char: str) -> None:
        self.set_query(self._query + char)

    def backspace(self) -> None:
        if self._query:
            self.set_query(self._query[:-1])

    def clear_query(self) -> None:
        self.set_query("")

    def filtered(self) -> list[Session]:
        return self.directory.filter(self._query)

    # === Selection ===

    @property
    def selected_index(self) -> int:
        return self._selected

    def select_down(self) -> None:
        count = len(self.filtered())
        if count == 0:
            return
        self._selected = min(self._selected + 1, count - 1)
        self._scroll_to_selection()

    def select_up(self) -> None:
        if self._selected > 0:
            self._selected -= 1
            self._scroll_to_selection()

    def select_first(self) -> None:
        self._reset_selection()

    def select_last(self) -> None:
        count = len(self.filtered())
        if count == 0:
            return
        self._selected = count - 1
        self._scroll_to_selection()

    def selected(self) -> Session | None:
        matches = self.filtered()
        if 0 <= self._selected < len(matches):
            return matches[self._selected]
        return None

    def _reset_selection(self) -> None:
        self._selected = 0
        self._offset = 0

    def _scroll_to_selection(self) -> None:
        if self._selected >= self._offset + self.max_height:
            self._offset = self._selected - self.max_height + 1
        if self._selected < self._offset:
            self._offset = self._selected

    # === View ===

    def visible(self) -> PickerView:
        matches = self.filtered()
        window = matches[self._offset : self._offset + self.max_height]
        current = self.directory.current_session_id
        rows = tuple(
            PickerRow(
                session=session,
                is_selected=self._offset + i == self._selected,
                is_current=session.id == current,
            )
            for i, session in enumerate(window)
        )
        return PickerView(rows=rows, total_count=len(matches), offset=self._offset)

    def render(self) -> list[str]:
        """Picker as text lines: header, rows, footer."""
        lines = [RULE, f"Filter: {self._query or '(empty)'}", RULE]

        view = self.visible()
        if view.total_count == 0:
            lines += ["(no sessions found)", "", "Keys: Ctrl+C to cancel"]
            return lines

        for row in view.rows:
            marker = "▶ " if row.is_selected else "  "
            count = f" ({row.session.attached_client_count} clients)" if self.show_attach_count else ""
            current = " [ATTACHED]" if row.is_current else ""
            lines.append(f"{marker}{row.session.name}{count}{current}")

        lines.append("")
        lines.append(f"{view.offset + 1}-{view.offset + view.visible_count} of {view.total_count} sessions")
        lines.append("Keys: ↑↓ to navigate, Enter to attach, Backspace to filter, Ctrl+C to cancel")
        return lines
