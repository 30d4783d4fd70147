"""Session roster

Roster entries come from `list_sessions` ({sessions: [...]}) or, on older
servers, `list_ptys` ({ptys: [...]}). Each entry is validated with pydantic;
entries that fail validation are skipped, never fatal.
"""

import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError, field_validator

from ..rpc.accessors import as_dict, as_int, as_list, as_str
from ..telemetry import get_logger

logger = get_logger(__name__)


class Session(BaseModel):
    """One attachable session (or legacy PTY)."""

    model_config = ConfigDict(frozen=True)

    id: StrictInt
    name: StrictStr
    attached_client_count: int = 0

    @field_validator("attached_client_count", mode="before")
    @classmethod
    def _count_or_zero(cls, value: Any) -> int:
        count = as_int(value)
        return count if count is not None else 0


def _validate_entries(entries: list, build) -> list[Session]:
    sessions: list[Session] = []
    for entry in entries:
        obj = as_dict(entry)
        if obj is None:
            continue
        try:
            sessions.append(build(obj))
        except ValidationError as e:
            logger.debug(f"[Sessions] Skipping invalid entry {entry!r}: {e.error_count()} error(s)")
    return sessions


def parse_list_sessions(result: Any) -> list[Session]:
    obj = as_dict(result)
    entries = as_list(obj.get("sessions")) if obj else None
    if entries is None:
        return []

    return _validate_entries(
        entries,
        lambda item: Session.model_validate(
            {
                "id": item.get("id"),
                "name": item.get("name"),
                "attached_client_count": item.get("attached_client_count"),
            }
        ),
    )


def _pty_entry_to_session(item: dict) -> Session:
    pty_id = item.get("id")
    title = as_str(item.get("title"))
    return Session.model_validate(
        {
            "id": pty_id,
            "name": title if title else f"PTY {pty_id}",
            "attached_client_count": item.get("attached_client_count"),
        }
    )


def parse_list_ptys(result: Any) -> list[Session]:
    """Legacy roster: a PTY's name is its title, or "PTY <id>"."""
    obj = as_dict(result)
    entries = as_list(obj.get("ptys")) if obj else None
    if entries is None:
        return []
    return _validate_entries(entries, _pty_entry_to_session)


@dataclass(frozen=True)
class DirectorySnapshot:
    sessions: tuple[Session, ...]
    current_session_id: int | None
    is_attached: bool
    last_updated: float


class SessionDirectory:
    """Last known roster plus the currently attached session."""

    def __init__(self):
        self._sessions: list[Session] = []
        self._current_id: int | None = None
        self._last_updated = 0.0

    def update(self, sessions: list[Session]) -> None:
        """Replace the roster, sorted by id."""
        self._sessions = sorted(sessions, key=lambda s: s.id)
        self._last_updated = time.time()
        logger.debug(f"[Sessions] Roster updated: {len(self._sessions)} session(s)")

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def current_session_id(self) -> int | None:
        return self._current_id

    def set_current(self, session_id: int | None) -> None:
        self._current_id = session_id

    def is_attached(self) -> bool:
        return self._current_id is not None

    def filter(self, query: str) -> list[Session]:
        """Case-insensitive substring match on the name; blank matches all."""
        if not query.strip():
            return list(self._sessions)
        needle = query.lower()
        return [s for s in self._sessions if needle in s.name.lower()]

    def find_by_name(self, name: str) -> Session | None:
        lower = name.lower()
        return next((s for s in self._sessions if s.name.lower() == lower), None)

    def find_by_id(self, session_id: int) -> Session | None:
        return next((s for s in self._sessions if s.id == session_id), None)

    def __len__(self) -> int:
        return len(self._sessions)

    def snapshot(self) -> DirectorySnapshot:
        return DirectorySnapshot(
            sessions=tuple(self._sessions),
            current_session_id=self._current_id,
            is_attached=self.is_attached(),
            last_updated=self._last_updated,
        )
