"""Session roster tests"""

import pytest
from pydantic import ValidationError

from prisemux.sessions.directory import (
    Session,
    SessionDirectory,
    parse_list_ptys,
    parse_list_sessions,
)


class TestSessionModel:
    """Session validation"""

    def test_missing_count_defaults_to_zero(self):
        assert Session(id=1, name="main", attached_client_count=None).attached_client_count == 0

    def test_strict_id(self):
        with pytest.raises(ValidationError):
            Session(id="1", name="main")

    def test_frozen(self):
        session = Session(id=1, name="main")
        with pytest.raises(ValidationError):
            session.name = "other"


class TestParsing:
    """list_sessions / list_ptys results"""

    def test_list_sessions(self):
        sessions = parse_list_sessions(
            {
                "sessions": [
                    {"id": 2, "name": "work", "attached_client_count": 1},
                    {"id": 3, "name": "play", "extra": True},
                ]
            }
        )
        assert sessions == [
            Session(id=2, name="work", attached_client_count=1),
            Session(id=3, name="play"),
        ]

    def test_invalid_entries_skipped(self):
        sessions = parse_list_sessions(
            {"sessions": [{"id": "x", "name": "bad"}, {"name": "noid"}, 5, {"id": 1, "name": "ok"}]}
        )
        assert [s.name for s in sessions] == ["ok"]

    @pytest.mark.parametrize("result", [None, [], {"sessions": None}, {"ptys": []}])
    def test_missing_roster(self, result):
        assert parse_list_sessions(result) == []

    def test_list_ptys_names(self):
        sessions = parse_list_ptys({"ptys": [{"id": 4, "title": "vim"}, {"id": 5, "title": ""}]})
        assert [s.name for s in sessions] == ["vim", "PTY 5"]


class TestSessionDirectory:
    """SessionDirectory tests"""

    @pytest.fixture
    def directory(self):
        d = SessionDirectory()
        d.update([Session(id=3, name="Build"), Session(id=1, name="main"), Session(id=2, name="logs")])
        return d

    def test_sorted_by_id(self, directory):
        assert [s.id for s in directory.sessions] == [1, 2, 3]
        assert len(directory) == 3

    def test_filter_case_insensitive(self, directory):
        assert [s.name for s in directory.filter("BUI")] == ["Build"]
        assert len(directory.filter("   ")) == 3

    def test_find(self, directory):
        assert directory.find_by_name("MAIN").id == 1
        assert directory.find_by_id(2).name == "logs"
        assert directory.find_by_id(9) is None

    def test_current_session(self, directory):
        assert not directory.is_attached()
        directory.set_current(2)
        snapshot = directory.snapshot()
        assert snapshot.is_attached
        assert snapshot.current_session_id == 2
        assert len(snapshot.sessions) == 3
