"""Key encoding tests"""

import pytest

from prisemux.input.keys import (
    CursorKeyMode,
    KeyEncoder,
    KeyEvent,
    add_modifiers,
    modifier_code,
)


@pytest.fixture
def encoder():
    return KeyEncoder()


class TestKeyEvent:
    """KeyEvent construction"""

    def test_printable_sequence_wins(self):
        event = KeyEvent.from_terminal("5", sequence="%", shift=True)
        assert event.key == "%"
        assert event.shift

    def test_named_key(self):
        event = KeyEvent.from_terminal("up", sequence="\x1b[A", option=True)
        assert event.key == "up"
        assert event.alt
        assert event.has_modifiers

    def test_lower(self):
        assert KeyEvent("F5").lower == "f5"


class TestModifiers:
    """xterm modifier parameter"""

    def test_modifier_code(self):
        assert modifier_code(False, False, False) == 1
        assert modifier_code(True, False, False) == 5
        assert modifier_code(True, True, True) == 8

    @pytest.mark.parametrize(
        "seq,expected",
        [
            ("\x1b[A", "\x1b[1;5A"),
            ("\x1b[15~", "\x1b[15;5~"),
            ("\x1bOP", "\x1b[1;5P"),
        ],
    )
    def test_add_modifiers(self, seq, expected):
        assert add_modifiers(seq, ctrl=True, alt=False, shift=False) == expected

    def test_no_modifiers_unchanged(self):
        assert add_modifiers("\x1b[A", False, False, False) == "\x1b[A"


class TestKeyEncoder:
    """KeyEncoder tests"""

    @pytest.mark.parametrize(
        "event,expected",
        [
            (KeyEvent("a"), b"a"),
            (KeyEvent("é"), "é".encode()),
            (KeyEvent("a", ctrl=True), b"\x01"),
            (KeyEvent("Z", ctrl=True), b"\x1a"),
            (KeyEvent("[", ctrl=True), b"\x1b"),
            (KeyEvent("space", ctrl=True), b"\x00"),
            (KeyEvent("@", ctrl=True), b"\x00"),
            (KeyEvent("x", alt=True), b"\x1bx"),
            (KeyEvent("enter"), b"\r"),
            (KeyEvent("tab"), b"\t"),
            (KeyEvent("tab", shift=True), b"\x1b[Z"),
            (KeyEvent("backspace"), b"\x7f"),
            (KeyEvent("escape"), b"\x1b"),
            (KeyEvent("space"), b" "),
            (KeyEvent("left"), b"\x1b[D"),
            (KeyEvent("up", shift=True), b"\x1b[1;2A"),
            (KeyEvent("f1"), b"\x1bOP"),
            (KeyEvent("f5", ctrl=True), b"\x1b[15;5~"),
            (KeyEvent("f12"), b"\x1b[24~"),
            (KeyEvent("home"), b"\x1b[H"),
            (KeyEvent("delete"), b"\x1b[3~"),
            (KeyEvent("pageup", alt=True), b"\x1b[5;3~"),
        ],
    )
    def test_encode(self, encoder, event, expected):
        assert encoder.encode(event) == expected

    def test_application_cursor_mode(self, encoder):
        encoder.set_cursor_mode(CursorKeyMode.APPLICATION)
        assert encoder.encode(KeyEvent("up")) == b"\x1bOA"
        assert encoder.encode(KeyEvent("up", ctrl=True)) == b"\x1b[1;5A"

    def test_unknown_key_is_empty(self, encoder):
        assert encoder.encode(KeyEvent("hyper")) == b""
