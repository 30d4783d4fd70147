"""Key events and their terminal byte encoding

KeyEncoder turns a KeyEvent into the bytes a terminal would send:
- ctrl+letter -> control byte (0x01-0x1a); ctrl+[ \\ ] ^ _ -> 0x1b-0x1f;
  ctrl+space -> 0x00
- F1-F12, arrows, home/end/pageup/pagedown/insert/delete -> escape
  sequences, with an xterm modifier parameter 1 + shift + 2*alt + 4*ctrl
- enter, tab, backspace, escape, space -> their usual bytes
- printable characters -> UTF-8; alt+printable -> ESC prefix

A key with no encoding yields b"" (never a partial sequence).
"""

import re
from dataclasses import dataclass
from enum import Enum

ESC = "\x1b"
CSI = "\x1b["
SS3 = "\x1bO"


class CursorKeyMode(Enum):
    NORMAL = "normal"
    APPLICATION = "application"


@dataclass(frozen=True)
class KeyEvent:
    """A decoded key press.

    `key` is either a single character ("a", "%") or a key name
    ("up", "f5", "enter", "escape").
    """

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False

    @classmethod
    def from_terminal(
        cls,
        name: str,
        sequence: str | None = None,
        ctrl: bool = False,
        option: bool = False,
        meta: bool = False,
        shift: bool = False,
    ) -> "KeyEvent":
        """Build from a UI-toolkit key (name plus raw sequence).

        A single printable ASCII sequence wins over the key name, so
        shifted punctuation such as '%' arrives as itself.
        """
        printable = sequence is not None and len(sequence) == 1 and 32 <= ord(sequence) < 127
        return cls(key=sequence if printable else name, ctrl=ctrl, alt=option, shift=shift, meta=meta)

    @property
    def lower(self) -> str:
        return self.key.lower()

    @property
    def has_modifiers(self) -> bool:
        return self.ctrl or self.alt or self.shift or self.meta


FUNCTION_KEYS = {
    "f1": SS3 + "P",
    "f2": SS3 + "Q",
    "f3": SS3 + "R",
    "f4": SS3 + "S",
    "f5": CSI + "15~",
    "f6": CSI + "17~",
    "f7": CSI + "18~",
    "f8": CSI + "19~",
    "f9": CSI + "20~",
    "f10": CSI + "21~",
    "f11": CSI + "23~",
    "f12": CSI + "24~",
}

EDITING_KEYS = {
    "home": CSI + "H",
    "end": CSI + "F",
    "pageup": CSI + "5~",
    "pagedown": CSI + "6~",
    "insert": CSI + "2~",
    "delete": CSI + "3~",
}

CURSOR_KEYS = {"up": "A", "down": "B", "right": "C", "left": "D"}

CTRL_SYMBOLS = {
    "[": "\x1b",
    "\\": "\x1c",
    "]": "\x1d",
    "^": "\x1e",
    "_": "\x1f",
    " ": "\x00",
    "space": "\x00",
    "@": "\x00",
}

_PARAM_RE = re.compile(r"^\d*$")


def control_char(key: str) -> str | None:
    """C0 control character for Ctrl+key, None when the key has none."""
    if len(key) == 1 and key.isascii() and key.isalpha():
        return chr(ord(key.lower()) - 96)
    return CTRL_SYMBOLS.get(key.lower())


def modifier_code(ctrl: bool, alt: bool, shift: bool) -> int:
    """xterm modifier parameter: 1 + shift + 2*alt + 4*ctrl."""
    return 1 + (1 if shift else 0) + (2 if alt else 0) + (4 if ctrl else 0)


def add_modifiers(seq: str, ctrl: bool, alt: bool, shift: bool) -> str:
    """Insert the modifier parameter into a CSI/SS3 sequence.

    CSI A -> CSI 1;5 A, CSI 15~ -> CSI 15;5~, SS3 P -> CSI 1;5 P.
    """
    if not (ctrl or alt or shift):
        return seq

    code = modifier_code(ctrl, alt, shift)
    if seq.startswith(SS3) and len(seq) == 3:
        return f"{CSI}1;{code}{seq[-1]}"
    if seq.startswith(CSI) and len(seq) > 2:
        param, final = seq[2:-1], seq[-1]
        if _PARAM_RE.match(param):
            return f"{CSI}{param or '1'};{code}{final}"
    return seq


class KeyEncoder:
    """Stateful only in the cursor key mode (DECCKM)."""

    def __init__(self, cursor_mode: CursorKeyMode = CursorKeyMode.NORMAL):
        self.cursor_mode = cursor_mode

    def set_cursor_mode(self, mode: CursorKeyMode) -> None:
        self.cursor_mode = mode

    def encode(self, event: KeyEvent) -> bytes:
        return self.encode_str(event).encode("utf-8")

    def encode_str(self, event: KeyEvent) -> str:
        key, lower = event.key, event.lower
        ctrl, alt, shift = event.ctrl, event.alt, event.shift

        if ctrl and not alt and not event.meta:
            control = control_char(key)
            if control is not None:
                return control

        if lower in FUNCTION_KEYS:
            return add_modifiers(FUNCTION_KEYS[lower], ctrl, alt, shift)

        if lower in CURSOR_KEYS:
            prefix = SS3 if self.cursor_mode is CursorKeyMode.APPLICATION else CSI
            return add_modifiers(prefix + CURSOR_KEYS[lower], ctrl, alt, shift)

        if lower in EDITING_KEYS:
            return add_modifiers(EDITING_KEYS[lower], ctrl, alt, shift)

        if lower in ("enter", "return"):
            return "\n" if alt and not ctrl else "\r"
        if lower == "tab":
            return CSI + "Z" if shift else "\t"
        if lower == "backspace":
            return "\x7f"
        if lower == "escape":
            return ESC
        if lower == "space":
            return ESC + " " if alt else " "

        if len(key) == 1 and key.isprintable():
            return ESC + key if alt else key

        return ""
