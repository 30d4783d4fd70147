"""Input module - key encoding and prefix keybindings"""

from .keybinds import (
    Action,
    ClosePane,
    Detach,
    Focus,
    KeyEventInterpreter,
    NewTab,
    NextTab,
    Noop,
    PrefixMatcher,
    PrefixState,
    PrevTab,
    SendInput,
    Split,
)
from .keys import CursorKeyMode, KeyEncoder, KeyEvent, add_modifiers, control_char, modifier_code

__all__ = [
    "KeyEvent",
    "KeyEncoder",
    "CursorKeyMode",
    "add_modifiers",
    "modifier_code",
    "control_char",
    "Action",
    "SendInput",
    "Split",
    "NewTab",
    "NextTab",
    "PrevTab",
    "Focus",
    "ClosePane",
    "Detach",
    "Noop",
    "PrefixState",
    "PrefixMatcher",
    "KeyEventInterpreter",
]
