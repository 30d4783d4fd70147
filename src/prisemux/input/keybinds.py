"""Prefix keybindings (tmux style, default Ctrl+b)

States:
    IDLE --prefix--> WAITING (deadline = now + timeout)
    WAITING --escape--> IDLE (Noop)
    WAITING --command key--> IDLE (mapped action, Noop if unmapped)
    WAITING --deadline passed--> IDLE (checked lazily or via expire())

Command table:
    h/j/k/l, arrows   focus left/down/up/right
    %                 split horizontal (side by side)
    "                 split vertical (top/bottom)
    prefix key        send the prefix control byte through
    c / n / p         new tab / next tab / previous tab
    x / d             close pane / detach

Keys the matcher does not consume go through KeyEncoder.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..config import PREFIX_KEY, PREFIX_TIMEOUT_SECONDS
from ..layout.state import FocusDirection
from ..layout.tree import SplitDirection
from ..telemetry import get_logger
from .keys import KeyEncoder, KeyEvent, control_char

logger = get_logger(__name__)

Clock = Callable[[], float]


# === Actions ===


@dataclass(frozen=True)
class SendInput:
    data: bytes


@dataclass(frozen=True)
class Split:
    direction: SplitDirection


@dataclass(frozen=True)
class NewTab:
    pass


@dataclass(frozen=True)
class NextTab:
    pass


@dataclass(frozen=True)
class PrevTab:
    pass


@dataclass(frozen=True)
class Focus:
    direction: FocusDirection


@dataclass(frozen=True)
class ClosePane:
    pass


@dataclass(frozen=True)
class Detach:
    pass


@dataclass(frozen=True)
class Noop:
    pass


Action = SendInput | Split | NewTab | NextTab | PrevTab | Focus | ClosePane | Detach | Noop

NOOP = Noop()


def _command_table(prefix_key: str) -> dict[str, Action]:
    table: dict[str, Action] = {
        "h": Focus(FocusDirection.LEFT),
        "j": Focus(FocusDirection.DOWN),
        "k": Focus(FocusDirection.UP),
        "l": Focus(FocusDirection.RIGHT),
        "left": Focus(FocusDirection.LEFT),
        "down": Focus(FocusDirection.DOWN),
        "up": Focus(FocusDirection.UP),
        "right": Focus(FocusDirection.RIGHT),
        "%": Split(SplitDirection.HORIZONTAL),
        '"': Split(SplitDirection.VERTICAL),
        "c": NewTab(),
        "n": NextTab(),
        "p": PrevTab(),
        "x": ClosePane(),
        "d": Detach(),
    }
    # Pressing the prefix twice sends it through once
    control = control_char(prefix_key)
    if control is not None:
        table[prefix_key] = SendInput(control.encode("utf-8"))
    return table


# === Prefix state machine ===


class PrefixState(Enum):
    IDLE = "idle"
    WAITING_FOR_COMMAND = "waiting_for_command"


class PrefixMatcher:
    """Two-state prefix matcher with an injectable clock.

    The deadline is checked lazily: an expired WAITING state is dropped
    before the next key is looked at, so no timer task is needed.
    """

    def __init__(
        self,
        prefix: KeyEvent = KeyEvent(PREFIX_KEY, ctrl=True),
        timeout: float = PREFIX_TIMEOUT_SECONDS,
        clock: Clock = time.monotonic,
    ):
        self._prefix_key = prefix.lower
        self._timeout = timeout
        self._clock = clock
        self._commands = _command_table(self._prefix_key)
        self._state = PrefixState.IDLE
        self._deadline: float | None = None

    @property
    def state(self) -> PrefixState:
        self.expire()
        return self._state

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def is_waiting(self) -> bool:
        return self.state is PrefixState.WAITING_FOR_COMMAND

    def is_prefix(self, event: KeyEvent) -> bool:
        return event.ctrl and not event.alt and not event.meta and event.lower == self._prefix_key

    def expire(self) -> bool:
        """Drop back to IDLE if the deadline has passed.

        Returns:
            True if the WAITING state was cancelled by this call
        """
        if self._state is PrefixState.WAITING_FOR_COMMAND and self._deadline is not None:
            if self._clock() >= self._deadline:
                logger.debug("[Keys] Prefix timed out")
                self.reset()
                return True
        return False

    def reset(self) -> None:
        self._state = PrefixState.IDLE
        self._deadline = None

    def process_key(self, event: KeyEvent) -> Action | None:
        """Interpret a key.

        Returns:
            an Action when the matcher consumed the key, None when the key
            should be sent to the terminal
        """
        self.expire()

        if self._state is PrefixState.WAITING_FOR_COMMAND:
            key = event.lower
            self.reset()
            if key == "escape":
                return NOOP
            return self._commands.get(key, NOOP)

        if self.is_prefix(event):
            self._state = PrefixState.WAITING_FOR_COMMAND
            self._deadline = self._clock() + self._timeout
            return NOOP

        return None


class KeyEventInterpreter:
    """Routes key events through the prefix matcher, else the encoder."""

    def __init__(self, matcher: PrefixMatcher | None = None, encoder: KeyEncoder | None = None):
        self.matcher = matcher or PrefixMatcher()
        self.encoder = encoder or KeyEncoder()

    def handle_key_event(self, event: KeyEvent) -> Action:
        action = self.matcher.process_key(event)
        if action is not None:
            return action

        data = self.encoder.encode(event)
        if data:
            return SendInput(data)
        return NOOP
