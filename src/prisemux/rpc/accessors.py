"""Validating accessors for decoded wire payloads

Decoded msgpack values are untyped. Every field read from a notification or
response goes through one of these helpers, which return None (or an empty
container) instead of trusting the shape.
"""

from dataclasses import dataclass
from typing import Any

_STYLE_COLOR_FIELDS = ("fg", "bg", "fg_idx", "bg_idx", "ul_style", "ul_color")
_STYLE_FLAG_FIELDS = ("bold", "dim", "italic", "underline", "reverse", "blink", "strikethrough")


def as_int(value: Any) -> int | None:
    """int but not bool; floats with an integral value are accepted."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def as_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def as_bool(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


def as_list(value: Any) -> list | None:
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def as_dict(value: Any) -> dict | None:
    return value if isinstance(value, dict) else None


def arg(args: list, index: int) -> Any:
    """Positional argument or None when the list is too short."""
    return args[index] if 0 <= index < len(args) else None


@dataclass(frozen=True)
class WriteCell:
    """One cell of a redraw `write` event."""

    grapheme: str
    style_id: int | None = None
    repeat: int | None = None
    width: int | None = None


def parse_style_attrs(value: Any) -> dict[str, int | bool]:
    """Keep only known style attributes with the right types.

    Unknown keys are ignored, so newer servers can add attributes.
    """
    obj = as_dict(value)
    if obj is None:
        return {}

    attrs: dict[str, int | bool] = {}
    for key in _STYLE_COLOR_FIELDS:
        num = as_int(obj.get(key))
        if num is not None:
            attrs[key] = num
    for key in _STYLE_FLAG_FIELDS:
        flag = obj.get(key)
        if isinstance(flag, bool):
            attrs[key] = flag
    return attrs


def parse_write_cells(value: Any) -> list[WriteCell]:
    """Parse `[grapheme, style_id?, repeat?, width?]` cell arrays.

    Entries that are not arrays or lack a string grapheme are skipped.
    """
    items = as_list(value)
    if items is None:
        return []

    cells: list[WriteCell] = []
    for item in items:
        parts = as_list(item)
        if not parts:
            continue
        grapheme = as_str(parts[0])
        if grapheme is None:
            continue
        cells.append(
            WriteCell(
                grapheme=grapheme,
                style_id=as_int(arg(parts, 1)),
                repeat=as_int(arg(parts, 2)),
                width=as_int(arg(parts, 3)),
            )
        )
    return cells
