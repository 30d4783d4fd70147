"""Color and attribute resolution

A style carries either a packed 24-bit RGB value (fg / bg) or an 8-bit
xterm palette index (fg_idx / bg_idx); the direct value wins when both are
present.

Palette:
- 0-15: fixed ANSI table
- 16-231: 6x6x6 cube, steps (0, 95, 135, 175, 215, 255)
- 232-255: grayscale, shade = 8 + (index - 232) * 10
- anything else: default foreground
"""

from functools import lru_cache
from typing import Any

from ..config import DEFAULT_BG, DEFAULT_FG

RGB = tuple[int, int, int]

# Attribute bitmask handed to the paint surface
ATTR_BOLD = 1
ATTR_DIM = 2
ATTR_ITALIC = 4
ATTR_UNDERLINE = 8
ATTR_BLINK = 16
ATTR_INVERSE = 32
ATTR_HIDDEN = 64
ATTR_STRIKETHROUGH = 128

_FLAG_BITS = (
    ("bold", ATTR_BOLD),
    ("dim", ATTR_DIM),
    ("italic", ATTR_ITALIC),
    ("underline", ATTR_UNDERLINE),
    ("blink", ATTR_BLINK),
    ("strikethrough", ATTR_STRIKETHROUGH),
)

ANSI_COLORS: tuple[RGB, ...] = (
    (0, 0, 0),
    (205, 49, 49),
    (13, 188, 121),
    (229, 229, 16),
    (36, 114, 200),
    (188, 63, 188),
    (17, 168, 205),
    (229, 229, 229),
    (102, 102, 102),
    (241, 76, 76),
    (35, 209, 139),
    (245, 245, 67),
    (59, 142, 234),
    (214, 112, 214),
    (41, 184, 219),
    (255, 255, 255),
)

CUBE_STEPS = (0, 95, 135, 175, 215, 255)


def rgb_from_u32(value: int) -> RGB:
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


@lru_cache(maxsize=256)
def xterm_index_to_rgb(index: int) -> RGB:
    """Map an xterm 256-color palette index to RGB.

    Example:
        21 -> n=5 -> digits (0, 0, 5) -> (0, 0, 255)
    """
    if 0 <= index <= 15:
        return ANSI_COLORS[index]

    if 16 <= index <= 231:
        n = index - 16
        return (CUBE_STEPS[n // 36], CUBE_STEPS[(n % 36) // 6], CUBE_STEPS[n % 6])

    if 232 <= index <= 255:
        shade = 8 + (index - 232) * 10
        return (shade, shade, shade)

    return DEFAULT_FG


def _pick_color(attrs: dict[str, Any], direct: str, indexed: str, default: RGB) -> RGB:
    value = attrs.get(direct)
    if value is not None:
        return rgb_from_u32(value)
    index = attrs.get(indexed)
    if index is not None:
        return xterm_index_to_rgb(index)
    return default


def resolve_style(attrs: dict[str, Any] | None) -> tuple[RGB, RGB, int]:
    """Resolve style attributes to (fg, bg, attribute bitmask).

    None (unknown style id) resolves to the default colors with no attributes.
    `reverse` swaps foreground and background as the last step.
    """
    if attrs is None:
        return DEFAULT_FG, DEFAULT_BG, 0

    fg = _pick_color(attrs, "fg", "fg_idx", DEFAULT_FG)
    bg = _pick_color(attrs, "bg", "bg_idx", DEFAULT_BG)

    bits = 0
    for name, bit in _FLAG_BITS:
        if attrs.get(name):
            bits |= bit

    if attrs.get("reverse"):
        fg, bg = bg, fg
    return fg, bg, bits


def rgb_to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)
