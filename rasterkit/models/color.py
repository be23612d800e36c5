"""
Color normalisation.

Colors travel through rasterkit as ``(r, g, b, a)`` tuples where r, g, b are
0-255 and ``a`` is the backend's internal alpha, 0 (opaque) to 127 (fully
transparent). Users speak alpha as a percentage, 0 (opaque) to 100.
"""
from __future__ import annotations
import string
from typing import Sequence, Tuple, Union

from ..errors import InvalidColor
from ..utils.rounding import clamp, round_half_up

Color = Tuple[int, int, int, int]
ColorInput = Union[str, Sequence[int]]

MAX_ALPHA = 127
_HEX_DIGITS = set(string.hexdigits)


def to_internal_alpha(external: float) -> int:
    """Percentage (0-100) → backend alpha (0-127), clamped."""
    return clamp(round_half_up(float(external) * MAX_ALPHA / 100), 0, MAX_ALPHA)


def to_external_alpha(internal: int) -> int:
    """Backend alpha (0-127) → percentage (0-100)."""
    return round_half_up(internal / MAX_ALPHA * 100)


def _parse_hex(color: str) -> list:
    digits = color.lstrip("#")

    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    elif len(digits) != 6:
        raise InvalidColor(
            "Color must be a hex value in regular (6 characters) or short "
            f'(3 characters) notation, "{digits}" given'
        )

    if not set(digits) <= _HEX_DIGITS:
        raise InvalidColor(f'Color "{digits}" contains non hexadecimal characters')

    return [int(digits[i:i + 2], 16) for i in range(0, 6, 2)]


def _parse_components(color: Sequence) -> list:
    if len(color) < 3:
        raise InvalidColor("Color has to be an array of at least 3 integers (r,g,b): 0-255")

    try:
        rgb = [clamp(int(component), 0, 255) for component in color[:3]]
    except (TypeError, ValueError, OverflowError) as err:
        raise InvalidColor(f"Color components must be integers, {list(color[:3])} given") from err

    if len(color) > 3:
        rgb.append(color[3])
    return rgb


def parse_color(color: ColorInput, alpha: float | None = None) -> Color:
    """
    Normalise a hex string ("#fff", "ff0000") or an (r, g, b[, alpha])
    sequence into an internal ``(r, g, b, a)`` tuple.

    Args:
        color: hex string or component sequence.
        alpha: transparency percentage (0-100). Overrides a 4th component.

    Raises:
        InvalidColor: malformed hex, fewer than 3 components or wrong type.
    """
    if isinstance(color, str):
        components = _parse_hex(color)
    elif isinstance(color, (list, tuple)):
        components = _parse_components(color)
    else:
        raise InvalidColor(f"Color has to be string or array, {type(color).__name__} given")

    if alpha is None:
        alpha = components[3] if len(components) > 3 and components[3] is not None else 0

    try:
        internal_alpha = to_internal_alpha(alpha)
    except (TypeError, ValueError, OverflowError) as err:
        raise InvalidColor(f"Color alpha must be a number, {alpha!r} given") from err

    r, g, b = components[:3]
    return r, g, b, internal_alpha


def pack_color(r: int, g: int, b: int, a: int) -> int:
    """Pack a color into a true-color index: 0xAARRGGBB (7-bit alpha)."""
    return (a << 24) | (r << 16) | (g << 8) | b


def unpack_color(index: int) -> Color:
    return (index >> 16) & 0xFF, (index >> 8) & 0xFF, index & 0xFF, (index >> 24) & 0x7F
