"""
Color Helpers
=============

Conversion between CSS-style hex colors and normalized RGB triples.
"""

import re
from typing import Tuple


_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex_color(value: str) -> Tuple[float, float, float]:
    """
    Parse a hex color into normalized RGB.

    Accepts "#RRGGBB", "RRGGBB" and the short "#RGB" form.

    Args:
        value: Hex color string

    Returns:
        (r, g, b) floats in [0, 1]

    Raises:
        ValueError: If the string is not a hex color
    """
    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {value!r}")

    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)

    return (
        int(digits[0:2], 16) / 255.0,
        int(digits[2:4], 16) / 255.0,
        int(digits[4:6], 16) / 255.0,
    )


def normalize_hex_color(value: str) -> str:
    """Validate a hex color and return it as upper-case "#RRGGBB"."""
    r, g, b = parse_hex_color(value)
    return "#{:02X}{:02X}{:02X}".format(
        round(r * 255), round(g * 255), round(b * 255)
    )
