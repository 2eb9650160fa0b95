"""Deterministic per-address colors.

The same string always maps to the same ``hsl(...)`` color, spread across
the hue circle with a roughly constant perceived lightness.
"""

from __future__ import annotations

import colorsys
import math

SATURATION = 70

# Lightness at the start of each 60-degree hue sector (0, 60, ..., 300).
LIGHTNESS_STOPS = (48, 25, 28, 27, 62, 42)


def _utf16_units(text: str):
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def string_hash(text: str) -> int:
    """16-bit rolling hash over the UTF-16 code units of *text*."""
    value = 0
    for unit in _utf16_units(text):
        value = ((value << 5) - value + unit) & 0xFFFF
    return value


def hsl_components(email: str) -> tuple[int, int, int]:
    """Return ``(hue, saturation, lightness)`` for *email*."""
    hue = (360 * string_hash(email) // 0xFFFF) % 360

    sector = hue // 60
    l1 = LIGHTNESS_STOPS[sector]
    l2 = LIGHTNESS_STOPS[(sector + 1) % len(LIGHTNESS_STOPS)]
    lightness = math.floor((hue / 60 - sector) * (l2 - l1) + l1)

    return hue, SATURATION, lightness


def color_for(email: str) -> str:
    """Hash an email address to a CSS ``hsl(...)`` color string."""
    hue, saturation, lightness = hsl_components(email)
    return f"hsl({hue}, {saturation}%, {lightness}%)"


def hsl_to_hex(hue: int, saturation: int, lightness: int) -> str:
    """Convert HSL (degrees, percent, percent) to a ``#rrggbb`` string."""
    r, g, b = colorsys.hls_to_rgb(hue / 360, lightness / 100, saturation / 100)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))
