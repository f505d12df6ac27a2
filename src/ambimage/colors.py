# colors.py (3.9+)
import math
from typing import NamedTuple, Optional, Sequence, Tuple

RGB = Tuple[int, int, int]


class HSV(NamedTuple):
    hue: float          # degrees, [0, 360)
    saturation: float   # percent, [0, 100]
    value: float        # percent, [0, 100]


def _round(x: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(x + 0.5))


def rgb_to_hsv(color: Sequence[int]) -> Optional[HSV]:
    """
    Convert an RGB triple (0..255) to integer HSV.

    Returns None when the colour is achromatic (all channels equal): the hue
    is undefined there, and gray edges are common enough that callers are
    expected to check for it rather than catch anything.
    """
    r = color[0] / 255
    g = color[1] / 255
    b = color[2] / 255

    x = min(r, g, b)
    val = max(r, g, b)
    if x == val:
        return None

    # sector chosen by whichever channel is the minimum
    if r == x:
        d1, d2 = g - b, 3
    elif g == x:
        d1, d2 = b - r, 5
    else:
        d1, d2 = r - g, 1

    hue = math.floor((d2 - d1 / (val - x)) * 60) % 360
    sat = math.floor(((val - x) / val) * 100)
    return HSV(hue, sat, math.floor(val * 100))


def hsv_to_rgb(color: Sequence[float]) -> RGB:
    """Convert HSV (degrees, percent, percent) back to an RGB triple."""
    h = color[0] / 360
    s = color[1] / 100
    v = color[2] / 100

    if s <= 0:
        gray = _round(v * 255)
        return (gray, gray, gray)

    if h >= 1:
        h = 0
    h = 6 * h
    f = h - math.floor(h)
    a = _round(255 * v * (1 - s))
    b = _round(255 * v * (1 - s * f))
    c = _round(255 * v * (1 - s * (1 - f)))
    v = _round(255 * v)

    sector = int(math.floor(h)) % 6
    if sector == 0:
        return (v, c, a)
    elif sector == 1:
        return (b, v, a)
    elif sector == 2:
        return (a, v, c)
    elif sector == 3:
        return (a, b, v)
    elif sector == 4:
        return (c, a, v)
    return (v, a, b)


def adjust_hsv(hsv: HSV, saturation: float, brightness: float) -> HSV:
    """Scale saturation and value by the given multipliers, capped at 100."""
    return HSV(
        hsv.hue,
        min(100.0, hsv.saturation * saturation),
        min(100.0, hsv.value * brightness),
    )


def adjust_color(color: Sequence[int], saturation: float, brightness: float) -> RGB:
    """
    Boost an averaged edge colour through an HSV round-trip.

    Hue is preserved; saturation and brightness are multiplied and clamped.
    Gray input has no hue to preserve and is returned unchanged.
    """
    hsv = rgb_to_hsv(color)
    if hsv is None:
        return (int(color[0]), int(color[1]), int(color[2]))
    return hsv_to_rgb(adjust_hsv(hsv, saturation, brightness))


def rgb_string(color: Sequence[int]) -> str:
    return "rgb(%d,%d,%d)" % (color[0], color[1], color[2])
