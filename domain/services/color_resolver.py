from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

DEFAULT_NODE_COLOR = "#6366F1"
DEFAULT_LINK_COLOR = "#E5E7EB"

_HEX_PATTERN = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

RGB = Tuple[int, int, int]


class ColorScheme(str, Enum):
    DEFAULT = "default"
    OCEAN = "ocean"
    SUNSET = "sunset"
    FOREST = "forest"
    NEON = "neon"
    PASTEL = "pastel"
    MONOCHROME = "monochrome"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Palette:
    name: str
    node_colors: Tuple[str, ...]
    link_color: str = DEFAULT_LINK_COLOR


COLOR_SCHEMES: Dict[ColorScheme, Palette] = {
    ColorScheme.DEFAULT: Palette(
        "Default", ("#6366F1", "#8B5CF6", "#EC4899", "#EF4444", "#F59E0B"), "#E5E7EB"
    ),
    ColorScheme.OCEAN: Palette(
        "Ocean", ("#0EA5E9", "#06B6D4", "#14B8A6", "#10B981", "#22D3EE"), "#E0F2FE"
    ),
    ColorScheme.SUNSET: Palette(
        "Sunset", ("#F97316", "#FB923C", "#FCD34D", "#FDE047", "#FEF3C7"), "#FED7AA"
    ),
    ColorScheme.FOREST: Palette(
        "Forest", ("#16A34A", "#22C55E", "#4ADE80", "#86EFAC", "#BBF7D0"), "#DCFCE7"
    ),
    ColorScheme.NEON: Palette(
        "Neon", ("#E11D48", "#F43F5E", "#EC4899", "#D946EF", "#A855F7"), "#FCE7F3"
    ),
    ColorScheme.PASTEL: Palette(
        "Pastel", ("#C084FC", "#F0ABFC", "#FCA5A5", "#FCD34D", "#86EFAC"), "#F3E8FF"
    ),
    ColorScheme.MONOCHROME: Palette(
        "Monochrome", ("#374151", "#4B5563", "#6B7280", "#9CA3AF", "#D1D5DB"), "#E5E7EB"
    ),
    ColorScheme.CUSTOM: Palette("Custom", (), "#E5E7EB"),
}


@dataclass(frozen=True)
class ColorResolver:
    """Resolves node and link colors for one diagram.

    A named scheme supplies the node colors unless custom colors are given for
    the ``custom`` scheme. An explicit link color overrides the scheme's one.
    """

    scheme: ColorScheme = ColorScheme.DEFAULT
    custom_colors: Tuple[str, ...] = field(default_factory=tuple)
    link_color: Optional[str] = None

    def node_color(self, index: int) -> str:
        return resolve_node_color(self.scheme, index, self.custom_colors)

    def base_link_color(self) -> str:
        if self.link_color:
            return self.link_color
        return COLOR_SCHEMES[self.scheme].link_color


def resolve_palette(
    palette: ColorScheme | str | Sequence[str],
) -> Tuple[ColorScheme, Tuple[str, ...]]:
    if isinstance(palette, ColorScheme):
        return palette, ()
    if isinstance(palette, str):
        try:
            return ColorScheme(palette.strip().lower()), ()
        except ValueError:
            return ColorScheme.CUSTOM, (palette,)
    return ColorScheme.CUSTOM, tuple(palette)


def resolve_node_color(
    scheme: ColorScheme | str,
    index: int,
    custom_colors: Optional[Sequence[str]] = None,
) -> str:
    scheme = ColorScheme(scheme)
    if custom_colors and (scheme is ColorScheme.CUSTOM or not COLOR_SCHEMES[scheme].node_colors):
        return custom_colors[index % len(custom_colors)]
    colors = COLOR_SCHEMES[scheme].node_colors
    if not colors:
        return DEFAULT_NODE_COLOR
    return colors[index % len(colors)]


def hex_to_rgb(color: str) -> Optional[RGB]:
    match = _HEX_PATTERN.match(color.strip())
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{_clamp(value):02x}" for value in (r, g, b))


def generate_gradient(start_color: str, end_color: str, steps: int = 5) -> List[str]:
    start = hex_to_rgb(start_color)
    end = hex_to_rgb(end_color)
    if not start or not end or steps < 1:
        return [start_color]
    if steps == 1:
        return [rgb_to_hex(*start)]

    gradient: List[str] = []
    for step in range(steps):
        ratio = step / (steps - 1)
        channels = [round(a + (b - a) * ratio) for a, b in zip(start, end)]
        gradient.append(rgb_to_hex(*channels))
    return gradient


def blend_colors(first: str, second: str, ratio: float = 0.5) -> str:
    a = hex_to_rgb(first)
    b = hex_to_rgb(second)
    if not a or not b:
        return first
    return rgb_to_hex(*(round(x + (y - x) * ratio) for x, y in zip(a, b)))


def adjust_brightness(color: str, amount: int) -> str:
    rgb = hex_to_rgb(color)
    if not rgb:
        return color
    return rgb_to_hex(*(value + amount for value in rgb))


def generate_harmonious_colors(base_color: str, count: int = 5) -> List[str]:
    colors = [base_color]
    for idx in range(1, count):
        colors.append(shift_hue(base_color, 360 / count * idx))
    return colors


def shift_hue(color: str, degrees: float) -> str:
    rgb = hex_to_rgb(color)
    if not rgb:
        return color
    hue, saturation, lightness = rgb_to_hsl(*rgb)
    return rgb_to_hex(*hsl_to_rgb((hue + degrees) % 360, saturation, lightness))


def rgb_to_hsl(r: int, g: int, b: int) -> Tuple[float, float, float]:
    red, green, blue = r / 255, g / 255, b / 255
    high = max(red, green, blue)
    low = min(red, green, blue)
    lightness = (high + low) / 2
    if high == low:
        return 0.0, 0.0, lightness

    delta = high - low
    saturation = delta / (2 - high - low) if lightness > 0.5 else delta / (high + low)
    if high == red:
        hue = (green - blue) / delta + (6 if green < blue else 0)
    elif high == green:
        hue = (blue - red) / delta + 2
    else:
        hue = (red - green) / delta + 4
    return hue / 6 * 360, saturation, lightness


def hsl_to_rgb(h: float, s: float, l: float) -> RGB:  # noqa: E741
    hue = h / 360
    if s == 0:
        channel = round(l * 255)
        return channel, channel, channel

    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q
    return (
        round(_hue_to_channel(p, q, hue + 1 / 3) * 255),
        round(_hue_to_channel(p, q, hue) * 255),
        round(_hue_to_channel(p, q, hue - 1 / 3) * 255),
    )


def _hue_to_channel(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def _clamp(value: float) -> int:
    return max(0, min(255, int(round(value))))
