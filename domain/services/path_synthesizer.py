from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

from domain.models import CurveStyle, LaidOutEdge, Point


@dataclass(frozen=True)
class MoveTo:
    point: Point


@dataclass(frozen=True)
class LineTo:
    point: Point


@dataclass(frozen=True)
class CubicTo:
    control1: Point
    control2: Point
    point: Point


@dataclass(frozen=True)
class ClosePath:
    pass


PathCommand = Union[MoveTo, LineTo, CubicTo, ClosePath]


@dataclass(frozen=True)
class RibbonPath:
    style: CurveStyle
    commands: Tuple[PathCommand, ...]

    def points(self) -> List[Point]:
        """Anchor points of the outline, control points excluded."""
        return [
            command.point
            for command in self.commands
            if isinstance(command, (MoveTo, LineTo, CubicTo))
        ]

    def to_svg_path(self) -> str:
        parts: List[str] = []
        for command in self.commands:
            if isinstance(command, MoveTo):
                parts.append(f"M {_fmt(command.point)}")
            elif isinstance(command, LineTo):
                parts.append(f"L {_fmt(command.point)}")
            elif isinstance(command, CubicTo):
                parts.append(
                    f"C {_fmt(command.control1)} {_fmt(command.control2)} {_fmt(command.point)}"
                )
            else:
                parts.append("Z")
        return " ".join(parts)

    def to_dict(self) -> dict:
        commands: List[dict] = []
        for command in self.commands:
            if isinstance(command, MoveTo):
                commands.append({"op": "M", "points": [_pair(command.point)]})
            elif isinstance(command, LineTo):
                commands.append({"op": "L", "points": [_pair(command.point)]})
            elif isinstance(command, CubicTo):
                commands.append(
                    {
                        "op": "C",
                        "points": [
                            _pair(command.control1),
                            _pair(command.control2),
                            _pair(command.point),
                        ],
                    }
                )
            else:
                commands.append({"op": "Z", "points": []})
        return {"style": self.style.value, "commands": commands, "svg": self.to_svg_path()}


def build_ribbon(edge: LaidOutEdge, style: CurveStyle | str = CurveStyle.CURVED) -> RibbonPath:
    curve_style = CurveStyle(style)
    x0 = edge.source.x1
    x1 = edge.target.x0
    source_top, source_bottom = edge.y0, edge.y1
    target_top, target_bottom = edge.target_y0, edge.target_y1

    if curve_style is CurveStyle.STRAIGHT:
        commands: Tuple[PathCommand, ...] = (
            MoveTo(Point(x0, source_top)),
            LineTo(Point(x1, target_top)),
            LineTo(Point(x1, target_bottom)),
            LineTo(Point(x0, source_bottom)),
            ClosePath(),
        )
        return RibbonPath(style=curve_style, commands=commands)

    # Gradient ribbons share the curved outline; only the fill differs.
    mid_x = (x0 + x1) / 2
    commands = (
        MoveTo(Point(x0, source_top)),
        CubicTo(Point(mid_x, source_top), Point(mid_x, target_top), Point(x1, target_top)),
        LineTo(Point(x1, target_bottom)),
        CubicTo(
            Point(mid_x, target_bottom), Point(mid_x, source_bottom), Point(x0, source_bottom)
        ),
        ClosePath(),
    )
    return RibbonPath(style=curve_style, commands=commands)


def _fmt(point: Point) -> str:
    return f"{_num(point.x)} {_num(point.y)}"


def _pair(point: Point) -> List[float]:
    return [point.x, point.y]


def _num(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text
