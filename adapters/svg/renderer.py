from __future__ import annotations

import html
from dataclasses import dataclass
from typing import List

from domain.models import CurveStyle, NodeShape
from domain.services.build_flow_diagram import EdgeStyle, FlowDiagram, NodeStyle


@dataclass(frozen=True)
class SvgRenderConfig:
    background: str = "#ffffff"
    font_family: str = "Inter, sans-serif"
    font_size: float = 12.0
    label_gap: float = 6.0
    text_color: str = "#333333"


class SvgRenderer:
    def __init__(self, config: SvgRenderConfig | None = None) -> None:
        self.config = config or SvgRenderConfig()

    def render(self, diagram: FlowDiagram) -> str:
        width, height = self._canvas_size(diagram)
        defs: List[str] = []
        links: List[str] = []
        for style in diagram.edges:
            links.append(self._link_element(style, defs))
        nodes: List[str] = []
        last_depth = max((style.node.depth for style in diagram.nodes), default=0)
        for style in diagram.nodes:
            nodes.append(self._node_element(style))
            nodes.append(self._label_element(style, last_depth))

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:.2f}" height="{height:.2f}" '
            f'viewBox="0 0 {width:.2f} {height:.2f}">',
            f'  <rect width="100%" height="100%" fill="{self.config.background}"/>',
        ]
        if defs:
            parts.append("  <defs>")
            parts.extend(defs)
            parts.append("  </defs>")
        parts.append('  <g class="links">')
        parts.extend(links)
        parts.append("  </g>")
        parts.append('  <g class="nodes">')
        parts.extend(nodes)
        parts.append("  </g>")
        parts.append("</svg>")
        return "\n".join(parts) + "\n"

    def _canvas_size(self, diagram: FlowDiagram) -> tuple[float, float]:
        if diagram.placement is not None and diagram.options.frame_target is not None:
            return diagram.options.frame_target.width, diagram.options.frame_target.height
        return diagram.payload.width, diagram.payload.height

    def _link_element(self, style: EdgeStyle, defs: List[str]) -> str:
        edge = style.edge
        fill = style.color
        if style.gradient and style.path.style is CurveStyle.GRADIENT:
            gradient_id = f"link-gradient-{edge.index}"
            start, end = style.gradient
            defs.append(
                f'    <linearGradient id="{gradient_id}" gradientUnits="userSpaceOnUse" '
                f'x1="{edge.source.x1:.2f}" x2="{edge.target.x0:.2f}">'
                f'<stop offset="0%" stop-color="{start}"/>'
                f'<stop offset="100%" stop-color="{end}"/></linearGradient>'
            )
            fill = f"url(#{gradient_id})"
        title = html.escape(f"{edge.source.name} → {edge.target.name}: {edge.value:g}")
        return (
            f'    <path d="{style.path.to_svg_path()}" fill="{fill}" '
            f'fill-opacity="{style.opacity:g}"><title>{title}</title></path>'
        )

    def _node_element(self, style: NodeStyle) -> str:
        node = style.node
        if style.shape.kind is NodeShape.ELLIPSE:
            cx, cy = (node.x0 + node.x1) / 2, (node.y0 + node.y1) / 2
            return (
                f'    <ellipse cx="{cx:.2f}" cy="{cy:.2f}" '
                f'rx="{node.width / 2:.2f}" ry="{node.height / 2:.2f}" fill="{style.color}"/>'
            )
        radius = ""
        if style.shape.kind is NodeShape.ROUNDED_RECTANGLE:
            radius = f' rx="{style.shape.radius:g}" ry="{style.shape.radius:g}"'
        return (
            f'    <rect x="{node.x0:.2f}" y="{node.y0:.2f}" width="{node.width:.2f}" '
            f'height="{node.height:.2f}"{radius} fill="{style.color}"/>'
        )

    def _label_element(self, style: NodeStyle, last_depth: int) -> str:
        node = style.node
        y = (node.y0 + node.y1) / 2
        # Labels of the last column sit on the left so they stay inside the canvas.
        if node.depth == last_depth and last_depth > 0:
            x, anchor = node.x0 - self.config.label_gap, "end"
        else:
            x, anchor = node.x1 + self.config.label_gap, "start"
        return (
            f'    <text x="{x:.2f}" y="{y:.2f}" dy="0.35em" text-anchor="{anchor}" '
            f'font-family="{self.config.font_family}" font-size="{self.config.font_size:g}" '
            f'fill="{self.config.text_color}">{html.escape(node.name)}</text>'
        )
