from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from domain.models import (
    PAYLOAD_SCHEMA_VERSION,
    CurveStyle,
    DataFormat,
    FlowGraph,
    FramePlacement,
    FrameTarget,
    GeometryPayload,
    LaidOutEdge,
    LaidOutNode,
    NodeShape,
)
from domain.ports.layout import LayoutEngine
from domain.services.color_resolver import (
    ColorResolver,
    ColorScheme,
    adjust_brightness,
    blend_colors,
    resolve_palette,
)
from domain.services.frame_adapter import DEFAULT_FRAME_MARGIN, fit_to_frame
from domain.services.parse_flow_graph import parse_flow_graph
from domain.services.path_synthesizer import RibbonPath, build_ribbon

logger = logging.getLogger(__name__)

DEFAULT_LINK_OPACITY = 0.3
DEFAULT_NODE_RADIUS = 4.0
GRADIENT_NODE_SHADE = -20


@dataclass(frozen=True)
class DiagramOptions:
    curve_style: CurveStyle = CurveStyle.CURVED
    palette: ColorScheme | str | Sequence[str] = ColorScheme.DEFAULT
    custom_colors: Tuple[str, ...] = ()
    link_color: Optional[str] = None
    node_shape: NodeShape = NodeShape.RECTANGLE
    node_radius: float = DEFAULT_NODE_RADIUS
    link_opacity: float = DEFAULT_LINK_OPACITY
    use_gradient: bool = False
    frame_target: Optional[FrameTarget] = None
    frame_margin: float = DEFAULT_FRAME_MARGIN


@dataclass(frozen=True)
class ShapeClass:
    kind: NodeShape
    radius: float = 0.0


@dataclass(frozen=True)
class NodeStyle:
    node: LaidOutNode
    color: str
    shape: ShapeClass


@dataclass(frozen=True)
class EdgeStyle:
    edge: LaidOutEdge
    color: str
    opacity: float
    path: RibbonPath
    gradient: Optional[Tuple[str, str]] = None


@dataclass(frozen=True)
class FlowDiagram:
    payload: GeometryPayload
    nodes: Tuple[NodeStyle, ...]
    edges: Tuple[EdgeStyle, ...]
    placement: Optional[FramePlacement] = None
    options: DiagramOptions = field(default_factory=DiagramOptions)

    def to_dict(self) -> dict:
        return {
            "schema_version": PAYLOAD_SCHEMA_VERSION,
            "width": self.payload.width,
            "height": self.payload.height,
            "curve_style": self.options.curve_style.value,
            "placement": _placement_dict(self.placement),
            "nodes": [_node_dict(style) for style in self.nodes],
            "edges": [_edge_dict(style) for style in self.edges],
        }


class FlowDiagramBuilder:
    def __init__(self, layout_engine: LayoutEngine) -> None:
        self.layout_engine = layout_engine

    def build_from_text(
        self,
        text: str,
        data_format: DataFormat | str,
        options: DiagramOptions | None = None,
    ) -> FlowDiagram:
        graph = parse_flow_graph(text, data_format)
        return self.build(graph, options)

    def build(self, graph: FlowGraph, options: DiagramOptions | None = None) -> FlowDiagram:
        options = options or DiagramOptions()
        payload = self.layout_engine.build_payload(graph)

        placement: FramePlacement | None = None
        if options.frame_target is not None:
            fitted = fit_to_frame(payload, options.frame_target, options.frame_margin)
            payload, placement = fitted.payload, fitted.placement

        scheme, palette_colors = resolve_palette(options.palette)
        resolver = ColorResolver(
            scheme=scheme,
            custom_colors=palette_colors or tuple(options.custom_colors),
            link_color=options.link_color,
        )
        node_colors = {
            node.id: resolver.node_color(index) for index, node in enumerate(payload.nodes)
        }
        nodes = tuple(
            self._style_node(node, node_colors[node.id], options) for node in payload.nodes
        )
        edges = tuple(
            self._style_edge(edge, node_colors, resolver, options) for edge in payload.edges
        )
        logger.debug(
            "Built flow diagram: %d nodes, %d links, style %s",
            len(nodes),
            len(edges),
            options.curve_style.value,
        )
        return FlowDiagram(
            payload=payload, nodes=nodes, edges=edges, placement=placement, options=options
        )

    def _style_node(self, node: LaidOutNode, color: str, options: DiagramOptions) -> NodeStyle:
        if options.use_gradient:
            color = adjust_brightness(color, GRADIENT_NODE_SHADE)
        radius = options.node_radius if options.node_shape is NodeShape.ROUNDED_RECTANGLE else 0.0
        return NodeStyle(
            node=node, color=color, shape=ShapeClass(kind=options.node_shape, radius=radius)
        )

    def _style_edge(
        self,
        edge: LaidOutEdge,
        node_colors: dict[str, str],
        resolver: ColorResolver,
        options: DiagramOptions,
    ) -> EdgeStyle:
        path = build_ribbon(edge, options.curve_style)
        if options.curve_style is CurveStyle.GRADIENT:
            source_color = node_colors[edge.source.id]
            target_color = node_colors[edge.target.id]
            return EdgeStyle(
                edge=edge,
                color=blend_colors(source_color, target_color),
                opacity=options.link_opacity,
                path=path,
                gradient=(source_color, target_color),
            )
        return EdgeStyle(
            edge=edge,
            color=resolver.base_link_color(),
            opacity=options.link_opacity,
            path=path,
        )


def _placement_dict(placement: FramePlacement | None) -> dict | None:
    if placement is None:
        return None
    return {
        "scale": placement.scale,
        "offset": {"x": placement.offset.x, "y": placement.offset.y},
        "origin": {"x": placement.origin.x, "y": placement.origin.y},
        "size": {"width": placement.size.width, "height": placement.size.height},
    }


def _node_dict(style: NodeStyle) -> dict:
    node = style.node
    return {
        "id": node.id,
        "name": node.name,
        "value": node.value,
        "declared_value": node.declared_value,
        "depth": node.depth,
        "x0": node.x0,
        "x1": node.x1,
        "y0": node.y0,
        "y1": node.y1,
        "color": style.color,
        "shape": {"kind": style.shape.kind.value, "radius": style.shape.radius},
    }


def _edge_dict(style: EdgeStyle) -> dict:
    edge = style.edge
    return {
        "index": edge.index,
        "source": edge.source.id,
        "target": edge.target.id,
        "value": edge.value,
        "width": edge.width,
        "y0": edge.y0,
        "y1": edge.y1,
        "target_y0": edge.target_y0,
        "target_y1": edge.target_y1,
        "color": style.color,
        "opacity": style.opacity,
        "gradient": list(style.gradient) if style.gradient else None,
        "path": style.path.to_dict(),
    }
