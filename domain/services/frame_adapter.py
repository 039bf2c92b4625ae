from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from domain.errors import LayoutError
from domain.models import (
    FramePlacement,
    FrameTarget,
    GeometryPayload,
    LaidOutEdge,
    LaidOutNode,
    Point,
    Size,
)

logger = logging.getLogger(__name__)

DEFAULT_FRAME_MARGIN = 15.0


@dataclass(frozen=True)
class FittedPayload:
    payload: GeometryPayload
    placement: FramePlacement


def compute_placement(
    payload: GeometryPayload, target: FrameTarget, margin: float = DEFAULT_FRAME_MARGIN
) -> FramePlacement:
    if target.width <= 0 or target.height <= 0:
        msg = f"Frame size must be positive, got {target.width}x{target.height}"
        raise LayoutError(msg)
    if payload.width <= 0 or payload.height <= 0:
        msg = f"Payload size must be positive, got {payload.width}x{payload.height}"
        raise LayoutError(msg)

    available_width = target.width - 2 * margin
    available_height = target.height - 2 * margin
    if available_width <= 0 or available_height <= 0:
        msg = f"Frame {target.width}x{target.height} leaves no room inside a margin of {margin}"
        raise LayoutError(msg)

    scale = min(available_width / payload.width, available_height / payload.height)
    scaled = Size(payload.width * scale, payload.height * scale)
    offset = Point(
        margin + (available_width - scaled.width) / 2,
        margin + (available_height - scaled.height) / 2,
    )
    return FramePlacement(
        scale=scale,
        offset=offset,
        origin=Point(target.x, target.y),
        size=scaled,
    )


def fit_to_frame(
    payload: GeometryPayload, target: FrameTarget, margin: float = DEFAULT_FRAME_MARGIN
) -> FittedPayload:
    placement = compute_placement(payload, target, margin)
    scale = placement.scale
    dx, dy = placement.offset.x, placement.offset.y

    nodes = {
        node.id: LaidOutNode(
            id=node.id,
            name=node.name,
            value=node.value,
            declared_value=node.declared_value,
            depth=node.depth,
            x0=node.x0 * scale + dx,
            x1=node.x1 * scale + dx,
            y0=node.y0 * scale + dy,
            y1=node.y1 * scale + dy,
        )
        for node in payload.nodes
    }
    edges = tuple(
        LaidOutEdge(
            index=edge.index,
            source=nodes[edge.source.id],
            target=nodes[edge.target.id],
            value=edge.value,
            width=edge.width * scale,
            y0=edge.y0 * scale + dy,
            target_y0=edge.target_y0 * scale + dy,
        )
        for edge in payload.edges
    )
    fitted = GeometryPayload(
        nodes=tuple(nodes.values()),
        edges=edges,
        width=placement.size.width,
        height=placement.size.height,
    )
    for node in fitted.nodes:
        if not all(math.isfinite(value) for value in (node.x0, node.x1, node.y0, node.y1)):
            msg = f"Scaled node {node.id!r} has non-finite coordinates"
            raise LayoutError(msg)
    logger.debug(
        "Fitted %.1fx%.1f payload into %.1fx%.1f frame at scale %.4f",
        payload.width,
        payload.height,
        target.width,
        target.height,
        scale,
    )
    return FittedPayload(payload=fitted, placement=placement)
