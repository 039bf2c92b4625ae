from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from domain.errors import LayoutError
from domain.models import (
    FlowEdge,
    FlowGraph,
    GeometryPayload,
    LaidOutEdge,
    LaidOutNode,
    Margins,
)
from domain.ports.layout import LayoutEngine
from domain.services.graph_metrics import compute_flow_metrics

logger = logging.getLogger(__name__)

ALIGN_JUSTIFY = "justify"
ALIGN_LEFT = "left"


@dataclass(frozen=True)
class SankeyLayoutConfig:
    width: float = 800.0
    height: float = 600.0
    node_thickness: float = 15.0
    node_padding: float = 10.0
    margins: Margins = Margins()
    iterations: int = 6
    align: str = ALIGN_JUSTIFY


@dataclass
class _NodeState:
    order: int
    node_id: str
    name: str
    declared: float
    value: float
    layer: int = 0
    x0: float = 0.0
    x1: float = 0.0
    y0: float = 0.0
    y1: float = 0.0
    outgoing: List[FlowEdge] = field(default_factory=list)
    incoming: List[FlowEdge] = field(default_factory=list)

    @property
    def center(self) -> float:
        return (self.y0 + self.y1) / 2

    def shift(self, dy: float) -> None:
        self.y0 += dy
        self.y1 += dy


class SankeyLayoutEngine(LayoutEngine):
    def __init__(self, config: SankeyLayoutConfig | None = None) -> None:
        self.config = config or SankeyLayoutConfig()

    def build_payload(self, graph: FlowGraph) -> GeometryPayload:
        if not graph.edges:
            msg = "Cannot lay out a graph without links"
            raise LayoutError(msg)

        states = self._build_states(graph)
        columns = self._assign_columns(states)

        margins = self.config.margins
        x0, x1 = margins.left, self.config.width - margins.right
        y0, y1 = margins.top, self.config.height - margins.bottom
        if x1 - x0 < self.config.node_thickness or y1 <= y0:
            msg = (
                f"Layout area {self.config.width}x{self.config.height} is too small "
                "for the configured margins"
            )
            raise LayoutError(msg)

        self._position_columns(columns, x0, x1)
        padding = self._effective_padding(columns, y1 - y0)
        ky = self._compute_scale(columns, y1 - y0, padding)
        self._initialize_breadths(columns, ky, y0, y1, padding)
        self._relax(columns, y0, y1, padding)

        source_bands, target_bands = self._compute_bands(states, ky)
        payload = self._build_payload(graph, states, ky, source_bands, target_bands)
        self._validate(payload)
        logger.debug(
            "Sankey layout computed: %d nodes, %d links, %d columns, scale %.6f",
            len(payload.nodes),
            len(payload.edges),
            len(columns),
            ky,
        )
        return payload

    def _build_states(self, graph: FlowGraph) -> Dict[str, _NodeState]:
        metrics = compute_flow_metrics(graph)
        states: Dict[str, _NodeState] = {}
        for order, node in enumerate(graph.nodes.values()):
            states[node.id] = _NodeState(
                order=order,
                node_id=node.id,
                name=node.name,
                declared=node.value,
                value=metrics.node_value(node.id, node.value),
            )
        for edge in graph.edges:
            states[edge.source.id].outgoing.append(edge)
            states[edge.target.id].incoming.append(edge)
        return states

    def _assign_columns(self, states: Dict[str, _NodeState]) -> List[List[_NodeState]]:
        indegree = {node_id: len(state.incoming) for node_id, state in states.items()}
        queue = deque(state for state in states.values() if indegree[state.node_id] == 0)
        visited = 0
        while queue:
            state = queue.popleft()
            visited += 1
            for edge in state.outgoing:
                target = states[edge.target.id]
                target.layer = max(target.layer, state.layer + 1)
                indegree[target.node_id] -= 1
                if indegree[target.node_id] == 0:
                    queue.append(target)
        if visited != len(states):
            msg = "Links form a cycle; columns cannot be assigned"
            raise LayoutError(msg)

        last_layer = max(state.layer for state in states.values())
        if self.config.align == ALIGN_JUSTIFY:
            for state in states.values():
                if not state.outgoing:
                    state.layer = last_layer

        columns: List[List[_NodeState]] = [[] for _ in range(last_layer + 1)]
        for state in sorted(states.values(), key=lambda s: s.order):
            columns[state.layer].append(state)
        return columns

    def _position_columns(self, columns: List[List[_NodeState]], x0: float, x1: float) -> None:
        thickness = self.config.node_thickness
        step = (x1 - x0 - thickness) / max(1, len(columns) - 1)
        for layer, column in enumerate(columns):
            for state in column:
                state.x0 = x0 + layer * step
                state.x1 = state.x0 + thickness

    def _effective_padding(self, columns: List[List[_NodeState]], span: float) -> float:
        longest = max(len(column) for column in columns)
        if longest <= 1:
            return self.config.node_padding
        # Paddings never take more than half of the usable height.
        return min(self.config.node_padding, span / (longest - 1) / 2)

    def _compute_scale(
        self, columns: List[List[_NodeState]], span: float, padding: float
    ) -> float:
        scales: List[float] = []
        for column in columns:
            total = sum(state.value for state in column)
            if total <= 0:
                continue
            scales.append((span - (len(column) - 1) * padding) / total)
        if not scales:
            msg = "Every node has zero flow"
            raise LayoutError(msg)
        return min(scales)

    def _initialize_breadths(
        self,
        columns: List[List[_NodeState]],
        ky: float,
        y0: float,
        y1: float,
        padding: float,
    ) -> None:
        for column in columns:
            y = y0
            for state in column:
                state.y0 = y
                state.y1 = y + state.value * ky
                y = state.y1 + padding
            # Spread the leftover space evenly between the nodes of the column.
            gap = (y1 - y + padding) / (len(column) + 1)
            for idx, state in enumerate(column, start=1):
                state.shift(gap * idx)

    def _relax(
        self,
        columns: List[List[_NodeState]],
        y0: float,
        y1: float,
        padding: float,
    ) -> None:
        states = {state.node_id: state for column in columns for state in column}
        iterations = max(0, self.config.iterations)
        for idx in range(iterations):
            alpha = 0.99**idx
            beta = max(1 - alpha, (idx + 1) / iterations)
            self._relax_right_to_left(columns, states, alpha, beta, y0, y1, padding)
            self._relax_left_to_right(columns, states, alpha, beta, y0, y1, padding)
        if iterations == 0:
            for column in columns:
                self._resolve_collisions(column, 1.0, y0, y1, padding)

    def _relax_left_to_right(
        self,
        columns: List[List[_NodeState]],
        states: Dict[str, _NodeState],
        alpha: float,
        beta: float,
        y0: float,
        y1: float,
        padding: float,
    ) -> None:
        for column in columns[1:]:
            for state in column:
                anchor = self._barycenter(
                    [(states[edge.source.id], edge.value) for edge in state.incoming]
                )
                if anchor is not None:
                    state.shift((anchor - state.center) * alpha)
            self._resolve_collisions(column, beta, y0, y1, padding)

    def _relax_right_to_left(
        self,
        columns: List[List[_NodeState]],
        states: Dict[str, _NodeState],
        alpha: float,
        beta: float,
        y0: float,
        y1: float,
        padding: float,
    ) -> None:
        for column in reversed(columns[:-1]):
            for state in column:
                anchor = self._barycenter(
                    [(states[edge.target.id], edge.value) for edge in state.outgoing]
                )
                if anchor is not None:
                    state.shift((anchor - state.center) * alpha)
            self._resolve_collisions(column, beta, y0, y1, padding)

    @staticmethod
    def _barycenter(neighbors: List[Tuple[_NodeState, float]]) -> float | None:
        weight = sum(value for _, value in neighbors)
        if weight <= 0:
            return None
        return sum(state.center * value for state, value in neighbors) / weight

    def _resolve_collisions(
        self, column: List[_NodeState], alpha: float, y0: float, y1: float, padding: float
    ) -> None:
        column.sort(key=lambda s: (s.y0, s.order))
        count = len(column)
        if not count:
            return
        middle = count >> 1
        subject = column[middle]
        self._push_up(column, subject.y0 - padding, middle - 1, alpha, padding)
        self._push_down(column, subject.y1 + padding, middle + 1, alpha, padding)
        self._push_up(column, y1, count - 1, alpha, padding)
        self._push_down(column, y0, 0, alpha, padding)

    @staticmethod
    def _push_down(
        column: List[_NodeState], y: float, start: int, alpha: float, padding: float
    ) -> None:
        for idx in range(start, len(column)):
            state = column[idx]
            dy = (y - state.y0) * alpha
            if dy > 1e-6:
                state.shift(dy)
            y = state.y1 + padding

    @staticmethod
    def _push_up(
        column: List[_NodeState], y: float, start: int, alpha: float, padding: float
    ) -> None:
        for idx in range(start, -1, -1):
            state = column[idx]
            dy = (state.y1 - y) * alpha
            if dy > 1e-6:
                state.shift(-dy)
            y = state.y0 - padding

    def _compute_bands(
        self, states: Dict[str, _NodeState], ky: float
    ) -> Tuple[Dict[int, float], Dict[int, float]]:
        source_bands: Dict[int, float] = {}
        target_bands: Dict[int, float] = {}
        for state in sorted(states.values(), key=lambda s: s.order):
            outgoing = sorted(
                state.outgoing, key=lambda e: (states[e.target.id].y0, e.index)
            )
            y = state.y0
            for edge in outgoing:
                source_bands[edge.index] = y
                y += edge.value * ky
            incoming = sorted(
                state.incoming, key=lambda e: (states[e.source.id].y0, e.index)
            )
            y = state.y0
            for edge in incoming:
                target_bands[edge.index] = y
                y += edge.value * ky
        return source_bands, target_bands

    def _build_payload(
        self,
        graph: FlowGraph,
        states: Dict[str, _NodeState],
        ky: float,
        source_bands: Dict[int, float],
        target_bands: Dict[int, float],
    ) -> GeometryPayload:
        nodes: Dict[str, LaidOutNode] = {}
        for state in sorted(states.values(), key=lambda s: s.order):
            nodes[state.node_id] = LaidOutNode(
                id=state.node_id,
                name=state.name,
                value=state.value,
                declared_value=state.declared,
                depth=state.layer,
                x0=state.x0,
                x1=state.x1,
                y0=state.y0,
                y1=state.y1,
            )
        edges = tuple(
            LaidOutEdge(
                index=edge.index,
                source=nodes[edge.source.id],
                target=nodes[edge.target.id],
                value=edge.value,
                width=edge.value * ky,
                y0=source_bands[edge.index],
                target_y0=target_bands[edge.index],
            )
            for edge in graph.edges
        )
        return GeometryPayload(
            nodes=tuple(nodes.values()),
            edges=edges,
            width=self.config.width,
            height=self.config.height,
        )

    @staticmethod
    def _validate(payload: GeometryPayload) -> None:
        for node in payload.nodes:
            coords = (node.x0, node.x1, node.y0, node.y1)
            if not all(math.isfinite(value) for value in coords):
                msg = f"Node {node.id!r} has non-finite coordinates: {coords}"
                raise LayoutError(msg)
        for edge in payload.edges:
            if not math.isfinite(edge.width) or edge.width <= 0:
                msg = (
                    f"Link {edge.source.id} -> {edge.target.id} has invalid width: {edge.width}"
                )
                raise LayoutError(msg)
            if not (math.isfinite(edge.y0) and math.isfinite(edge.target_y0)):
                msg = f"Link {edge.source.id} -> {edge.target.id} has non-finite band position"
                raise LayoutError(msg)
