from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from domain.models import FlowGraph


@dataclass(frozen=True)
class FlowMetrics:
    inflow: dict[str, float]
    outflow: dict[str, float]

    def node_value(self, node_id: str, declared: float = 0.0) -> float:
        return max(self.inflow.get(node_id, 0.0), self.outflow.get(node_id, 0.0), declared)


def compute_flow_metrics(graph: FlowGraph) -> FlowMetrics:
    inflow = {node_id: 0.0 for node_id in graph.nodes}
    outflow = {node_id: 0.0 for node_id in graph.nodes}
    for edge in graph.edges:
        outflow[edge.source.id] += edge.value
        inflow[edge.target.id] += edge.value
    return FlowMetrics(inflow=inflow, outflow=outflow)


def find_cycle_path(adjacency: Mapping[str, list[str]]) -> list[str] | None:
    # Explicit frame stack: long chains must not hit the recursion limit.
    color: dict[str, int] = {node: 0 for node in adjacency}
    for root in adjacency:
        if color[root]:
            continue
        color[root] = 1
        path: list[str] = [root]
        frames: list[Iterator[str]] = [iter(adjacency.get(root, []))]
        while frames:
            neighbor = next(frames[-1], None)
            if neighbor is None:
                color[path.pop()] = 2
                frames.pop()
                continue
            state = color.get(neighbor, 0)
            if state == 1:
                idx = path.index(neighbor)
                return path[idx:] + [neighbor]
            if state == 0:
                color[neighbor] = 1
                path.append(neighbor)
                frames.append(iter(adjacency.get(neighbor, [])))
    return None
