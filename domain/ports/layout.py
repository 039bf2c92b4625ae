from __future__ import annotations

from typing import Protocol

from domain.models import FlowGraph, GeometryPayload


class LayoutEngine(Protocol):
    def build_payload(self, graph: FlowGraph) -> GeometryPayload:
        ...
