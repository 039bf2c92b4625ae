from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from domain.models import DataFormat, FlowInput

if TYPE_CHECKING:
    from domain.services.build_flow_diagram import FlowDiagram


class FlowSource(Protocol):
    def load(self, path: Path, data_format: DataFormat | None = None) -> FlowInput: ...


class DiagramRepository(Protocol):
    def save(self, diagram: FlowDiagram, path: Path) -> None: ...
