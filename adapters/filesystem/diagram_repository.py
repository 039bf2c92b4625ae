from __future__ import annotations

from pathlib import Path

from adapters.filesystem.json_utils import write_bytes_atomic, write_json_atomic
from adapters.svg.renderer import SvgRenderer
from domain.ports.repositories import DiagramRepository
from domain.services.build_flow_diagram import FlowDiagram


class FileSystemDiagramRepository(DiagramRepository):
    def __init__(self, renderer: SvgRenderer | None = None) -> None:
        self.renderer = renderer or SvgRenderer()

    def save(self, diagram: FlowDiagram, path: Path) -> None:
        if path.suffix.lower() == ".svg":
            write_bytes_atomic(path, self.renderer.render(diagram).encode("utf-8"))
            return
        write_json_atomic(path, diagram.to_dict())
