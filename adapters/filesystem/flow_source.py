from __future__ import annotations

from pathlib import Path

from domain.errors import ParseError
from domain.models import DataFormat, FlowInput
from domain.ports.repositories import FlowSource
from domain.services.parse_flow_graph import detect_format


class FileSystemFlowSource(FlowSource):
    def load(self, path: Path, data_format: DataFormat | None = None) -> FlowInput:
        if not path.exists():
            msg = f"File not found: {path}"
            raise ParseError(msg)
        fmt = data_format or detect_format(path)
        try:
            text = path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"{path.name} is not valid UTF-8 text"
            raise ParseError(msg, "Save the file with UTF-8 encoding") from exc
        return FlowInput(text=text, data_format=fmt, name=path.stem)
