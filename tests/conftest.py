from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from adapters.layout.sankey import SankeyLayoutConfig, SankeyLayoutEngine
from domain.services.build_flow_diagram import FlowDiagramBuilder


def _clear_flow_env() -> None:
    for key in list(os.environ):
        if key.startswith("FLOW_"):
            os.environ.pop(key, None)


_clear_flow_env()


@pytest.fixture(autouse=True)
def clear_flow_env() -> Generator[None, None, None]:
    _clear_flow_env()
    yield
    _clear_flow_env()


@pytest.fixture
def layout_engine() -> SankeyLayoutEngine:
    return SankeyLayoutEngine(SankeyLayoutConfig())


@pytest.fixture
def layout_engine_factory() -> Callable[..., SankeyLayoutEngine]:
    def _factory(**overrides: object) -> SankeyLayoutEngine:
        return SankeyLayoutEngine(SankeyLayoutConfig(**overrides))  # type: ignore[arg-type]

    return _factory


@pytest.fixture
def diagram_builder(layout_engine: SankeyLayoutEngine) -> FlowDiagramBuilder:
    return FlowDiagramBuilder(layout_engine)


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    def _write(content: str) -> Path:
        path = tmp_path / "flow.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    return _write
