from __future__ import annotations

from collections import defaultdict
from typing import Callable

import pytest

from adapters.layout.sankey import ALIGN_LEFT, SankeyLayoutEngine
from domain.errors import LayoutError
from domain.models import FlowGraph, GeometryPayload, Margins
from tests.helpers.flow_fixtures import SAMPLE_IDS, sample_graph, simple_graph

EPS = 1e-5


def test_simple_graph_geometry(layout_engine: SankeyLayoutEngine) -> None:
    payload = layout_engine.build_payload(simple_graph())
    a, b, c = payload.node("A"), payload.node("B"), payload.node("C")
    ab, ac = payload.edges

    assert (a.depth, b.depth, c.depth) == (0, 1, 1)
    assert a.x0 == pytest.approx(30)
    assert a.x1 == pytest.approx(45)
    assert b.x0 == pytest.approx(745)
    assert b.x1 == pytest.approx(760)
    assert ab.width == pytest.approx(2 * ac.width)
    assert a.height == pytest.approx(ab.width + ac.width)
    # Column two is the tightest: 540px minus one padding for 15 units of flow.
    assert ab.width / ab.value == pytest.approx(530 / 15)


def test_outgoing_bands_tile_the_source_node(layout_engine: SankeyLayoutEngine) -> None:
    payload = layout_engine.build_payload(simple_graph())
    a = payload.node("A")
    bands = sorted(payload.edges, key=lambda edge: edge.y0)

    assert bands[0].y0 == pytest.approx(a.y0)
    assert bands[1].y0 == pytest.approx(bands[0].y1)
    assert bands[1].y1 == pytest.approx(a.y1)
    # Bands follow the vertical order of their targets.
    assert bands[0].target.y0 < bands[1].target.y0
    for edge in payload.edges:
        assert edge.target_y0 == pytest.approx(edge.target.y0)


@pytest.mark.parametrize("sample_id", SAMPLE_IDS)
def test_flow_is_conserved_at_every_node(
    layout_engine: SankeyLayoutEngine, sample_id: str
) -> None:
    payload = layout_engine.build_payload(sample_graph(sample_id))
    outgoing: dict[str, float] = defaultdict(float)
    incoming: dict[str, float] = defaultdict(float)
    out_values: dict[str, float] = defaultdict(float)
    in_values: dict[str, float] = defaultdict(float)
    for edge in payload.edges:
        outgoing[edge.source.id] += edge.width
        incoming[edge.target.id] += edge.width
        out_values[edge.source.id] += edge.value
        in_values[edge.target.id] += edge.value

    for node in payload.nodes:
        assert node.value == pytest.approx(
            max(out_values[node.id], in_values[node.id], node.declared_value)
        )
        if out_values[node.id] == node.value:
            assert outgoing[node.id] == pytest.approx(node.height)
        if in_values[node.id] == node.value:
            assert incoming[node.id] == pytest.approx(node.height)
        assert outgoing[node.id] <= node.height + EPS
        assert incoming[node.id] <= node.height + EPS


@pytest.mark.parametrize("sample_id", SAMPLE_IDS)
def test_links_point_forward(layout_engine: SankeyLayoutEngine, sample_id: str) -> None:
    payload = layout_engine.build_payload(sample_graph(sample_id))

    for edge in payload.edges:
        assert edge.source.depth < edge.target.depth
        assert edge.source.x1 < edge.target.x0


@pytest.mark.parametrize("sample_id", SAMPLE_IDS)
def test_nodes_stay_inside_extent_without_overlap(
    layout_engine: SankeyLayoutEngine, sample_id: str
) -> None:
    payload = layout_engine.build_payload(sample_graph(sample_id))
    columns: dict[int, list] = defaultdict(list)
    for node in payload.nodes:
        assert 30 - EPS <= node.y0 <= node.y1 <= 570 + EPS
        assert 30 - EPS <= node.x0 < node.x1 <= 760 + EPS
        columns[node.depth].append(node)

    for column in columns.values():
        ordered = sorted(column, key=lambda node: node.y0)
        for upper, lower in zip(ordered, ordered[1:]):
            assert lower.y0 - upper.y1 >= 10 - 1e-5


@pytest.mark.parametrize("sample_id", SAMPLE_IDS)
def test_bands_stay_inside_their_nodes(
    layout_engine: SankeyLayoutEngine, sample_id: str
) -> None:
    payload = layout_engine.build_payload(sample_graph(sample_id))

    for edge in payload.edges:
        assert edge.width > 0
        assert edge.source.y0 - EPS <= edge.y0 <= edge.y1 <= edge.source.y1 + EPS
        assert edge.target.y0 - EPS <= edge.target_y0
        assert edge.target_y1 <= edge.target.y1 + EPS


def test_layout_is_deterministic(layout_engine: SankeyLayoutEngine) -> None:
    graph = sample_graph("user-journey")

    first = layout_engine.build_payload(graph)
    second = layout_engine.build_payload(graph)

    assert first == second


def test_justify_moves_sinks_to_last_column(layout_engine: SankeyLayoutEngine) -> None:
    payload = layout_engine.build_payload(sample_graph("user-journey"))

    assert payload.node("homepage").depth == 0
    assert payload.node("search").depth == 1
    assert payload.node("product").depth == 2
    assert payload.node("exit").depth == 5
    assert payload.node("success").depth == 5


def test_left_alignment_keeps_sinks_at_their_depth(
    layout_engine_factory: Callable[..., SankeyLayoutEngine],
) -> None:
    graph = FlowGraph()
    for node_id in ("a", "b", "c", "d"):
        graph.add_node(node_id)
    graph.add_edge("a", "b", 5)
    graph.add_edge("b", "c", 3)
    graph.add_edge("a", "d", 2)

    justified = layout_engine_factory().build_payload(graph)
    left = layout_engine_factory(align=ALIGN_LEFT).build_payload(graph)

    assert justified.node("d").depth == 2
    assert left.node("d").depth == 1


def test_declared_value_enlarges_node(layout_engine: SankeyLayoutEngine) -> None:
    graph = FlowGraph()
    graph.add_node("a", "A", 40)
    graph.add_node("b")
    graph.add_edge("a", "b", 10)

    payload: GeometryPayload = layout_engine.build_payload(graph)
    a, b = payload.node("a"), payload.node("b")

    assert a.value == 40
    assert a.declared_value == 40
    assert a.height == pytest.approx(4 * b.height)
    assert payload.edges[0].width == pytest.approx(b.height)


def test_padding_shrinks_for_crowded_columns(
    layout_engine_factory: Callable[..., SankeyLayoutEngine],
) -> None:
    graph = FlowGraph()
    graph.add_node("hub")
    for idx in range(12):
        graph.add_node(f"leaf{idx}")
        graph.add_edge("hub", f"leaf{idx}", 1)

    engine = layout_engine_factory(height=120, node_padding=40, margins=Margins(10, 10, 10, 10))
    payload = engine.build_payload(graph)

    leaves = sorted((node for node in payload.nodes if node.id != "hub"), key=lambda n: n.y0)
    assert all(node.height > 0 for node in leaves)
    assert leaves[0].y0 >= 10 - EPS
    assert leaves[-1].y1 <= 110 + EPS


def test_zero_iterations_still_resolves_collisions(
    layout_engine_factory: Callable[..., SankeyLayoutEngine],
) -> None:
    payload = layout_engine_factory(iterations=0).build_payload(sample_graph("budget-allocation"))

    by_depth: dict[int, list] = defaultdict(list)
    for node in payload.nodes:
        by_depth[node.depth].append(node)
    for column in by_depth.values():
        ordered = sorted(column, key=lambda node: node.y0)
        for upper, lower in zip(ordered, ordered[1:]):
            assert lower.y0 >= upper.y1 - EPS


def test_cycle_raises_layout_error(layout_engine: SankeyLayoutEngine) -> None:
    graph = FlowGraph()
    graph.add_node("a")
    graph.add_node("b")
    graph.add_edge("a", "b", 1)
    graph.add_edge("b", "a", 1)

    with pytest.raises(LayoutError, match="cycle"):
        layout_engine.build_payload(graph)


def test_graph_without_links_raises_layout_error(layout_engine: SankeyLayoutEngine) -> None:
    graph = FlowGraph()
    graph.add_node("a")

    with pytest.raises(LayoutError):
        layout_engine.build_payload(graph)


def test_too_small_canvas_raises_layout_error(
    layout_engine_factory: Callable[..., SankeyLayoutEngine],
) -> None:
    with pytest.raises(LayoutError, match="too small"):
        layout_engine_factory(width=50).build_payload(simple_graph())


def test_non_positive_width_raises_layout_error(layout_engine: SankeyLayoutEngine) -> None:
    graph = FlowGraph()
    for node_id in ("a", "b", "c"):
        graph.add_node(node_id)
    graph.add_edge("a", "b", 5)
    graph.add_edge("a", "c", -1)

    with pytest.raises(LayoutError, match="invalid width"):
        layout_engine.build_payload(graph)


def test_incoming_bands_tile_a_node_with_parallel_links(
    layout_engine: SankeyLayoutEngine,
) -> None:
    graph = FlowGraph()
    for node_id in ("A", "B", "C", "X", "Y"):
        graph.add_node(node_id)
    graph.add_edge("A", "X", 5)
    graph.add_edge("B", "X", 5)
    graph.add_edge("C", "X", 5)
    graph.add_edge("A", "X", 5)
    graph.add_edge("X", "Y", 20)

    payload = layout_engine.build_payload(graph)
    x = payload.node("X")
    incoming = sorted(
        (edge for edge in payload.edges if edge.target.id == "X"),
        key=lambda edge: edge.target_y0,
    )

    assert len({edge.target_y0 for edge in incoming}) == 4
    assert incoming[0].target_y0 == pytest.approx(x.y0)
    for upper, lower in zip(incoming, incoming[1:]):
        assert lower.target_y0 == pytest.approx(upper.target_y1)
    assert incoming[-1].target_y1 == pytest.approx(x.y1)
    # Parallel links from A keep their edge order at both ends.
    first, second = payload.edges[0], payload.edges[3]
    assert first.y0 < second.y0
    assert first.target_y0 < second.target_y0


def test_long_chain_is_laid_out_column_per_node(
    layout_engine_factory: Callable[..., SankeyLayoutEngine],
) -> None:
    graph = FlowGraph()
    for idx in range(1501):
        graph.add_node(f"n{idx}")
    for idx in range(1500):
        graph.add_edge(f"n{idx}", f"n{idx + 1}", 1)

    payload = layout_engine_factory(width=30000).build_payload(graph)

    assert [node.depth for node in payload.nodes] == list(range(1501))
    assert all(edge.source.x1 <= edge.target.x0 for edge in payload.edges)
