from __future__ import annotations

import pytest

from domain.errors import ParseError, ValidationError
from domain.models import DataFormat
from domain.services.parse_flow_graph import (
    detect_format,
    parse_flow_graph,
    try_parse_flow_graph,
    validate_input,
)
from domain.services.sample_data import get_sample
from tests.helpers.flow_fixtures import SIMPLE_CSV, csv_text, json_text


def test_csv_builds_nodes_in_first_seen_order() -> None:
    graph = parse_flow_graph(SIMPLE_CSV, DataFormat.CSV)

    assert list(graph.nodes) == ["A", "B", "C"]
    assert [(e.source.id, e.target.id, e.value) for e in graph.edges] == [
        ("A", "B", 10.0),
        ("A", "C", 5.0),
    ]
    assert graph.edges[0].source is graph.nodes["A"]
    assert graph.nodes["B"].name == "B"
    assert graph.nodes["B"].value == 0.0


def test_formats_describe_the_same_graph() -> None:
    rows = [("A", "B", 10), ("A", "C", 5), ("B", "D", 4)]
    from_csv = parse_flow_graph(csv_text(rows), "csv")
    from_tsv = parse_flow_graph(csv_text(rows, delimiter="\t"), "tsv")
    from_json = parse_flow_graph(
        json_text(
            [{"id": node_id} for node_id in ("A", "B", "C", "D")],
            [{"source": s, "target": t, "value": v} for s, t, v in rows],
        ),
        "json",
    )

    assert from_csv == from_tsv == from_json


def test_sample_texts_agree_across_formats() -> None:
    dataset = get_sample("user-journey")
    from_csv = parse_flow_graph(dataset.to_text(DataFormat.CSV), DataFormat.CSV)
    from_tsv = parse_flow_graph(dataset.to_text(DataFormat.TSV), DataFormat.TSV)

    assert from_csv == from_tsv
    assert len(from_csv.edges) == len(dataset.data["links"])


def test_header_synonyms_and_column_order() -> None:
    graph = parse_flow_graph("weight,to,from\n3,B,A\n", DataFormat.CSV)

    edge = graph.edges[0]
    assert (edge.source.id, edge.target.id, edge.value) == ("A", "B", 3.0)


def test_tsv_keeps_commas_inside_cells() -> None:
    text = "source\ttarget\tvalue\nNew York, NY\tBoston, MA\t5\n"

    graph = parse_flow_graph(text, DataFormat.TSV)

    assert list(graph.nodes) == ["New York, NY", "Boston, MA"]


def test_blank_lines_and_spaces_are_ignored() -> None:
    text = "source, target, value\n\n A , B , 2.5 \n\n"

    graph = parse_flow_graph(text, DataFormat.CSV)

    assert list(graph.nodes) == ["A", "B"]
    assert graph.edges[0].value == 2.5


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("src,dst,amount\nA,B,1\n", "Header must name"),
        ("source,target,value\n", "header line and at least one data line"),
        ("source,target,value\nA,B\n", "Line 2 is incomplete"),
        ("source,target,value\nA,,4\n", "Line 2 has an empty"),
        ("source,target,value\nA,B,1\nB,C,lots\n", "Line 3 value is not a number"),
    ],
)
def test_delimited_parse_errors(text: str, fragment: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_flow_graph(text, DataFormat.CSV)

    assert fragment in exc_info.value.message
    assert exc_info.value.suggestion


def test_empty_input_is_a_parse_error() -> None:
    with pytest.raises(ParseError, match="No CSV data"):
        parse_flow_graph("   \n", DataFormat.CSV)


def test_unsupported_format_is_reported() -> None:
    result = try_parse_flow_graph(SIMPLE_CSV, "xml")

    assert not result.ok
    assert result.error is not None
    assert result.error.kind == "parse"
    assert "xml" in result.error.message


def test_json_accepts_edges_alias_and_numeric_ids() -> None:
    text = (
        '{"nodes": [{"id": 1, "name": "One"}, {"id": 2}], '
        '"edges": [{"source": 1, "target": 2, "value": 7}]}'
    )

    graph = parse_flow_graph(text, DataFormat.JSON)

    assert graph.nodes["1"].name == "One"
    assert graph.nodes["2"].name == "2"
    assert graph.edges[0].value == 7.0


def test_json_node_name_doubles_as_id() -> None:
    text = json_text(
        [{"name": "Alpha", "value": 12}, {"name": "Beta"}],
        [{"source": "Alpha", "target": "Beta", "value": 3}],
    )

    graph = parse_flow_graph(text, DataFormat.JSON)

    assert graph.nodes["Alpha"].value == 12.0
    assert graph.edges[0].target.id == "Beta"


def test_dangling_target_is_a_validation_error() -> None:
    text = json_text(
        [{"id": "a"}, {"id": "b"}],
        [{"source": "a", "target": "b", "value": 1}, {"source": "a", "target": "x", "value": 2}],
    )

    result = try_parse_flow_graph(text, DataFormat.JSON)

    assert result.graph is None
    assert result.error is not None
    assert result.error.kind == "validation"
    assert "Link 2" in result.error.message
    assert "'x'" in result.error.message


def test_negative_value_is_rejected_as_non_positive() -> None:
    text = json_text([{"id": "a"}, {"id": "b"}], [{"source": "a", "target": "b", "value": -3}])

    with pytest.raises(ValidationError) as exc_info:
        parse_flow_graph(text, DataFormat.JSON)

    assert "must be positive" in exc_info.value.message
    assert "-3" in exc_info.value.message


def test_zero_value_in_csv_is_rejected() -> None:
    with pytest.raises(ValidationError, match="must be positive"):
        parse_flow_graph("source,target,value\nA,B,0\n", DataFormat.CSV)


def test_self_loop_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Self loop"):
        parse_flow_graph("source,target,value\nA,A,4\n", DataFormat.CSV)


def test_cycle_is_rejected_with_path() -> None:
    text = "source,target,value\nA,B,1\nB,C,1\nC,A,1\n"

    with pytest.raises(ValidationError) as exc_info:
        parse_flow_graph(text, DataFormat.CSV)

    assert exc_info.value.message == "Cycle detected: A -> B -> C -> A"


@pytest.mark.parametrize(
    ("text", "error_type", "fragment"),
    [
        ("{", ParseError, "Invalid JSON at line 1"),
        ("[1, 2]", ParseError, "must be an object"),
        ('{"nodes": []}', ValidationError, '"nodes" and "links"'),
        ('{"nodes": [], "links": [{"source": "a", "target": "b", "value": 1}]}', ValidationError, "nodes"),
        ('{"nodes": {}, "links": []}', ValidationError, "nodes"),
        ('{"nodes": [{"value": 3}], "links": [{"source": "a", "target": "b", "value": 1}]}', ValidationError, "Node 1"),
        ('{"nodes": [{"id": "a"}, {"id": "b"}], "links": [{"source": "a", "target": "b"}]}', ValidationError, "Link 1 value"),
        ('{"nodes": [{"id": "a"}, {"id": "b"}], "links": [{"source": "a", "target": "b", "value": "10"}]}', ParseError, "Link 1 value"),
        ('{"nodes": [{"id": "a"}, {"id": "a"}], "links": [{"source": "a", "target": "a", "value": 1}]}', ValidationError, "Duplicate node id"),
    ],
)
def test_json_errors(text: str, error_type: type[Exception], fragment: str) -> None:
    with pytest.raises(error_type) as exc_info:
        parse_flow_graph(text, DataFormat.JSON)

    assert fragment in str(exc_info.value)


def test_validate_input_reports_suggestion() -> None:
    ok = validate_input(SIMPLE_CSV, DataFormat.CSV)
    failed = validate_input("source,target,value\nA,B,abc\n", DataFormat.CSV)

    assert ok.is_valid
    assert ok.error is None
    assert not failed.is_valid
    assert failed.error is not None and "not a number" in failed.error
    assert failed.suggestion


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("flows.json", DataFormat.JSON),
        ("flows.CSV", DataFormat.CSV),
        ("flows.tsv", DataFormat.TSV),
        ("flows.tab", DataFormat.TSV),
    ],
)
def test_detect_format(name: str, expected: DataFormat) -> None:
    assert detect_format(name) is expected


def test_detect_format_without_suffix() -> None:
    assert detect_format("flows.txt", DataFormat.CSV) is DataFormat.CSV
    with pytest.raises(ParseError, match="Cannot infer"):
        detect_format("flows.txt")
