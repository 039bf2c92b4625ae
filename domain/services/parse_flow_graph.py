from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import orjson
from pydantic import ValidationError as PydanticValidationError

from domain.errors import ErrorReport, FlowDiagramError, ParseError, ValidationError
from domain.models import DataFormat, FlowGraph, RawFlowDocument
from domain.services.graph_metrics import find_cycle_path

logger = logging.getLogger(__name__)

SOURCE_HEADERS = ("source", "from")
TARGET_HEADERS = ("target", "to")
VALUE_HEADERS = ("value", "weight")

FORMAT_SUFFIXES: Dict[str, DataFormat] = {
    ".json": DataFormat.JSON,
    ".csv": DataFormat.CSV,
    ".tsv": DataFormat.TSV,
    ".tab": DataFormat.TSV,
}

_DELIMITERS = {DataFormat.CSV: ",", DataFormat.TSV: "\t"}

_EMPTY_INPUT_HINTS = {
    DataFormat.JSON: "Provide a JSON object with \"nodes\" and \"links\" arrays",
    DataFormat.CSV: "Provide a header line (source,target,value) followed by data lines",
    DataFormat.TSV: (
        "Provide a tab separated header line (source, target, value) followed by data lines"
    ),
}


@dataclass(frozen=True)
class GraphParseResult:
    graph: Optional[FlowGraph] = None
    error: Optional[ErrorReport] = None

    @property
    def ok(self) -> bool:
        return self.graph is not None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    suggestion: Optional[str] = None


def coerce_format(data_format: DataFormat | str) -> DataFormat:
    if isinstance(data_format, DataFormat):
        return data_format
    try:
        return DataFormat(str(data_format).strip().lower())
    except ValueError as exc:
        msg = f"Unsupported data format: {data_format}"
        raise ParseError(msg, "Use one of: json, csv, tsv") from exc


def detect_format(path: Path | str, default: DataFormat | None = None) -> DataFormat:
    suffix = Path(path).suffix.lower()
    detected = FORMAT_SUFFIXES.get(suffix, default)
    if detected is None:
        msg = f"Cannot infer data format from file name: {Path(path).name}"
        raise ParseError(msg, "Pass the format explicitly (json, csv or tsv)")
    return detected


def parse_flow_graph(text: str, data_format: DataFormat | str) -> FlowGraph:
    fmt = coerce_format(data_format)
    if not text or not text.strip():
        msg = f"No {fmt.value.upper()} data provided"
        raise ParseError(msg, _EMPTY_INPUT_HINTS[fmt])

    if fmt is DataFormat.JSON:
        graph = parse_json(text)
    else:
        graph = parse_delimited(text, _DELIMITERS[fmt])
    validate_flow_graph(graph)
    logger.debug(
        "Parsed %s flow graph: %d nodes, %d edges", fmt.value, len(graph.nodes), len(graph.edges)
    )
    return graph


def try_parse_flow_graph(text: str, data_format: DataFormat | str) -> GraphParseResult:
    try:
        return GraphParseResult(graph=parse_flow_graph(text, data_format))
    except (ParseError, ValidationError) as exc:
        return GraphParseResult(error=exc.to_report())


def validate_input(text: str, data_format: DataFormat | str) -> ValidationResult:
    result = try_parse_flow_graph(text, data_format)
    if result.error is None:
        return ValidationResult(is_valid=True)
    return ValidationResult(
        is_valid=False, error=result.error.message, suggestion=result.error.suggestion
    )


def parse_json(text: str) -> FlowGraph:
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        msg = f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"
        raise ParseError(
            msg, "Check for missing brackets, quotes or a trailing comma after the last element"
        ) from exc

    if not isinstance(data, dict):
        msg = "JSON data must be an object"
        raise ParseError(msg, "Wrap the data in an object with \"nodes\" and \"links\" arrays")
    if "nodes" not in data or not ("links" in data or "edges" in data):
        msg = "JSON data must contain \"nodes\" and \"links\" fields"
        raise ValidationError(msg, "Add both a \"nodes\" array and a \"links\" array")

    try:
        document = RawFlowDocument.model_validate(data)
    except PydanticValidationError as exc:
        raise _translate_pydantic_error(exc) from exc

    graph = FlowGraph()
    for raw_node in document.nodes:
        graph.add_node(raw_node.node_id(), raw_node.display_name(), float(raw_node.value))
    for position, raw_link in enumerate(document.links, start=1):
        _check_endpoints(graph, raw_link.source, raw_link.target, f"Link {position}")
        graph.add_edge(raw_link.source, raw_link.target, float(raw_link.value))
    return graph


def parse_delimited(text: str, delimiter: str) -> FlowGraph:
    rows = _read_rows(text, delimiter)
    if len(rows) < 2:
        msg = "Data must contain a header line and at least one data line"
        raise ParseError(msg, _header_hint(delimiter))

    header_line, header = rows[0]
    source_idx, target_idx, value_idx = _resolve_header(header, delimiter)
    required = max(source_idx, target_idx, value_idx) + 1

    graph = FlowGraph()
    links: List[Tuple[str, str, float]] = []
    for line_no, cells in rows[1:]:
        if len(cells) < max(3, required):
            msg = f"Line {line_no} is incomplete: expected source, target and value"
            raise ParseError(msg, _header_hint(delimiter))
        source = cells[source_idx]
        target = cells[target_idx]
        if not source or not target:
            msg = f"Line {line_no} has an empty source or target"
            raise ParseError(msg, "Every line needs non-empty source and target cells")
        try:
            value = float(cells[value_idx])
        except ValueError as exc:
            msg = f"Line {line_no} value is not a number: {cells[value_idx]!r}"
            raise ParseError(msg, "The value column must hold numbers greater than 0") from exc
        graph.add_node(source)
        graph.add_node(target)
        links.append((source, target, value))

    for source, target, value in links:
        graph.add_edge(source, target, value)
    logger.debug("Header found on line %d, %d data lines read", header_line, len(links))
    return graph


def validate_flow_graph(graph: FlowGraph) -> None:
    if not graph.nodes:
        msg = "The graph has no nodes"
        raise ValidationError(msg, "Add at least one node")
    if not graph.edges:
        msg = "The graph has no links"
        raise ValidationError(msg, "Add at least one link between two nodes")

    for edge in graph.edges:
        label = f"Link {edge.index + 1}"
        _check_endpoints(graph, edge.source.id, edge.target.id, label)
        if graph.nodes[edge.source.id] != edge.source or graph.nodes[edge.target.id] != edge.target:
            msg = f"{label} endpoints are not nodes of this graph"
            raise ValidationError(msg)
        if isinstance(edge.value, bool) or not math.isfinite(edge.value) or edge.value <= 0:
            msg = (
                f"{label} ({edge.source.id} -> {edge.target.id}) value must be positive, "
                f"got {edge.value}"
            )
            raise ValidationError(msg, "Link values must be numbers greater than 0")

    for edge in graph.edges:
        if edge.source.id == edge.target.id:
            msg = f"Self loop detected: {edge.source.id} -> {edge.target.id}"
            raise ValidationError(msg, "A link must connect two different nodes")

    for node in graph.nodes.values():
        if not math.isfinite(node.value) or node.value < 0:
            msg = f"Node {node.id!r} value must be a non-negative number, got {node.value}"
            raise ValidationError(msg)

    cycle = find_cycle_path(graph.adjacency())
    if cycle:
        msg = f"Cycle detected: {' -> '.join(cycle)}"
        raise ValidationError(
            msg, "Flow diagrams require links to point forward; remove one link of the cycle"
        )


def _check_endpoints(graph: FlowGraph, source: str, target: str, label: str) -> None:
    if source not in graph.nodes:
        msg = f"{label} references missing source node {source!r}"
        raise ValidationError(msg, f"Add a node with id {source!r} or fix the link source")
    if target not in graph.nodes:
        msg = f"{label} references missing target node {target!r}"
        raise ValidationError(msg, f"Add a node with id {target!r} or fix the link target")


def _read_rows(text: str, delimiter: str) -> List[Tuple[int, List[str]]]:
    rows: List[Tuple[int, List[str]]] = []
    lines = text.splitlines()
    reader = csv.reader(lines, delimiter=delimiter, skipinitialspace=True)
    for cells in reader:
        line_no = reader.line_num
        stripped = [cell.strip() for cell in cells]
        if not any(stripped):
            continue
        rows.append((line_no, stripped))
    return rows


def _resolve_header(header: Sequence[str], delimiter: str) -> Tuple[int, int, int]:
    normalized = [cell.lower() for cell in header]

    def find(names: Sequence[str]) -> int:
        for name in names:
            if name in normalized:
                return normalized.index(name)
        return -1

    indices = (find(SOURCE_HEADERS), find(TARGET_HEADERS), find(VALUE_HEADERS))
    if -1 in indices or len(set(indices)) != 3:
        msg = f"Header must name source, target and value columns, got: {', '.join(header)}"
        raise ParseError(msg, _header_hint(delimiter))
    return indices


def _header_hint(delimiter: str) -> str:
    if delimiter == "\t":
        return "Start with a tab separated header such as: source<TAB>target<TAB>value"
    return "Start with a header such as: source,target,value (from,to,weight also work)"


def _translate_pydantic_error(exc: PydanticValidationError) -> FlowDiagramError:
    error: Dict[str, Any] = exc.errors()[0]
    location = _describe_location(error.get("loc", ()))
    reason = str(error.get("msg", "invalid value"))
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]
    error_type = str(error.get("type", ""))
    message = f"{location}: {reason}" if location else reason

    if error_type in {"float_parsing", "float_type"} or "must be a number" in reason:
        return ParseError(message, "Values must be plain numbers, not strings or booleans")
    if error_type == "too_short":
        return ValidationError(message, "Provide at least one entry")
    if error_type == "list_type":
        return ValidationError(message, "\"nodes\" and \"links\" must be arrays")
    if error_type == "missing":
        return ValidationError(message, "Each link needs source, target and value fields")
    return ValidationError(message)


def _describe_location(loc: Sequence[Any]) -> str:
    parts: List[str] = []
    idx = 0
    while idx < len(loc):
        part = loc[idx]
        nxt = loc[idx + 1] if idx + 1 < len(loc) else None
        if part in {"nodes", "links", "edges"} and isinstance(nxt, int):
            label = "Node" if part == "nodes" else "Link"
            parts.append(f"{label} {nxt + 1}")
            idx += 2
            continue
        parts.append(str(part))
        idx += 1
    return " ".join(parts)
