from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

PAYLOAD_SCHEMA_VERSION = "1.0"


class DataFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    TSV = "tsv"


class CurveStyle(str, Enum):
    STRAIGHT = "straight"
    CURVED = "curved"
    GRADIENT = "gradient"


class NodeShape(str, Enum):
    RECTANGLE = "rectangle"
    ROUNDED_RECTANGLE = "rounded_rectangle"
    ELLIPSE = "ellipse"


class RawNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    value: float = 0.0

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_label(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            msg = "must be a string"
            raise ValueError(msg)
        text = str(value).strip()
        return text or None

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, value: object) -> object:
        if value is None:
            return 0.0
        if isinstance(value, bool):
            msg = "value must be a number"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def ensure_identity(self) -> "RawNode":
        if self.id is None and self.name is None:
            msg = "node requires an id or a name"
            raise ValueError(msg)
        return self

    def node_id(self) -> str:
        return self.id if self.id is not None else str(self.name)

    def display_name(self) -> str:
        return self.name if self.name is not None else str(self.id)


class RawLink(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    value: float

    @field_validator("source", "target", mode="before")
    @classmethod
    def coerce_endpoint(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("value", mode="before")
    @classmethod
    def reject_non_numeric(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            msg = "value must be a number"
            raise ValueError(msg)
        return value


class RawFlowDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nodes: List[RawNode] = Field(..., min_length=1)
    links: List[RawLink] = Field(
        ..., min_length=1, validation_alias=AliasChoices("links", "edges")
    )

    @field_validator("nodes", mode="after")
    @classmethod
    def ensure_unique_node_ids(cls, nodes: List[RawNode]) -> List[RawNode]:
        seen: Set[str] = set()
        for node in nodes:
            node_id = node.node_id()
            if node_id in seen:
                msg = f"Duplicate node id found: {node_id}"
                raise ValueError(msg)
            seen.add(node_id)
        return nodes


@dataclass(frozen=True)
class FlowNode:
    id: str
    name: str
    value: float = 0.0


@dataclass(frozen=True)
class FlowEdge:
    index: int
    source: FlowNode
    target: FlowNode
    value: float


@dataclass
class FlowGraph:
    nodes: Dict[str, FlowNode] = field(default_factory=dict)
    edges: List[FlowEdge] = field(default_factory=list)

    def add_node(self, node_id: str, name: str | None = None, value: float = 0.0) -> FlowNode:
        node = self.nodes.get(node_id)
        if node is None:
            node = FlowNode(id=node_id, name=name or node_id, value=value)
            self.nodes[node_id] = node
        return node

    def add_edge(self, source_id: str, target_id: str, value: float) -> FlowEdge:
        edge = FlowEdge(
            index=len(self.edges),
            source=self.nodes[source_id],
            target=self.nodes[target_id],
            value=value,
        )
        self.edges.append(edge)
        return edge

    def outgoing(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.source.id == node_id]

    def incoming(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.target.id == node_id]

    def adjacency(self) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in self.nodes}
        for edge in self.edges:
            adjacency[edge.source.id].append(edge.target.id)
        return adjacency


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Margins:
    top: float = 30.0
    right: float = 40.0
    bottom: float = 30.0
    left: float = 30.0


@dataclass(frozen=True)
class LaidOutNode:
    id: str
    name: str
    value: float
    declared_value: float
    depth: int
    x0: float
    x1: float
    y0: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True)
class LaidOutEdge:
    index: int
    source: LaidOutNode
    target: LaidOutNode
    value: float
    width: float
    y0: float  # band top at the source node
    target_y0: float  # band top at the target node

    @property
    def y1(self) -> float:
        return self.y0 + self.width

    @property
    def target_y1(self) -> float:
        return self.target_y0 + self.width


@dataclass(frozen=True)
class GeometryPayload:
    nodes: tuple[LaidOutNode, ...]
    edges: tuple[LaidOutEdge, ...]
    width: float
    height: float

    def node(self, node_id: str) -> LaidOutNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)


@dataclass(frozen=True)
class FrameTarget:
    width: float
    height: float
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class FramePlacement:
    scale: float
    offset: Point
    origin: Point
    size: Size


@dataclass(frozen=True)
class FlowInput:
    text: str
    data_format: DataFormat
    name: str = ""
