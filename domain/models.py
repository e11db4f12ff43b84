from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Direction = Literal["TB", "LR", "BT", "RL"]
PortSide = Literal["top", "bottom", "left", "right"]
GroupBy = Literal["relationship", "schema"]
LayoutKind = Literal["hierarchical", "force", "group"]

PROTECTED_EDGE_TYPES = frozenset({"relationship", "manyToMany", "editableRelationship"})

DEFAULT_NODE_WIDTH = 200.0
DEFAULT_NODE_HEIGHT = 150.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class NodeBounds:
    left: float
    top: float
    right: float
    bottom: float

    def is_disjoint(self, other: NodeBounds) -> bool:
        return (
            self.right < other.left
            or self.left > other.right
            or self.bottom < other.top
            or self.top > other.bottom
        )


class Column(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    data_type: Optional[str] = None


class TableData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = ""
    columns: List[Column] = Field(default_factory=list)
    schema_name: Optional[str] = Field(default=None, alias="schema")


class TableNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    position: Point = Point(0.0, 0.0)
    width: Optional[float] = None
    height: Optional[float] = None
    data: TableData = Field(default_factory=TableData)
    source_position: Optional[PortSide] = None
    target_position: Optional[PortSide] = None

    def moved_to(self, x: float, y: float) -> TableNode:
        return self.model_copy(update={"position": Point(x, y)})


class Edge(BaseModel):
    id: str = Field(..., min_length=1)
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: Optional[str] = None
    animated: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_protected(self) -> bool:
        return self.type in PROTECTED_EDGE_TYPES


class Viewport(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = Field(default=1.0, gt=0)
    width: float = Field(default=1920.0, ge=0)
    height: float = Field(default=1080.0, ge=0)


class LayoutOptions(BaseModel):
    direction: Direction = "TB"
    node_spacing: float = Field(default=100.0, ge=0)
    rank_spacing: float = Field(default=150.0, ge=0)
    align_nodes: bool = True
    minimize_edge_crossings: bool = True
    margin: float = Field(default=50.0, ge=0)
    edge_spacing: float = Field(default=10.0, ge=0)
    ordering_sweeps: int = Field(default=8, ge=0)

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, value: object) -> str:
        return str(value).upper() if value else "TB"


class TableGroup(BaseModel):
    id: str
    name: str
    node_ids: List[str] = Field(default_factory=list)
    position: Point = Point(0.0, 0.0)
    collapsed: bool = False
    color: Optional[str] = None


class PerformanceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enable_lazy_rendering: bool = True
    max_nodes_in_view: int = Field(default=100, ge=0)
    viewport_buffer: float = Field(default=200.0, ge=0)
    enable_grouping: bool = False
    enable_background_layout: bool = True


class PerformanceMetrics(BaseModel):
    total_nodes: int = 0
    visible_nodes: int = 0
    rendered_nodes: int = 0
    fps: float = 0.0
    render_time: float = 0.0
    memory_usage: Optional[float] = None


@dataclass(frozen=True)
class LayoutResult:
    nodes: List[TableNode]
    edges: List[Edge]


@dataclass(frozen=True)
class DiagramStats:
    total_nodes: int
    total_edges: int
    total_columns: int
    memory_usage: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "total_columns": self.total_columns,
            "memory_usage": self.memory_usage,
        }


class GraphSnapshot(BaseModel):
    nodes: List[TableNode] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
