from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from domain.errors import OrphanReferenceError

UNASSIGNED_LANE = "<Unassigned>"
CUSTOM_DATA_KEY = "actimp"
METADATA_SCHEMA_VERSION = "1.0"


class ActivityRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    actor: str = ""
    is_sub_action: bool = False
    parent_name: str = ""
    documentation: str = ""
    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)

    @field_validator("name", "actor", "parent_name", "documentation", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("inputs", "outputs", mode="after")
    @classmethod
    def drop_blank_ports(cls, values: List[str]) -> List[str]:
        return [token for token in (value.strip() for value in values) if token]

    @model_validator(mode="after")
    def ensure_parent_for_sub_action(self) -> "ActivityRow":
        if self.is_sub_action and not self.parent_name:
            msg = f"Sub-action {self.name!r} has no parent name"
            raise ValueError(msg)
        return self

    @property
    def lane_key(self) -> str:
        return self.actor or UNASSIGNED_LANE


class NodeKind(str, Enum):
    START = "start"
    END = "end"
    STRUCTURED_ACTION = "structured_action"
    CALL_BEHAVIOR_ACTION = "call_behavior_action"

    @property
    def is_action_kind(self) -> bool:
        return self in {NodeKind.STRUCTURED_ACTION, NodeKind.CALL_BEHAVIOR_ACTION}

    @property
    def is_sentinel(self) -> bool:
        return self in {NodeKind.START, NodeKind.END}


class PortDirection(str, Enum):
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(eq=False)
class Port:
    id: str
    name: str
    direction: PortDirection
    owner: "Node"
    bounds: Optional[Rect] = None
    read_only: bool = False

    def __repr__(self) -> str:
        return f"Port({self.direction.value}:{self.owner.name}.{self.name})"


@dataclass(eq=False)
class Node:
    id: str
    name: str
    kind: NodeKind
    documentation: str = ""
    input_ports: List[Port] = field(default_factory=list)
    output_ports: List[Port] = field(default_factory=list)
    lane: Optional["Lane"] = None
    parent: Optional["Node"] = None
    children: List["Node"] = field(default_factory=list)
    container: Optional["Activity"] = None
    bounds: Optional[Rect] = None
    read_only: bool = False

    @property
    def is_top_level(self) -> bool:
        return self.parent is None

    def ports(self, direction: PortDirection | None = None) -> List[Port]:
        if direction is PortDirection.IN:
            return list(self.input_ports)
        if direction is PortDirection.OUT:
            return list(self.output_ports)
        return [*self.input_ports, *self.output_ports]

    def port_names(self, direction: PortDirection) -> List[str]:
        return [port.name for port in self.ports(direction)]

    def __repr__(self) -> str:
        return f"Node({self.kind.value}:{self.name})"


@dataclass(eq=False)
class Edge:
    id: str
    source: Node
    target: Node


@dataclass(eq=False)
class Lane:
    id: str
    key: str
    members: List[Node] = field(default_factory=list)
    attached: List[Node] = field(default_factory=list)
    bounds: Optional[Rect] = None

    def placed_nodes(self) -> List[Node]:
        return [*self.attached, *self.members]

    def __repr__(self) -> str:
        return f"Lane({self.key})"


@dataclass(eq=False)
class Activity:
    id: str
    name: str
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    lanes: List[Lane] = field(default_factory=list)
    read_only: bool = False


@dataclass
class ActivityGraph:
    activity: Activity
    start: Node
    end: Node
    nodes: List[Node]
    created: List[Node] = field(default_factory=list)
    reused: List[Node] = field(default_factory=list)
    dropped: List["OrphanReferenceError"] = field(default_factory=list)

    @property
    def edges(self) -> List[Edge]:
        return self.activity.edges

    @property
    def lanes(self) -> List[Lane]:
        return self.activity.lanes

    def lane(self, key: str) -> Lane | None:
        return next((lane for lane in self.lanes if lane.key == key), None)

    def top_level_nodes(self) -> List[Node]:
        return [node for node in self.nodes if node.is_top_level and node.kind.is_action_kind]

    def find(self, name: str) -> Node | None:
        return next((node for node in self.nodes if node.name == name), None)


@dataclass(frozen=True)
class ImportResult:
    rows_imported: int
    nodes_created: int
    nodes_reused: int
    orphans_dropped: int
    graph: ActivityGraph


@dataclass(frozen=True)
class ExcalidrawDocument:
    elements: List[dict]
    app_state: dict
    files: dict

    def to_dict(self) -> dict:
        return {
            "type": "excalidraw",
            "version": 2,
            "source": "activity-importer",
            "elements": self.elements,
            "appState": self.app_state,
            "files": self.files,
        }
