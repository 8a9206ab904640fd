from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from domain.models import Activity, Edge, Lane, Node, NodeKind, Port, PortDirection
from domain.ports.layout import Canvas


class ModelStore(Canvas, Protocol):
    """Caller-owned graph store. Every mutation must happen inside ``session``."""

    def session(self, title: str) -> AbstractContextManager[None]: ...

    def activities(self) -> Sequence[Activity]: ...

    def walk(self) -> Iterator[Node]: ...

    def create_activity(self, name: str) -> Activity: ...

    def create_node(
        self,
        owner: Activity | Node,
        name: str,
        kind: NodeKind,
        documentation: str = "",
    ) -> Node: ...

    def create_port(self, owner: Node, name: str, direction: PortDirection) -> Port: ...

    def create_edge(self, activity: Activity, source: Node, target: Node) -> Edge: ...

    def create_lane(self, activity: Activity, key: str) -> Lane: ...

    def assign_lane(self, node: Node, lane: Lane) -> None: ...

    def attach_to_lane(self, node: Node, lane: Lane) -> None: ...

    def move_node(self, node: Node, activity: Activity) -> None: ...
