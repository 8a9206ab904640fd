from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from domain.errors import ReadOnlyElementError, StoreError
from domain.models import (
    Activity,
    Edge,
    Lane,
    Node,
    NodeKind,
    Port,
    PortDirection,
    Rect,
)
from domain.ports.layout import Shape
from domain.ports.model_store import ModelStore
from domain.services.node_registry import walk_nodes

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

Undo = Callable[[], None]


class InMemoryModelStore(ModelStore):
    """Object graph of activities with an undo journal per session.

    Mutations outside ``session`` are refused. Leaving the session through an
    exception replays the journal backwards so nothing created or changed in
    it stays visible.
    """

    def __init__(self, namespace: str = "activity-importer") -> None:
        self.namespace = uuid.uuid5(uuid.NAMESPACE_DNS, namespace)
        self._activities: List[Activity] = []
        self._journal: Optional[List[Undo]] = None
        self._counter = 0

    @contextmanager
    def session(self, title: str) -> Iterator[None]:
        if self._journal is not None:
            msg = f"Cannot open session {title!r}: another session is open"
            raise StoreError(msg)
        self._journal = []
        logger.debug("Session %r opened", title)
        try:
            yield
        except BaseException:
            journal, self._journal = self._journal, None
            failed = 0
            for undo in reversed(journal):
                try:
                    undo()
                except Exception:
                    failed += 1
                    logger.exception("Undo step failed while rolling back session %r", title)
            logger.info(
                "Session %r rolled back (%d operations, %d failed)", title, len(journal), failed
            )
            raise
        operations = len(self._journal)
        self._journal = None
        logger.debug("Session %r committed (%d operations)", title, operations)

    @property
    def in_session(self) -> bool:
        return self._journal is not None

    def activities(self) -> Sequence[Activity]:
        return tuple(self._activities)

    def walk(self) -> Iterator[Node]:
        return walk_nodes(node for activity in self._activities for node in activity.nodes)

    def create_activity(self, name: str) -> Activity:
        self._guard()
        activity = Activity(id=self._next_id("activity"), name=name)
        self._activities.append(activity)
        self._record(lambda: self._activities.remove(activity))
        return activity

    def create_node(
        self,
        owner: Activity | Node,
        name: str,
        kind: NodeKind,
        documentation: str = "",
    ) -> Node:
        self._guard(owner)
        node = Node(
            id=self._next_id("node"),
            name=name,
            kind=kind,
            documentation=documentation,
        )
        if isinstance(owner, Activity):
            node.container = owner
            siblings = owner.nodes
        else:
            node.parent = owner
            node.container = owner.container
            siblings = owner.children
        siblings.append(node)
        self._record(lambda: siblings.remove(node))
        return node

    def create_port(self, owner: Node, name: str, direction: PortDirection) -> Port:
        self._guard(owner)
        port = Port(id=self._next_id("port"), name=name, direction=direction, owner=owner)
        ports = owner.input_ports if direction is PortDirection.IN else owner.output_ports
        ports.append(port)
        self._record(lambda: ports.remove(port))
        return port

    def create_edge(self, activity: Activity, source: Node, target: Node) -> Edge:
        self._guard(activity)
        edge = Edge(id=self._next_id("edge"), source=source, target=target)
        activity.edges.append(edge)
        self._record(lambda: activity.edges.remove(edge))
        return edge

    def create_lane(self, activity: Activity, key: str) -> Lane:
        self._guard(activity)
        lane = Lane(id=self._next_id("lane"), key=key)
        activity.lanes.append(lane)
        self._record(lambda: activity.lanes.remove(lane))
        return lane

    def assign_lane(self, node: Node, lane: Lane) -> None:
        self._guard(node)
        previous = node.lane
        if previous is lane and node in lane.members:
            return
        previous_index = self._detach_from_lane(node)
        node.lane = lane
        lane.members.append(node)

        def undo() -> None:
            lane.members.remove(node)
            node.lane = previous
            if previous is not None and previous_index is not None:
                previous.members.insert(previous_index, node)

        self._record(undo)

    def attach_to_lane(self, node: Node, lane: Lane) -> None:
        self._guard(node)
        previous = node.lane
        node.lane = lane
        lane.attached.append(node)

        def undo() -> None:
            lane.attached.remove(node)
            node.lane = previous

        self._record(undo)

    def move_node(self, node: Node, activity: Activity) -> None:
        self._guard(node, activity)
        if node.container is activity and node.parent is None:
            return
        old_parent = node.parent
        old_container = node.container
        old_siblings = old_parent.children if old_parent is not None else (
            old_container.nodes if old_container is not None else None
        )
        old_index = old_siblings.index(node) if old_siblings is not None else None
        if old_siblings is not None:
            old_siblings.remove(node)

        old_lane = node.lane
        old_lane_index = None
        if old_lane is not None and old_lane not in activity.lanes:
            old_lane_index = self._detach_from_lane(node)
            node.lane = None

        descendants = list(walk_nodes(node.children))
        node.parent = None
        node.container = activity
        for child in descendants:
            child.container = activity
        activity.nodes.append(node)

        def undo() -> None:
            activity.nodes.remove(node)
            node.parent = old_parent
            node.container = old_container
            for child in descendants:
                child.container = old_container
            if old_siblings is not None and old_index is not None:
                old_siblings.insert(old_index, node)
            node.lane = old_lane
            if old_lane is not None and old_lane_index is not None:
                old_lane.members.insert(old_lane_index, node)

        self._record(undo)

    def reshape(self, shape: Shape, rect: Rect) -> None:
        self._guard(shape)
        previous = shape.bounds
        shape.bounds = rect

        def undo() -> None:
            shape.bounds = previous

        self._record(undo)

    def bounds(self, shape: Shape) -> Rect | None:
        return shape.bounds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "counter": self._counter,
            "activities": [self._activity_to_dict(activity) for activity in self._activities],
        }

    @classmethod
    def from_dict(
        cls, payload: Dict[str, Any], namespace: str = "activity-importer"
    ) -> "InMemoryModelStore":
        store = cls(namespace=namespace)
        store._counter = int(payload.get("counter", 0))
        nodes_by_id: Dict[str, Node] = {}
        for raw_activity in payload.get("activities", []):
            activity = Activity(
                id=raw_activity["id"],
                name=raw_activity.get("name", ""),
                read_only=bool(raw_activity.get("read_only", False)),
            )
            for raw_node in raw_activity.get("nodes", []):
                node = _node_from_dict(raw_node, activity, None, nodes_by_id)
                activity.nodes.append(node)
            store._activities.append(activity)

        for raw_activity, activity in zip(payload.get("activities", []), store._activities):
            for raw_lane in raw_activity.get("lanes", []):
                lane = Lane(
                    id=raw_lane["id"],
                    key=raw_lane["key"],
                    bounds=_rect_from_list(raw_lane.get("bounds")),
                )
                for node_id in raw_lane.get("members", []):
                    member = nodes_by_id[node_id]
                    member.lane = lane
                    lane.members.append(member)
                for node_id in raw_lane.get("attached", []):
                    sentinel = nodes_by_id[node_id]
                    sentinel.lane = lane
                    lane.attached.append(sentinel)
                activity.lanes.append(lane)
            for raw_edge in raw_activity.get("edges", []):
                activity.edges.append(
                    Edge(
                        id=raw_edge["id"],
                        source=nodes_by_id[raw_edge["source"]],
                        target=nodes_by_id[raw_edge["target"]],
                    )
                )
        return store

    def _activity_to_dict(self, activity: Activity) -> Dict[str, Any]:
        return {
            "id": activity.id,
            "name": activity.name,
            "read_only": activity.read_only,
            "nodes": [_node_to_dict(node) for node in activity.nodes],
            "edges": [
                {"id": edge.id, "source": edge.source.id, "target": edge.target.id}
                for edge in activity.edges
            ],
            "lanes": [
                {
                    "id": lane.id,
                    "key": lane.key,
                    "bounds": _rect_to_list(lane.bounds),
                    "members": [node.id for node in lane.members],
                    "attached": [node.id for node in lane.attached],
                }
                for lane in activity.lanes
            ],
        }

    def _detach_from_lane(self, node: Node) -> int | None:
        lane = node.lane
        if lane is None or node not in lane.members:
            return None
        index = lane.members.index(node)
        lane.members.pop(index)
        return index

    def _guard(self, *elements: object) -> None:
        if self._journal is None:
            raise StoreError("Model store mutations require an open session")
        for element in elements:
            if getattr(element, "read_only", False):
                raise ReadOnlyElementError(str(getattr(element, "name", element)))

    def _record(self, undo: Undo) -> None:
        assert self._journal is not None
        self._journal.append(undo)

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        counter = self._counter

        def undo() -> None:
            self._counter = counter - 1

        self._record(undo)
        return str(uuid.uuid5(self.namespace, f"{prefix}|{counter}"))


def _rect_to_list(rect: Rect | None) -> List[int] | None:
    if rect is None:
        return None
    return [rect.x, rect.y, rect.width, rect.height]


def _rect_from_list(raw: Sequence[int] | None) -> Rect | None:
    if not raw:
        return None
    x, y, width, height = (int(value) for value in raw)
    return Rect(x, y, width, height)


def _ports_to_list(ports: List[Port]) -> List[Dict[str, Any]]:
    return [
        {
            "id": port.id,
            "name": port.name,
            "bounds": _rect_to_list(port.bounds),
            "read_only": port.read_only,
        }
        for port in ports
    ]


def _node_to_dict(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "kind": node.kind.value,
        "documentation": node.documentation,
        "read_only": node.read_only,
        "bounds": _rect_to_list(node.bounds),
        "input_ports": _ports_to_list(node.input_ports),
        "output_ports": _ports_to_list(node.output_ports),
        "children": [_node_to_dict(child) for child in node.children],
    }


def _node_from_dict(
    raw: Dict[str, Any],
    container: Activity,
    parent: Node | None,
    nodes_by_id: Dict[str, Node],
) -> Node:
    node = Node(
        id=raw["id"],
        name=raw["name"],
        kind=NodeKind(raw["kind"]),
        documentation=raw.get("documentation", ""),
        parent=parent,
        container=container,
        bounds=_rect_from_list(raw.get("bounds")),
        read_only=bool(raw.get("read_only", False)),
    )
    for key, direction in (("input_ports", PortDirection.IN), ("output_ports", PortDirection.OUT)):
        ports = node.input_ports if direction is PortDirection.IN else node.output_ports
        for raw_port in raw.get(key, []):
            ports.append(
                Port(
                    id=raw_port["id"],
                    name=raw_port["name"],
                    direction=direction,
                    owner=node,
                    bounds=_rect_from_list(raw_port.get("bounds")),
                    read_only=bool(raw_port.get("read_only", False)),
                )
            )
    nodes_by_id[node.id] = node
    node.children = [
        _node_from_dict(child, container, node, nodes_by_id) for child in raw.get("children", [])
    ]
    return node
