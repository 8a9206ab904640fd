from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Dict, List, Tuple

from domain.errors import OrphanReferenceError
from domain.models import (
    UNASSIGNED_LANE,
    Activity,
    ActivityGraph,
    ActivityRow,
    Lane,
    Node,
    NodeKind,
)
from domain.ports.model_store import ModelStore
from domain.services.node_registry import NodeRegistry, find_first

logger = logging.getLogger(__name__)

ActionTypeOf = Callable[[str], NodeKind]

START_NODE_NAME = "Start"
END_NODE_NAME = "End"


def default_action_type(name: str) -> NodeKind:
    return NodeKind.STRUCTURED_ACTION


def action_types_from(
    mapping: Mapping[str, NodeKind], default: NodeKind = NodeKind.STRUCTURED_ACTION
) -> ActionTypeOf:
    lookup = dict(mapping)

    def action_type_of(name: str) -> NodeKind:
        return lookup.get(name, default)

    return action_type_of


class GraphBuilder:
    """Turns ordered activity rows into one Start -> ... -> End sequence.

    Top-level rows become lane members linked by sequential edges. Sub-action
    rows become children of an already processed top-level node; a sub-action
    whose parent is unknown is dropped and recorded on the graph. Top-level
    rows always build structured actions since only those can own children;
    ``action_type_of`` picks the kind of new sub-actions.
    """

    def __init__(self, store: ModelStore, registry: NodeRegistry | None = None) -> None:
        self.store = store
        self.registry = registry or NodeRegistry(store)

    def build(
        self,
        activity: Activity,
        rows: Iterable[ActivityRow],
        action_type_of: ActionTypeOf | None = None,
    ) -> ActivityGraph:
        rows = list(rows)
        kind_of = action_type_of or default_action_type
        top_level_rows = [row for row in rows if not row.is_sub_action]

        lanes = self._create_lanes(activity, top_level_rows)
        first_lane = next(iter(lanes.values()))

        start = self.store.create_node(activity, START_NODE_NAME, NodeKind.START)
        self.store.attach_to_lane(start, first_lane)

        placed: List[Node] = [start]
        placed_ids = {start.id}
        created: List[Node] = []
        created_ids: set[str] = set()
        reused: List[Node] = []
        dropped: List[OrphanReferenceError] = []
        main_by_name: Dict[str, Node] = {}
        previous = start

        for row in rows:
            if row.is_sub_action:
                parent = main_by_name.get(row.parent_name)
                if parent is None:
                    orphan = OrphanReferenceError(row.name, row.parent_name)
                    logger.warning("%s; row dropped", orphan)
                    dropped.append(orphan)
                    continue
                node, was_reused = self._attach_sub_action(parent, row, kind_of(row.name))
            else:
                node, was_reused = self._place_action(activity, row)
                self.store.assign_lane(node, lanes[row.lane_key])
                if node is not previous:
                    self.store.create_edge(activity, previous, node)
                previous = node
                main_by_name[row.name] = node

            if not was_reused:
                created.append(node)
                created_ids.add(node.id)
            elif node.id not in created_ids and node not in reused:
                # only nodes that existed before this build count as reused
                reused.append(node)
            if node.id not in placed_ids:
                placed.append(node)
                placed_ids.add(node.id)

        end = self.store.create_node(activity, END_NODE_NAME, NodeKind.END)
        self.store.attach_to_lane(end, first_lane)
        self.store.create_edge(activity, previous, end)
        placed.append(end)

        return ActivityGraph(
            activity=activity,
            start=start,
            end=end,
            nodes=placed,
            created=created,
            reused=reused,
            dropped=dropped,
        )

    def _create_lanes(
        self, activity: Activity, top_level_rows: List[ActivityRow]
    ) -> Dict[str, Lane]:
        lanes: Dict[str, Lane] = {}
        for row in top_level_rows:
            if row.lane_key not in lanes:
                lanes[row.lane_key] = self.store.create_lane(activity, row.lane_key)
        if not lanes:
            lanes[UNASSIGNED_LANE] = self.store.create_lane(activity, UNASSIGNED_LANE)
        return lanes

    def _place_action(self, activity: Activity, row: ActivityRow) -> Tuple[Node, bool]:
        resolution = self.registry.resolve(row.name, row.inputs, row.outputs)
        if resolution.node is not None:
            node = resolution.node
            if node.container is not activity or node.parent is not None:
                logger.info("Moving reused node %r into activity %r", node.name, activity.name)
                self.store.move_node(node, activity)
            return node, True

        node = self.store.create_node(
            activity, row.name, NodeKind.STRUCTURED_ACTION, documentation=row.documentation
        )
        self.registry.extend(node, row.inputs, row.outputs)
        return node, False

    def _attach_sub_action(
        self, parent: Node, row: ActivityRow, kind: NodeKind
    ) -> Tuple[Node, bool]:
        existing = find_first(
            parent.children, lambda child: child.kind.is_action_kind and child.name == row.name
        )
        if existing is not None:
            self.registry.extend(existing, row.inputs, row.outputs)
            return existing, True

        child = self.store.create_node(parent, row.name, kind, documentation=row.documentation)
        self.registry.extend(child, row.inputs, row.outputs)
        return child, False
