from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Optional

from domain.models import Node, PortDirection
from domain.ports.model_store import ModelStore

logger = logging.getLogger(__name__)

NodePredicate = Callable[[Node], bool]


def walk_nodes(roots: Iterable[Node]) -> Iterator[Node]:
    """Pre-order walk: each node, then its children, then its later siblings."""
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_first(nodes: Iterable[Node], predicate: NodePredicate) -> Optional[Node]:
    return next((node for node in nodes if predicate(node)), None)


def is_recognized_action(node: Node) -> bool:
    return node.kind.is_action_kind


@dataclass(frozen=True)
class Resolution:
    node: Optional[Node]
    was_reused: bool


class NodeRegistry:
    def __init__(
        self, store: ModelStore, predicate: NodePredicate = is_recognized_action
    ) -> None:
        self.store = store
        self.predicate = predicate

    def find(self, name: str) -> Optional[Node]:
        return find_first(
            self.store.walk(), lambda node: self.predicate(node) and node.name == name
        )

    def resolve(
        self,
        name: str,
        required_inputs: Sequence[str] = (),
        required_outputs: Sequence[str] = (),
    ) -> Resolution:
        node = self.find(name)
        if node is None:
            return Resolution(node=None, was_reused=False)
        added = self.extend(node, required_inputs, required_outputs)
        logger.debug("Reusing node %r (%d ports added)", name, added)
        return Resolution(node=node, was_reused=True)

    def extend(
        self,
        node: Node,
        required_inputs: Sequence[str] = (),
        required_outputs: Sequence[str] = (),
    ) -> int:
        added = 0
        for direction, required in (
            (PortDirection.IN, required_inputs),
            (PortDirection.OUT, required_outputs),
        ):
            existing = set(node.port_names(direction))
            for port_name in required:
                if port_name in existing:
                    continue
                self.store.create_port(node, port_name, direction)
                existing.add(port_name)
                added += 1
        return added
