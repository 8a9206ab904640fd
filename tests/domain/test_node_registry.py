from __future__ import annotations

import pytest

from adapters.memory.model_store import InMemoryModelStore
from domain.errors import ReadOnlyElementError, StoreError
from domain.models import NodeKind, PortDirection
from domain.services.node_registry import NodeRegistry, Resolution, walk_nodes


def _seed_store(store: InMemoryModelStore) -> None:
    with store.session("seed"):
        first = store.create_activity("First")
        a = store.create_node(first, "A", NodeKind.STRUCTURED_ACTION)
        a1 = store.create_node(a, "A1", NodeKind.STRUCTURED_ACTION)
        store.create_node(a1, "A1a", NodeKind.CALL_BEHAVIOR_ACTION)
        store.create_node(a, "A2", NodeKind.STRUCTURED_ACTION)
        store.create_node(first, "B", NodeKind.STRUCTURED_ACTION)
        store.create_node(first, "Start", NodeKind.START)
        store.create_port(a, "in1", PortDirection.IN)
        store.create_port(a, "out1", PortDirection.OUT)

        second = store.create_activity("Second")
        store.create_node(second, "A", NodeKind.STRUCTURED_ACTION)


def test_walk_visits_children_before_later_siblings(store: InMemoryModelStore) -> None:
    _seed_store(store)

    names = [node.name for node in store.walk()]

    assert names == ["A", "A1", "A1a", "A2", "B", "Start", "A"]
    assert [node.name for node in walk_nodes([])] == []


def test_resolve_reports_no_match_for_unknown_names(store: InMemoryModelStore) -> None:
    _seed_store(store)

    assert NodeRegistry(store).resolve("Missing", ["x"], ["y"]) == Resolution(None, False)


def test_resolve_ignores_sentinels(store: InMemoryModelStore) -> None:
    _seed_store(store)

    assert NodeRegistry(store).resolve("Start").node is None


def test_first_match_in_store_order_wins(store: InMemoryModelStore) -> None:
    _seed_store(store)
    first_activity = store.activities()[0]

    resolution = NodeRegistry(store).resolve("A", ["in1"], ["out1"])

    assert resolution.was_reused
    assert resolution.node is first_activity.nodes[0]


def test_nested_call_behavior_actions_are_recognized(store: InMemoryModelStore) -> None:
    _seed_store(store)

    resolution = NodeRegistry(store).resolve("A1a")

    assert resolution.was_reused
    assert resolution.node is not None
    assert resolution.node.kind is NodeKind.CALL_BEHAVIOR_ACTION


def test_resolve_is_idempotent(store: InMemoryModelStore) -> None:
    _seed_store(store)
    registry = NodeRegistry(store)

    with store.session("resolve"):
        first = registry.resolve("B", ["x"], ["y"])
        second = registry.resolve("B", ["x"], ["y"])

    assert first.node is second.node
    assert first.node is not None
    assert first.node.port_names(PortDirection.IN) == ["x"]
    assert first.node.port_names(PortDirection.OUT) == ["y"]


def test_resolve_adds_only_missing_ports_and_keeps_existing(store: InMemoryModelStore) -> None:
    _seed_store(store)
    registry = NodeRegistry(store)
    node = registry.find("A")
    assert node is not None
    original_ports = node.ports()

    with store.session("extend"):
        resolution = registry.resolve("A", ["in2", "in1", "in2"], ["out1", "out2"])

    assert resolution.node is node
    assert node.port_names(PortDirection.IN) == ["in1", "in2"]
    assert node.port_names(PortDirection.OUT) == ["out1", "out2"]
    assert all(port in node.ports() for port in original_ports)


def test_resolve_without_new_ports_needs_no_session(store: InMemoryModelStore) -> None:
    _seed_store(store)

    resolution = NodeRegistry(store).resolve("A", ["in1"], ["out1"])

    assert resolution.was_reused


def test_resolve_propagates_store_failures(store: InMemoryModelStore) -> None:
    _seed_store(store)
    registry = NodeRegistry(store)

    with pytest.raises(StoreError):
        registry.resolve("A", ["brand-new"])

    node = registry.find("B")
    assert node is not None
    node.read_only = True
    with store.session("read-only"), pytest.raises(ReadOnlyElementError):
        registry.resolve("B", ["x"])
