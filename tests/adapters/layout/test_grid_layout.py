from __future__ import annotations

from typing import List, Set, Tuple

from adapters.layout.grid import GridLayoutEngine, LayoutConfig
from adapters.memory.model_store import InMemoryModelStore
from domain.models import ActivityGraph, ActivityRow, Node, Port, Rect
from domain.ports.layout import Shape
from domain.services.activity_rows import build_activity_row
from domain.services.build_activity_graph import GraphBuilder


class WideningCanvas:
    """Grows a node the first time one of its ports is moved."""

    def __init__(self, store: InMemoryModelStore, extra_width: int = 40) -> None:
        self.store = store
        self.extra_width = extra_width
        self.widened: Set[str] = set()
        self.node_reshapes: List[Tuple[str, Rect]] = []

    def reshape(self, shape: Shape, rect: Rect) -> None:
        self.store.reshape(shape, rect)
        if isinstance(shape, Node):
            self.node_reshapes.append((shape.name, rect))
        if isinstance(shape, Port) and shape.owner.id not in self.widened:
            self.widened.add(shape.owner.id)
            owner = shape.owner.bounds
            assert owner is not None
            self.store.reshape(
                shape.owner,
                Rect(owner.x, owner.y, owner.width + self.extra_width, owner.height),
            )

    def bounds(self, shape: Shape) -> Rect | None:
        return self.store.bounds(shape)


def _graph(store: InMemoryModelStore, rows: List[ActivityRow]) -> ActivityGraph:
    with store.session("build"):
        activity = store.create_activity("Layout")
        return GraphBuilder(store).build(activity, rows)


def _layout(store: InMemoryModelStore, graph: ActivityGraph, engine: GridLayoutEngine, **kwargs):
    with store.session("layout"):
        engine.layout(graph, **kwargs)


def test_example_column_positions(
    store: InMemoryModelStore, example_rows: List[ActivityRow], layout_config: LayoutConfig
) -> None:
    graph = _graph(store, example_rows)

    _layout(store, graph, GridLayoutEngine(store, layout_config))

    assert [(node.name, node.bounds) for node in graph.nodes] == [
        ("Start", Rect(590, 100, 20, 20)),
        ("Init", Rect(500, 190, 200, 80)),
        ("Process", Rect(500, 340, 200, 80)),
        ("End", Rect(590, 490, 20, 20)),
    ]


def test_ports_sit_on_owner_borders(
    store: InMemoryModelStore, example_rows: List[ActivityRow], layout_config: LayoutConfig
) -> None:
    graph = _graph(store, example_rows)

    _layout(store, graph, GridLayoutEngine(store, layout_config))

    init = graph.find("Init")
    process = graph.find("Process")
    assert init.output_ports[0].bounds == Rect(690, 220, 20, 20)
    assert process.input_ports[0].bounds == Rect(490, 370, 20, 20)
    assert process.output_ports[0].bounds == Rect(690, 370, 20, 20)


def test_many_ports_grow_the_node_and_stack_evenly(
    store: InMemoryModelStore, layout_config: LayoutConfig
) -> None:
    rows = [
        build_activity_row(
            "Busy", inputs=[f"in{index}" for index in range(5)], outputs=["a", "b"]
        )
    ]
    graph = _graph(store, rows)
    engine = GridLayoutEngine(store, layout_config)

    _layout(store, graph, engine)

    busy = graph.find("Busy")
    assert engine.node_size(busy) == (200, 130)
    assert busy.bounds == Rect(500, 190, 200, 130)
    assert [port.bounds.y for port in busy.input_ports] == [195, 220, 245, 270, 295]
    assert [port.bounds.y for port in busy.output_ports] == [232, 257]
    assert graph.end.bounds.y == 190 + 130 + 70


def test_three_ports_keep_default_height(
    store: InMemoryModelStore, layout_config: LayoutConfig
) -> None:
    graph = _graph(store, [build_activity_row("Trio", outputs=["a", "b", "c"])])

    assert GridLayoutEngine(store, layout_config).node_size(graph.find("Trio")) == (200, 80)


def test_column_x_is_used_without_canvas_width(
    store: InMemoryModelStore, example_rows: List[ActivityRow]
) -> None:
    graph = _graph(store, example_rows)
    engine = GridLayoutEngine(store, LayoutConfig(canvas_width=None))

    _layout(store, graph, engine, column_x=40, start_y=10, y_step=30)

    assert graph.start.bounds == Rect(130, 10, 20, 20)
    assert graph.find("Init").bounds == Rect(40, 60, 200, 80)
    assert graph.find("Process").bounds == Rect(40, 170, 200, 80)


def test_layout_is_deterministic(
    store: InMemoryModelStore, example_rows: List[ActivityRow], layout_config: LayoutConfig
) -> None:
    graph = _graph(store, example_rows)
    engine = GridLayoutEngine(store, layout_config)

    _layout(store, graph, engine)
    first = [(node.bounds, [port.bounds for port in node.ports()]) for node in graph.nodes]
    _layout(store, graph, engine)
    second = [(node.bounds, [port.bounds for port in node.ports()]) for node in graph.nodes]

    assert first == second


def test_width_change_is_corrected_once(
    store: InMemoryModelStore, example_rows: List[ActivityRow], layout_config: LayoutConfig
) -> None:
    graph = _graph(store, example_rows)
    canvas = WideningCanvas(store)

    _layout(store, graph, GridLayoutEngine(canvas, layout_config))

    process = graph.find("Process")
    assert process.bounds == Rect(500, 340, 200, 80)
    assert process.output_ports[0].bounds.x == process.bounds.right - 10
    assert process.input_ports[0].bounds.x == process.bounds.x - 10
    reshapes = [name for name, _ in canvas.node_reshapes]
    assert reshapes.count("Process") == 2
    assert reshapes.count("Init") == 2
    assert reshapes.count("Start") == 1
