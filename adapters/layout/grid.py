from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from domain.models import ActivityGraph, Node, Port, Rect
from domain.ports.layout import Canvas, NodeLayoutEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    canvas_width: int | None = 1200
    node_width: int = 200
    node_height: int = 80
    sentinel_size: int = 20
    pin_width: int = 20
    pin_height: int = 20
    pin_spacing: int = 5
    pin_unit_height: int = 25
    pin_threshold: int = 3
    column_x: int = 100
    start_y: int = 100
    y_step: int = 70
    lane_padding: int = 40
    lane_placeholder: Rect = Rect(150, 70, 450, 300)


class GridLayoutEngine(NodeLayoutEngine):
    """Stacks every node of a graph in one vertical column.

    Nodes keep graph order. Ports sit on the left (inputs) and right
    (outputs) borders of their owner. When the canvas changes an owner's
    width while its ports are placed, the owner is reshaped back once and
    its ports are placed again; there is no further iteration.
    """

    def __init__(self, canvas: Canvas, config: LayoutConfig | None = None) -> None:
        self.canvas = canvas
        self.config = config or LayoutConfig()

    def layout(
        self,
        graph: ActivityGraph,
        column_x: int | None = None,
        start_y: int | None = None,
        y_step: int | None = None,
    ) -> None:
        column_left = self.column_left(column_x)
        y = self.config.start_y if start_y is None else start_y
        step = self.config.y_step if y_step is None else y_step

        for node in graph.nodes:
            width, height = self.node_size(node)
            x = column_left + (self.config.node_width - width) // 2
            intended = Rect(x, y, width, height)
            self.canvas.reshape(node, intended)

            if node.input_ports or node.output_ports:
                actual = self.canvas.bounds(node) or intended
                self._place_ports(node, actual)

                current = self.canvas.bounds(node) or intended
                if current.width != intended.width:
                    logger.debug(
                        "Node %r width changed to %d while placing ports; restoring %d",
                        node.name,
                        current.width,
                        intended.width,
                    )
                    self.canvas.reshape(node, intended)
                    self._place_ports(node, intended)

            y += height + step

    def column_left(self, column_x: int | None = None) -> int:
        if self.config.canvas_width is not None:
            return (self.config.canvas_width - self.config.node_width) // 2
        return self.config.column_x if column_x is None else column_x

    def node_size(self, node: Node) -> Tuple[int, int]:
        if node.kind.is_sentinel:
            return self.config.sentinel_size, self.config.sentinel_size
        height = self.config.node_height
        most_ports = max(len(node.input_ports), len(node.output_ports))
        if most_ports > self.config.pin_threshold:
            height += (most_ports - self.config.pin_threshold) * self.config.pin_unit_height
        return self.config.node_width, height

    def _place_ports(self, node: Node, owner: Rect) -> None:
        self._place_stack(node.input_ports, owner, owner.x - self.config.pin_width // 2)
        self._place_stack(
            node.output_ports, owner, owner.right - self.config.pin_width // 2
        )

    def _place_stack(self, ports: List[Port], owner: Rect, pin_x: int) -> None:
        if not ports:
            return
        pitch = self.config.pin_height + self.config.pin_spacing
        stack_height = len(ports) * pitch - self.config.pin_spacing
        top = owner.y + (owner.height - stack_height) // 2
        for index, port in enumerate(ports):
            self.canvas.reshape(
                port,
                Rect(pin_x, top + index * pitch, self.config.pin_width, self.config.pin_height),
            )
