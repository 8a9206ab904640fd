from __future__ import annotations

from typing import Protocol, Union

from domain.models import ActivityGraph, Lane, Node, Port, Rect

Shape = Union[Node, Port, Lane]


class Canvas(Protocol):
    def reshape(self, shape: Shape, rect: Rect) -> None: ...

    def bounds(self, shape: Shape) -> Rect | None: ...


class NodeLayoutEngine(Protocol):
    def layout(
        self,
        graph: ActivityGraph,
        column_x: int | None = None,
        start_y: int | None = None,
        y_step: int | None = None,
    ) -> None: ...


class LaneFitter(Protocol):
    def place_placeholders(self, graph: ActivityGraph) -> None: ...

    def fit_lanes(self, graph: ActivityGraph) -> None: ...
