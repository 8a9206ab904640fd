from __future__ import annotations

import logging

from adapters.layout.grid import LayoutConfig
from domain.models import ActivityGraph, Rect
from domain.ports.layout import Canvas, LaneFitter
from domain.services.node_registry import walk_nodes

logger = logging.getLogger(__name__)


class LaneLayoutEngine(LaneFitter):
    def __init__(self, canvas: Canvas, config: LayoutConfig | None = None) -> None:
        self.canvas = canvas
        self.config = config or LayoutConfig()

    def place_placeholders(self, graph: ActivityGraph) -> None:
        for lane in graph.lanes:
            self.canvas.reshape(lane, self.config.lane_placeholder)

    def fit_lanes(self, graph: ActivityGraph) -> None:
        """Wrap each lane around its already placed nodes plus padding.

        Sub-actions laid out in this graph count towards the lane of their
        top-level ancestor. Must run after node layout. Lanes without placed
        nodes keep their current rectangle.
        """
        padding = self.config.lane_padding
        laid_out = {node.id for node in graph.nodes}
        for lane in graph.lanes:
            nodes = [node for node in walk_nodes(lane.placed_nodes()) if node.id in laid_out]
            rects = [rect for rect in map(self.canvas.bounds, nodes) if rect is not None]
            if not rects:
                logger.debug("Lane %r has no placed nodes; keeping placeholder", lane.key)
                continue
            min_x = min(rect.x for rect in rects)
            min_y = min(rect.y for rect in rects)
            max_x = max(rect.right for rect in rects)
            max_y = max(rect.bottom for rect in rects)
            self.canvas.reshape(
                lane,
                Rect(
                    min_x - padding,
                    min_y - padding,
                    (max_x - min_x) + padding * 2,
                    (max_y - min_y) + padding * 2,
                ),
            )
