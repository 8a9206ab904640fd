from __future__ import annotations

import random
import uuid
from typing import Dict, List

from domain.models import (
    CUSTOM_DATA_KEY,
    METADATA_SCHEMA_VERSION,
    ActivityGraph,
    Edge,
    ExcalidrawDocument,
    Lane,
    Node,
    NodeKind,
    Port,
    PortDirection,
    Rect,
)

ACTION_COLOR = "#cce5ff"
SUB_ACTION_COLOR = "#e6f0ff"
START_COLOR = "#d1ffd6"
END_COLOR = "#ffd6d1"
PORT_COLOR = "#ffffff"
LANE_STROKE_COLOR = "#9e9e9e"


class ActivityGraphToExcalidrawConverter:
    """Renders a laid-out graph: lanes, node shapes, ports and bound arrows.

    Elements without bounds are skipped, as are arrows whose ends were not
    drawn.
    """

    def __init__(self) -> None:
        self.namespace = uuid.uuid5(uuid.NAMESPACE_DNS, "activity-importer")

    def convert(self, graph: ActivityGraph) -> ExcalidrawDocument:
        elements: List[dict] = []
        element_index: Dict[str, dict] = {}
        base_metadata = {
            "schema_version": METADATA_SCHEMA_VERSION,
            "activity_id": graph.activity.id,
            "activity_name": graph.activity.name,
        }

        def add_element(element: dict) -> None:
            elements.append(element)
            element_index[element["id"]] = element

        for lane in graph.lanes:
            self._build_lane(lane, add_element, base_metadata)
        for node in graph.nodes:
            self._build_node(node, add_element, base_metadata)
        for edge in graph.edges:
            self._build_edge(edge, add_element, element_index, base_metadata)

        app_state = {
            "viewBackgroundColor": "#ffffff",
            "gridSize": None,
            "currentItemFontFamily": 1,
            "currentItemFontSize": 20,
            "currentItemStrokeColor": "#1e1e1e",
        }
        return ExcalidrawDocument(elements=elements, app_state=app_state, files={})

    def _build_lane(self, lane: Lane, add_element: callable, base_metadata: dict) -> None:
        if lane.bounds is None:
            return
        metadata = self._with_base_metadata(
            {"role": "lane", "lane_key": lane.key}, base_metadata
        )
        group_id = self._stable_id("lane-group", lane.id)
        rect_id = self._stable_id("lane", lane.id)
        add_element(
            self._base_shape(
                element_id=rect_id,
                type_name="rectangle",
                rect=lane.bounds,
                metadata=metadata,
                group_ids=[group_id],
                extra={
                    "strokeColor": LANE_STROKE_COLOR,
                    "strokeStyle": "dashed",
                    "backgroundColor": "transparent",
                    "fillStyle": "solid",
                },
            )
        )
        add_element(
            self._text_element(
                element_id=self._stable_id("lane-text", lane.id),
                text=lane.key,
                x=lane.bounds.x + 8,
                y=lane.bounds.y + 6,
                width=max(80.0, len(lane.key) * 9.0),
                height=22.0,
                container_id=None,
                group_ids=[group_id],
                metadata=self._with_base_metadata({"role": "lane_label"}, metadata),
                font_size=16.0,
                text_align="left",
            )
        )

    def _build_node(self, node: Node, add_element: callable, base_metadata: dict) -> None:
        if node.bounds is None:
            return
        metadata = self._with_base_metadata(
            {
                "role": "node",
                "node_id": node.id,
                "node_name": node.name,
                "kind": node.kind.value,
                "parent_id": node.parent.id if node.parent is not None else None,
                "lane_key": node.lane.key if node.lane is not None else None,
            },
            base_metadata,
        )
        group_id = self._stable_id("node-group", node.id)
        shape_id = self._stable_id("node", node.id)
        if node.kind.is_sentinel:
            add_element(
                self._base_shape(
                    element_id=shape_id,
                    type_name="ellipse",
                    rect=node.bounds,
                    metadata=metadata,
                    group_ids=[group_id],
                    extra={
                        "strokeColor": "#1e1e1e",
                        "backgroundColor": START_COLOR
                        if node.kind is NodeKind.START
                        else END_COLOR,
                        "fillStyle": "solid",
                    },
                )
            )
            return

        text_id = self._stable_id("node-text", node.id)
        add_element(
            self._base_shape(
                element_id=shape_id,
                type_name="rectangle",
                rect=node.bounds,
                metadata=metadata,
                group_ids=[group_id],
                extra={
                    "strokeColor": "#1e1e1e",
                    "backgroundColor": ACTION_COLOR if node.is_top_level else SUB_ACTION_COLOR,
                    "fillStyle": "hachure",
                    "roundness": {"type": 3},
                    "boundElements": [{"id": text_id, "type": "text"}],
                },
            )
        )
        add_element(
            self._text_element(
                element_id=text_id,
                text=node.name,
                x=node.bounds.x + 10,
                y=node.bounds.y + node.bounds.height / 2 - 14,
                width=node.bounds.width - 20,
                height=28.0,
                container_id=shape_id,
                group_ids=[group_id],
                metadata=self._with_base_metadata({"role": "node_label"}, metadata),
                font_size=18.0,
            )
        )
        for port in node.ports():
            self._build_port(port, group_id, add_element, metadata)

    def _build_port(
        self, port: Port, group_id: str, add_element: callable, node_metadata: dict
    ) -> None:
        if port.bounds is None:
            return
        metadata = self._with_base_metadata(
            {
                "role": "port",
                "port_id": port.id,
                "port_name": port.name,
                "direction": port.direction.value,
            },
            node_metadata,
        )
        add_element(
            self._base_shape(
                element_id=self._stable_id("port", port.id),
                type_name="rectangle",
                rect=port.bounds,
                metadata=metadata,
                group_ids=[group_id],
                extra={
                    "strokeColor": "#1e1e1e",
                    "backgroundColor": PORT_COLOR,
                    "fillStyle": "solid",
                },
            )
        )
        label_width = max(40.0, len(port.name) * 7.0)
        outside_left = port.direction is PortDirection.IN
        label_x = (
            port.bounds.x - label_width - 4 if outside_left else port.bounds.right + 4
        )
        add_element(
            self._text_element(
                element_id=self._stable_id("port-text", port.id),
                text=port.name,
                x=label_x,
                y=port.bounds.y + 2,
                width=label_width,
                height=16.0,
                container_id=None,
                group_ids=[group_id],
                metadata=self._with_base_metadata({"role": "port_label"}, metadata),
                font_size=12.0,
                text_align="right" if outside_left else "left",
            )
        )

    def _build_edge(
        self,
        edge: Edge,
        add_element: callable,
        element_index: Dict[str, dict],
        base_metadata: dict,
    ) -> None:
        source_id = self._stable_id("node", edge.source.id)
        target_id = self._stable_id("node", edge.target.id)
        if source_id not in element_index or target_id not in element_index:
            return
        source = edge.source.bounds
        target = edge.target.bounds
        assert source is not None and target is not None
        start = (source.x + source.width / 2, float(source.bottom))
        end = (target.x + target.width / 2, float(target.y))
        arrow = self._arrow_element(
            element_id=self._stable_id("edge", edge.id),
            start=start,
            end=end,
            metadata=self._with_base_metadata(
                {
                    "role": "edge",
                    "edge_id": edge.id,
                    "source_node_id": edge.source.id,
                    "target_node_id": edge.target.id,
                },
                base_metadata,
            ),
            start_binding=source_id,
            end_binding=target_id,
        )
        add_element(arrow)
        self._bind_arrow(element_index, arrow)

    def _base_shape(
        self,
        element_id: str,
        type_name: str,
        rect: Rect,
        metadata: dict,
        group_ids: List[str] | None = None,
        extra: dict | None = None,
    ) -> dict:
        return {
            "id": element_id,
            "type": type_name,
            "x": rect.x,
            "y": rect.y,
            "width": rect.width,
            "height": rect.height,
            "angle": 0,
            "strokeWidth": 1,
            "strokeStyle": "solid",
            "roughness": 0,
            "opacity": 100,
            "groupIds": group_ids or [],
            "roundness": None,
            "seed": self._rand_seed(),
            "version": 1,
            "versionNonce": self._rand_seed(),
            "isDeleted": False,
            "boundElements": [],
            "locked": False,
            "frameId": None,
            "customData": {CUSTOM_DATA_KEY: metadata},
            **(extra or {}),
        }

    def _text_element(
        self,
        element_id: str,
        text: str,
        x: float,
        y: float,
        width: float,
        height: float,
        container_id: str | None,
        metadata: dict,
        group_ids: List[str] | None = None,
        font_size: float = 20.0,
        text_align: str = "center",
    ) -> dict:
        return {
            "id": element_id,
            "type": "text",
            "x": x,
            "y": y,
            "width": width,
            "height": height,
            "angle": 0,
            "strokeColor": "#1e1e1e",
            "backgroundColor": "transparent",
            "fillStyle": "solid",
            "strokeWidth": 1,
            "strokeStyle": "solid",
            "roughness": 0,
            "opacity": 100,
            "groupIds": group_ids or [],
            "frameId": None,
            "roundness": None,
            "seed": self._rand_seed(),
            "version": 1,
            "versionNonce": self._rand_seed(),
            "isDeleted": False,
            "boundElements": [],
            "locked": False,
            "text": text,
            "fontSize": font_size,
            "fontFamily": 1,
            "textAlign": text_align,
            "verticalAlign": "middle",
            "baseline": height / 2,
            "containerId": container_id,
            "originalText": text,
            "customData": {CUSTOM_DATA_KEY: metadata},
        }

    def _arrow_element(
        self,
        element_id: str,
        start: tuple[float, float],
        end: tuple[float, float],
        metadata: dict,
        start_binding: str | None = None,
        end_binding: str | None = None,
    ) -> dict:
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        return {
            "id": element_id,
            "type": "arrow",
            "x": start[0],
            "y": start[1],
            "width": abs(dx),
            "height": abs(dy),
            "angle": 0,
            "strokeColor": "#1e1e1e",
            "backgroundColor": "transparent",
            "fillStyle": "solid",
            "strokeWidth": 1,
            "strokeStyle": "solid",
            "roughness": 0,
            "opacity": 100,
            "groupIds": [],
            "frameId": None,
            "roundness": {"type": 2},
            "seed": self._rand_seed(),
            "version": 1,
            "versionNonce": self._rand_seed(),
            "isDeleted": False,
            "boundElements": [],
            "locked": False,
            "points": [[0, 0], [dx, dy]],
            "startBinding": {"elementId": start_binding, "focus": 0.0, "gap": 4}
            if start_binding
            else None,
            "endBinding": {"elementId": end_binding, "focus": 0.0, "gap": 4}
            if end_binding
            else None,
            "startArrowhead": None,
            "endArrowhead": "arrow",
            "customData": {CUSTOM_DATA_KEY: metadata},
        }

    def _bind_arrow(self, element_index: Dict[str, dict], arrow: dict) -> None:
        arrow_id = arrow["id"]
        for key in ("startBinding", "endBinding"):
            binding = arrow.get(key)
            if not binding:
                continue
            target = element_index.get(binding.get("elementId"))
            if target is not None:
                target.setdefault("boundElements", []).append({"id": arrow_id, "type": "arrow"})

    def _stable_id(self, *parts: str) -> str:
        return str(uuid.uuid5(self.namespace, "|".join(parts)))

    def _rand_seed(self) -> int:
        return random.randint(1, 2**31 - 1)

    def _with_base_metadata(self, metadata: dict, base: dict) -> dict:
        merged = dict(base)
        merged.update(metadata)
        return merged
