from __future__ import annotations

import json
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import List

from adapters.excalidraw.repository import FileSystemExcalidrawRepository
from adapters.memory.model_store import InMemoryModelStore
from domain.models import CUSTOM_DATA_KEY, ActivityRow
from domain.services.activity_rows import build_activity_row
from domain.services.convert_activity_graph_to_excalidraw import (
    ActivityGraphToExcalidrawConverter,
)
from domain.services.import_activities import ActivityImportService


def _role(element: dict) -> str:
    return element["customData"][CUSTOM_DATA_KEY]["role"]


def test_converter_draws_lanes_nodes_ports_and_edges(
    store: InMemoryModelStore,
    example_rows: List[ActivityRow],
    import_service_factory: Callable[[InMemoryModelStore], ActivityImportService],
) -> None:
    result = import_service_factory(store).run(example_rows)

    document = ActivityGraphToExcalidrawConverter().convert(result.graph)

    roles = Counter(_role(element) for element in document.elements)
    assert roles == {
        "lane": 2,
        "lane_label": 2,
        "node": 4,
        "node_label": 2,
        "port": 3,
        "port_label": 3,
        "edge": 3,
    }
    ellipses = [element for element in document.elements if element["type"] == "ellipse"]
    assert len(ellipses) == 2
    lanes = [element for element in document.elements if _role(element) == "lane"]
    assert {element["customData"][CUSTOM_DATA_KEY]["lane_key"] for element in lanes} == {
        "<Unassigned>",
        "Worker",
    }
    assert all(element["strokeStyle"] == "dashed" for element in lanes)


def test_arrows_are_bound_to_node_shapes(
    store: InMemoryModelStore,
    example_rows: List[ActivityRow],
    import_service_factory: Callable[[InMemoryModelStore], ActivityImportService],
) -> None:
    result = import_service_factory(store).run(example_rows)

    document = ActivityGraphToExcalidrawConverter().convert(result.graph)

    by_id = {element["id"]: element for element in document.elements}
    arrows = [element for element in document.elements if element["type"] == "arrow"]
    for arrow in arrows:
        source = by_id[arrow["startBinding"]["elementId"]]
        target = by_id[arrow["endBinding"]["elementId"]]
        assert {"id": arrow["id"], "type": "arrow"} in source["boundElements"]
        assert {"id": arrow["id"], "type": "arrow"} in target["boundElements"]
        assert arrow["y"] == source["y"] + source["height"]
        assert arrow["y"] + arrow["points"][1][1] == target["y"]
    labels = [element for element in document.elements if _role(element) == "node_label"]
    for label in labels:
        container = by_id[label["containerId"]]
        assert {"id": label["id"], "type": "text"} in container["boundElements"]


def test_sub_actions_are_drawn_without_edges(
    store: InMemoryModelStore,
    import_service_factory: Callable[[InMemoryModelStore], ActivityImportService],
) -> None:
    rows = [
        build_activity_row("Process", outputs=["Done"]),
        build_activity_row("Validate", parent_name="Process"),
    ]
    result = import_service_factory(store).run(rows)

    document = ActivityGraphToExcalidrawConverter().convert(result.graph)

    nodes = [element for element in document.elements if _role(element) == "node"]
    validate = next(
        element
        for element in nodes
        if element["customData"][CUSTOM_DATA_KEY]["node_name"] == "Validate"
    )
    process_id = result.graph.find("Process").id
    assert validate["customData"][CUSTOM_DATA_KEY]["parent_id"] == process_id
    assert sum(1 for element in document.elements if element["type"] == "arrow") == 2


def test_repository_writes_scene_file(
    store: InMemoryModelStore,
    example_rows: List[ActivityRow],
    import_service_factory: Callable[[InMemoryModelStore], ActivityImportService],
    tmp_path: Path,
) -> None:
    result = import_service_factory(store).run(example_rows)
    document = ActivityGraphToExcalidrawConverter().convert(result.graph)
    path = tmp_path / "scenes" / "import.excalidraw"

    FileSystemExcalidrawRepository().save(document, path)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["type"] == "excalidraw"
    assert payload["source"] == "activity-importer"
    assert len(payload["elements"]) == len(document.elements)
