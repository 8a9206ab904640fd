from __future__ import annotations

import logging
from collections.abc import Sequence

from domain.models import ActivityRow, ImportResult
from domain.ports.layout import LaneFitter, NodeLayoutEngine
from domain.ports.model_store import ModelStore
from domain.services.build_activity_graph import ActionTypeOf, GraphBuilder
from domain.services.node_registry import NodeRegistry

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_NAME = "Imported Activities"
SESSION_TITLE = "Import activities"


class ActivityImportService:
    """Runs build, node layout and lane fitting inside one store session.

    The session commits when every step succeeds; any exception rolls the
    whole import back and propagates unchanged.
    """

    def __init__(
        self,
        store: ModelStore,
        node_layout: NodeLayoutEngine,
        lane_layout: LaneFitter,
        activity_name: str = DEFAULT_ACTIVITY_NAME,
    ) -> None:
        self.store = store
        self.node_layout = node_layout
        self.lane_layout = lane_layout
        self.activity_name = activity_name

    def run(
        self,
        rows: Sequence[ActivityRow],
        action_type_of: ActionTypeOf | None = None,
    ) -> ImportResult:
        logger.info("Importing %d rows into %r", len(rows), self.activity_name)
        try:
            with self.store.session(SESSION_TITLE):
                activity = self.store.create_activity(self.activity_name)
                builder = GraphBuilder(self.store, NodeRegistry(self.store))
                graph = builder.build(activity, rows, action_type_of)
                self.lane_layout.place_placeholders(graph)
                self.node_layout.layout(graph)
                self.lane_layout.fit_lanes(graph)
        except Exception as exc:
            logger.error("Import of %d rows aborted: %s", len(rows), exc)
            raise

        result = ImportResult(
            rows_imported=len(rows) - len(graph.dropped),
            nodes_created=len(graph.created),
            nodes_reused=len(graph.reused),
            orphans_dropped=len(graph.dropped),
            graph=graph,
        )
        logger.info(
            "Imported %d rows (%d created, %d reused, %d dropped)",
            result.rows_imported,
            result.nodes_created,
            result.nodes_reused,
            result.orphans_dropped,
        )
        return result
