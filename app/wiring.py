from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from adapters.layout.grid import GridLayoutEngine
from adapters.layout.lanes import LaneLayoutEngine
from adapters.tabular.delimited_text import DelimitedTextRowSource
from adapters.tabular.spreadsheet import SPREADSHEET_SUFFIXES, SpreadsheetRowSource
from app.config import AppSettings
from domain.models import NodeKind
from domain.ports.model_store import ModelStore
from domain.ports.sources import ActivityRowSource
from domain.services.build_activity_graph import ActionTypeOf, action_types_from
from domain.services.import_activities import ActivityImportService


def build_row_source(path: Path, settings: AppSettings) -> ActivityRowSource:
    parser = settings.parser
    if path.suffix.lower() in SPREADSHEET_SUFFIXES:
        return SpreadsheetRowSource(
            action_prefix=parser.action_prefix,
            header_scan_rows=parser.header_scan_rows,
            multi_value_delimiters=parser.multi_value_delimiters,
        )
    return DelimitedTextRowSource(
        delimiter=parser.text_delimiter,
        multi_value_delimiters=parser.multi_value_delimiters,
        encoding=parser.encoding,
    )


def build_import_service(store: ModelStore, settings: AppSettings) -> ActivityImportService:
    config = settings.layout.to_layout_config()
    return ActivityImportService(
        store,
        GridLayoutEngine(store, config),
        LaneLayoutEngine(store, config),
        activity_name=settings.importer.activity_name,
    )


def build_action_type_of(settings: AppSettings, call_behavior: Iterable[str] = ()) -> ActionTypeOf:
    names = [*settings.importer.call_behavior_actions, *call_behavior]
    return action_types_from({name: NodeKind.CALL_BEHAVIOR_ACTION for name in names})
