from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from domain.errors import ParseError, SchemaError, SourceReadError
from domain.models import ActivityRow
from domain.ports.sources import ActivityRowSource
from domain.services.activity_rows import (
    DEFAULT_MULTI_VALUE_DELIMITERS,
    build_activity_row,
    coerce_cell,
    describe_row_error,
    split_multi_value,
)

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})

# Checked in order; a header cell belongs to the first column kind it matches.
HEADER_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("parent", ("parent",)),
    ("actor", ("actor", "lane")),
    ("documentation", ("doc", "description")),
    ("inputs", ("input",)),
    ("outputs", ("output",)),
    ("name", ("name",)),
)

Table = List[List[str]]


def cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, np.generic):
        value = value.item()
    if not isinstance(value, str) and pd.isna(value):
        return ""
    return coerce_cell(value)


class SpreadsheetRowSource(ActivityRowSource):
    """Reads the first sheet of an xlsx/xls workbook.

    The header row is the first of the leading ``header_scan_rows`` rows with
    a cell containing "name". Only rows whose name starts with
    ``action_prefix`` are imported; rows that fail validation are logged and
    skipped.
    """

    def __init__(
        self,
        action_prefix: str = "Action",
        header_scan_rows: int = 10,
        multi_value_delimiters: Sequence[str] = DEFAULT_MULTI_VALUE_DELIMITERS,
    ) -> None:
        self.action_prefix = action_prefix
        self.header_scan_rows = header_scan_rows
        self.multi_value_delimiters = tuple(multi_value_delimiters)

    def parse(self, path: Path) -> List[ActivityRow]:
        return self.parse_table(self.read_table(path))

    def read_table(self, path: Path) -> Table:
        if path.suffix.lower() not in SPREADSHEET_SUFFIXES:
            msg = f"Unsupported file format {path.suffix!r}; use .xls or .xlsx files"
            raise SourceReadError(msg)
        try:
            frame = pd.read_excel(path, sheet_name=0, header=None, dtype=object)
        except Exception as exc:  # noqa: BLE001
            msg = f"Cannot read workbook {path}: {exc}"
            raise SourceReadError(msg) from exc
        return [[cell_text(value) for value in record] for record in frame.itertuples(index=False)]

    def parse_table(self, table: Table) -> List[ActivityRow]:
        header_index, columns = self.find_columns(table)
        rows: List[ActivityRow] = []
        for row_index in range(header_index + 1, len(table)):
            cells = table[row_index]

            def cell(key: str) -> str:
                index = columns.get(key)
                if index is None or index >= len(cells):
                    return ""
                return cells[index]

            name = cell("name")
            if not name:
                continue
            if self.action_prefix and not name.startswith(self.action_prefix):
                continue
            try:
                rows.append(
                    build_activity_row(
                        name,
                        actor=cell("actor"),
                        parent_name=cell("parent"),
                        documentation=cell("documentation"),
                        inputs=split_multi_value(cell("inputs"), self.multi_value_delimiters),
                        outputs=split_multi_value(cell("outputs"), self.multi_value_delimiters),
                    )
                )
            except ValueError as exc:
                error = ParseError(describe_row_error(exc), row_index + 1)
                logger.warning("%s; row skipped", error)
        return rows

    def find_columns(self, table: Table) -> Tuple[int, Dict[str, int]]:
        for row_index, cells in enumerate(table[: self.header_scan_rows]):
            columns: Dict[str, int] = {}
            for col_index, value in enumerate(cells):
                label = value.lower()
                for key, needles in HEADER_KEYWORDS:
                    if any(needle in label for needle in needles):
                        columns.setdefault(key, col_index)
                        break
            if "name" in columns:
                return row_index, columns
        msg = f"Required column 'Name' not found in the first {self.header_scan_rows} rows"
        raise SchemaError(msg)
