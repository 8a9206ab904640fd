from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path
from typing import Dict, List

from domain.errors import ParseError, SchemaError, SourceReadError
from domain.models import ActivityRow
from domain.ports.sources import ActivityRowSource
from domain.services.activity_rows import (
    DEFAULT_MULTI_VALUE_DELIMITERS,
    build_activity_row,
    describe_row_error,
    split_multi_value,
)

MIN_HEADER_COLUMNS = 3

# Columns after Name, Documentation, Outputs are picked up by header text.
OPTIONAL_COLUMNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("parent", ("parent",)),
    ("actor", ("actor", "lane")),
    ("inputs", ("input",)),
)


class DelimitedTextRowSource(ActivityRowSource):
    """Reads ``Name,Documentation,Outputs`` text files.

    Every non-blank line after the header becomes a row. The first line that
    cannot be parsed aborts the whole file with its line number.
    """

    def __init__(
        self,
        delimiter: str = ",",
        multi_value_delimiters: Sequence[str] = DEFAULT_MULTI_VALUE_DELIMITERS,
        encoding: str = "utf-8",
    ) -> None:
        self.delimiter = delimiter
        self.multi_value_delimiters = tuple(multi_value_delimiters)
        self.encoding = encoding

    def parse(self, path: Path) -> List[ActivityRow]:
        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read {path}: {exc}"
            raise SourceReadError(msg) from exc
        return self.parse_text(text)

    def parse_text(self, text: str) -> List[ActivityRow]:
        lines = text.splitlines()
        if not lines or not lines[0].strip():
            raise SchemaError("Delimited file is empty or has no header line")

        header = self._split(lines[0])
        if len(header) < MIN_HEADER_COLUMNS:
            msg = (
                f"Invalid header: expected at least {MIN_HEADER_COLUMNS} columns "
                "(Name, Documentation, Outputs)"
            )
            raise SchemaError(msg)
        columns = self._optional_columns(header)

        rows: List[ActivityRow] = []
        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            try:
                rows.append(self._row_from_fields(self._split(line), columns))
            except (csv.Error, ValueError) as exc:
                raise ParseError(describe_row_error(exc), line_number) from exc
        return rows

    def _split(self, line: str) -> List[str]:
        return next(csv.reader([line], delimiter=self.delimiter, strict=True), [])

    def _optional_columns(self, header: List[str]) -> Dict[str, int]:
        columns: Dict[str, int] = {}
        for index, label in enumerate(header[MIN_HEADER_COLUMNS:], start=MIN_HEADER_COLUMNS):
            normalized = label.strip().lower()
            for key, needles in OPTIONAL_COLUMNS:
                if any(needle in normalized for needle in needles):
                    columns.setdefault(key, index)
                    break
        return columns

    def _row_from_fields(self, fields: List[str], columns: Dict[str, int]) -> ActivityRow:
        def field_at(index: int | None) -> str:
            if index is None or index >= len(fields):
                return ""
            return fields[index]

        return build_activity_row(
            field_at(0),
            documentation=field_at(1),
            outputs=split_multi_value(field_at(2), self.multi_value_delimiters),
            actor=field_at(columns.get("actor")),
            parent_name=field_at(columns.get("parent")),
            inputs=split_multi_value(field_at(columns.get("inputs")), self.multi_value_delimiters),
        )
