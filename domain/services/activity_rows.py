from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from numbers import Integral, Real
from typing import List

from pydantic import ValidationError

from domain.models import ActivityRow

DEFAULT_MULTI_VALUE_DELIMITERS: tuple[str, ...] = (";", ",")


def split_multi_value(
    text: str | None, delimiters: Sequence[str] = DEFAULT_MULTI_VALUE_DELIMITERS
) -> List[str]:
    """Split a port list on the first delimiter (in preference order) present in ``text``."""
    raw = (text or "").strip()
    if not raw:
        return []
    delimiter = next((delim for delim in delimiters if delim and delim in raw), None)
    if delimiter is None:
        return [raw]
    return [token for token in (part.strip() for part in raw.split(delimiter)) if token]


def coerce_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    # bool before numbers: bool is an Integral
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return str(value)
    if isinstance(value, Integral):
        return str(int(value))
    if isinstance(value, (Real, Decimal)):
        number = float(value)
        if math.isnan(number):
            return ""
        if math.isfinite(number) and number == math.floor(number):
            return str(int(number))
        return repr(number)
    return str(value).strip()


def build_activity_row(
    name: str,
    *,
    actor: str = "",
    parent_name: str = "",
    documentation: str = "",
    inputs: Iterable[str] = (),
    outputs: Iterable[str] = (),
) -> ActivityRow:
    parent = (parent_name or "").strip()
    return ActivityRow(
        name=name,
        actor=actor,
        is_sub_action=bool(parent),
        parent_name=parent,
        documentation=documentation,
        inputs=list(inputs),
        outputs=list(outputs),
    )


def count_top_level(rows: Iterable[ActivityRow]) -> int:
    return sum(1 for row in rows if not row.is_sub_action)


def describe_row_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'row'}: {error['msg']}"
            for error in exc.errors()
        )
    return str(exc)
