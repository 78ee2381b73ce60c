"""
Lenient normalization of list-endpoint query parameters.

Read paths prefer resilience over strictness: a malformed filter, sort or
page value is corrected to its default (usually "not applied") instead of
rejecting the request. Path ids are not handled here; FastAPI validates
those strictly.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Type, TypeVar

from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement

from taskflow_shared.schemas.common import SortOrder

E = TypeVar("E", bound=Enum)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def parse_enum(enum_cls: Type[E], value: Optional[str]) -> Optional[E]:
    """Match by value, case-insensitively. Unknown values are dropped."""
    if not value:
        return None
    wanted = str(value).strip().upper()
    for member in enum_cls:
        if str(member.value).upper() == wanted:
            return member
    return None


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    lowered = str(value).strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return default


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 date or datetime; a trailing ``Z`` is accepted."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_order(value: Optional[str], default: SortOrder = SortOrder.DESC) -> SortOrder:
    return parse_enum(SortOrder, value) or default


def combine(clauses: Iterable[Optional[ColumnElement[bool]]]) -> list[ColumnElement[bool]]:
    """Drop the clauses that normalized to ``None``."""
    return [c for c in clauses if c is not None]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def ranked(column, ordered_values: Iterable[Enum]) -> ColumnElement:
    """Sort expression placing enum values in declaration order, not alphabetically."""
    members = list(ordered_values)
    return case(
        {member.value: index for index, member in enumerate(members)},
        value=column,
        else_=len(members),
    )


def resolve_sort(
    sort_by: Optional[str],
    order: Optional[str],
    allowed: Mapping[str, ColumnElement],
    *,
    default_field: str,
    tie_break: ColumnElement,
) -> list[ColumnElement]:
    """Build ORDER BY clauses from ``sortBy``/``order``.

    Unknown ``sortBy`` falls back to ``default_field``; ``tie_break`` (the
    row id) is always appended in the same direction so ordering is total.
    """
    field = sort_by if sort_by in allowed else default_field
    direction = parse_order(order)
    column = allowed[field]
    if direction == SortOrder.ASC:
        return [column.asc(), tie_break.asc()]
    return [column.desc(), tie_break.desc()]
