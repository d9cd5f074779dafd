"""Typed coercion of wire-format result cells.

Athena returns every cell as ``VarCharValue`` text. Integer and array columns are
decoded here; every other declared type passes through untouched. Malformed cells
degrade to ``None`` (integers) or an empty list (arrays) instead of raising.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from athena_query.models import ColumnDescriptor, RawCell, TypedRow

INTEGER_TYPES = frozenset({"tinyint", "smallint", "int", "integer", "bigint"})

_ARRAY_SEPARATOR = ", "
_NULL_TOKEN = "null"
_DECIMAL = re.compile(r"[+-]?[0-9]+")


def is_integer_type(declared_type: Optional[str]) -> bool:
    return (declared_type or "").strip().lower() in INTEGER_TYPES


def is_array_type(declared_type: Optional[str]) -> bool:
    normalized = (declared_type or "").strip().lower()
    return normalized == "array" or normalized.startswith(("array<", "array("))


def _to_int(raw: RawCell) -> Optional[int]:
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not _DECIMAL.fullmatch(text):
        return None
    return int(text)


def _to_list(raw: RawCell) -> List[str]:
    text = raw or ""
    if text.startswith("["):
        text = text[1:]
    if text.endswith("]"):
        text = text[:-1]
    if not text:
        return []
    return [token for token in text.split(_ARRAY_SEPARATOR) if token != _NULL_TOKEN]


def coerce_value(declared_type: Optional[str], raw: RawCell) -> Any:
    """Convert one cell to the Python value implied by its declared column type."""
    if is_integer_type(declared_type):
        return _to_int(raw)
    if is_array_type(declared_type):
        return _to_list(raw)
    return raw


def coerce_row(columns: Sequence[ColumnDescriptor], cells: Sequence[RawCell]) -> TypedRow:
    """Build one row keyed by column name, in column order."""
    return {
        column.name: coerce_value(column.type, cell) for column, cell in zip(columns, cells)
    }
