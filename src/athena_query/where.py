"""WHERE-clause predicate assembly."""

from numbers import Number
from typing import Any, List, Mapping, Optional

STATIC_KEY = "col-static"


def sql_literal(value: Any) -> str:
    """Render a value as a SQL literal; numbers stay bare, everything else is quoted."""
    if isinstance(value, Number) and not isinstance(value, bool):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def and_where(conditions: Mapping[str, Any], where: Optional[List[str]] = None) -> List[str]:
    """Append one predicate fragment per condition to ``where`` and return it.

    - ``{"col-static": ["a IS NULL"]}`` appends the raw fragments as-is
    - ``{"type": ["a", "b"]}`` renders ``type IN ('a', 'b')``
    - ``{"ts": {">=": "2024-01-01"}}`` renders one fragment per operator
    - ``{"id": 3}`` renders ``id = 3``

    Fragments keep the insertion order of ``conditions``; join them with ``AND``.
    """
    fragments = [] if where is None else where
    for key, value in conditions.items():
        if key == STATIC_KEY:
            fragments.extend(value)
        elif isinstance(value, (list, tuple)):
            rendered = ", ".join(sql_literal(item) for item in value)
            fragments.append(f"{key} IN ({rendered})")
        elif isinstance(value, Mapping):
            for operator, operand in value.items():
                fragments.append(f"{key} {operator} {sql_literal(operand)}")
        else:
            fragments.append(f"{key} = {sql_literal(value)}")
    return fragments
