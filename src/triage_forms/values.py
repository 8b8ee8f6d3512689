"""Value helpers shared by the evaluator, validation, scoring and hydration.

All helpers are total: they never raise on odd input and return a safe
default instead.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any


def has_meaningful_value(value: Any) -> bool:
    """True if ``value`` counts as an answer.

    None, blank strings, empty lists/dicts and non-finite numbers are empty.
    Booleans always count (``False`` is a deliberate answer).
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return len(value.strip()) > 0
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return False


def coerce_number(value: Any) -> float | None:
    """Coerce ``value`` to a finite float, or None if that is not possible.

    Strings are stripped before parsing; booleans are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def normalize_value_for_field(field_type: str, value: Any) -> Any:
    """Normalize a stored value into the shape a field type expects.

    Returns None when the value cannot be represented for the field type,
    which callers treat as "no answer".
    """
    if field_type in ("MULTI_SELECT", "CHECKBOX_GROUP"):
        if isinstance(value, (list, tuple)):
            return [str(entry) for entry in value]
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return None

    if field_type in ("SCORING_0_3", "INTEGER"):
        return coerce_number(value)

    if field_type == "DATE":
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            return value
        return None

    if field_type in ("REPEATABLE_GROUP", "DATA_TABLE_SELECTOR"):
        if isinstance(value, (list, tuple)):
            rows = [dict(entry) for entry in value if isinstance(entry, dict)]
            return rows or None
        return None

    return value
