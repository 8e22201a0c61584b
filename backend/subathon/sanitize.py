"""Coercion helpers shared by the engine, the ingestion pipeline and storage.

Every helper is total: garbage in gives a safe default out, never an error.
"""

import math
from typing import Any


def to_non_negative_int(value: Any, default: int = 0) -> int:
    """Floor ``value`` to an int and clamp it at zero.

    Accepts ints, floats and numeric strings. Booleans, None, NaN, infinities
    and anything unparsable give ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return max(0, int(math.floor(number)))


def normalize_identity(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip().casefold()


def first_non_empty(*candidates: Any) -> str:
    for candidate in candidates:
        if candidate is None:
            continue
        text = str(candidate).strip()
        if text:
            return text
    return ''


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
