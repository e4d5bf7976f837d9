"""
Helpers for schemaless JSON documents (device records).

Documents are plain dicts with string keys and JSON values. Every helper
returns a new dict and leaves its inputs untouched.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

CREDITS_FIELD = "credits"

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def as_document(value: Any) -> dict:
    """Return ``value`` if it is a JSON object, otherwise an empty document."""
    if isinstance(value, dict):
        return value
    return {}


def coerce_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Coerce a JSON value to an integer.

    Booleans and integers are returned as ints, finite floats and numeric
    strings are truncated toward zero. Anything else yields ``default``.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not _NUMBER_PATTERN.match(text):
            return default
        try:
            return int(text)
        except ValueError:
            number = float(text)
            return int(number) if math.isfinite(number) else default
    return default


def merge_fields(current: dict, fields: dict) -> dict:
    """Shallow merge: keys in ``fields`` overwrite, other keys are kept."""
    merged = dict(current)
    merged.update(fields)
    return merged


def add_credits(current: dict, amount: int) -> dict:
    """Add ``amount`` to the ``credits`` field, treating absence as 0."""
    updated = dict(current)
    balance = coerce_int(current.get(CREDITS_FIELD), default=0)
    updated[CREDITS_FIELD] = balance + amount
    return updated
