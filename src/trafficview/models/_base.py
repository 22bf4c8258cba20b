"""Base model and coercion helpers for feed payloads.

Every model parsed from the realtime feed inherits from
:class:`FeedModel`, which provides:

* ``frozen=True`` so parsed payloads can be shared by reference.
* ``extra="ignore"`` so unrecognised keys are dropped silently.
* A ``model_validator(mode="before")`` that removes ``None`` and NaN
  values so the field default is used instead.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def safe_int(value: Any) -> int | None:
    """Coerce *value* to ``int``; ``None`` when it is not a whole number.

    Booleans are rejected because JSON ``true`` is never a count.  Values
    with a fractional part (``2.5``, ``"2.9"``) are rejected rather than
    truncated.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed) or not parsed.is_integer():
        return None
    return int(parsed)


def non_negative_or_none(value: Any) -> int | None:
    """Like :func:`safe_int` but clamps negative numbers to ``0``."""
    parsed = safe_int(value)
    if parsed is None:
        return None
    return max(0, parsed)


class FeedModel(BaseModel):
    """Base for models validated at the feed boundary."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned
