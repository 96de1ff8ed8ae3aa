"""Normalization helpers.

Centralizes defensive parsing of raw GPX field values.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from pygpxreplay._constants import GPX_TIME_FORMAT
from pygpxreplay.exceptions import TimeParseError


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def parse_coordinate(value: str | None, *, name: str) -> float:
    """Parse a mandatory coordinate attribute.

    Raises :class:`ValueError` when *value* is missing, non-numeric or
    not finite.
    """
    if value is None:
        raise ValueError(f"Point is missing the '{name}' attribute")
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        raise ValueError(f"Invalid '{name}' attribute: {value!r}")
    return parsed


def parse_gpx_time(value: str) -> float:
    """Convert a GPX timestamp to epoch seconds.

    ``yyyy-MM-ddTHH:mm:ssZ`` is the canonical form. Fractional seconds
    and explicit UTC offsets are accepted as well; naive values are
    taken as UTC.

    Raises :class:`~pygpxreplay.exceptions.TimeParseError` when the
    value cannot be interpreted.
    """
    text = value.strip()
    try:
        parsed = datetime.strptime(text, GPX_TIME_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise TimeParseError(f"Unable to parse time: {value!r}", value=value) from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()
