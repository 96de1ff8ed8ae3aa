"""Track point model."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pygpxreplay.ingestion.normalize import safe_float, safe_str


class TrackPoint(BaseModel):
    """One recorded position sample from a route recording.

    Built from the raw string fields of a parsed point element; GPX
    element names (``lat``, ``lon``, ``ele``, ``sat``) are accepted as
    aliases.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    elevation : float or None
        Elevation in meters, ``None`` when absent or unparseable.
    time : str or None
        Recorded timestamp, as found in the document.
    satellites : str or None
        Satellite count, as found in the document.
    fix : str or None
        Fix type, as found in the document.
    heading : float
        Derived heading in degrees (see :mod:`pygpxreplay.ingestion.enrich`).
    speed : float
        Derived planar speed (unitless, scaled).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    elevation: float | None = Field(default=None, validation_alias=AliasChoices("elevation", "ele"))
    time: str | None = None
    satellites: str | None = Field(default=None, validation_alias=AliasChoices("satellites", "sat"))
    fix: str | None = None
    heading: float = 0.0
    speed: float = 0.0

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _require_finite(cls, value: Any) -> float:
        parsed = safe_float(value)
        if parsed is None or math.isinf(parsed):
            raise ValueError(f"coordinate must be a finite number, got {value!r}")
        return parsed

    @field_validator("elevation", mode="before")
    @classmethod
    def _coerce_elevation(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("time", "satellites", "fix", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        text = safe_str(value)
        return text.strip() if text is not None else None

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> TrackPoint:
        """Build a point from parser raw fields (``lat``, ``lon``, ``ele``...)."""
        return cls.model_validate(fields)

    def at_rest(self) -> TrackPoint:
        """Copy of this point with ``speed`` forced to zero."""
        return self.model_copy(update={"speed": 0.0})
