"""Heading/speed derivation from consecutive track points.

Both values are planar approximations over raw degrees. They are kept
exactly as the recorded-route consumers expect them: the heading is
``atan2(dlon, dlat)`` in degrees, range (-180, 180], *not* normalised to
a compass bearing, and the speed is the Euclidean degree distance
scaled by ``100000``.
"""

from __future__ import annotations

import math

from pygpxreplay._constants import FIRST_POINT_HEADING, FIRST_POINT_SPEED, SPEED_SCALE
from pygpxreplay.models.track import TrackPoint


def heading_between(previous: TrackPoint, current: TrackPoint) -> float:
    """Heading in degrees from *previous* to *current*."""
    return math.degrees(
        math.atan2(current.longitude - previous.longitude, current.latitude - previous.latitude)
    )


def speed_between(previous: TrackPoint, current: TrackPoint) -> float:
    """Scaled planar distance between *previous* and *current*."""
    return (
        math.sqrt(
            (previous.longitude - current.longitude) ** 2 + (previous.latitude - current.latitude) ** 2
        )
        * SPEED_SCALE
    )


class TrackEnricher:
    """Stateful enrichment stage; remembers only the previous point."""

    def __init__(self) -> None:
        self._previous: TrackPoint | None = None

    @property
    def previous(self) -> TrackPoint | None:
        return self._previous

    def enrich(self, point: TrackPoint) -> TrackPoint:
        previous = self._previous
        if previous is None:
            enriched = point.model_copy(update={"heading": FIRST_POINT_HEADING, "speed": FIRST_POINT_SPEED})
        else:
            enriched = point.model_copy(
                update={
                    "heading": heading_between(previous, point),
                    "speed": speed_between(previous, point),
                }
            )
        self._previous = enriched
        return enriched

    def reset(self) -> None:
        self._previous = None
