"""Playback session state owned by the controller."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pygpxreplay.models.status import PlaybackState
from pygpxreplay.models.track import TrackPoint


class PlaybackSession(BaseModel):
    """Mutable state of one playback session.

    Parameters
    ----------
    state : PlaybackState
        Current controller state.
    first_point_time : float or None
        Recorded time (epoch seconds) of the first timed point; recorded
        offsets are measured from it.
    start_offset : float or None
        Wall-clock anchor (epoch seconds) the first point is delivered at,
        i.e. the main queue baseline when the load finished.
    last_point : TrackPoint or None
        Last enriched point of the load.
    last_delivered : TrackPoint or None
        Last point the sink accepted.
    """

    model_config = ConfigDict(extra="forbid")

    state: PlaybackState = PlaybackState.STOPPED
    first_point_time: float | None = None
    start_offset: float | None = None
    last_point: TrackPoint | None = None
    last_delivered: TrackPoint | None = None

    def recorded_offset(self, point_time: float) -> float:
        """Seconds between *point_time* and the first timed point of the session."""
        if self.first_point_time is None:
            self.first_point_time = point_time
        return point_time - self.first_point_time

    @property
    def last_known_point(self) -> TrackPoint | None:
        return self.last_delivered or self.last_point
