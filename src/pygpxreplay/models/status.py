"""Playback state and emitted status events."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class PlaybackState(enum.IntEnum):
    """Controller playback state.

    ``RESUMED`` is reported right after a resume and behaves exactly
    like ``RUNNING``.
    """

    RUNNING = 0
    STOPPED = 1
    PAUSED = 2
    RESUMED = 3

    @property
    def is_active(self) -> bool:
        """Whether points are advancing along the route."""
        return self in (PlaybackState.RUNNING, PlaybackState.RESUMED)

    @property
    def label(self) -> str:
        """Label used in delivery notices."""
        if self.is_active:
            return "RUNNING"
        return self.name


class StatusKind(enum.StrEnum):
    FILE_LOAD_STARTED = "fileLoadStarted"
    FILE_LOAD_FINISHED = "fileLoadFinished"
    FILE_ERROR = "fileError"
    STATUS_CHANGE = "statusChange"


class StatusEvent(BaseModel):
    """A status change broadcast to observers."""

    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    state: PlaybackState
    message: str | None = None
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DeliveryNotice(BaseModel):
    """Per-delivery notification: what was sent to the sink, and in which state."""

    model_config = ConfigDict(frozen=True)

    label: str
    speed: float
    latitude: float
    longitude: float

    def describe(self) -> str:
        return f"{self.label} speed: {self.speed:.02f} location: {self.latitude} - {self.longitude}"
