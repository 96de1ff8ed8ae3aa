"""Data models for track points and playback status."""

from pygpxreplay.models.status import DeliveryNotice, PlaybackState, StatusEvent, StatusKind
from pygpxreplay.models.track import TrackPoint

__all__ = [
    "DeliveryNotice",
    "PlaybackState",
    "StatusEvent",
    "StatusKind",
    "TrackPoint",
]
