"""pygpxreplay - Async real-time replay of recorded GPX routes."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygpxreplay")
except PackageNotFoundError:
    __version__ = "0+local"
from pygpxreplay._mqtt import MqttStatusPublisher
from pygpxreplay.config import ReplayConfig
from pygpxreplay.controller import PlaybackController
from pygpxreplay.dispatch import DeliveryScheduler, DispatchQueue, DispatchUnit, QueueState
from pygpxreplay.exceptions import (
    IngestionError,
    ReplayConfigError,
    ReplayError,
    SinkDeliveryError,
    TimeParseError,
)
from pygpxreplay.ingestion.enrich import TrackEnricher, heading_between, speed_between
from pygpxreplay.ingestion.gpx import GpxParser, ParseEnd, ParseError, ParseEvent, ParsePoint, ParseStart
from pygpxreplay.models import DeliveryNotice, PlaybackState, StatusEvent, StatusKind, TrackPoint
from pygpxreplay.session import PlaybackSession
from pygpxreplay.sinks import HttpLocationSink, LocationSink, LogLocationSink

__all__ = [
    "__version__",
    "DeliveryNotice",
    "DeliveryScheduler",
    "DispatchQueue",
    "DispatchUnit",
    "GpxParser",
    "HttpLocationSink",
    "IngestionError",
    "LocationSink",
    "LogLocationSink",
    "MqttStatusPublisher",
    "ParseEnd",
    "ParseError",
    "ParseEvent",
    "ParsePoint",
    "ParseStart",
    "PlaybackController",
    "PlaybackSession",
    "PlaybackState",
    "QueueState",
    "ReplayConfig",
    "ReplayConfigError",
    "ReplayError",
    "SinkDeliveryError",
    "StatusEvent",
    "StatusKind",
    "TimeParseError",
    "TrackEnricher",
    "TrackPoint",
    "heading_between",
    "speed_between",
]
