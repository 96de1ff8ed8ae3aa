"""High-level playback controller for recorded GPX routes."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Callable, Iterator
from typing import Any

from pydantic import ValidationError

from pygpxreplay.config import ReplayConfig
from pygpxreplay.dispatch.scheduler import DeliveryScheduler
from pygpxreplay.exceptions import IngestionError, TimeParseError
from pygpxreplay.ingestion.enrich import TrackEnricher
from pygpxreplay.ingestion.gpx import GpxParser, ParseEnd, ParseError, ParseEvent, ParsePoint
from pygpxreplay.ingestion.normalize import parse_gpx_time
from pygpxreplay.models.status import DeliveryNotice, PlaybackState, StatusEvent, StatusKind
from pygpxreplay.models.track import TrackPoint
from pygpxreplay.session import PlaybackSession
from pygpxreplay.sinks import LocationSink

_logger = logging.getLogger(__name__)


def _next_chunk(events: Iterator[ParseEvent], size: int) -> list[ParseEvent]:
    chunk: list[ParseEvent] = []
    for event in events:
        chunk.append(event)
        if len(chunk) >= size or isinstance(event, (ParseEnd, ParseError)):
            break
    return chunk


class PlaybackController:
    """Replay a recorded route to a location sink in real time.

    Usage::

        async with PlaybackController(sink, ReplayConfig()) as controller:
            await controller.start_service("route.gpx")
            ...
            controller.pause()
            controller.resume()

    Loading runs in a background task, so every command returns without
    waiting on the parser. Points are delivered only once the whole
    document loaded successfully.
    """

    def __init__(
        self,
        sink: LocationSink,
        config: ReplayConfig | None = None,
        *,
        parser: GpxParser | None = None,
        clock: Callable[[], float] = time.time,
        on_status: Callable[[StatusEvent], None] | None = None,
        on_delivery: Callable[[DeliveryNotice], None] | None = None,
    ) -> None:
        self._config = config or ReplayConfig()
        self._parser = parser or GpxParser()
        self._clock = clock
        self._on_status_cb = on_status
        self._on_delivery_cb = on_delivery
        self._session = PlaybackSession()
        self._scheduler = DeliveryScheduler(
            sink,
            provider_id=self._config.provider_id,
            hold_interval=self._config.hold_interval,
            hold_max_deliveries=self._config.hold_max_deliveries,
            clock=clock,
            on_delivered=self._on_point_delivered,
        )
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PlaybackController:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop_service()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> ReplayConfig:
        return self._config

    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def scheduler(self) -> DeliveryScheduler:
        return self._scheduler

    def get_state(self) -> PlaybackState:
        return self._session.state

    async def wait_loaded(self) -> None:
        """Wait until the current load finished, failed or was cancelled."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_service(self, path: str | os.PathLike[str]) -> None:
        """Load *path* in the background and play it once loaded."""
        self._cancel_ingestion()
        self._scheduler.reset()
        self._set_state(PlaybackState.STOPPED)
        session = PlaybackSession()
        self._session = session

        file_path = os.fspath(path)
        _logger.debug("Starting playback path=%s", file_path)
        self._emit_status(StatusKind.FILE_LOAD_STARTED)
        self._task = asyncio.get_running_loop().create_task(
            self._ingest(file_path, session, TrackEnricher()),
            name="gpx-ingest",
        )

    async def stop_service(self) -> None:
        """Stop playback; the last known point is redelivered once at rest."""
        self._scheduler.reset()
        task = self._cancel_ingestion()
        if task is not None:
            await asyncio.wait({task})

        final = self._session.last_known_point
        if final is not None:
            at_rest = final.at_rest()
            if await self._scheduler.deliver_now(at_rest):
                self._emit_delivery(at_rest, PlaybackState.STOPPED.label)

        self._set_state(PlaybackState.STOPPED)
        self._session = PlaybackSession()

    def pause(self) -> None:
        if not self._session.state.is_active:
            _logger.debug("Pause ignored in state=%s", self._session.state.name)
            return
        _logger.debug("Pausing playback")
        self._set_state(PlaybackState.PAUSED)
        self._scheduler.pause()

    def resume(self) -> None:
        if self._session.state is not PlaybackState.PAUSED:
            _logger.debug("Resume ignored in state=%s", self._session.state.name)
            return
        _logger.debug("Resuming playback")
        self._set_state(PlaybackState.RESUMED)
        self._scheduler.resume()

    def update_delay_time(self, milliseconds: int | float) -> None:
        """Delay applied on the next resume; ignored unless paused."""
        if self._session.state is not PlaybackState.PAUSED:
            _logger.debug("Delay update ignored in state=%s", self._session.state.name)
            return
        self._scheduler.update_delay_time(milliseconds / 1000.0)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def _cancel_ingestion(self) -> asyncio.Task[None] | None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return None
        task.cancel()
        return task

    async def _ingest(self, path: str, session: PlaybackSession, enricher: TrackEnricher) -> None:
        loop = asyncio.get_running_loop()
        events = self._parser.parse_file(path)
        points: list[TrackPoint] = []
        try:
            while True:
                chunk = await loop.run_in_executor(None, _next_chunk, events, self._config.ingest_chunk_size)
                if not chunk:
                    raise IngestionError("Route document ended unexpectedly", path=path)
                for event in chunk:
                    if isinstance(event, ParsePoint):
                        try:
                            point = TrackPoint.from_fields(event.fields)
                        except ValidationError as exc:
                            raise IngestionError(f"Invalid track point: {exc}", path=path) from exc
                        points.append(enricher.enrich(point))
                    elif isinstance(event, ParseError):
                        raise IngestionError(event.message, path=path)
                    elif isinstance(event, ParseEnd):
                        self._finish_load(session, points)
                        return
        except IngestionError as exc:
            _logger.warning("Route load failed path=%s: %s", path, exc)
            self._emit_status(StatusKind.FILE_ERROR, message=str(exc))

    def _finish_load(self, session: PlaybackSession, points: list[TrackPoint]) -> None:
        _logger.debug("Route loaded points=%d", len(points))
        if points:
            session.last_point = points[-1]
        self._emit_status(StatusKind.FILE_LOAD_FINISHED)
        self._set_state(PlaybackState.RUNNING)
        self._scheduler.start(self._config.initial_delay)
        session.start_offset = self._scheduler.baseline
        for point in points:
            self._schedule(session, point)

    def _schedule(self, session: PlaybackSession, point: TrackPoint) -> None:
        offset = self._recorded_offset(session, point)
        if offset is None:
            baseline = session.start_offset if session.start_offset is not None else self._clock()
            offset = self._clock() + self._config.fallback_delay - baseline
        elif offset < 0:
            _logger.warning("Invalid time at point time=%s offset=%.3f; skipped", point.time, offset)
            return
        self._scheduler.enqueue(point, offset)

    @staticmethod
    def _recorded_offset(session: PlaybackSession, point: TrackPoint) -> float | None:
        if point.time is None:
            return None
        try:
            point_time = parse_gpx_time(point.time)
        except TimeParseError as exc:
            _logger.warning("%s; using fallback delay", exc)
            return None
        return session.recorded_offset(point_time)

    # ------------------------------------------------------------------
    # Status emission
    # ------------------------------------------------------------------

    def _set_state(self, state: PlaybackState) -> None:
        if self._session.state is state:
            return
        self._session.state = state
        self._emit_status(StatusKind.STATUS_CHANGE)

    def _emit_status(self, kind: StatusKind, *, message: str | None = None) -> None:
        if self._on_status_cb is None:
            return
        try:
            self._on_status_cb(StatusEvent(kind=kind, state=self._session.state, message=message))
        except Exception:
            _logger.debug("on_status callback failed", exc_info=True)

    def _on_point_delivered(self, point: TrackPoint) -> None:
        self._session.last_delivered = point
        self._emit_delivery(point, self._session.state.label)

    def _emit_delivery(self, point: TrackPoint, label: str) -> None:
        if self._on_delivery_cb is None:
            return
        try:
            self._on_delivery_cb(
                DeliveryNotice(
                    label=label,
                    speed=point.speed,
                    latitude=point.latitude,
                    longitude=point.longitude,
                )
            )
        except Exception:
            _logger.debug("on_delivery callback failed", exc_info=True)
