"""Delivery scheduler: the main route queue plus the bounded hold queue.

While paused, the hold queue keeps the sink fresh by redelivering the
last delivered point at a fixed cadence, up to a fixed number of times
per pause. The two queues never reference each other; the hold queue is
only driven from :meth:`DeliveryScheduler.pause`, :meth:`~DeliveryScheduler.resume`
and :meth:`~DeliveryScheduler.reset`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pygpxreplay._constants import DEFAULT_HOLD_INTERVAL, DEFAULT_PROVIDER_ID, HOLD_QUEUE_SIZE
from pygpxreplay.dispatch.queue import DispatchQueue, DispatchUnit, QueueState
from pygpxreplay.models.track import TrackPoint
from pygpxreplay.sinks import LocationSink

_logger = logging.getLogger(__name__)


class DeliveryScheduler:
    """Owns all delivery timing for one playback session."""

    def __init__(
        self,
        sink: LocationSink,
        *,
        provider_id: str = DEFAULT_PROVIDER_ID,
        hold_interval: float = DEFAULT_HOLD_INTERVAL,
        hold_max_deliveries: int = HOLD_QUEUE_SIZE,
        clock: Callable[[], float] = time.time,
        on_delivered: Callable[[TrackPoint], None] | None = None,
    ) -> None:
        self._sink = sink
        self._provider_id = provider_id
        self._hold_interval = hold_interval
        self._hold_max = min(hold_max_deliveries, HOLD_QUEUE_SIZE)
        self._clock = clock
        self._on_delivered = on_delivered
        self._last_delivered: TrackPoint | None = None

        self._main = DispatchQueue(sink, name="main", clock=clock, on_delivered=self._unit_delivered)
        self._hold = DispatchQueue(
            sink,
            name="hold",
            clock=clock,
            on_delivered=self._unit_delivered,
            idle_when_drained=True,
        )

    @property
    def main(self) -> DispatchQueue:
        return self._main

    @property
    def hold(self) -> DispatchQueue:
        return self._hold

    @property
    def baseline(self) -> float | None:
        return self._main.baseline

    @property
    def last_delivered(self) -> TrackPoint | None:
        return self._last_delivered

    def is_running(self) -> bool:
        return self._main.is_running()

    def queue_size(self) -> int:
        return self._main.queue_size()

    def is_drained(self) -> bool:
        """Whether the main queue has nothing pending and nothing in flight."""
        return self._main.is_drained()

    def start(self, initial_delay: float = 0.0) -> None:
        self._main.start(initial_delay)

    def enqueue(self, point: TrackPoint, offset: float) -> None:
        self._main.enqueue(point, self._provider_id, offset)

    def pause(self) -> None:
        """Drop pending route deliveries and start a hold burst.

        A main delivery still in flight is cancelled first, so the burst
        repeats the last point the sink actually accepted.
        """
        if not self._main.is_running():
            return
        self._main.pause()
        self._activate_hold()

    def resume(self) -> None:
        if self._main.state is not QueueState.PAUSED:
            return
        self._hold.reset()
        self._main.resume()

    def update_delay_time(self, delay: float) -> bool:
        """Delay (seconds) for the next resume/hold activation; paused only.

        A hold burst that is already running keeps its schedule.
        """
        return self._main.update_delay_time(delay)

    def reset(self) -> None:
        self._hold.reset()
        self._main.reset()
        self._last_delivered = None

    async def deliver_now(self, point: TrackPoint) -> bool:
        """Deliver *point* immediately, outside both queues.

        Returns ``False`` when the sink failed; the failure is logged.
        """
        try:
            await self._sink.send_location(self._provider_id, point, self._clock())
        except Exception:
            _logger.warning("Immediate location delivery failed", exc_info=True)
            return False
        return True

    def _activate_hold(self) -> None:
        point = self._last_delivered
        if point is None or self._hold_max <= 0:
            _logger.debug("No delivered point to hold; hold queue stays idle")
            return
        self._hold.reset()
        self._hold.start(self._main.delay)
        for index in range(self._hold_max):
            self._hold.enqueue(point, self._provider_id, index * self._hold_interval)
        _logger.debug(
            "Hold activated deliveries=%d interval=%.3f lat=%s lon=%s",
            self._hold_max,
            self._hold_interval,
            point.latitude,
            point.longitude,
        )

    def _unit_delivered(self, unit: DispatchUnit) -> None:
        self._last_delivered = unit.point
        if self._on_delivered is not None:
            self._on_delivered(unit.point)
