"""Deadline-ordered dispatch queue.

A :class:`DispatchQueue` holds pending deliveries in a min-heap keyed by
absolute deadline and drains them from a single dispatcher task. Units
are enqueued with an *offset* relative to the queue baseline, the
wall-clock anchor set by :meth:`DispatchQueue.start` and refreshed by
:meth:`DispatchQueue.resume`::

    deadline = baseline + offset

All mutating operations are synchronous and never yield to the event
loop, so they are serialized against each other and against firing.
:meth:`DispatchQueue.pause` and :meth:`DispatchQueue.reset` retire the
dispatcher task, cancelling a sink call in flight; once either returns,
no further unit is delivered until the queue is resumed or restarted.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import heapq
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from pygpxreplay.models.track import TrackPoint
from pygpxreplay.sinks import LocationSink

_logger = logging.getLogger(__name__)


class QueueState(enum.StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class DispatchUnit:
    """A single scheduled delivery of one point."""

    point: TrackPoint
    provider_id: str
    sink: LocationSink
    deadline: float


@dataclass(frozen=True, slots=True)
class _Buffered:
    point: TrackPoint
    provider_id: str
    offset: float


class DispatchQueue:
    """Min-heap of :class:`DispatchUnit` drained at each unit's deadline.

    State machine: ``IDLE -> RUNNING -> PAUSED -> RUNNING ...``; any state
    returns to ``IDLE`` through :meth:`reset`.

    Parameters
    ----------
    sink
        Receives every fired unit.
    name
        Used in logs and the dispatcher task name.
    clock
        Wall-clock source in epoch seconds.
    on_delivered
        Called with each unit the sink accepted.
    idle_when_drained
        Return to ``IDLE`` once the last pending unit has fired.
    """

    def __init__(
        self,
        sink: LocationSink,
        *,
        name: str = "main",
        clock: Callable[[], float] = time.time,
        on_delivered: Callable[[DispatchUnit], None] | None = None,
        idle_when_drained: bool = False,
    ) -> None:
        self._sink = sink
        self._name = name
        self._clock = clock
        self._on_delivered = on_delivered
        self._idle_when_drained = idle_when_drained

        self._state = QueueState.IDLE
        self._baseline: float | None = None
        self._delay = 0.0
        self._heap: list[tuple[float, int, DispatchUnit]] = []
        self._buffered: list[_Buffered] = []
        self._seq = itertools.count()
        self._generation = 0
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._in_flight: DispatchUnit | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def baseline(self) -> float | None:
        """Wall-clock anchor (epoch seconds), ``None`` while idle."""
        return self._baseline

    @property
    def delay(self) -> float:
        """Delay applied to the next baseline established by :meth:`resume`."""
        return self._delay

    def is_running(self) -> bool:
        return self._state is QueueState.RUNNING

    def queue_size(self) -> int:
        return len(self._heap) + len(self._buffered)

    @property
    def in_flight(self) -> DispatchUnit | None:
        """Unit whose sink call is currently awaited, if any."""
        return self._in_flight

    def is_drained(self) -> bool:
        """Nothing pending and no delivery in flight."""
        return self.queue_size() == 0 and self._in_flight is None

    def pending(self) -> list[DispatchUnit]:
        """Scheduled units in deadline order (buffered units excluded)."""
        return [unit for _, _, unit in sorted(self._heap)]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, initial_delay: float = 0.0) -> None:
        """Anchor the baseline at ``now + initial_delay`` and start firing.

        Must be called from a running event loop. Ignored unless idle.
        """
        if self._state is not QueueState.IDLE:
            _logger.debug("Queue %s start ignored in state=%s", self._name, self._state)
            return
        self._delay = initial_delay
        self._baseline = self._clock() + initial_delay
        self._state = QueueState.RUNNING
        _logger.debug("Queue %s started baseline=%.3f delay=%.3f", self._name, self._baseline, initial_delay)
        self._materialize()
        self._ensure_dispatcher()
        self._wakeup.set()

    def enqueue(self, point: TrackPoint, provider_id: str, offset: float) -> None:
        """Schedule *point* at ``baseline + offset``.

        While idle or paused the unit is buffered and scheduled against
        the baseline established by the next :meth:`start` / :meth:`resume`.
        """
        if self._state is QueueState.RUNNING:
            self._push(point, provider_id, offset)
            self._wakeup.set()
        else:
            self._buffered.append(_Buffered(point=point, provider_id=provider_id, offset=offset))

    def pause(self) -> int:
        """Stop advancing; drop every unit that has not been delivered yet.

        A delivery in flight is cancelled and counts as dropped. Returns
        the number of dropped units.
        """
        if self._state is not QueueState.RUNNING:
            _logger.debug("Queue %s pause ignored in state=%s", self._name, self._state)
            return 0
        dropped = len(self._heap) + (1 if self._in_flight is not None else 0)
        self._heap.clear()
        self._state = QueueState.PAUSED
        self._stop_dispatcher()
        _logger.debug("Queue %s paused dropped=%d", self._name, dropped)
        return dropped

    def resume(self) -> None:
        """Continue with a fresh baseline at ``now + delay``.

        Paused wall-clock time is excised from the timeline; units
        dropped by :meth:`pause` are not replayed.
        """
        if self._state is not QueueState.PAUSED:
            _logger.debug("Queue %s resume ignored in state=%s", self._name, self._state)
            return
        self._baseline = self._clock() + self._delay
        self._state = QueueState.RUNNING
        _logger.debug("Queue %s resumed baseline=%.3f", self._name, self._baseline)
        self._materialize()
        self._ensure_dispatcher()
        self._wakeup.set()

    def update_delay_time(self, delay: float) -> bool:
        """Set the delay used by the next resume. Only valid while paused."""
        if self._state is not QueueState.PAUSED:
            return False
        self._delay = delay
        _logger.debug("Queue %s delay updated delay=%.3f", self._name, delay)
        return True

    def reset(self) -> None:
        """Cancel every pending unit and return to ``IDLE``. Idempotent."""
        self._heap.clear()
        self._buffered.clear()
        self._state = QueueState.IDLE
        self._baseline = None
        self._stop_dispatcher()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _stop_dispatcher(self) -> None:
        # The dispatcher exits on the generation bump even when it is the
        # caller (a sink or callback pausing from inside a delivery).
        self._generation += 1
        self._in_flight = None
        task = self._task
        self._task = None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()
        self._wakeup.set()

    def _push(self, point: TrackPoint, provider_id: str, offset: float) -> None:
        assert self._baseline is not None  # noqa: S101
        unit = DispatchUnit(
            point=point,
            provider_id=provider_id,
            sink=self._sink,
            deadline=self._baseline + offset,
        )
        heapq.heappush(self._heap, (unit.deadline, next(self._seq), unit))

    def _materialize(self) -> None:
        buffered = self._buffered
        self._buffered = []
        for item in buffered:
            self._push(item.point, item.provider_id, item.offset)

    def _ensure_dispatcher(self) -> None:
        if self._task is None or self._task.done():
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run(self._generation), name=f"dispatch-{self._name}")

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            if self._state is not QueueState.RUNNING or not self._heap:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            deadline, _, unit = self._heap[0]
            remaining = deadline - self._clock()
            if remaining > 0:
                self._wakeup.clear()
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._wakeup.wait(), remaining)
                continue

            heapq.heappop(self._heap)
            self._in_flight = unit
            try:
                await self._fire(unit, generation)
            finally:
                if generation == self._generation:
                    self._in_flight = None

            if (
                generation == self._generation
                and self._idle_when_drained
                and self._state is QueueState.RUNNING
                and not self._heap
            ):
                _logger.debug("Queue %s drained; going idle", self._name)
                self._state = QueueState.IDLE
                self._baseline = None
                self._task = None
                return

    async def _fire(self, unit: DispatchUnit, generation: int) -> None:
        try:
            await unit.sink.send_location(unit.provider_id, unit.point, self._clock())
        except Exception:
            _logger.warning(
                "Location delivery failed queue=%s lat=%s lon=%s",
                self._name,
                unit.point.latitude,
                unit.point.longitude,
                exc_info=True,
            )
            return

        if generation != self._generation:
            _logger.debug("Queue %s delivery superseded by pause/reset", self._name)
            return
        if self._on_delivered is not None:
            try:
                self._on_delivered(unit)
            except Exception:
                _logger.debug("on_delivered callback failed", exc_info=True)
