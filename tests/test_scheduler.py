from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from pygpxreplay.dispatch.queue import QueueState
from pygpxreplay.dispatch.scheduler import DeliveryScheduler
from pygpxreplay.models.track import TrackPoint


@dataclass
class RecordingSink:
    sent: list[tuple[str, TrackPoint]] = field(default_factory=list)
    fail: bool = False

    async def send_location(self, provider_id: str, point: TrackPoint, timestamp: float) -> None:
        if self.fail:
            raise ConnectionError("sink offline")
        self.sent.append((provider_id, point))


def _point(lat: float, lon: float = 0.0) -> TrackPoint:
    return TrackPoint(latitude=lat, longitude=lon)


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_hold_burst_is_bounded() -> None:
    sink = RecordingSink()
    delivered: list[TrackPoint] = []
    scheduler = DeliveryScheduler(sink, hold_interval=0.0, hold_max_deliveries=100, on_delivered=delivered.append)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    scheduler.enqueue(_point(2.0), 5.0)
    await _wait_until(lambda: len(sink.sent) == 1)

    scheduler.pause()
    assert scheduler.main.state is QueueState.PAUSED
    await _wait_until(lambda: scheduler.hold.state is QueueState.IDLE)
    await asyncio.sleep(0.02)

    held = sink.sent[1:]
    assert len(held) == 100
    assert all(point.latitude == 1.0 for _, point in held)
    assert len(delivered) == 101
    scheduler.reset()


@pytest.mark.asyncio
async def test_hold_max_is_capped_at_queue_size() -> None:
    sink = RecordingSink()
    scheduler = DeliveryScheduler(sink, hold_interval=0.0, hold_max_deliveries=500)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    await _wait_until(lambda: len(sink.sent) == 1)
    scheduler.pause()
    await _wait_until(lambda: scheduler.hold.state is QueueState.IDLE)

    assert len(sink.sent) == 101
    scheduler.reset()


@pytest.mark.asyncio
async def test_pause_without_delivery_holds_nothing() -> None:
    sink = RecordingSink()
    scheduler = DeliveryScheduler(sink, hold_interval=0.0)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 1.0)
    scheduler.pause()

    assert scheduler.hold.state is QueueState.IDLE
    assert scheduler.queue_size() == 0
    scheduler.reset()


@pytest.mark.asyncio
async def test_resume_never_redelivers_dropped_units() -> None:
    sink = RecordingSink()
    scheduler = DeliveryScheduler(sink, hold_interval=10.0, hold_max_deliveries=5)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    scheduler.enqueue(_point(2.0), 0.05)
    await _wait_until(lambda: len(sink.sent) == 1)

    scheduler.pause()
    await _wait_until(lambda: len(sink.sent) == 2)
    scheduler.resume()
    assert scheduler.hold.state is QueueState.IDLE
    assert scheduler.is_running()

    await asyncio.sleep(0.12)

    assert [point.latitude for _, point in sink.sent] == [1.0, 1.0]
    scheduler.reset()


@pytest.mark.asyncio
async def test_pause_then_reset_delivers_nothing_further() -> None:
    sink = RecordingSink()
    scheduler = DeliveryScheduler(sink, hold_interval=0.02)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    scheduler.enqueue(_point(2.0), 0.03)
    await _wait_until(lambda: len(sink.sent) == 1)

    scheduler.pause()
    scheduler.reset()
    count = len(sink.sent)
    await asyncio.sleep(0.1)

    assert len(sink.sent) == count
    assert scheduler.last_delivered is None
    assert scheduler.main.state is QueueState.IDLE
    assert scheduler.hold.state is QueueState.IDLE


@pytest.mark.asyncio
async def test_update_delay_time_applies_on_next_resume() -> None:
    scheduler = DeliveryScheduler(RecordingSink())
    scheduler.start(0.0)

    assert scheduler.update_delay_time(2.0) is False
    scheduler.pause()
    assert scheduler.update_delay_time(2.0) is True
    scheduler.resume()

    assert scheduler.main.delay == 2.0
    assert scheduler.baseline is not None
    scheduler.reset()


@pytest.mark.asyncio
async def test_deliver_now_reports_sink_failure() -> None:
    sink = RecordingSink()
    scheduler = DeliveryScheduler(sink, provider_id="network")

    assert await scheduler.deliver_now(_point(1.0)) is True
    assert sink.sent[0][0] == "network"

    sink.fail = True
    assert await scheduler.deliver_now(_point(2.0)) is False


@dataclass
class SlowSink:
    slow_latitudes: set[float] = field(default_factory=set)
    started: list[float] = field(default_factory=list)
    sent: list[float] = field(default_factory=list)

    async def send_location(self, provider_id: str, point: TrackPoint, timestamp: float) -> None:
        self.started.append(point.latitude)
        if point.latitude in self.slow_latitudes:
            await asyncio.sleep(0.05)
        self.sent.append(point.latitude)


@pytest.mark.asyncio
async def test_pause_during_first_delivery_advances_nothing() -> None:
    sink = SlowSink(slow_latitudes={1.0})
    delivered: list[TrackPoint] = []
    scheduler = DeliveryScheduler(sink, hold_interval=0.0, on_delivered=delivered.append)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    await _wait_until(lambda: sink.started == [1.0])

    scheduler.pause()
    await asyncio.sleep(0.1)

    assert sink.sent == []
    assert delivered == []
    assert scheduler.last_delivered is None
    assert scheduler.hold.state is QueueState.IDLE
    scheduler.reset()


@pytest.mark.asyncio
async def test_hold_never_overlaps_cancelled_main_delivery() -> None:
    sink = SlowSink(slow_latitudes={2.0})
    scheduler = DeliveryScheduler(sink, hold_interval=0.0, hold_max_deliveries=3)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    scheduler.enqueue(_point(2.0), 0.02)
    await _wait_until(lambda: sink.started[-1:] == [2.0])

    scheduler.pause()
    await _wait_until(lambda: scheduler.hold.state is QueueState.IDLE)
    await asyncio.sleep(0.08)

    assert sink.sent == [1.0, 1.0, 1.0, 1.0]
    assert scheduler.last_delivered is not None
    assert scheduler.last_delivered.latitude == 1.0
    scheduler.reset()


@pytest.mark.asyncio
async def test_not_drained_while_last_delivery_in_flight() -> None:
    sink = SlowSink(slow_latitudes={1.0})
    scheduler = DeliveryScheduler(sink)

    scheduler.start(0.0)
    scheduler.enqueue(_point(1.0), 0.0)
    await _wait_until(lambda: sink.started == [1.0])

    assert scheduler.queue_size() == 0
    assert scheduler.is_drained() is False

    await _wait_until(scheduler.is_drained)
    assert sink.sent == [1.0]
    assert scheduler.last_delivered is not None
    scheduler.reset()
