from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from pygpxreplay.exceptions import ReplayError, SinkDeliveryError
from pygpxreplay.models.track import TrackPoint
from pygpxreplay.sinks import HttpLocationSink, LogLocationSink, location_payload


@dataclass
class FakeResponse:
    status: int = 200
    body: str = ""

    async def text(self) -> str:
        return self.body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class FakeSession:
    response: FakeResponse = field(default_factory=FakeResponse)
    error: Exception | None = None
    posts: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False

    def post(self, url: str, *, json: dict[str, Any]) -> FakeResponse:
        self.posts.append((url, json))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


def _point() -> TrackPoint:
    return TrackPoint(latitude=52.1, longitude=4.3, elevation=2.0, heading=45.0, speed=12.5, satellites="8")


def test_location_payload() -> None:
    payload = location_payload("gps", _point(), 1_714_550_400.25)

    assert payload == {
        "provider": "gps",
        "latitude": 52.1,
        "longitude": 4.3,
        "altitude": 2.0,
        "bearing": 45.0,
        "speed": 12.5,
        "time": 1_714_550_400_250,
        "satellites": "8",
        "fix": None,
    }


@pytest.mark.asyncio
async def test_http_sink_posts_json() -> None:
    session = FakeSession()

    async with HttpLocationSink("http://emulator/location", session=session) as sink:  # type: ignore[arg-type]
        await sink.send_location("gps", _point(), 10.0)

    assert session.posts[0][0] == "http://emulator/location"
    assert session.posts[0][1]["time"] == 10_000
    assert session.closed is False


@pytest.mark.asyncio
async def test_http_sink_raises_on_error_status() -> None:
    session = FakeSession(response=FakeResponse(status=503, body="busy"))
    sink = HttpLocationSink("http://emulator/location", session=session)  # type: ignore[arg-type]

    with pytest.raises(SinkDeliveryError) as excinfo:
        await sink.send_location("gps", _point(), 10.0)

    assert excinfo.value.status_code == 503
    assert excinfo.value.provider_id == "gps"
    assert "busy" in str(excinfo.value)


@pytest.mark.asyncio
async def test_http_sink_wraps_client_errors() -> None:
    session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
    sink = HttpLocationSink("http://emulator/location", session=session)  # type: ignore[arg-type]

    with pytest.raises(SinkDeliveryError) as excinfo:
        await sink.send_location("gps", _point(), 10.0)

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)


@pytest.mark.asyncio
async def test_http_sink_requires_context() -> None:
    sink = HttpLocationSink("http://emulator/location")

    with pytest.raises(ReplayError, match="not initialized"):
        await sink.send_location("gps", _point(), 10.0)


@pytest.mark.asyncio
async def test_log_sink(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="pygpxreplay.sinks")

    await LogLocationSink().send_location("gps", _point(), 10.0)

    assert "lat=52.1 lon=4.3" in caplog.text
