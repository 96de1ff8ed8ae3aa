"""Location sinks: the consumers that apply replayed points.

:class:`LocationSink` is the structural interface used by the dispatch
queues. Failures raised by a sink are the sink's concern: the queue logs
them and moves on.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from pygpxreplay.exceptions import ReplayError, SinkDeliveryError
from pygpxreplay.models.track import TrackPoint

_logger = logging.getLogger(__name__)


class LocationSink(Protocol):
    """Structural sink interface.

    Having a protocol here makes it easy to pass test doubles while
    keeping the bundled sinks concrete.
    """

    async def send_location(self, provider_id: str, point: TrackPoint, timestamp: float) -> None:
        ...


def location_payload(provider_id: str, point: TrackPoint, timestamp: float) -> dict[str, Any]:
    """JSON body describing one fix (``time`` in epoch milliseconds)."""
    return {
        "provider": provider_id,
        "latitude": point.latitude,
        "longitude": point.longitude,
        "altitude": point.elevation,
        "bearing": point.heading,
        "speed": point.speed,
        "time": int(timestamp * 1000),
        "satellites": point.satellites,
        "fix": point.fix,
    }


class LogLocationSink:
    """Sink that only logs each fix; useful for dry runs."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    async def send_location(self, provider_id: str, point: TrackPoint, timestamp: float) -> None:
        self._logger.info(
            "fix provider=%s lat=%s lon=%s heading=%.2f speed=%.2f time=%d",
            provider_id,
            point.latitude,
            point.longitude,
            point.heading,
            point.speed,
            int(timestamp * 1000),
        )


class HttpLocationSink:
    """POST each fix as JSON to a mock-location endpoint.

    Usage::

        async with HttpLocationSink("http://emulator:8080/location") as sink:
            ...
    """

    def __init__(
        self,
        url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 5.0,
    ) -> None:
        self._url = url
        self._external_session = session is not None
        self._http = session
        self._timeout = timeout

    async def __aenter__(self) -> HttpLocationSink:
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise ReplayError("Sink not initialized. Use 'async with HttpLocationSink(...) as sink:'")
        return self._http

    async def send_location(self, provider_id: str, point: TrackPoint, timestamp: float) -> None:
        http = self._require_session()
        payload = location_payload(provider_id, point, timestamp)

        _logger.debug("POST %s", self._url)

        try:
            async with http.post(self._url, json=payload) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise SinkDeliveryError(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                        provider_id=provider_id,
                    )
        except SinkDeliveryError:
            raise
        except aiohttp.ClientError as exc:
            raise SinkDeliveryError(
                f"Request to {self._url} failed: {exc}",
                provider_id=provider_id,
            ) from exc
