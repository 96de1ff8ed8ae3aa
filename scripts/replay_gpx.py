#!/usr/bin/env python3
"""Replay a GPX route in real time.

Fixes go to an HTTP endpoint when ``--url`` (or ``GPXREPLAY_SINK_URL``)
is set, otherwise they are only logged. Status and deliveries can be
broadcast over MQTT with ``--mqtt-host``.

Runs until every point has been delivered, then stops the session
(delivering the last point once more at rest). Ctrl+C stops early.

Examples:
    python3 scripts/replay_gpx.py route.gpx
    python3 scripts/replay_gpx.py route.gpx --url http://127.0.0.1:8080/location --delay 2
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pygpxreplay import (  # noqa: E402
    DeliveryNotice,
    HttpLocationSink,
    LogLocationSink,
    MqttStatusPublisher,
    PlaybackController,
    PlaybackState,
    ReplayConfig,
    StatusEvent,
    StatusKind,
)

_logger = logging.getLogger("replay_gpx")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("path", type=Path, help="GPX file to replay")
    parser.add_argument("--url", help="HTTP endpoint receiving each fix as JSON")
    parser.add_argument("--delay", type=float, help="Seconds before the first point is delivered")
    parser.add_argument("--provider", help="Provider id attached to each fix")
    parser.add_argument("--mqtt-host", help="Broadcast status/deliveries to this MQTT broker")
    parser.add_argument("--mqtt-port", type=int, help="MQTT broker port")
    parser.add_argument("--mqtt-topic", help="MQTT topic prefix")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> ReplayConfig:
    overrides: dict[str, object] = {}
    if args.url:
        overrides["sink_url"] = args.url
    if args.delay is not None:
        overrides["initial_delay"] = args.delay
    if args.provider:
        overrides["provider_id"] = args.provider
    if args.mqtt_host:
        overrides["mqtt_enabled"] = True
        overrides["mqtt_host"] = args.mqtt_host
    if args.mqtt_port is not None:
        overrides["mqtt_port"] = args.mqtt_port
    if args.mqtt_topic:
        overrides["mqtt_topic"] = args.mqtt_topic
    return ReplayConfig.from_env(**overrides)


async def _replay(config: ReplayConfig, path: Path) -> int:
    publisher: MqttStatusPublisher | None = None
    if config.mqtt_enabled:
        publisher = MqttStatusPublisher.from_config(config)
        publisher.start()

    failed = asyncio.Event()

    def on_status(event: StatusEvent) -> None:
        _logger.info("status %s state=%s %s", event.kind.value, event.state.name, event.message or "")
        if event.kind is StatusKind.FILE_ERROR:
            failed.set()
        if publisher is not None:
            publisher.publish_status(event)

    def on_delivery(notice: DeliveryNotice) -> None:
        _logger.info("%s", notice.describe())
        if publisher is not None:
            publisher.publish_delivery(notice)

    async with contextlib.AsyncExitStack() as stack:
        if config.sink_url:
            sink = await stack.enter_async_context(HttpLocationSink(config.sink_url))
        else:
            sink = LogLocationSink()

        controller = PlaybackController(sink, config, on_status=on_status, on_delivery=on_delivery)
        try:
            async with controller:
                await controller.start_service(path)
                await controller.wait_loaded()
                if failed.is_set():
                    return 1
                while controller.get_state() is not PlaybackState.STOPPED and not controller.scheduler.is_drained():
                    await asyncio.sleep(0.5)
        finally:
            if publisher is not None:
                publisher.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _build_config(args)
    try:
        return asyncio.run(_replay(config, args.path))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
