"""Replay configuration for pygpxreplay."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pygpxreplay._constants import (
    DEFAULT_FALLBACK_DELAY,
    DEFAULT_HOLD_INTERVAL,
    DEFAULT_INGEST_CHUNK_SIZE,
    DEFAULT_PROVIDER_ID,
    HOLD_QUEUE_SIZE,
)
from pygpxreplay.exceptions import ReplayConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ReplayConfig:
    """Playback configuration.

    Parameters
    ----------
    provider_id : str
        Provider identifier attached to every delivery.
    initial_delay : float
        Seconds between the end of a file load and the first delivery.
        Also the default delay applied on resume and hold activation.
    fallback_delay : float
        Seconds from *now* used to schedule points whose recorded time
        is missing or unparseable.
    hold_interval : float
        Cadence, in seconds, of repeat deliveries while paused.
    hold_max_deliveries : int
        Upper bound of repeat deliveries issued by one pause.
    ingest_chunk_size : int
        Parser events pulled per executor round-trip while loading.
        Cancellation is observed between chunks.
    sink_url : str or None
        Endpoint for :class:`~pygpxreplay.sinks.HttpLocationSink`.
    mqtt_enabled : bool
        Broadcast status and deliveries over MQTT.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic prefix; ``/status`` and ``/location`` are appended.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    provider_id: str = DEFAULT_PROVIDER_ID
    initial_delay: float = 0.0
    fallback_delay: float = DEFAULT_FALLBACK_DELAY
    hold_interval: float = DEFAULT_HOLD_INTERVAL
    hold_max_deliveries: int = HOLD_QUEUE_SIZE
    ingest_chunk_size: int = DEFAULT_INGEST_CHUNK_SIZE
    sink_url: str | None = None
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "gpxreplay"
    mqtt_keepalive: int = 60

    def __post_init__(self) -> None:
        if not self.provider_id.strip():
            raise ReplayConfigError("provider_id must be non-empty")
        for name in ("initial_delay", "fallback_delay", "hold_interval"):
            if getattr(self, name) < 0:
                raise ReplayConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not 0 <= self.hold_max_deliveries <= HOLD_QUEUE_SIZE:
            raise ReplayConfigError(
                f"hold_max_deliveries must be between 0 and {HOLD_QUEUE_SIZE}, got {self.hold_max_deliveries}"
            )
        if self.ingest_chunk_size < 1:
            raise ReplayConfigError(f"ingest_chunk_size must be >= 1, got {self.ingest_chunk_size}")

    @classmethod
    def from_env(cls, **overrides: Any) -> ReplayConfig:
        """Create configuration from environment variables.

        Reads optional ``GPXREPLAY_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ReplayConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "GPXREPLAY_PROVIDER_ID": "provider_id",
            "GPXREPLAY_SINK_URL": "sink_url",
            "GPXREPLAY_MQTT_HOST": "mqtt_host",
            "GPXREPLAY_MQTT_TOPIC": "mqtt_topic",
        }
        _ENV_FLOAT_MAP = {
            "GPXREPLAY_INITIAL_DELAY": "initial_delay",
            "GPXREPLAY_FALLBACK_DELAY": "fallback_delay",
            "GPXREPLAY_HOLD_INTERVAL": "hold_interval",
        }
        _ENV_INT_MAP = {
            "GPXREPLAY_HOLD_MAX_DELIVERIES": "hold_max_deliveries",
            "GPXREPLAY_INGEST_CHUNK_SIZE": "ingest_chunk_size",
            "GPXREPLAY_MQTT_PORT": "mqtt_port",
            "GPXREPLAY_MQTT_KEEPALIVE": "mqtt_keepalive",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_STR_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = val
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise ReplayConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("GPXREPLAY_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
