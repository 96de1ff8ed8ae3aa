from __future__ import annotations

import pytest

from pygpxreplay.config import ReplayConfig
from pygpxreplay.exceptions import ReplayConfigError, ReplayError


def test_defaults() -> None:
    config = ReplayConfig()

    assert config.provider_id == "gps"
    assert config.initial_delay == 0.0
    assert config.fallback_delay == 2.0
    assert config.hold_max_deliveries == 100
    assert config.mqtt_enabled is False


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("GPXREPLAY_PROVIDER_ID", "network")
    monkeypatch.setenv("GPXREPLAY_INITIAL_DELAY", "1.5")
    monkeypatch.setenv("GPXREPLAY_HOLD_MAX_DELIVERIES", "20")
    monkeypatch.setenv("GPXREPLAY_MQTT_ENABLED", "yes")
    monkeypatch.setenv("GPXREPLAY_MQTT_PORT", "8883")
    monkeypatch.setenv("GPXREPLAY_SINK_URL", "http://localhost:8080/location")

    config = ReplayConfig.from_env()

    assert config.provider_id == "network"
    assert config.initial_delay == 1.5
    assert config.hold_max_deliveries == 20
    assert config.mqtt_enabled is True
    assert config.mqtt_port == 8883
    assert config.sink_url == "http://localhost:8080/location"


def test_overrides_win_over_env(monkeypatch) -> None:
    monkeypatch.setenv("GPXREPLAY_INITIAL_DELAY", "1.5")
    monkeypatch.setenv("GPXREPLAY_MQTT_ENABLED", "true")

    config = ReplayConfig.from_env(initial_delay=0.25, mqtt_enabled=False)

    assert config.initial_delay == 0.25
    assert config.mqtt_enabled is False


def test_invalid_env_number(monkeypatch) -> None:
    monkeypatch.setenv("GPXREPLAY_FALLBACK_DELAY", "soon")

    with pytest.raises(ReplayConfigError):
        ReplayConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"provider_id": " "},
        {"initial_delay": -1.0},
        {"hold_interval": -0.5},
        {"hold_max_deliveries": 101},
        {"ingest_chunk_size": 0},
    ],
)
def test_validation(kwargs) -> None:
    with pytest.raises(ReplayConfigError) as excinfo:
        ReplayConfig(**kwargs)

    assert isinstance(excinfo.value, ReplayError)
