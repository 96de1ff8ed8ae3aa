"""MQTT broadcast of playback status and deliveries."""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, cast

import paho.mqtt.client as mqtt

from pygpxreplay.config import ReplayConfig
from pygpxreplay.models.status import DeliveryNotice, StatusEvent


class MqttStatusPublisher:
    """Threaded paho-mqtt publisher for :class:`StatusEvent` / :class:`DeliveryNotice`.

    Status events go to ``<topic>/status``, delivery notices to
    ``<topic>/location``, both as JSON. Pass :meth:`publish_status` and
    :meth:`publish_delivery` as the controller's ``on_status`` /
    ``on_delivery`` callbacks.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        topic: str = "gpxreplay",
        keepalive: int = 60,
        client_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topic = topic.rstrip("/")
        self._keepalive = keepalive
        self._client_id = client_id or f"gpxreplay_{secrets.token_hex(4)}"
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: ReplayConfig, **kwargs: Any) -> MqttStatusPublisher:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic=config.mqtt_topic,
            keepalive=config.mqtt_keepalive,
            **kwargs,
        )

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    @property
    def status_topic(self) -> str:
        return f"{self._topic}/status"

    @property
    def location_topic(self) -> str:
        return f"{self._topic}/location"

    def start(self) -> None:
        """Connect and start the network loop."""
        self.stop()
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s topic=%s client_id=%s",
            self._host,
            self._port,
            self._topic,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)

        def on_connect(
            _client: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def publish_status(self, event: StatusEvent) -> None:
        payload = event.model_dump(mode="json")
        payload["state"] = event.state.name
        self._publish(self.status_topic, payload)

    def publish_delivery(self, notice: DeliveryNotice) -> None:
        self._publish(self.location_topic, notice.model_dump(mode="json"))

    def _publish(self, topic: str, payload: dict[str, Any]) -> None:
        client = self._client
        if client is None or not self._running:
            self._logger.debug("MQTT publish skipped (not running) topic=%s", topic)
            return
        info = client.publish(topic, json.dumps(payload, separators=(",", ":")), qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.debug("MQTT publish failed topic=%s rc=%s", topic, info.rc)
