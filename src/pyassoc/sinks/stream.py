"""Secondary stream publisher on an MQTT broker (paho-mqtt)."""

from __future__ import annotations

import logging
from typing import Any, Protocol, cast

import paho.mqtt.client as mqtt

from pyassoc._redact import redact_for_log
from pyassoc.config import StreamSettings
from pyassoc.exceptions import AssocError, AssocTransportError


class StreamPublisher(Protocol):
    """Structural interface used by the stream handler."""

    def publish(self, key: str, value: str) -> None: ...


class MqttStreamPublisher:
    """Threaded paho-mqtt client publishing stream records keyed by topic suffix.

    The network loop runs on paho's own thread; :meth:`publish` only hands
    the message to the client queue and never blocks on delivery.
    """

    def __init__(
        self,
        settings: StreamSettings,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is active."""
        return self._running

    def topic_for(self, key: str) -> str:
        return f"{self._settings.topic_prefix.rstrip('/')}/{key}"

    def start(self) -> None:
        """Connect and start the network loop."""
        self.stop()
        s = self._settings
        self._logger.debug("MQTT stream start requested settings=%s", redact_for_log(s))

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=s.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if s.username:
            client.username_pw_set(s.username, s.password)
        if s.tls_enabled:
            client.tls_set()

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT stream connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT stream connected reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT stream disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        try:
            client.connect(s.host, s.port, keepalive=s.keepalive)
        except OSError as exc:
            raise AssocTransportError(
                f"MQTT stream connect to {s.host}:{s.port} failed: {exc}",
                endpoint=f"{s.host}:{s.port}",
            ) from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT stream network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT stream network loop stopped")

    def publish(self, key: str, value: str) -> None:
        """Queue *value* on ``<topic_prefix>/<key>``."""
        client = self._client
        if client is None:
            raise AssocError("MQTT stream publisher not started")
        topic = self.topic_for(key)
        info = client.publish(topic, payload=value.encode("utf-8"), qos=self._settings.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise AssocTransportError(
                f"MQTT publish to {topic} failed: {mqtt.error_string(info.rc)}",
                endpoint=topic,
            )
        self._logger.debug("MQTT stream queued topic=%s mid=%s", topic, info.mid)
