from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import paho.mqtt.client as mqtt
import pytest
from aiokafka.errors import KafkaConnectionError

from pyassoc.config import AssocConfig, KafkaSettings, StreamSettings
from pyassoc.exceptions import AssocError, AssocTransportError
from pyassoc.sinks.device_message import DeviceMessageClient
from pyassoc.sinks.kafka import KafkaEventPublisher
from pyassoc.sinks.stream import MqttStreamPublisher
from pyassoc.sinks.vehicle_profile import VehicleProfileClient


class _StubTransport:
    def __init__(self, body: Any = None, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self._body = body
        self._error = error

    async def post_json(
        self,
        url: str,
        body: Mapping[str, Any] | None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        self.calls.append(("POST", url))
        if self._error is not None:
            raise self._error
        return self._body

    async def delete_json(self, url: str, *, headers: Mapping[str, str] | None = None) -> Any:
        self.calls.append(("DELETE", url))
        if self._error is not None:
            raise self._error
        return self._body


# ---------------------------------------------------------------------------
# REST peers
# ---------------------------------------------------------------------------


def test_device_message_config_url() -> None:
    config = AssocConfig(device_message_base_url="https://dm.example/", device_message_version="v1")
    client = DeviceMessageClient(config, _StubTransport())
    assert client.config_url("HID-1") == "https://dm.example/v1/devices/HID-1/config"


@pytest.mark.asyncio
async def test_delete_profile_requires_data_true() -> None:
    config = AssocConfig(vehicle_profile_base_url="https://vp.example")
    assert await VehicleProfileClient(config, _StubTransport({"data": True})).delete_profile("HID-1")
    assert not await VehicleProfileClient(config, _StubTransport({"data": "true"})).delete_profile("HID-1")
    assert not await VehicleProfileClient(config, _StubTransport(None)).delete_profile("HID-1")


@pytest.mark.asyncio
async def test_delete_profile_swallows_peer_errors() -> None:
    transport = _StubTransport(error=AssocTransportError("HTTP 500", status_code=500, endpoint="x"))
    assert not await VehicleProfileClient(AssocConfig(), transport).delete_profile("HID-1")


@pytest.mark.asyncio
async def test_decode_vin_accepts_embedded_json_or_object() -> None:
    embedded = _StubTransport({"data": json.dumps({"modelCode": "SL", "modelName": "Seal"})})
    plain = _StubTransport({"data": {"modelCode": "DO", "modelName": "Dolphin"}})

    first = await VehicleProfileClient(AssocConfig(), embedded).decode_vin("VIN1")
    second = await VehicleProfileClient(AssocConfig(), plain).decode_vin("VIN2")

    assert first is not None and first.model_name == "Seal"
    assert second is not None and second.model_code == "DO"


@pytest.mark.asyncio
async def test_decode_vin_returns_none_on_bad_payload() -> None:
    assert await VehicleProfileClient(AssocConfig(), _StubTransport({"data": "not json"})).decode_vin("V") is None
    assert await VehicleProfileClient(AssocConfig(), _StubTransport({"data": 3})).decode_vin("V") is None


# ---------------------------------------------------------------------------
# Kafka
# ---------------------------------------------------------------------------


class _FakeProducer:
    instances: list[_FakeProducer] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.sent: list[tuple[str, bytes | None, bytes | None]] = []
        self.started = False
        self.stopped = False
        self.fail_start = False
        self.fail_send = False
        _FakeProducer.instances.append(self)

    async def start(self) -> None:
        if self.fail_start:
            raise KafkaConnectionError("no brokers")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send(self, topic: str, value: bytes | None = None, key: bytes | None = None) -> None:
        if self.fail_send:
            raise KafkaConnectionError("broker gone")
        self.sent.append((topic, key, value))


@pytest.mark.asyncio
async def test_kafka_publisher_sends_utf8_key_and_value(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeProducer.instances = []
    monkeypatch.setattr("pyassoc.sinks.kafka.AIOKafkaProducer", _FakeProducer)
    publisher = KafkaEventPublisher(KafkaSettings(bootstrap_servers="k:9092"))

    with pytest.raises(AssocError):
        await publisher.publish("t", "k", "v")

    await publisher.start()
    await publisher.publish("topic-a", "HID-1", '{"a":1}')
    producer = _FakeProducer.instances[0]
    assert producer.kwargs["bootstrap_servers"] == "k:9092"
    assert producer.kwargs["acks"] == "all"
    assert "security_protocol" not in producer.kwargs
    assert producer.sent == [("topic-a", b"HID-1", b'{"a":1}')]

    producer.fail_send = True
    with pytest.raises(AssocTransportError):
        await publisher.publish("topic-a", "HID-1", "{}")

    await publisher.stop()
    assert producer.stopped
    assert not publisher.is_running


@pytest.mark.asyncio
async def test_kafka_start_failure_maps_to_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class _FailingProducer(_FakeProducer):
        def __init__(self, **kwargs: Any) -> None:
            super().__init__(**kwargs)
            self.fail_start = True

    monkeypatch.setattr("pyassoc.sinks.kafka.AIOKafkaProducer", _FailingProducer)
    publisher = KafkaEventPublisher(KafkaSettings())

    with pytest.raises(AssocTransportError):
        await publisher.start()
    assert not publisher.is_running


# ---------------------------------------------------------------------------
# MQTT stream
# ---------------------------------------------------------------------------


class _FakeInfo:
    def __init__(self, rc: int) -> None:
        self.rc = rc
        self.mid = 1


class _FakeMqttClient:
    last: _FakeMqttClient | None = None

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.published: list[tuple[str, bytes, int]] = []
        self.rc = mqtt.MQTT_ERR_SUCCESS
        self.credentials: tuple[str, str | None] | None = None
        self.tls = False
        self.connected_to: tuple[str, int, int] | None = None
        self.loop_running = False
        _FakeMqttClient.last = self

    def enable_logger(self, _logger: Any) -> None:
        return None

    def username_pw_set(self, username: str, password: str | None = None) -> None:
        self.credentials = (username, password)

    def tls_set(self) -> None:
        self.tls = True

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        self.connected_to = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        return None

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> _FakeInfo:
        self.published.append((topic, payload, qos))
        return _FakeInfo(self.rc)


def test_stream_publisher_publishes_under_topic_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pyassoc.sinks.stream.mqtt.Client", _FakeMqttClient)
    settings = StreamSettings(
        host="broker",
        port=8883,
        topic_prefix="assoc/",
        username="svc",
        password="pw",
        tls_enabled=True,
    )
    publisher = MqttStreamPublisher(settings)

    with pytest.raises(AssocError):
        publisher.publish("HID-1", "[]")

    publisher.start()
    client = _FakeMqttClient.last
    assert client is not None
    assert client.connected_to == ("broker", 8883, 60)
    assert client.credentials == ("svc", "pw")
    assert client.tls
    assert publisher.is_running

    publisher.publish("HID-1", '[{"eventId":"x"}]')
    assert client.published == [("assoc/HID-1", b'[{"eventId":"x"}]', 1)]

    client.rc = mqtt.MQTT_ERR_NO_CONN
    with pytest.raises(AssocTransportError):
        publisher.publish("HID-1", "[]")

    publisher.stop()
    assert not client.loop_running
    assert not publisher.is_running
