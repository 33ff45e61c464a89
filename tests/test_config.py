from __future__ import annotations

import pytest

from pyassoc.config import AssocConfig, KafkaSettings, StreamSettings


def test_defaults() -> None:
    config = AssocConfig()
    assert config.auth_deactivate_url == "http://localhost:8080/device/deactivate"
    assert config.auth_deactivate_v2_url == "http://localhost:8080/v2/device/deactivate"
    assert config.device_message_enabled is False
    assert config.kafka.acks == "all"
    assert config.stream.qos == 1


def test_from_env_reads_assoc_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASSOC_AUTH_BASE_URL", "https://auth.internal")
    monkeypatch.setenv("ASSOC_DEVICE_MESSAGE_ENABLED", "yes")
    monkeypatch.setenv("ASSOC_VIN_ASSOCIATION_ENABLED", "1")
    monkeypatch.setenv("ASSOC_STREAM_ENABLED", "off")
    monkeypatch.setenv("ASSOC_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("ASSOC_KAFKA_BOOTSTRAP_SERVERS", "kafka-1:9093,kafka-2:9093")
    monkeypatch.setenv("ASSOC_KAFKA_SSL_ENABLED", "true")
    monkeypatch.setenv("ASSOC_STREAM_PORT", "8883")
    monkeypatch.setenv("ASSOC_STREAM_TLS_ENABLED", "true")

    config = AssocConfig.from_env()

    assert config.auth_deactivate_url == "https://auth.internal/device/deactivate"
    assert config.device_message_enabled is True
    assert config.vin_association_enabled is True
    assert config.stream_enabled is False
    assert config.event_bus_enabled is True
    assert config.http_timeout == 2.5
    assert config.kafka.bootstrap_servers == "kafka-1:9093,kafka-2:9093"
    assert config.kafka.ssl_enabled is True
    assert config.stream.port == 8883
    assert config.stream.tls_enabled is True


def test_from_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASSOC_EVENT_BUS_ENABLED", "false")
    monkeypatch.setenv("ASSOC_KAFKA_VIN_TOPIC", "env-vins")

    config = AssocConfig.from_env(
        event_bus_enabled=True,
        kafka={"notification_topic": "override-notif"},
        stream=StreamSettings(host="broker.internal"),
    )

    assert config.event_bus_enabled is True
    assert config.kafka.vin_topic == "env-vins"
    assert config.kafka.notification_topic == "override-notif"
    assert config.stream.host == "broker.internal"


def test_settings_object_override_replaces_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASSOC_KAFKA_VIN_TOPIC", "env-vins")

    config = AssocConfig.from_env(kafka=KafkaSettings(vin_topic="explicit"))

    assert config.kafka.vin_topic == "explicit"


def test_unparseable_flag_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASSOC_EVENT_BUS_ENABLED", "maybe")
    assert AssocConfig.from_env().event_bus_enabled is True
