"""Service configuration for pyassoc."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


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
class KafkaSettings:
    """Event-bus producer settings.

    Topic names map one-to-one to the message kinds the event-bus handler
    publishes.  Delivery tuning is handed to the producer unchanged.
    """

    bootstrap_servers: str = "localhost:9092"
    notification_topic: str = "device-association-notification"
    event_topic: str = "device-events"
    vin_topic: str = "device-vin-events"
    asset_activation_topic: str = "asset-activation-events"
    acks: str = "all"
    linger_ms: int = 0
    request_timeout_ms: int = 600_000
    retry_backoff_ms: int = 60_000
    metadata_max_age_ms: int = 60_000
    ssl_enabled: bool = False
    ssl_cafile: str | None = None
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None
    ssl_password: str | None = None


@dataclasses.dataclass(frozen=True)
class StreamSettings:
    """Secondary stream (MQTT broker) settings.

    Messages are published to ``<topic_prefix>/<correlation key>``.
    """

    host: str = "localhost"
    port: int = 1883
    topic_prefix: str = "device-association"
    client_id: str = "pyassoc-stream"
    username: str | None = None
    password: str | None = None
    tls_enabled: bool = False
    keepalive: int = 60
    qos: int = 1


@dataclasses.dataclass(frozen=True)
class AssocConfig:
    """Service configuration.

    Parameters
    ----------
    auth_base_url : str
        Base URL of the device authentication service.
    auth_deactivate_path : str
        v1 deactivation path (serial-number based).
    auth_deactivate_v2_path : str
        v2 deactivation path (factory-id based).
    device_message_base_url : str
        Base URL of the device message (config push) service.
    device_message_version : str
        API version segment of the device message service.
    device_message_enabled : bool
        Whether disassociation config pushes are sent at all.
    vehicle_profile_base_url : str
        Base URL of the vehicle profile service.
    vehicle_profile_version : str
        API version segment of the vehicle profile service.
    vehicle_profile_terminate_path : str
        Path of the vehicle profile delete endpoint.
    vin_association_enabled : bool
        Look up the associated VIN/country and decode VINs when
        publishing associate events.
    event_bus_enabled : bool
        Start the Kafka producer and register the event-bus handler.
    stream_enabled : bool
        Start the MQTT stream publisher and register the stream handler.
    http_timeout : float
        Total timeout in seconds for every REST peer call.
    kafka : KafkaSettings
        Event-bus producer settings.
    stream : StreamSettings
        Secondary stream settings.
    """

    auth_base_url: str = "http://localhost:8080"
    auth_deactivate_path: str = "/device/deactivate"
    auth_deactivate_v2_path: str = "/v2/device/deactivate"
    device_message_base_url: str = "http://localhost:8081"
    device_message_version: str = "v1"
    device_message_enabled: bool = False
    vehicle_profile_base_url: str = "http://localhost:8082"
    vehicle_profile_version: str = "v1.0"
    vehicle_profile_terminate_path: str = "/vehicleProfiles/terminate"
    vin_association_enabled: bool = False
    event_bus_enabled: bool = True
    stream_enabled: bool = True
    http_timeout: float = 30.0
    kafka: KafkaSettings = dataclasses.field(default_factory=KafkaSettings)
    stream: StreamSettings = dataclasses.field(default_factory=StreamSettings)

    @property
    def auth_deactivate_url(self) -> str:
        return f"{self.auth_base_url}{self.auth_deactivate_path}"

    @property
    def auth_deactivate_v2_url(self) -> str:
        return f"{self.auth_base_url}{self.auth_deactivate_v2_path}"

    @classmethod
    def from_env(cls, **overrides: Any) -> AssocConfig:
        """Create configuration from environment variables.

        Reads optional ``ASSOC_*`` variables (``ASSOC_KAFKA_*`` and
        ``ASSOC_STREAM_*`` for the nested settings).  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.
            ``kafka``/``stream`` may be given as dicts or settings objects.

        Returns
        -------
        AssocConfig
            Populated configuration.
        """
        env = os.environ

        kafka_kwargs: dict[str, Any] = {}
        _ENV_KAFKA_MAP = {
            "ASSOC_KAFKA_BOOTSTRAP_SERVERS": "bootstrap_servers",
            "ASSOC_KAFKA_NOTIFICATION_TOPIC": "notification_topic",
            "ASSOC_KAFKA_EVENT_TOPIC": "event_topic",
            "ASSOC_KAFKA_VIN_TOPIC": "vin_topic",
            "ASSOC_KAFKA_ASSET_ACTIVATION_TOPIC": "asset_activation_topic",
            "ASSOC_KAFKA_ACKS": "acks",
            "ASSOC_KAFKA_SSL_CAFILE": "ssl_cafile",
            "ASSOC_KAFKA_SSL_CERTFILE": "ssl_certfile",
            "ASSOC_KAFKA_SSL_KEYFILE": "ssl_keyfile",
            "ASSOC_KAFKA_SSL_PASSWORD": "ssl_password",
        }
        for env_key, field_name in _ENV_KAFKA_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kafka_kwargs[field_name] = val
        ssl_env = env.get("ASSOC_KAFKA_SSL_ENABLED")
        if ssl_env is not None:
            kafka_kwargs["ssl_enabled"] = _env_bool(ssl_env, False)

        kafka_overrides = overrides.pop("kafka", None)
        if isinstance(kafka_overrides, dict):
            kafka_kwargs.update(kafka_overrides)
        elif isinstance(kafka_overrides, KafkaSettings):
            kafka_kwargs = dataclasses.asdict(kafka_overrides)

        stream_kwargs: dict[str, Any] = {}
        _ENV_STREAM_MAP = {
            "ASSOC_STREAM_HOST": "host",
            "ASSOC_STREAM_TOPIC_PREFIX": "topic_prefix",
            "ASSOC_STREAM_CLIENT_ID": "client_id",
            "ASSOC_STREAM_USERNAME": "username",
            "ASSOC_STREAM_PASSWORD": "password",
        }
        for env_key, field_name in _ENV_STREAM_MAP.items():
            val = env.get(env_key)
            if val is not None:
                stream_kwargs[field_name] = val
        port_env = env.get("ASSOC_STREAM_PORT")
        if port_env is not None:
            stream_kwargs["port"] = int(port_env)
        tls_env = env.get("ASSOC_STREAM_TLS_ENABLED")
        if tls_env is not None:
            stream_kwargs["tls_enabled"] = _env_bool(tls_env, False)

        stream_overrides = overrides.pop("stream", None)
        if isinstance(stream_overrides, dict):
            stream_kwargs.update(stream_overrides)
        elif isinstance(stream_overrides, StreamSettings):
            stream_kwargs = dataclasses.asdict(stream_overrides)

        config_kwargs: dict[str, Any] = {
            "kafka": KafkaSettings(**kafka_kwargs),
            "stream": StreamSettings(**stream_kwargs),
        }
        _ENV_CONFIG_MAP = {
            "ASSOC_AUTH_BASE_URL": "auth_base_url",
            "ASSOC_AUTH_DEACTIVATE_PATH": "auth_deactivate_path",
            "ASSOC_AUTH_DEACTIVATE_V2_PATH": "auth_deactivate_v2_path",
            "ASSOC_DEVICE_MESSAGE_BASE_URL": "device_message_base_url",
            "ASSOC_DEVICE_MESSAGE_VERSION": "device_message_version",
            "ASSOC_VEHICLE_PROFILE_BASE_URL": "vehicle_profile_base_url",
            "ASSOC_VEHICLE_PROFILE_VERSION": "vehicle_profile_version",
            "ASSOC_VEHICLE_PROFILE_TERMINATE_PATH": "vehicle_profile_terminate_path",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLAG_MAP = {
            "ASSOC_DEVICE_MESSAGE_ENABLED": ("device_message_enabled", False),
            "ASSOC_VIN_ASSOCIATION_ENABLED": ("vin_association_enabled", False),
            "ASSOC_EVENT_BUS_ENABLED": ("event_bus_enabled", True),
            "ASSOC_STREAM_ENABLED": ("stream_enabled", True),
        }
        for env_key, (field_name, default) in _ENV_FLAG_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        timeout_env = env.get("ASSOC_HTTP_TIMEOUT")
        if timeout_env is not None and "http_timeout" not in overrides:
            config_kwargs["http_timeout"] = float(timeout_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
