"""Clients for the external systems notification handlers publish to."""

from pyassoc.sinks.auth import DeviceAuthClient
from pyassoc.sinks.device_message import DeviceMessageClient
from pyassoc.sinks.kafka import EventPublisher, KafkaEventPublisher
from pyassoc.sinks.stream import MqttStreamPublisher, StreamPublisher
from pyassoc.sinks.vehicle_profile import VehicleProfileClient

__all__ = [
    "DeviceAuthClient",
    "DeviceMessageClient",
    "EventPublisher",
    "KafkaEventPublisher",
    "MqttStreamPublisher",
    "StreamPublisher",
    "VehicleProfileClient",
]
