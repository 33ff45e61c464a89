"""Outbound wire models: event envelopes, their payloads and REST request bodies."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ConfigDict, Field, SerializeAsAny, field_serializer

from pyassoc._constants import EVENT_VERSION
from pyassoc.models._base import AssocBaseModel

# ---------------------------------------------------------------------------
# Envelope payloads
# ---------------------------------------------------------------------------


class AssociationChangedData(AssocBaseModel):
    """Payload of association/disassociation events."""

    user_id: str
    device_id: str | None = None
    """Harman id of the device."""


class SoftwareVersionData(AssocBaseModel):
    value: str


class VinEventData(AssocBaseModel):
    """VIN event payload.

    ``dummy`` is ``True`` for platform generated VINs.  ``model_name`` is
    filled from VIN decoding and stays ``None`` when decoding fails.
    """

    model_config = ConfigDict(protected_namespaces=())

    dummy: bool
    value: str
    type: str
    user_id: str | None = None
    device_type: str | None = None
    model_name: str | None = None


class AssetActivationData(AssocBaseModel):
    harman_id: str | None = None
    serial_number: str
    user_id: str
    country: str | None = None
    device_type: str | None = None


class DeviceInfoData(AssocBaseModel):
    """Ad-hoc device information event payload."""

    serial_number: str | None = None
    device_type: str | None = None
    harman_id: str | None = None
    imei: str | None = None
    software_version: str | None = None
    vin: str | None = None
    ssid: str | None = None
    iccid: str | None = None
    bssid: str | None = None
    msisdn: str | None = None
    imsi: str | None = None
    product_type: str | None = None
    hardware_version: str | None = None


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class EventEnvelope(AssocBaseModel):
    """Structured event published to the event bus and the stream.

    ``correlation_key`` doubles as the message key / partition key.
    """

    event_id: str
    version: str = EVENT_VERSION
    timestamp: int = Field(..., description="Epoch milliseconds")
    correlation_key: str
    payload: SerializeAsAny[AssocBaseModel]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Event-bus form: a single JSON object."""
        return json.dumps(self.to_wire(), separators=(",", ":"))

    def to_stream_json(self) -> str:
        """Stream form: a one-element JSON array."""
        return json.dumps([self.to_wire()], separators=(",", ":"))


# ---------------------------------------------------------------------------
# REST bodies
# ---------------------------------------------------------------------------


class DeactivationRequestV1(AssocBaseModel):
    serial_number: str


class DeactivationRequestV2(AssocBaseModel):
    factory_id: int

    @field_serializer("factory_id")
    def _as_string(self, value: int) -> str:
        return str(value)


class ConfigMessage(AssocBaseModel):
    """Config push message understood by the device message service."""

    command: str
    data: Any = None
    domain: str
    version: str = EVENT_VERSION


class VinDecodeResult(AssocBaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_code: str | None = None
    model_name: str | None = None
