"""Data models for association lifecycle events and outbound messages."""

from pyassoc.models._base import AssocBaseModel, AssocTimestamp, parse_timestamp, to_epoch_ms
from pyassoc.models.association import Association, AssociationEvent, AssociationState
from pyassoc.models.messages import (
    AssetActivationData,
    AssociationChangedData,
    ConfigMessage,
    DeactivationRequestV1,
    DeactivationRequestV2,
    DeviceInfoData,
    EventEnvelope,
    SoftwareVersionData,
    VinDecodeResult,
    VinEventData,
)
from pyassoc.models.requests import ChangeStateRequest, ReplaceDeviceRequest, TransitionRequest

__all__ = [
    "AssetActivationData",
    "AssocBaseModel",
    "AssocTimestamp",
    "Association",
    "AssociationChangedData",
    "AssociationEvent",
    "AssociationState",
    "ChangeStateRequest",
    "ConfigMessage",
    "DeactivationRequestV1",
    "DeactivationRequestV2",
    "DeviceInfoData",
    "EventEnvelope",
    "ReplaceDeviceRequest",
    "SoftwareVersionData",
    "TransitionRequest",
    "VinDecodeResult",
    "VinEventData",
    "parse_timestamp",
    "to_epoch_ms",
]
