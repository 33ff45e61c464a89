"""Association record, lifecycle state and the committed-transition event."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field, field_validator, model_validator

from pyassoc.models._base import AssocBaseModel, AssocTimestamp, to_epoch_ms


class AssociationState(StrEnum):
    """Lifecycle state of a device-to-vehicle association."""

    ASSOCIATION_INITIATED = "ASSOCIATION_INITIATED"
    ASSOCIATED = "ASSOCIATED"
    DISASSOCIATED = "DISASSOCIATED"
    SUSPENDED = "SUSPENDED"
    ASSOCIATION_FAILED = "ASSOCIATION_FAILED"

    @property
    def notification_event_name(self) -> str:
        """``eventId`` used for association-changed messages in this state."""
        return _NOTIFICATION_EVENT_NAMES[self]


_NOTIFICATION_EVENT_NAMES: dict[AssociationState, str] = {
    AssociationState.ASSOCIATED: "VehicleAssociation",
    AssociationState.ASSOCIATION_INITIATED: "ASSOCIATION_INITIATED",
    AssociationState.DISASSOCIATED: "VehicleDisAssociation",
    AssociationState.ASSOCIATION_FAILED: "ASSOCIATION_FAILED",
    AssociationState.SUSPENDED: "SUSPENDED",
}


class Association(AssocBaseModel):
    """A persisted device/user/vehicle binding as returned by the repository."""

    id: int
    state: AssociationState
    serial_number: str
    user_id: str
    harman_id: str | None = None
    """Platform-internal device identifier."""
    vehicle_id: str | None = None
    """VIN, when the association is bound to a vehicle."""
    factory_id: int = 0
    """Factory-provisioning record id; ``0`` when unknown."""
    software_version: str | None = None
    device_type: str | None = None
    associated_by: str | None = None
    associated_on: AssocTimestamp | None = None
    disassociated_by: str | None = None
    disassociated_on: AssocTimestamp | None = None
    modified_by: str | None = None
    modified_on: AssocTimestamp | None = None


class AssociationEvent(AssocBaseModel):
    """Immutable snapshot of a committed state transition.

    Built by the state machine after the persistence write is acknowledged
    and handed to :meth:`ObservableRegistry.dispatch`.  It is never
    persisted and lives for the duration of one dispatch.
    """

    association_id: int
    prior_state: AssociationState
    new_state: AssociationState
    serial_number: str
    user_id: str
    harman_id: str | None = None
    vehicle_id: str | None = None
    factory_id: int = 0
    software_version: str | None = None
    device_type: str | None = None
    terminate_reason: str | None = None
    device_auth_v2_deactivate: bool = False
    auths_request_originated: bool = False
    """Set when the auth service itself requested the change; suppresses v1 deactivation."""
    committed_at: AssocTimestamp = Field(..., description="Commit timestamp (UTC)")

    @field_validator("serial_number", "user_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must be non-empty")
        return stripped

    @model_validator(mode="after")
    def _state_must_change(self) -> AssociationEvent:
        if self.new_state == self.prior_state:
            raise ValueError(f"new_state must differ from prior_state ({self.prior_state})")
        return self

    @property
    def committed_at_ms(self) -> int:
        """Commit timestamp in epoch milliseconds."""
        return to_epoch_ms(self.committed_at)

    @classmethod
    def from_transition(
        cls,
        association: Association,
        new_state: AssociationState,
        committed_at: datetime,
        *,
        terminate_reason: str | None = None,
        device_auth_v2_deactivate: bool = False,
        auths_request_originated: bool = False,
    ) -> AssociationEvent:
        """Snapshot *association* as it moves to *new_state*."""
        return cls(
            association_id=association.id,
            prior_state=association.state,
            new_state=new_state,
            serial_number=association.serial_number,
            user_id=association.user_id,
            harman_id=association.harman_id,
            vehicle_id=association.vehicle_id,
            factory_id=association.factory_id,
            software_version=association.software_version,
            device_type=association.device_type,
            terminate_reason=terminate_reason,
            device_auth_v2_deactivate=device_auth_v2_deactivate,
            auths_request_originated=auths_request_originated,
            committed_at=committed_at,
        )
