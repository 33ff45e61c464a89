"""Typed request models for lifecycle operations."""

from __future__ import annotations

from pydantic import Field, model_validator

from pyassoc.models._base import AssocBaseModel
from pyassoc.models.association import AssociationState


class TransitionRequest(AssocBaseModel):
    """Identifies an association and carries the common transition options.

    The association is addressed either by ``association_id`` or by a
    device identifier (``serial_number`` or ``harman_id``) together with
    ``user_id``.
    """

    association_id: int | None = None
    serial_number: str | None = None
    harman_id: str | None = None
    user_id: str | None = None
    actor: str | None = None
    """Who requested the change; defaults to ``user_id``."""
    terminate_reason: str | None = None
    device_auth_v2: bool = True
    """Deactivate device auth by factory id (v2) rather than by serial number."""
    auths_request_originated: bool = False

    @model_validator(mode="after")
    def _require_identity(self) -> TransitionRequest:
        if self.association_id is not None:
            return self
        if (self.serial_number or self.harman_id) and self.user_id:
            return self
        raise ValueError("association_id or a device identifier together with user_id is required")

    @property
    def requested_by(self) -> str:
        return self.actor or self.user_id or "system"


class ReplaceDeviceRequest(TransitionRequest):
    """Rebind an association to a replacement device."""

    replacement_serial_number: str = Field(..., min_length=1)
    replacement_factory_id: int = Field(..., gt=0)
    replacement_harman_id: str | None = None


class ChangeStateRequest(TransitionRequest):
    """Move an association to an explicit target state."""

    target_state: AssociationState
