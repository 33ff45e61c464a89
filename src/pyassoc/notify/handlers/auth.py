"""Device authentication deactivation on disassociation."""

from __future__ import annotations

import logging

from pyassoc.exceptions import AssocTransportError
from pyassoc.models.association import AssociationEvent, AssociationState
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure
from pyassoc.sinks.auth import DeviceAuthClient

_logger = logging.getLogger(__name__)


class AuthDeactivationHandler:
    """Deactivates device credentials once an association is disassociated.

    The v2 path addresses the device by factory id; the v1 path by serial
    number, and is skipped when the auth service itself originated the
    request.  Any failure is fatal to the dispatch.
    """

    name = "auth_deactivation"
    failure_policy = FailurePolicy.FATAL

    def __init__(self, client: DeviceAuthClient) -> None:
        self._client = client

    def applicable(self, event: AssociationEvent) -> bool:
        if event.new_state != AssociationState.DISASSOCIATED:
            return False
        return event.device_auth_v2_deactivate or not event.auths_request_originated

    async def handle(self, event: AssociationEvent) -> HandlerFailure | None:
        try:
            if event.device_auth_v2_deactivate:
                if event.factory_id <= 0:
                    return HandlerFailure(
                        FailureKind.INVALID_INPUT,
                        f"association {event.association_id} has no factory id for v2 deactivation",
                    )
                await self._client.deactivate_v2(factory_id=event.factory_id, user_id=event.user_id)
            else:
                await self._client.deactivate(serial_number=event.serial_number, user_id=event.user_id)
        except AssocTransportError as exc:
            _logger.error(
                "Device auth deactivation failed association_id=%s status=%s",
                event.association_id,
                exc.status_code,
            )
            return HandlerFailure.from_transport_error(exc)
        return None
