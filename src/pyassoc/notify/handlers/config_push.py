"""Config push to the device on disassociation."""

from __future__ import annotations

import logging

from pyassoc._constants import CONFIG_DOMAIN_DISASSOCIATION, CONFIG_DOMAIN_WIPE_DATA, WIPE_DATA_REASON
from pyassoc.exceptions import AssocTransportError
from pyassoc.models.association import AssociationEvent, AssociationState
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure
from pyassoc.sinks.device_message import DeviceMessageClient

_logger = logging.getLogger(__name__)


def config_domain_for(event: AssociationEvent) -> str:
    """``WIPEDATA`` for a wipe-data termination, ``DISASSOCIATION`` otherwise."""
    if event.terminate_reason == WIPE_DATA_REASON:
        return CONFIG_DOMAIN_WIPE_DATA
    return CONFIG_DOMAIN_DISASSOCIATION


class ConfigPushHandler:
    name = "config_push"
    failure_policy = FailurePolicy.FATAL

    def __init__(self, client: DeviceMessageClient, *, enabled: bool) -> None:
        self._client = client
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def applicable(self, event: AssociationEvent) -> bool:
        return self._enabled and event.new_state == AssociationState.DISASSOCIATED

    async def handle(self, event: AssociationEvent) -> HandlerFailure | None:
        if not event.harman_id:
            return HandlerFailure(
                FailureKind.INVALID_INPUT,
                f"association {event.association_id} has no device id to push config to",
            )
        domain = config_domain_for(event)
        try:
            await self._client.publish(domain, event.harman_id)
        except AssocTransportError as exc:
            _logger.error("Config push %s failed for device %s: %s", domain, event.harman_id, exc)
            return HandlerFailure.from_transport_error(exc)
        return None
