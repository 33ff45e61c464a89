"""Secondary stream notification of association changes."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pyassoc.exceptions import AssocError
from pyassoc.models.association import AssociationEvent, AssociationState
from pyassoc.models.messages import AssociationChangedData, EventEnvelope
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure
from pyassoc.sinks.stream import StreamPublisher

_logger = logging.getLogger(__name__)


class StreamHandler:
    """Mirrors association-changed events onto the secondary stream.

    Associate-direction records are keyed by harman id, disassociate-direction
    records by user id.
    """

    name = "stream"
    failure_policy = FailurePolicy.ADVISORY

    def __init__(self, publisher: StreamPublisher) -> None:
        self._publisher = publisher

    def applicable(self, event: AssociationEvent) -> bool:
        return event.new_state in (AssociationState.ASSOCIATED, AssociationState.DISASSOCIATED)

    @staticmethod
    def correlation_key(event: AssociationEvent) -> str:
        if event.new_state == AssociationState.DISASSOCIATED:
            return event.user_id
        return event.harman_id or ""

    async def handle(self, event: AssociationEvent) -> HandlerFailure | None:
        key = self.correlation_key(event)
        try:
            record = EventEnvelope(
                event_id=event.new_state.notification_event_name,
                timestamp=event.committed_at_ms,
                correlation_key=key,
                payload=AssociationChangedData(user_id=event.user_id, device_id=event.harman_id),
            ).to_stream_json()
        except (ValidationError, ValueError, TypeError) as exc:
            _logger.error("Error converting stream record for association %s: %s", event.association_id, exc)
            return HandlerFailure(FailureKind.SERIALIZATION, str(exc), exc)
        try:
            self._publisher.publish(key, record)
        except AssocError as exc:
            _logger.error("Error publishing stream record key=%s: %s", key, exc)
            return HandlerFailure(FailureKind.TRANSPORT, str(exc), exc)
        _logger.info("Stream record published key=%s state=%s", key, event.new_state)
        return None
