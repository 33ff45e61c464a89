"""Custom exception hierarchy for pyassoc."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyassoc.models.association import AssociationEvent, AssociationState
    from pyassoc.notify.handlers.base import HandlerFailure


class AssocError(Exception):
    """Base exception for all pyassoc errors."""


class AssocConfigError(AssocError):
    """Invalid or missing configuration."""


class AssocTransportError(AssocError):
    """Peer-level failure (network, non-2xx, invalid JSON, broker reject)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class LifecycleError(AssocError):
    """Base for failures reported by lifecycle operations.

    ``http_status`` and ``public_message`` describe how an API layer should
    surface the failure.  ``public_message`` never carries peer details.
    """

    http_status: int = 500
    public_message: str = "Association lifecycle operation failed"


class AssociationNotFoundError(LifecycleError):
    """No association matches the request."""

    http_status = 404
    public_message = "Association data does not exist for given input"


class InvalidTransitionError(LifecycleError):
    """Current state forbids the requested operation."""

    http_status = 400
    public_message = "Requested operation is not allowed in the current association state"

    def __init__(
        self,
        message: str,
        *,
        current: AssociationState | None = None,
        operation: str = "",
    ) -> None:
        self.current = current
        self.operation = operation
        super().__init__(message)


class InvalidInputError(LifecycleError):
    """Malformed payload, caught before any write or network call."""

    http_status = 400
    public_message = "Invalid request payload"


class HandlerFailureError(LifecycleError):
    """A fatal notification handler failed and dispatch was halted.

    Carries the failing handler's name, the event being dispatched and the
    :class:`~pyassoc.notify.handlers.base.HandlerFailure` it reported.
    """

    http_status = 500
    public_message = "Internal error while notifying downstream systems"

    def __init__(
        self,
        message: str,
        *,
        handler_name: str,
        event: AssociationEvent,
        failure: HandlerFailure,
    ) -> None:
        self.handler_name = handler_name
        self.event = event
        self.failure = failure
        super().__init__(message)


class NotificationIncompleteError(HandlerFailureError):
    """State change committed, but notification fanout did not complete.

    Retrying the same operation will not help: the association already is in
    ``event.new_state`` and a retry hits :class:`InvalidTransitionError`.
    """

    @classmethod
    def from_handler_failure(cls, exc: HandlerFailureError) -> NotificationIncompleteError:
        return cls(
            f"Association {exc.event.association_id} moved to {exc.event.new_state} "
            f"but notification is incomplete: {exc}",
            handler_name=exc.handler_name,
            event=exc.event,
            failure=exc.failure,
        )


def http_status_for(exc: BaseException) -> int:
    """Map an exception raised by a lifecycle operation to an HTTP status."""
    if isinstance(exc, LifecycleError):
        return exc.http_status
    return 500
