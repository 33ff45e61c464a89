"""Shared handler contract: failure records, failure policy and the handler protocol."""

from __future__ import annotations

import dataclasses
from enum import StrEnum
from typing import Protocol

from pyassoc.exceptions import AssocTransportError
from pyassoc.models.association import AssociationEvent


class FailurePolicy(StrEnum):
    """How the registry treats a failure reported by a handler."""

    FATAL = "fatal"
    """Stop dispatch and raise :class:`~pyassoc.exceptions.HandlerFailureError`."""
    ADVISORY = "advisory"
    """Log a warning and continue with the next handler."""


class FailureKind(StrEnum):
    INVALID_INPUT = "invalid_input"
    PEER = "peer"
    TRANSPORT = "transport"
    SERIALIZATION = "serialization"


@dataclasses.dataclass(frozen=True)
class HandlerFailure:
    """Outcome reported by a handler whose side-effect did not complete."""

    kind: FailureKind
    message: str
    cause: BaseException | None = None

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    @classmethod
    def from_transport_error(cls, exc: AssocTransportError) -> HandlerFailure:
        """``PEER`` when the peer answered with a status, ``TRANSPORT`` otherwise."""
        kind = FailureKind.PEER if exc.status_code is not None else FailureKind.TRANSPORT
        return cls(kind, str(exc), exc)


class NotificationHandler(Protocol):
    """Structural interface every notification handler implements."""

    name: str
    failure_policy: FailurePolicy

    def applicable(self, event: AssociationEvent) -> bool: ...

    async def handle(self, event: AssociationEvent) -> HandlerFailure | None: ...
