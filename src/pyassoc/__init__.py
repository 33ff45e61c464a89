"""pyassoc - Async device association lifecycle with notification fanout."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyassoc")
except PackageNotFoundError:
    __version__ = "0+local"
from pyassoc.config import AssocConfig, KafkaSettings, StreamSettings
from pyassoc.exceptions import (
    AssocConfigError,
    AssocError,
    AssocTransportError,
    AssociationNotFoundError,
    HandlerFailureError,
    InvalidInputError,
    InvalidTransitionError,
    LifecycleError,
    NotificationIncompleteError,
    http_status_for,
)
from pyassoc.lifecycle import AssociationStateMachine, Operation, SubResourceFailure, TransitionResult
from pyassoc.models import (
    Association,
    AssociationEvent,
    AssociationState,
    ChangeStateRequest,
    EventEnvelope,
    ReplaceDeviceRequest,
    TransitionRequest,
)
from pyassoc.notify import DispatchReport, ObservableRegistry, build_default_registry
from pyassoc.notify.handlers import FailureKind, FailurePolicy, HandlerFailure, NotificationHandler
from pyassoc.persistence import AssociationRepository, InMemoryAssociationRepository
from pyassoc.service import AssociationService

__all__ = [
    "__version__",
    "AssocConfig",
    "AssocConfigError",
    "AssocError",
    "AssocTransportError",
    "Association",
    "AssociationEvent",
    "AssociationNotFoundError",
    "AssociationRepository",
    "AssociationService",
    "AssociationState",
    "AssociationStateMachine",
    "ChangeStateRequest",
    "DispatchReport",
    "EventEnvelope",
    "FailureKind",
    "FailurePolicy",
    "HandlerFailure",
    "HandlerFailureError",
    "InMemoryAssociationRepository",
    "InvalidInputError",
    "InvalidTransitionError",
    "KafkaSettings",
    "LifecycleError",
    "NotificationHandler",
    "NotificationIncompleteError",
    "ObservableRegistry",
    "Operation",
    "ReplaceDeviceRequest",
    "StreamSettings",
    "SubResourceFailure",
    "TransitionRequest",
    "TransitionResult",
    "build_default_registry",
    "http_status_for",
]
