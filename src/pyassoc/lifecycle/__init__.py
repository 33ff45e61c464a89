"""Association lifecycle: transition table and state machine."""

from pyassoc.lifecycle.machine import AssociationStateMachine, SubResourceFailure, TransitionResult
from pyassoc.lifecycle.transitions import Operation, allowed_targets, is_allowed, resolve_target, resolve_transition

__all__ = [
    "AssociationStateMachine",
    "Operation",
    "SubResourceFailure",
    "TransitionResult",
    "allowed_targets",
    "is_allowed",
    "resolve_target",
    "resolve_transition",
]
