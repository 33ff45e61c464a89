"""Association lifecycle transition table.

This module contains *no* I/O.  The state machine asks it which state an
operation leads to and raises what it raises.
"""

from __future__ import annotations

from enum import StrEnum

from pyassoc.exceptions import InvalidTransitionError
from pyassoc.models.association import AssociationState

_I = AssociationState.ASSOCIATION_INITIATED
_A = AssociationState.ASSOCIATED
_D = AssociationState.DISASSOCIATED
_S = AssociationState.SUSPENDED
_F = AssociationState.ASSOCIATION_FAILED


class Operation(StrEnum):
    ASSOCIATE = "associate"
    DISASSOCIATE = "disassociate"
    SUSPEND = "suspend"
    RESTORE = "restore"
    TERMINATE = "terminate"
    REPLACE_DEVICE = "replace_device"
    CHANGE_STATE = "change_state"


# (current state, operation) -> resulting state.  Missing pairs are rejected.
_TRANSITIONS: dict[tuple[AssociationState, Operation], AssociationState] = {
    (_I, Operation.ASSOCIATE): _A,
    (_F, Operation.ASSOCIATE): _A,
    (_A, Operation.DISASSOCIATE): _D,
    (_S, Operation.DISASSOCIATE): _D,
    (_A, Operation.SUSPEND): _S,
    (_D, Operation.RESTORE): _A,
    (_S, Operation.RESTORE): _A,
    (_A, Operation.TERMINATE): _D,
    (_S, Operation.TERMINATE): _D,
    # The current binding is retired; the replacement opens a new association.
    (_A, Operation.REPLACE_DEVICE): _D,
    (_S, Operation.REPLACE_DEVICE): _D,
}

# Targets reachable through ``change_state``: every transition above plus
# Initiated -> Failed, the only way into Failed.
_ALLOWED_TARGETS: dict[AssociationState, frozenset[AssociationState]] = {
    state: frozenset(
        {target for (current, _op), target in _TRANSITIONS.items() if current == state}
        | ({_F} if state == _I else set())
    )
    for state in AssociationState
}


def resolve_transition(current: AssociationState, operation: Operation) -> AssociationState:
    """Return the state *operation* leads to from *current*.

    Raises :class:`InvalidTransitionError` when the table rejects the pair.
    """
    if operation == Operation.CHANGE_STATE:
        raise ValueError("change_state needs a target; use resolve_target()")
    target = _TRANSITIONS.get((current, operation))
    if target is None:
        raise InvalidTransitionError(
            f"{operation} is not allowed for an association in state {current}",
            current=current,
            operation=operation,
        )
    return target


def resolve_target(current: AssociationState, target: AssociationState) -> AssociationState:
    """Validate an explicit ``change_state`` move from *current* to *target*."""
    if target not in _ALLOWED_TARGETS[current]:
        raise InvalidTransitionError(
            f"cannot change association state from {current} to {target}",
            current=current,
            operation=Operation.CHANGE_STATE,
        )
    return target


def allowed_targets(current: AssociationState) -> frozenset[AssociationState]:
    """States reachable from *current* in a single transition."""
    return _ALLOWED_TARGETS[current]


def is_allowed(current: AssociationState, operation: Operation) -> bool:
    return (current, operation) in _TRANSITIONS
