"""Association lifecycle state machine.

Every operation follows the same sequence:

1. resolve the association (:class:`AssociationNotFoundError`),
2. check the transition table (:class:`InvalidTransitionError`),
3. validate the operation payload (:class:`InvalidInputError`),
4. persist the new state,
5. dispatch exactly one :class:`AssociationEvent` to the registry.

Steps 1-3 have no side effects.  A fatal handler failure in step 5 is
raised as :class:`NotificationIncompleteError`; the write is not rolled
back.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import weakref
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from pyassoc.exceptions import (
    AssociationNotFoundError,
    HandlerFailureError,
    InvalidInputError,
    NotificationIncompleteError,
)
from pyassoc.lifecycle.transitions import Operation, resolve_target, resolve_transition
from pyassoc.models.association import Association, AssociationEvent, AssociationState
from pyassoc.models.requests import ChangeStateRequest, ReplaceDeviceRequest, TransitionRequest
from pyassoc.notify.registry import DispatchReport, ObservableRegistry
from pyassoc.persistence import AssociationRepository
from pyassoc.sinks.vehicle_profile import VehicleProfileClient

_logger = logging.getLogger(__name__)

R = TypeVar("R", bound=TransitionRequest)

RequestLike = TransitionRequest | Mapping[str, Any]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclasses.dataclass(frozen=True)
class SubResourceFailure:
    """A derived resource could not be cleaned up after a committed transition."""

    resource: str
    message: str


@dataclasses.dataclass(frozen=True)
class TransitionResult:
    """Outcome of a committed lifecycle operation.

    ``warnings`` is non-empty for a qualified success: the state change and
    notification completed but a sub-resource operation did not.
    """

    event: AssociationEvent
    report: DispatchReport = dataclasses.field(default_factory=DispatchReport)
    warnings: tuple[SubResourceFailure, ...] = ()
    replacement_association_id: int | None = None

    @property
    def association_id(self) -> int:
        return self.event.association_id

    @property
    def new_state(self) -> AssociationState:
        return self.event.new_state

    @property
    def qualified(self) -> bool:
        return bool(self.warnings)

    @property
    def qualified_message(self) -> str | None:
        if not self.warnings:
            return None
        details = "; ".join(f"{w.resource}: {w.message}" for w in self.warnings)
        return f"Association moved to {self.event.new_state} with warnings: {details}"


class AssociationStateMachine:
    """Validates and performs association lifecycle transitions.

    Parameters
    ----------
    repository:
        Persistence collaborator owning the association records.
    registry:
        Sealed handler registry receiving one event per committed transition.
    vehicle_profiles:
        Used by :meth:`terminate` to delete the derived vehicle profile.
        Without it termination skips profile deletion.
    clock:
        Returns the current tz-aware UTC time.
    """

    def __init__(
        self,
        repository: AssociationRepository,
        registry: ObservableRegistry,
        *,
        vehicle_profiles: VehicleProfileClient | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._registry = registry
        self._vehicle_profiles = vehicle_profiles
        self._clock = clock
        # Entries disappear once no transition holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def associate(self, request: RequestLike) -> TransitionResult:
        """Complete an initiated association, or retry a failed one."""
        req = _coerce(request, TransitionRequest)
        return await self._transition(req, Operation.ASSOCIATE)

    async def disassociate(self, request: RequestLike) -> TransitionResult:
        req = _coerce(request, TransitionRequest)
        return await self._transition(req, Operation.DISASSOCIATE)

    async def suspend(self, request: RequestLike) -> TransitionResult:
        req = _coerce(request, TransitionRequest)
        return await self._transition(req, Operation.SUSPEND)

    async def restore(self, request: RequestLike) -> TransitionResult:
        """Bring a suspended or disassociated association back to ``ASSOCIATED``."""
        req = _coerce(request, TransitionRequest)
        return await self._transition(req, Operation.RESTORE)

    async def terminate(self, request: RequestLike) -> TransitionResult:
        """Disassociate and delete the derived vehicle profile.

        Profile deletion runs only after a successful dispatch; its failure
        is reported in :attr:`TransitionResult.warnings`.
        """
        req = _coerce(request, TransitionRequest)
        result = await self._transition(req, Operation.TERMINATE)
        harman_id = result.event.harman_id
        if self._vehicle_profiles is None or not harman_id:
            return result

        if await self._vehicle_profiles.delete_profile(harman_id):
            return result
        warning = SubResourceFailure("vehicle_profile", f"vehicle profile for {harman_id} was not deleted")
        _logger.warning(
            "Association %s terminated but %s",
            result.association_id,
            warning.message,
        )
        return dataclasses.replace(result, warnings=result.warnings + (warning,))

    async def replace_device(self, request: ReplaceDeviceRequest | Mapping[str, Any]) -> TransitionResult:
        """Retire the current binding and open an initiated one for the replacement device.

        The returned event describes the retired association; the new
        association id is in :attr:`TransitionResult.replacement_association_id`
        and is completed with :meth:`associate`.
        """
        req = _coerce(request, ReplaceDeviceRequest)

        def validate(association: Association) -> None:
            if req.replacement_serial_number == association.serial_number:
                raise InvalidInputError("replacement serial number must differ from the current device")

        result = await self._transition(req, Operation.REPLACE_DEVICE, validate=validate)
        replacement = await self._repository.create_association(
            serial_number=req.replacement_serial_number,
            user_id=result.event.user_id,
            factory_id=req.replacement_factory_id,
            actor=req.requested_by,
            timestamp=result.event.committed_at,
            harman_id=req.replacement_harman_id,
            device_type=result.event.device_type,
        )
        _logger.info(
            "Device replaced association_id=%s replacement_association_id=%s",
            result.association_id,
            replacement.id,
        )
        return dataclasses.replace(result, replacement_association_id=replacement.id)

    async def change_state(self, request: ChangeStateRequest | Mapping[str, Any]) -> TransitionResult:
        """Move an association to an explicit ``target_state``."""
        req = _coerce(request, ChangeStateRequest)
        return await self._transition(req, Operation.CHANGE_STATE, target=req.target_state)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _resolve(self, req: TransitionRequest) -> Association:
        association: Association | None
        if req.association_id is not None:
            association = await self._repository.find_association(req.association_id)
            if association is not None and req.user_id and association.user_id != req.user_id:
                association = None
        else:
            assert req.user_id is not None  # noqa: S101
            association = await self._repository.find_by_device(
                user_id=req.user_id,
                serial_number=req.serial_number,
                harman_id=req.harman_id,
            )
        if association is None:
            raise AssociationNotFoundError(f"no association found for {_describe(req)}")
        return association

    def _lock_for(self, association_id: int) -> asyncio.Lock:
        lock = self._locks.get(association_id)
        if lock is None:
            lock = self._locks[association_id] = asyncio.Lock()
        return lock

    async def _transition(
        self,
        req: TransitionRequest,
        operation: Operation,
        *,
        target: AssociationState | None = None,
        validate: Callable[[Association], None] | None = None,
    ) -> TransitionResult:
        resolved = await self._resolve(req)

        lock = self._lock_for(resolved.id)
        async with lock:
            # The state may have moved while waiting for the lock.
            association = await self._repository.find_association(resolved.id) or resolved
            if target is None:
                new_state = resolve_transition(association.state, operation)
            else:
                new_state = resolve_target(association.state, target)
            if validate is not None:
                validate(association)

            disassociating = new_state == AssociationState.DISASSOCIATED
            v2_deactivation = disassociating and req.device_auth_v2
            if v2_deactivation and association.factory_id <= 0:
                raise InvalidInputError(
                    f"association {association.id} has no factory id for v2 device auth deactivation"
                )

            committed_at = self._clock()
            if association.modified_on is not None and association.modified_on > committed_at:
                committed_at = association.modified_on

            event = _build_event(
                association,
                new_state,
                committed_at,
                terminate_reason=req.terminate_reason if operation == Operation.TERMINATE else None,
                device_auth_v2_deactivate=v2_deactivation,
                auths_request_originated=req.auths_request_originated,
            )
            await self._repository.update_state(association.id, new_state, req.requested_by, committed_at)

        _logger.info(
            "Association %s %s: %s -> %s by %s",
            association.id,
            operation,
            association.state,
            new_state,
            req.requested_by,
        )
        try:
            report = await self._registry.dispatch(event)
        except HandlerFailureError as exc:
            raise NotificationIncompleteError.from_handler_failure(exc) from exc
        return TransitionResult(event=event, report=report)


def _build_event(
    association: Association,
    new_state: AssociationState,
    committed_at: datetime,
    **flags: Any,
) -> AssociationEvent:
    try:
        return AssociationEvent.from_transition(association, new_state, committed_at, **flags)
    except ValidationError as exc:
        raise InvalidInputError(f"association {association.id} cannot produce a valid event: {exc}") from exc


def _coerce(request: R | Mapping[str, Any], model: type[R]) -> R:
    if isinstance(request, model):
        return request
    if isinstance(request, TransitionRequest):
        request = request.model_dump()
    try:
        return model.model_validate(request)
    except ValidationError as exc:
        raise InvalidInputError(f"invalid {model.__name__}: {exc}") from exc


def _describe(req: TransitionRequest) -> str:
    if req.association_id is not None:
        return f"association_id={req.association_id}"
    device = req.serial_number or req.harman_id
    return f"device={device} user_id={req.user_id}"
