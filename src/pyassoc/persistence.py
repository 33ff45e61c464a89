"""Persistence collaborator interface and an in-memory implementation.

The relational store is external to this package; the state machine and
the event-bus handler only depend on :class:`AssociationRepository`.
:class:`InMemoryAssociationRepository` backs development setups and tests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Protocol

from pyassoc.models.association import Association, AssociationState

_OPEN_STATES = frozenset(
    {
        AssociationState.ASSOCIATION_INITIATED,
        AssociationState.ASSOCIATED,
        AssociationState.SUSPENDED,
    }
)


class AssociationRepository(Protocol):
    """Structural persistence interface consumed by the lifecycle core."""

    async def find_association(self, association_id: int) -> Association | None: ...

    async def find_by_device(
        self,
        *,
        user_id: str,
        serial_number: str | None = None,
        harman_id: str | None = None,
    ) -> Association | None: ...

    async def update_state(
        self,
        association_id: int,
        new_state: AssociationState,
        actor: str,
        timestamp: datetime,
    ) -> Association: ...

    async def find_associated_vin(self, serial_number: str) -> str | None: ...

    async def get_country_code(self, association_id: int) -> str | None: ...

    async def count_open_associations(
        self,
        *,
        serial_number: str | None = None,
        user_id: str | None = None,
    ) -> int: ...

    async def create_association(
        self,
        *,
        serial_number: str,
        user_id: str,
        factory_id: int,
        actor: str,
        timestamp: datetime,
        harman_id: str | None = None,
        device_type: str | None = None,
        software_version: str | None = None,
    ) -> Association: ...


class InMemoryAssociationRepository:
    """Dict-backed :class:`AssociationRepository`.

    Writes are serialized with an :class:`asyncio.Lock` so concurrent
    transitions on the same loop observe a consistent record.
    """

    def __init__(
        self,
        associations: list[Association] | None = None,
        *,
        vins: dict[str, str] | None = None,
        countries: dict[int, str] | None = None,
    ) -> None:
        self._associations: dict[int, Association] = {a.id: a for a in associations or []}
        self._vins: dict[str, str] = dict(vins or {})
        self._countries: dict[int, str] = dict(countries or {})
        self._next_id = max(self._associations, default=0) + 1
        self._lock = asyncio.Lock()
        self.update_calls: list[tuple[int, AssociationState, str, datetime]] = []

    def add(self, association: Association) -> None:
        self._associations[association.id] = association
        self._next_id = max(self._next_id, association.id + 1)

    def get(self, association_id: int) -> Association | None:
        return self._associations.get(association_id)

    async def find_association(self, association_id: int) -> Association | None:
        return self._associations.get(association_id)

    async def find_by_device(
        self,
        *,
        user_id: str,
        serial_number: str | None = None,
        harman_id: str | None = None,
    ) -> Association | None:
        # Latest association for the device wins.
        for association in sorted(self._associations.values(), key=lambda a: a.id, reverse=True):
            if association.user_id != user_id:
                continue
            if serial_number is not None and association.serial_number == serial_number:
                return association
            if harman_id is not None and association.harman_id == harman_id:
                return association
        return None

    async def update_state(
        self,
        association_id: int,
        new_state: AssociationState,
        actor: str,
        timestamp: datetime,
    ) -> Association:
        async with self._lock:
            current = self._associations.get(association_id)
            if current is None:
                raise KeyError(association_id)
            update: dict[str, object] = {
                "state": new_state,
                "modified_by": actor,
                "modified_on": timestamp,
            }
            if new_state == AssociationState.ASSOCIATED:
                update["associated_by"] = actor
                update["associated_on"] = timestamp
            elif new_state == AssociationState.DISASSOCIATED:
                update["disassociated_by"] = actor
                update["disassociated_on"] = timestamp
            updated = current.model_copy(update=update)
            self._associations[association_id] = updated
            self.update_calls.append((association_id, new_state, actor, timestamp))
            return updated

    async def find_associated_vin(self, serial_number: str) -> str | None:
        vin = self._vins.get(serial_number)
        return vin or None

    async def get_country_code(self, association_id: int) -> str | None:
        return self._countries.get(association_id)

    async def count_open_associations(
        self,
        *,
        serial_number: str | None = None,
        user_id: str | None = None,
    ) -> int:
        return sum(
            1
            for a in self._associations.values()
            if a.state in _OPEN_STATES
            and (serial_number is None or a.serial_number == serial_number)
            and (user_id is None or a.user_id == user_id)
        )

    async def create_association(
        self,
        *,
        serial_number: str,
        user_id: str,
        factory_id: int,
        actor: str,
        timestamp: datetime,
        harman_id: str | None = None,
        device_type: str | None = None,
        software_version: str | None = None,
    ) -> Association:
        async with self._lock:
            association = Association(
                id=self._next_id,
                state=AssociationState.ASSOCIATION_INITIATED,
                serial_number=serial_number,
                user_id=user_id,
                harman_id=harman_id,
                factory_id=factory_id,
                device_type=device_type,
                software_version=software_version,
                modified_by=actor,
                modified_on=timestamp,
            )
            self._associations[association.id] = association
            self._next_id += 1
            return association
