"""Event-bus notifications for association and disassociation."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from pyassoc._constants import (
    ASSET_ACTIVATION_EVENT_ID,
    FIRMWARE_VERSION_EVENT_ID,
    PLATFORM_GENERATED_VIN,
    VIN_EVENT_ID,
    VIN_TYPE_UNAVAILABLE,
)
from pyassoc.config import KafkaSettings
from pyassoc.exceptions import AssocError
from pyassoc.models._base import AssocBaseModel
from pyassoc.models.association import Association, AssociationEvent, AssociationState
from pyassoc.models.messages import (
    AssetActivationData,
    AssociationChangedData,
    DeviceInfoData,
    EventEnvelope,
    SoftwareVersionData,
    VinEventData,
)
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure
from pyassoc.persistence import AssociationRepository
from pyassoc.sinks.kafka import EventPublisher
from pyassoc.sinks.vehicle_profile import VehicleProfileClient

_logger = logging.getLogger(__name__)

_PayloadBuilder = Callable[[], AssocBaseModel]


class EventBusHandler:
    """Publishes association events to the event bus.

    On ``ASSOCIATED`` up to four messages go out: association changed,
    software version, VIN and asset activation.  A sub-message whose input
    is missing is skipped; a failed VIN lookup skips the VIN message and a
    failed country lookup sends asset activation without a country.  Lookup,
    serialization and send failures are logged, the remaining messages are
    still attempted, and the failures are summarised in one advisory
    :class:`HandlerFailure`.
    """

    name = "event_bus"
    failure_policy = FailurePolicy.ADVISORY

    def __init__(
        self,
        publisher: EventPublisher,
        repository: AssociationRepository,
        settings: KafkaSettings,
        *,
        vehicle_profiles: VehicleProfileClient | None = None,
        vin_association_enabled: bool = False,
    ) -> None:
        self._publisher = publisher
        self._repository = repository
        self._settings = settings
        self._vehicle_profiles = vehicle_profiles
        self._vin_association_enabled = vin_association_enabled

    def applicable(self, event: AssociationEvent) -> bool:
        return event.new_state in (AssociationState.ASSOCIATED, AssociationState.DISASSOCIATED)

    async def handle(self, event: AssociationEvent) -> HandlerFailure | None:
        failures: list[HandlerFailure] = []
        key = event.harman_id or ""

        async def send(topic: str, event_id: str, build: _PayloadBuilder) -> None:
            failure = await self._send(topic, key, event_id, event.committed_at_ms, build)
            if failure is not None:
                failures.append(failure)

        await send(
            self._settings.notification_topic,
            event.new_state.notification_event_name,
            lambda: AssociationChangedData(user_id=event.user_id, device_id=event.harman_id),
        )
        if event.new_state == AssociationState.ASSOCIATED:
            if event.software_version:
                version = event.software_version
                await send(
                    self._settings.event_topic,
                    FIRMWARE_VERSION_EVENT_ID,
                    lambda: SoftwareVersionData(value=version),
                )
            else:
                _logger.debug("No software version for association %s, skipping", event.association_id)

            vin = event.vehicle_id
            if not vin:
                try:
                    vin = await self._repository.find_associated_vin(event.serial_number)
                except Exception as exc:
                    _logger.error("VIN lookup failed for serial %s: %s", event.serial_number, exc)
                    failures.append(HandlerFailure(FailureKind.PEER, f"{VIN_EVENT_ID}: VIN lookup failed: {exc}", exc))
            if vin:
                vin_data = await self._vin_event_data(event, vin)
                await send(self._settings.vin_topic, VIN_EVENT_ID, lambda: vin_data)
            else:
                _logger.debug("No VIN associated with serial %s, skipping VIN event", event.serial_number)

            country = None
            if self._vin_association_enabled:
                try:
                    country = await self._repository.get_country_code(event.association_id)
                except Exception as exc:
                    _logger.error("Country lookup failed for association %s: %s", event.association_id, exc)
                    failures.append(
                        HandlerFailure(FailureKind.PEER, f"{ASSET_ACTIVATION_EVENT_ID}: country lookup failed: {exc}", exc)
                    )
            await send(
                self._settings.asset_activation_topic,
                ASSET_ACTIVATION_EVENT_ID,
                lambda: AssetActivationData(
                    harman_id=event.harman_id,
                    serial_number=event.serial_number,
                    user_id=event.user_id,
                    country=country,
                    device_type=event.device_type,
                ),
            )

        if not failures:
            return None
        return HandlerFailure(
            failures[0].kind,
            f"{len(failures)} event-bus message(s) not published: "
            + "; ".join(f.message for f in failures),
            failures[0].cause,
        )

    async def _vin_event_data(self, event: AssociationEvent, vin: str) -> VinEventData:
        model_name = None
        if self._vin_association_enabled and self._vehicle_profiles is not None:
            decoded = await self._vehicle_profiles.decode_vin(vin)
            if decoded is None:
                _logger.error("Unable to decode VIN for association %s", event.association_id)
            else:
                model_name = decoded.model_name
        return VinEventData(
            dummy=False,
            value=vin,
            type=VIN_TYPE_UNAVAILABLE,
            user_id=event.user_id,
            device_type=event.device_type,
            model_name=model_name,
        )

    async def _send(
        self,
        topic: str,
        key: str,
        event_id: str,
        timestamp: int,
        build: _PayloadBuilder,
    ) -> HandlerFailure | None:
        try:
            envelope = EventEnvelope(
                event_id=event_id,
                timestamp=timestamp,
                correlation_key=key,
                payload=build(),
            )
            message = envelope.to_json()
        except (ValidationError, ValueError, TypeError) as exc:
            _logger.error("Error converting %s event to JSON: %s", event_id, exc)
            return HandlerFailure(FailureKind.SERIALIZATION, f"{event_id}: {exc}", exc)
        try:
            await self._publisher.publish(topic, key, message)
        except AssocError as exc:
            _logger.error("Error sending %s event to topic %s: %s", event_id, topic, exc)
            return HandlerFailure(FailureKind.TRANSPORT, f"{event_id}: {exc}", exc)
        _logger.info("Published %s event to %s key=%s", event_id, topic, key)
        return None

    # ------------------------------------------------------------------
    # Ad-hoc triggers
    # ------------------------------------------------------------------

    async def send_reactivation_vin_event(self, association: Association, *, timestamp: int) -> None:
        """Publish a platform generated VIN event for a reactivated device.

        Unlike dispatch, failures propagate: the caller asked for this one
        message explicitly.
        """
        data = VinEventData(
            dummy=True,
            value=PLATFORM_GENERATED_VIN,
            type=VIN_TYPE_UNAVAILABLE,
            user_id=association.user_id,
            device_type=association.device_type,
        )
        envelope = EventEnvelope(
            event_id=VIN_EVENT_ID,
            timestamp=timestamp,
            correlation_key=association.harman_id or "",
            payload=data,
        )
        await self._publisher.publish(self._settings.vin_topic, envelope.correlation_key, envelope.to_json())
        _logger.info("Published reactivation VIN event for association %s", association.id)

    async def send_device_info_event(
        self,
        device_info: DeviceInfoData,
        *,
        topic: str,
        key: str,
        event_id: str,
        timestamp: int,
    ) -> None:
        """Publish *device_info* as an event on an arbitrary *topic*."""
        envelope = EventEnvelope(
            event_id=event_id,
            timestamp=timestamp,
            correlation_key=key,
            payload=device_info,
        )
        await self._publisher.publish(topic, key, envelope.to_json())
        _logger.info("Published device info event %s to %s key=%s", event_id, topic, key)
