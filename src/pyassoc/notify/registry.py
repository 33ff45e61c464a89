"""Priority-ordered fanout of committed association events."""

from __future__ import annotations

import dataclasses
import logging

from pyassoc._constants import (
    PRIORITY_AUTH_DEACTIVATION,
    PRIORITY_CONFIG_PUSH,
    PRIORITY_EVENT_BUS,
    PRIORITY_STREAM,
)
from pyassoc.config import AssocConfig
from pyassoc.exceptions import AssocConfigError, HandlerFailureError
from pyassoc.models.association import AssociationEvent
from pyassoc.notify.handlers.auth import AuthDeactivationHandler
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure, NotificationHandler
from pyassoc.notify.handlers.config_push import ConfigPushHandler
from pyassoc.notify.handlers.event_bus import EventBusHandler
from pyassoc.notify.handlers.stream import StreamHandler
from pyassoc.persistence import AssociationRepository
from pyassoc.sinks.auth import DeviceAuthClient
from pyassoc.sinks.device_message import DeviceMessageClient
from pyassoc.sinks.kafka import EventPublisher
from pyassoc.sinks.stream import StreamPublisher
from pyassoc.sinks.vehicle_profile import VehicleProfileClient

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class _Entry:
    priority: int
    handler: NotificationHandler


@dataclasses.dataclass(frozen=True)
class DispatchReport:
    """What happened to one event during :meth:`ObservableRegistry.dispatch`."""

    invoked: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    advisory_failures: tuple[tuple[str, HandlerFailure], ...] = ()

    @property
    def clean(self) -> bool:
        return not self.advisory_failures


class ObservableRegistry:
    """Ordered set of notification handlers.

    Handlers run sequentially in ascending priority; equal priorities keep
    registration order.  The registry keeps no per-event state, so distinct
    events may be dispatched concurrently.
    """

    def __init__(self) -> None:
        self._entries: list[_Entry] = []
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def handlers(self) -> tuple[NotificationHandler, ...]:
        return tuple(entry.handler for entry in self._entries)

    def register(self, handler: NotificationHandler | None, priority: int) -> None:
        """Add *handler* at *priority*.

        ``None`` and an already registered handler (by identity) are ignored.
        """
        if self._sealed:
            raise AssocConfigError("handler registry is sealed")
        if handler is None:
            return
        if any(entry.handler is handler for entry in self._entries):
            _logger.debug("Handler %s already registered, ignoring", handler.name)
            return
        self._entries.append(_Entry(priority, handler))
        # list.sort is stable: equal priorities keep registration order.
        self._entries.sort(key=lambda entry: entry.priority)
        _logger.debug("Registered handler %s priority=%s", handler.name, priority)

    def seal(self) -> None:
        """Freeze the handler list; later :meth:`register` calls raise."""
        self._sealed = True

    async def dispatch(self, event: AssociationEvent | None) -> DispatchReport:
        """Run every applicable handler for *event* in priority order.

        Raises :class:`HandlerFailureError` at the first failure of a
        ``FATAL`` handler; later handlers are not invoked.
        """
        if event is None:
            return DispatchReport()

        invoked: list[str] = []
        skipped: list[str] = []
        advisory: list[tuple[str, HandlerFailure]] = []

        for entry in tuple(self._entries):
            handler = entry.handler
            if not handler.applicable(event):
                skipped.append(handler.name)
                continue
            invoked.append(handler.name)
            try:
                failure = await handler.handle(event)
            except Exception as exc:
                failure = HandlerFailure(FailureKind.TRANSPORT, f"unexpected {type(exc).__name__}: {exc}", exc)
            if failure is None:
                continue

            if handler.failure_policy == FailurePolicy.FATAL:
                _logger.error(
                    "Handler %s failed for association %s (%s): %s",
                    handler.name,
                    event.association_id,
                    event.new_state,
                    failure,
                    exc_info=failure.cause,
                )
                raise HandlerFailureError(
                    f"handler {handler.name} failed: {failure}",
                    handler_name=handler.name,
                    event=event,
                    failure=failure,
                )
            _logger.warning(
                "Handler %s reported a non-fatal failure for association %s: %s",
                handler.name,
                event.association_id,
                failure,
            )
            advisory.append((handler.name, failure))

        return DispatchReport(tuple(invoked), tuple(skipped), tuple(advisory))


def build_default_registry(
    config: AssocConfig,
    *,
    repository: AssociationRepository,
    auth_client: DeviceAuthClient,
    device_messages: DeviceMessageClient,
    event_publisher: EventPublisher | None = None,
    stream_publisher: StreamPublisher | None = None,
    vehicle_profiles: VehicleProfileClient | None = None,
) -> ObservableRegistry:
    """Register the four standard handlers and seal the registry.

    The event-bus and stream handlers are left out when their publisher is
    not supplied or disabled in *config*.
    """
    registry = ObservableRegistry()
    registry.register(AuthDeactivationHandler(auth_client), PRIORITY_AUTH_DEACTIVATION)
    registry.register(
        ConfigPushHandler(device_messages, enabled=config.device_message_enabled),
        PRIORITY_CONFIG_PUSH,
    )
    event_bus = None
    if event_publisher is not None and config.event_bus_enabled:
        event_bus = EventBusHandler(
            event_publisher,
            repository,
            config.kafka,
            vehicle_profiles=vehicle_profiles,
            vin_association_enabled=config.vin_association_enabled,
        )
    registry.register(event_bus, PRIORITY_EVENT_BUS)
    stream = None
    if stream_publisher is not None and config.stream_enabled:
        stream = StreamHandler(stream_publisher)
    registry.register(stream, PRIORITY_STREAM)
    registry.seal()
    return registry
