"""Composition root wiring peers, publishers, registry and state machine."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pyassoc._transport import HttpTransport, RestTransport
from pyassoc.config import AssocConfig
from pyassoc.exceptions import AssocError
from pyassoc.lifecycle.machine import AssociationStateMachine, TransitionResult
from pyassoc.models.requests import ChangeStateRequest, ReplaceDeviceRequest, TransitionRequest
from pyassoc.notify.registry import ObservableRegistry, build_default_registry
from pyassoc.persistence import AssociationRepository
from pyassoc.sinks.auth import DeviceAuthClient
from pyassoc.sinks.device_message import DeviceMessageClient
from pyassoc.sinks.kafka import EventPublisher, KafkaEventPublisher
from pyassoc.sinks.stream import MqttStreamPublisher, StreamPublisher
from pyassoc.sinks.vehicle_profile import VehicleProfileClient

_logger = logging.getLogger(__name__)

RequestLike = TransitionRequest | Mapping[str, Any]


class AssociationService:
    """Async entry point for association lifecycle operations.

    Usage::

        async with AssociationService(AssocConfig.from_env(), repository=repo) as service:
            result = await service.disassociate({"associationId": 42, "userId": "u1"})

    Publishers and the REST transport may be injected; injected publishers
    are neither started nor stopped by the service.
    """

    def __init__(
        self,
        config: AssocConfig,
        *,
        repository: AssociationRepository,
        http_session: aiohttp.ClientSession | None = None,
        transport: RestTransport | None = None,
        event_publisher: EventPublisher | None = None,
        stream_publisher: StreamPublisher | None = None,
    ) -> None:
        self._config = config
        self._repository = repository
        self._external_session = http_session is not None
        self._http_session = http_session
        self._transport = transport
        self._event_publisher = event_publisher
        self._stream_publisher = stream_publisher
        self._owned_kafka: KafkaEventPublisher | None = None
        self._owned_stream: MqttStreamPublisher | None = None
        self._registry: ObservableRegistry | None = None
        self._machine: AssociationStateMachine | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AssociationService:
        try:
            await self._start()
        except BaseException:
            await self._stop()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._stop()

    async def _start(self) -> None:
        config = self._config
        transport = self._transport
        if transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = HttpTransport(self._http_session, timeout=config.http_timeout)

        event_publisher = self._event_publisher
        if event_publisher is None and config.event_bus_enabled:
            self._owned_kafka = KafkaEventPublisher(config.kafka)
            await self._owned_kafka.start()
            event_publisher = self._owned_kafka

        stream_publisher = self._stream_publisher
        if stream_publisher is None and config.stream_enabled:
            runtime = MqttStreamPublisher(config.stream, logger=_logger)
            try:
                runtime.start()
            except AssocError:
                _logger.warning("MQTT stream startup failed", exc_info=True)
            self._owned_stream = runtime
            stream_publisher = runtime

        vehicle_profiles = VehicleProfileClient(config, transport)
        self._registry = build_default_registry(
            config,
            repository=self._repository,
            auth_client=DeviceAuthClient(config, transport),
            device_messages=DeviceMessageClient(config, transport),
            event_publisher=event_publisher,
            stream_publisher=stream_publisher,
            vehicle_profiles=vehicle_profiles,
        )
        self._machine = AssociationStateMachine(
            self._repository,
            self._registry,
            vehicle_profiles=vehicle_profiles,
        )
        _logger.debug("Association service started handlers=%s", [h.name for h in self._registry.handlers])

    async def _stop(self) -> None:
        self._machine = None
        self._registry = None
        stream = self._owned_stream
        self._owned_stream = None
        if stream is not None:
            stream.stop()
        kafka = self._owned_kafka
        self._owned_kafka = None
        if kafka is not None:
            await kafka.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def registry(self) -> ObservableRegistry:
        if self._registry is None:
            raise AssocError("AssociationService is not started; use 'async with'")
        return self._registry

    @property
    def machine(self) -> AssociationStateMachine:
        if self._machine is None:
            raise AssocError("AssociationService is not started; use 'async with'")
        return self._machine

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def associate(self, request: RequestLike) -> TransitionResult:
        return await self.machine.associate(request)

    async def disassociate(self, request: RequestLike) -> TransitionResult:
        return await self.machine.disassociate(request)

    async def suspend(self, request: RequestLike) -> TransitionResult:
        return await self.machine.suspend(request)

    async def restore(self, request: RequestLike) -> TransitionResult:
        return await self.machine.restore(request)

    async def terminate(self, request: RequestLike) -> TransitionResult:
        return await self.machine.terminate(request)

    async def replace_device(self, request: ReplaceDeviceRequest | Mapping[str, Any]) -> TransitionResult:
        return await self.machine.replace_device(request)

    async def change_state(self, request: ChangeStateRequest | Mapping[str, Any]) -> TransitionResult:
        return await self.machine.change_state(request)
