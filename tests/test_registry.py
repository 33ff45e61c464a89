from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyassoc.config import AssocConfig
from pyassoc.exceptions import AssocConfigError, HandlerFailureError
from pyassoc.models.association import AssociationEvent, AssociationState
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure
from pyassoc.notify.registry import ObservableRegistry, build_default_registry
from pyassoc.persistence import InMemoryAssociationRepository
from pyassoc.sinks.auth import DeviceAuthClient
from pyassoc.sinks.device_message import DeviceMessageClient


def _event(new_state: AssociationState = AssociationState.DISASSOCIATED) -> AssociationEvent:
    prior = AssociationState.SUSPENDED if new_state == AssociationState.ASSOCIATED else AssociationState.ASSOCIATED
    return AssociationEvent(
        association_id=1,
        prior_state=prior,
        new_state=new_state,
        serial_number="SN-1",
        user_id="user-1",
        harman_id="HID-1",
        factory_id=11,
        committed_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


class _RecordingHandler:
    def __init__(
        self,
        name: str,
        calls: list[str],
        *,
        policy: FailurePolicy = FailurePolicy.FATAL,
        failure: HandlerFailure | None = None,
        error: Exception | None = None,
        applies: bool = True,
    ) -> None:
        self.name = name
        self.failure_policy = policy
        self._calls = calls
        self._failure = failure
        self._error = error
        self._applies = applies

    def applicable(self, _event: AssociationEvent) -> bool:
        return self._applies

    async def handle(self, _event: AssociationEvent) -> HandlerFailure | None:
        self._calls.append(self.name)
        if self._error is not None:
            raise self._error
        return self._failure


@pytest.mark.asyncio
async def test_dispatch_none_invokes_nothing() -> None:
    calls: list[str] = []
    registry = ObservableRegistry()
    registry.register(_RecordingHandler("a", calls), 1)

    report = await registry.dispatch(None)

    assert calls == []
    assert report.invoked == ()


def test_register_ignores_none_and_duplicates() -> None:
    calls: list[str] = []
    handler = _RecordingHandler("a", calls)
    registry = ObservableRegistry()
    registry.register(None, 1)
    registry.register(handler, 5)
    registry.register(handler, 1)

    assert registry.handlers == (handler,)


@pytest.mark.asyncio
async def test_handlers_run_in_priority_order_with_stable_ties() -> None:
    calls: list[str] = []
    registry = ObservableRegistry()
    registry.register(_RecordingHandler("stream", calls), 40)
    registry.register(_RecordingHandler("auth", calls), 10)
    registry.register(_RecordingHandler("tie-first", calls), 20)
    registry.register(_RecordingHandler("tie-second", calls), 20)

    report = await registry.dispatch(_event())

    assert calls == ["auth", "tie-first", "tie-second", "stream"]
    assert report.invoked == ("auth", "tie-first", "tie-second", "stream")
    assert report.clean


@pytest.mark.asyncio
async def test_inapplicable_handlers_are_skipped() -> None:
    calls: list[str] = []
    registry = ObservableRegistry()
    registry.register(_RecordingHandler("auth", calls, applies=False), 10)
    registry.register(_RecordingHandler("bus", calls), 30)

    report = await registry.dispatch(_event())

    assert calls == ["bus"]
    assert report.skipped == ("auth",)


@pytest.mark.asyncio
async def test_fatal_failure_stops_dispatch() -> None:
    calls: list[str] = []
    failure = HandlerFailure(FailureKind.PEER, "HTTP 500")
    registry = ObservableRegistry()
    registry.register(_RecordingHandler("auth", calls, failure=failure), 10)
    registry.register(_RecordingHandler("bus", calls, policy=FailurePolicy.ADVISORY), 30)
    registry.register(_RecordingHandler("stream", calls, policy=FailurePolicy.ADVISORY), 40)
    event = _event()

    with pytest.raises(HandlerFailureError) as exc_info:
        await registry.dispatch(event)

    assert calls == ["auth"]
    assert exc_info.value.handler_name == "auth"
    assert exc_info.value.failure is failure
    assert exc_info.value.event is event
    assert exc_info.value.http_status == 500


@pytest.mark.asyncio
async def test_advisory_failure_is_reported_and_dispatch_continues() -> None:
    calls: list[str] = []
    failure = HandlerFailure(FailureKind.TRANSPORT, "broker down")
    registry = ObservableRegistry()
    registry.register(_RecordingHandler("bus", calls, policy=FailurePolicy.ADVISORY, failure=failure), 30)
    registry.register(_RecordingHandler("stream", calls, policy=FailurePolicy.ADVISORY), 40)

    report = await registry.dispatch(_event())

    assert calls == ["bus", "stream"]
    assert report.advisory_failures == (("bus", failure),)
    assert not report.clean


@pytest.mark.asyncio
async def test_unexpected_exception_is_judged_by_policy() -> None:
    calls: list[str] = []
    registry = ObservableRegistry()
    registry.register(
        _RecordingHandler("bus", calls, policy=FailurePolicy.ADVISORY, error=RuntimeError("boom")),
        30,
    )
    registry.register(_RecordingHandler("config", calls, error=RuntimeError("bad")), 35)

    with pytest.raises(HandlerFailureError) as exc_info:
        await registry.dispatch(_event())

    assert calls == ["bus", "config"]
    assert isinstance(exc_info.value.failure.cause, RuntimeError)


def test_sealed_registry_rejects_registration() -> None:
    registry = ObservableRegistry()
    registry.seal()
    with pytest.raises(AssocConfigError):
        registry.register(_RecordingHandler("late", []), 1)


class _NoopTransport:
    async def post_json(self, _url: str, _body: object, *, headers: object = None) -> None:
        return None

    async def delete_json(self, _url: str, *, headers: object = None) -> None:
        return None


class _NoopEventPublisher:
    async def publish(self, _topic: str, _key: str, _value: str) -> None:
        return None


class _NoopStreamPublisher:
    def publish(self, _key: str, _value: str) -> None:
        return None


def test_default_registry_orders_the_four_handlers() -> None:
    config = AssocConfig(device_message_enabled=True)
    transport = _NoopTransport()
    registry = build_default_registry(
        config,
        repository=InMemoryAssociationRepository(),
        auth_client=DeviceAuthClient(config, transport),
        device_messages=DeviceMessageClient(config, transport),
        event_publisher=_NoopEventPublisher(),
        stream_publisher=_NoopStreamPublisher(),
    )

    assert [h.name for h in registry.handlers] == ["auth_deactivation", "config_push", "event_bus", "stream"]
    assert registry.sealed


def test_default_registry_omits_disabled_publishers() -> None:
    config = AssocConfig(stream_enabled=False)
    transport = _NoopTransport()
    registry = build_default_registry(
        config,
        repository=InMemoryAssociationRepository(),
        auth_client=DeviceAuthClient(config, transport),
        device_messages=DeviceMessageClient(config, transport),
        event_publisher=None,
        stream_publisher=_NoopStreamPublisher(),
    )

    assert [h.name for h in registry.handlers] == ["auth_deactivation", "config_push"]
