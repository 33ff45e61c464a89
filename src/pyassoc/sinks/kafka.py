"""Event-bus publisher backed by an aiokafka producer."""

from __future__ import annotations

import logging
from typing import Protocol

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from aiokafka.helpers import create_ssl_context

from pyassoc._redact import redact_for_log
from pyassoc.config import KafkaSettings
from pyassoc.exceptions import AssocError, AssocTransportError

_logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    """Structural interface used by the event-bus handler."""

    async def publish(self, topic: str, key: str, value: str) -> None: ...


class KafkaEventPublisher:
    """Long-lived Kafka producer shared by every dispatch.

    Delivery guarantees (acks, retries, buffering) are the producer's;
    :meth:`publish` only enqueues the record and maps producer errors to
    :class:`AssocTransportError`.
    """

    def __init__(self, settings: KafkaSettings) -> None:
        self._settings = settings
        self._producer: AIOKafkaProducer | None = None

    @property
    def is_running(self) -> bool:
        return self._producer is not None

    def _producer_kwargs(self) -> dict[str, object]:
        s = self._settings
        kwargs: dict[str, object] = {
            "bootstrap_servers": s.bootstrap_servers,
            "acks": s.acks,
            "linger_ms": s.linger_ms,
            "request_timeout_ms": s.request_timeout_ms,
            "retry_backoff_ms": s.retry_backoff_ms,
            "metadata_max_age_ms": s.metadata_max_age_ms,
        }
        if s.ssl_enabled:
            kwargs["security_protocol"] = "SSL"
            kwargs["ssl_context"] = create_ssl_context(
                cafile=s.ssl_cafile,
                certfile=s.ssl_certfile,
                keyfile=s.ssl_keyfile,
                password=s.ssl_password,
            )
        return kwargs

    async def start(self) -> None:
        if self._producer is not None:
            return
        _logger.debug("Kafka producer settings: %s", redact_for_log(self._settings))
        producer = AIOKafkaProducer(**self._producer_kwargs())
        try:
            await producer.start()
        except KafkaError as exc:
            await producer.stop()
            raise AssocTransportError(
                f"Kafka producer failed to start: {exc}",
                endpoint=self._settings.bootstrap_servers,
            ) from exc
        self._producer = producer
        _logger.info("Kafka producer started bootstrap=%s", self._settings.bootstrap_servers)

    async def stop(self) -> None:
        producer = self._producer
        self._producer = None
        if producer is not None:
            await producer.stop()
            _logger.info("Kafka producer stopped")

    async def publish(self, topic: str, key: str, value: str) -> None:
        producer = self._producer
        if producer is None:
            raise AssocError("Kafka producer not started")
        try:
            await producer.send(topic, value=value.encode("utf-8"), key=key.encode("utf-8"))
        except KafkaError as exc:
            raise AssocTransportError(f"Kafka send to {topic} failed: {exc}", endpoint=topic) from exc
