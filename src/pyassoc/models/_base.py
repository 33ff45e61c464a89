"""Base model for pyassoc payloads.

Every wire model inherits from :class:`AssocBaseModel` which provides
``alias_generator=to_camel`` so snake_case fields serialize to the
camelCase keys the downstream consumers expect, and accepts either form
on input.

:data:`AssocTimestamp` coerces epoch numbers (seconds **or**
milliseconds) and naive datetimes to tz-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds or milliseconds) or datetime to a UTC datetime.

    Returns ``None`` when the value is ``None``.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    ts = int(value)
    if ts >= _MS_THRESHOLD:
        return datetime.fromtimestamp(ts / 1000, tz=UTC)
    return datetime.fromtimestamp(ts, tz=UTC)


def to_epoch_ms(value: datetime) -> int:
    """Epoch milliseconds for a datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


AssocTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) to UTC datetimes."""


class AssocBaseModel(BaseModel):
    """Base for pyassoc wire and value models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
