"""Helpers for safe debug logging.

Outbound requests carry user identifiers in headers and the config objects
carry broker credentials.  This module redacts those fields before they are
emitted in DEBUG logs.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passcode",
        "ssl_password",
        "token",
        "authorization",
        "cookie",
        # User-identifying request headers
        "hcp-user",
        "user-id",
    }
)

_MAX_DEPTH = 20


def is_sensitive(key: object) -> bool:
    return str(key).lower() in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Mappings, settings dataclasses and pydantic models are walked
    recursively; sensitive keys are replaced by ``<redacted>`` and long
    strings are truncated to *max_string* characters.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, BaseModel):
        value = value.model_dump()
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    def walk(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if isinstance(value, Mapping):
        return {str(k): REDACTED if is_sensitive(k) else walk(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [walk(item) for item in value]

    return repr(value)
