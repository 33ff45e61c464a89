"""Notification handlers fanned out by :class:`~pyassoc.notify.registry.ObservableRegistry`."""

from pyassoc.notify.handlers.auth import AuthDeactivationHandler
from pyassoc.notify.handlers.base import FailureKind, FailurePolicy, HandlerFailure, NotificationHandler
from pyassoc.notify.handlers.config_push import ConfigPushHandler
from pyassoc.notify.handlers.event_bus import EventBusHandler
from pyassoc.notify.handlers.stream import StreamHandler

__all__ = [
    "AuthDeactivationHandler",
    "ConfigPushHandler",
    "EventBusHandler",
    "FailureKind",
    "FailurePolicy",
    "HandlerFailure",
    "NotificationHandler",
    "StreamHandler",
]
