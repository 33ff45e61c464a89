"""Notification fanout for committed association transitions."""

from pyassoc.notify.registry import DispatchReport, ObservableRegistry, build_default_registry

__all__ = ["DispatchReport", "ObservableRegistry", "build_default_registry"]
