"""Rookery core primitives — version constraints and the event dispatcher."""

from rookery.core.event_dispatcher import EventDispatcher
from rookery.core.version_constraint import parse_version, satisfies, satisfies_version

__all__ = ["EventDispatcher", "parse_version", "satisfies", "satisfies_version"]
