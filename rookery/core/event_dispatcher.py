"""In-process event dispatcher with priority-ordered listeners.

Listeners registered with a higher priority run first.  Listeners with
equal priority run in registration order.  Core host handlers and
extension-supplied handlers share one ordering, so an extension can
choose to run before or after the host by picking its priority.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


@dataclass
class _RegisteredListener:
    """A listener plus the keys it is sorted by."""

    callback: Listener
    priority: int
    registration_order: int


class EventDispatcher:
    """Priority-ordered publish/subscribe for named events.

    Examples
    --------
    >>> calls = []
    >>> dispatcher = EventDispatcher()
    >>> dispatcher.add_listener("user.created", lambda e: calls.append("low"), -10)
    >>> dispatcher.add_listener("user.created", lambda e: calls.append("high"), 10)
    >>> dispatcher.dispatch("user.created", {})
    {}
    >>> calls
    ['high', 'low']
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_RegisteredListener]] = {}
        self._registration_counter = 0

    def add_listener(self, event_name: str, listener: Listener, priority: int = 0) -> None:
        """Register *listener* for *event_name* at *priority*."""
        entry = _RegisteredListener(
            callback=listener,
            priority=priority,
            registration_order=self._registration_counter,
        )
        self._registration_counter += 1
        self._listeners.setdefault(event_name, []).append(entry)

    def remove_listener(self, event_name: str, listener: Listener) -> bool:
        """Remove every registration of *listener* for *event_name*.

        Returns ``True`` if anything was removed.
        """
        entries = self._listeners.get(event_name, [])
        kept = [e for e in entries if e.callback != listener]
        if len(kept) == len(entries):
            return False
        if kept:
            self._listeners[event_name] = kept
        else:
            del self._listeners[event_name]
        return True

    def get_listeners(self, event_name: str) -> list[Listener]:
        """Return listeners for *event_name* in dispatch order."""
        entries = sorted(
            self._listeners.get(event_name, []),
            key=lambda e: (-e.priority, e.registration_order),
        )
        return [e.callback for e in entries]

    def get_listener_priority(self, event_name: str, listener: Listener) -> int | None:
        """Return the priority *listener* was registered with, if any."""
        for entry in self._listeners.get(event_name, []):
            if entry.callback == listener:
                return entry.priority
        return None

    def has_listeners(self, event_name: str | None = None) -> bool:
        """Whether any listener exists (for *event_name*, or at all)."""
        if event_name is None:
            return any(self._listeners.values())
        return bool(self._listeners.get(event_name))

    def dispatch(self, event_name: str, event: Any = None) -> Any:
        """Call each listener for *event_name* with *event*, highest priority first.

        Listener exceptions propagate to the caller.  Returns *event* so
        callers can chain on a mutable event object.
        """
        listeners = self.get_listeners(event_name)
        logger.debug("Dispatching %s to %d listener(s).", event_name, len(listeners))
        for listener in listeners:
            listener(event)
        return event
