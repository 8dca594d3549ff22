"""Event subscriber registry — wires extension handlers into the dispatcher.

An extension instance takes part in event dispatch by implementing
``get_subscriptions()``, returning a map of event name to handler spec.
Accepted spec forms::

    "on_saved"                                   # priority 0
    ("on_saved", 10)                             # method, priority
    {"method": "on_saved", "priority": 10}
    [("on_saved", 10), ("audit_saved", -5)]      # several handlers

Each handler is registered as the bound method on the instance.  A class
is registered at most once per registry, so a second instance of an
already-registered class contributes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from rookery.core.event_dispatcher import EventDispatcher
from rookery.models.events import EventSubscription

logger = logging.getLogger(__name__)


@runtime_checkable
class SubscriberProvider(Protocol):
    """Capability implemented by extensions that subscribe to events."""

    def get_subscriptions(self) -> dict[str, Any]:
        ...


def _is_priority(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_spec(spec: Any) -> list[tuple[str, int]] | None:
    """Normalise one handler spec into ``(method, priority)`` pairs.

    Returns ``None`` if *spec* (or any element of a list spec) is malformed.
    """
    if isinstance(spec, str):
        return [(spec, 0)]

    if isinstance(spec, dict):
        method = spec.get("method")
        priority = spec.get("priority", 0)
        if isinstance(method, str) and _is_priority(priority):
            return [(method, priority)]
        return None

    if isinstance(spec, (list, tuple)):
        if len(spec) == 2 and isinstance(spec[0], str) and _is_priority(spec[1]):
            return [(spec[0], spec[1])]
        pairs: list[tuple[str, int]] = []
        for item in spec:
            parsed = _parse_spec(item)
            if parsed is None:
                return None
            pairs.extend(parsed)
        return pairs or None

    return None


class ExtensionEventRegistry:
    """Registers extension subscriber methods on an ``EventDispatcher``.

    Parameters
    ----------
    dispatcher:
        The host's dispatcher.  Extension handlers share its ordering with
        host handlers.
    """

    def __init__(self, dispatcher: EventDispatcher) -> None:
        self._dispatcher = dispatcher
        self._registered: set[type] = set()
        self._subscriptions: list[EventSubscription] = []

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def subscriptions(self) -> list[EventSubscription]:
        """Every subscription registered so far, in registration order."""
        return list(self._subscriptions)

    def register_extension_subscribers(self, extensions: Iterable[Any]) -> int:
        """Register every instance in *extensions*; return the listener count.

        A failure while registering one instance is logged and the
        remaining instances are still processed.
        """
        total = 0
        for extension in extensions:
            try:
                total += self.register_extension(extension)
            except Exception:
                logger.exception(
                    "Failed to register event subscribers for %s.",
                    type(extension).__qualname__,
                )

        if total:
            logger.info("Registered %d extension event listener(s).", total)
        return total

    def register_extension(self, extension: Any) -> int:
        """Register the subscriber methods of one instance.

        Returns the number of listeners added.  Instances whose class is
        already registered, and objects without ``get_subscriptions``,
        add nothing.
        """
        cls = type(extension)
        if cls in self._registered:
            return 0
        if not isinstance(extension, SubscriberProvider):
            return 0

        owner = cls.__qualname__
        count = 0
        # The class is marked registered even when some events fail.
        for event_name, spec in extension.get_subscriptions().items():
            try:
                count += self._register_event(extension, owner, event_name, spec)
            except Exception:
                logger.exception(
                    "Failed to register subscribers for event '%s' in %s.",
                    event_name, owner,
                )

        self._registered.add(cls)
        return count

    def _register_event(self, extension: Any, owner: str, event_name: str, spec: Any) -> int:
        pairs = _parse_spec(spec)
        if pairs is None:
            logger.warning(
                "Malformed subscription for event '%s' in %s: %r",
                event_name, owner, spec,
            )
            return 0

        count = 0
        for method_name, priority in pairs:
            handler = getattr(extension, method_name, None)
            if not callable(handler):
                logger.warning(
                    "Event handler method '%s' not found or not callable in %s.",
                    method_name, owner,
                )
                continue

            subscription = EventSubscription(
                event_name=event_name,
                owner=owner,
                method=method_name,
                priority=priority,
            )
            self._dispatcher.add_listener(event_name, handler, priority)
            self._subscriptions.append(subscription)
            count += 1
            logger.debug(
                "Registered %s.%s for '%s' (priority %d).",
                owner, method_name, event_name, priority,
            )
        return count

    # -- Introspection ------------------------------------------------------

    def get_registered_extensions(self) -> list[str]:
        """Qualified names of the classes registered so far, sorted."""
        return sorted(cls.__qualname__ for cls in self._registered)

    def is_extension_registered(self, extension_class: type) -> bool:
        return extension_class in self._registered

    def clear_registrations(self) -> None:
        """Forget registered classes so they may be registered again.

        Listeners already added to the dispatcher are left in place.
        """
        self._registered.clear()
        self._subscriptions.clear()
