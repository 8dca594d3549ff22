"""Tests for ExtensionEventRegistry — subscription specs and registration rules."""

from __future__ import annotations

from typing import Any

from rookery.core.event_dispatcher import EventDispatcher
from rookery.extensions.event_registry import ExtensionEventRegistry, SubscriberProvider


class AuditLog:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def get_subscriptions(self) -> dict[str, Any]:
        return {
            "user.created": "on_user_created",
            "user.deleted": ("on_user_deleted", 10),
            "order.paid": {"method": "on_order_paid", "priority": -5},
            "order.refunded": [("on_refund_first", 20), ("on_refund_second", 5)],
        }

    def on_user_created(self, event):
        self.calls.append("created")

    def on_user_deleted(self, event):
        self.calls.append("deleted")

    def on_order_paid(self, event):
        self.calls.append("paid")

    def on_refund_first(self, event):
        self.calls.append("refund-first")

    def on_refund_second(self, event):
        self.calls.append("refund-second")


class NoSubscriptions:
    def boot(self):
        return True


class Broken:
    def get_subscriptions(self):
        raise RuntimeError("cannot list subscriptions")


class ExplodingHandler:
    def get_subscriptions(self):
        return {"a.first": "on_first", "b.second": "broken", "c.third": "on_third"}

    def on_first(self, event):
        event.append("first")

    @property
    def broken(self):
        raise RuntimeError("handler lookup failed")

    def on_third(self, event):
        event.append("third")


class PartlyBroken:
    handled = False

    def get_subscriptions(self):
        return {
            "a": "missing_method",
            "b": "not_callable",
            "c": 12345,
            "d": {"priority": 3},
            "e": "handle",
        }

    not_callable = "just a string"

    def handle(self, event):
        PartlyBroken.handled = True


class TestSpecForms:
    def test_all_spec_forms_registered(self, event_registry, dispatcher):
        count = event_registry.register_extension(AuditLog())
        assert count == 5
        assert dispatcher.has_listeners("user.created")
        assert dispatcher.has_listeners("order.refunded")

    def test_priorities_recorded(self, event_registry, dispatcher):
        extension = AuditLog()
        event_registry.register_extension(extension)
        assert dispatcher.get_listener_priority("user.created", extension.on_user_created) == 0
        assert dispatcher.get_listener_priority("user.deleted", extension.on_user_deleted) == 10
        assert dispatcher.get_listener_priority("order.paid", extension.on_order_paid) == -5

    def test_list_of_pairs_ordered_by_priority(self, event_registry, dispatcher):
        extension = AuditLog()
        event_registry.register_extension(extension)
        dispatcher.dispatch("order.refunded", {})
        assert extension.calls == ["refund-first", "refund-second"]

    def test_handlers_bound_to_instance(self, event_registry, dispatcher):
        extension = AuditLog()
        event_registry.register_extension(extension)
        dispatcher.dispatch("user.created", {})
        assert extension.calls == ["created"]

    def test_subscriptions_recorded(self, event_registry):
        event_registry.register_extension(AuditLog())
        recorded = {(s.event_name, s.method, s.priority) for s in event_registry.subscriptions}
        assert ("user.deleted", "on_user_deleted", 10) in recorded
        assert all(s.owner == "AuditLog" for s in event_registry.subscriptions)


class TestRegistrationRules:
    def test_same_class_registers_once(self, event_registry):
        assert event_registry.register_extension(AuditLog()) == 5
        assert event_registry.register_extension(AuditLog()) == 0

    def test_non_provider_contributes_nothing(self, event_registry, dispatcher):
        assert event_registry.register_extension(NoSubscriptions()) == 0
        assert dispatcher.has_listeners() is False
        assert not isinstance(NoSubscriptions(), SubscriberProvider)

    def test_invalid_entries_skipped(self, event_registry, dispatcher, caplog):
        with caplog.at_level("WARNING", logger="rookery"):
            count = event_registry.register_extension(PartlyBroken())
        assert count == 1
        dispatcher.dispatch("e", {})
        assert PartlyBroken.handled is True
        assert "missing_method" in caplog.text
        assert "not_callable" in caplog.text

    def test_failing_event_does_not_stop_others(self, event_registry, dispatcher, caplog):
        with caplog.at_level("ERROR", logger="rookery"):
            count = event_registry.register_extension(ExplodingHandler())
        assert count == 2
        assert "b.second" in caplog.text
        assert event_registry.is_extension_registered(ExplodingHandler) is True
        assert dispatcher.dispatch("c.third", []) == ["third"]

    def test_partial_failure_never_duplicates_listeners(self, event_registry, dispatcher):
        event_registry.register_extension_subscribers([ExplodingHandler()])
        assert event_registry.register_extension_subscribers([ExplodingHandler()]) == 0
        assert len(dispatcher.get_listeners("a.first")) == 1
        assert dispatcher.dispatch("a.first", []) == ["first"]

    def test_host_and_extension_share_ordering(self, event_registry, dispatcher):
        calls: list[str] = []
        dispatcher.add_listener("user.deleted", lambda e: calls.append("host-high"), 50)
        dispatcher.add_listener("user.deleted", lambda e: calls.append("host-low"), 0)
        extension = AuditLog()
        extension.calls = calls
        event_registry.register_extension(extension)
        dispatcher.dispatch("user.deleted", {})
        assert calls == ["host-high", "deleted", "host-low"]


class TestBatchRegistration:
    def test_returns_total_count(self, event_registry):
        assert event_registry.register_extension_subscribers([AuditLog(), NoSubscriptions()]) == 5

    def test_failing_instance_does_not_stop_others(self, event_registry, caplog):
        with caplog.at_level("ERROR", logger="rookery"):
            total = event_registry.register_extension_subscribers([Broken(), AuditLog()])
        assert total == 5
        assert "Broken" in caplog.text
        assert event_registry.is_extension_registered(AuditLog) is True
        assert event_registry.is_extension_registered(Broken) is False

    def test_empty_iterable(self, event_registry):
        assert event_registry.register_extension_subscribers([]) == 0


class TestIntrospection:
    def test_registered_extensions(self, event_registry):
        event_registry.register_extension_subscribers([AuditLog(), NoSubscriptions()])
        assert event_registry.get_registered_extensions() == ["AuditLog"]

    def test_clear_registrations_allows_reregistration(self, event_registry, dispatcher):
        event_registry.register_extension(AuditLog())
        event_registry.clear_registrations()
        assert event_registry.get_registered_extensions() == []
        assert event_registry.subscriptions == []
        assert event_registry.register_extension(AuditLog()) == 5

    def test_separate_registries_are_independent(self):
        first = ExtensionEventRegistry(EventDispatcher())
        second = ExtensionEventRegistry(EventDispatcher())
        assert first.register_extension(AuditLog()) == 5
        assert second.register_extension(AuditLog()) == 5
