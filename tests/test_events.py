"""Tests for event hubs and subscription handles."""

import pytest

from arena_combat.engine import EventHub, EventKind, SubscriptionGroup
from arena_combat.engine.events import HealthChangedEvent


class TestEventHub:
    """Tests for ordered listener lists."""

    def test_priority_then_subscription_order(self):
        """Test that listeners run by priority, ties in subscription order."""
        hub = EventHub()
        calls: list[str] = []
        hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("late"), priority=200)
        hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("normal-1"))
        hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("first"), priority=0)
        hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("normal-2"))

        hub.emit(EventKind.ON_HIT, None)

        assert calls == ["first", "normal-1", "normal-2", "late"]

    def test_kinds_are_separate(self):
        """Test that listeners only receive their own kind."""
        hub = EventHub()
        calls: list[str] = []
        hub.subscribe(EventKind.DIED, lambda e: calls.append("died"))

        hub.emit(EventKind.DAMAGED, None)

        assert calls == []

    def test_unsubscribe(self):
        """Test that the handle removes exactly its listener, once."""
        hub = EventHub()
        calls: list[str] = []
        keep = hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("keep"))
        drop = hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("drop"))

        drop.unsubscribe()
        drop.unsubscribe()
        hub.emit(EventKind.ON_HIT, None)

        assert calls == ["keep"]
        assert keep.active is True
        assert drop.active is False
        assert hub.listener_count(EventKind.ON_HIT) == 1

    def test_unsubscribe_during_emit(self):
        """Test that a listener may unsubscribe while being notified."""
        hub = EventHub()
        calls: list[str] = []
        handles = []

        def once(event):
            calls.append("once")
            handles[0].unsubscribe()

        handles.append(hub.subscribe(EventKind.ON_HIT, once))
        hub.subscribe(EventKind.ON_HIT, lambda e: calls.append("always"))

        hub.emit(EventKind.ON_HIT, None)
        hub.emit(EventKind.ON_HIT, None)

        assert calls == ["once", "always", "always"]

    def test_group_unsubscribe(self):
        """Test that a group releases all of its subscriptions."""
        hub = EventHub()
        group = SubscriptionGroup()
        group.add(hub.subscribe(EventKind.ON_HIT, lambda e: None))
        group.add(hub.subscribe(EventKind.DYING, lambda e: None))

        group.unsubscribe()

        assert hub.listener_count() == 0

    def test_missing_handler_rejected(self):
        """Test that subscribing nothing is a contract violation."""
        with pytest.raises(ValueError):
            EventHub().subscribe(EventKind.ON_HIT, None)


class TestHealthChangedEvent:
    """Tests for health change payloads."""

    def test_percent(self):
        """Test HP percent computation."""
        event = HealthChangedEvent(unit=None, current_hp=55, max_hp=200)

        assert event.percent == 27.5
