"""Unit and session events - ordered listener lists with explicit unsubscribe handles."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .status import StatusEffect
    from .types import Unit


class EventKind(str, Enum):
    """Kinds of events raised during combat resolution."""

    # Attack lifecycle (raised on the attacker)
    BEFORE_ATTACK = "before_attack"
    ON_HIT = "on_hit"
    AFTER_ATTACK = "after_attack"

    # HP lifecycle (raised on the unit whose HP changed)
    DAMAGED = "damaged"
    DYING = "dying"  # Cancellable, raised before death is finalized
    DIED = "died"
    HEALTH_CHANGED = "health_changed"
    HEALED = "healed"
    REVIVED = "revived"

    # Status effects (raised on the afflicted unit)
    STATUS_APPLIED = "status_applied"
    STATUS_EXPIRED = "status_expired"


@dataclass
class AttackEvent:
    """Raised before and after an attack resolves."""

    source: "Unit"
    target: "Unit"


@dataclass
class HitEvent:
    """Raised on the attacker after one hit landed."""

    source: "Unit"
    target: "Unit"
    damage: int
    is_critical: bool = False
    is_extra: bool = False  # True for queued follow-up strikes


@dataclass
class DamagedEvent:
    """Raised on a unit after it lost HP."""

    unit: "Unit"
    source: "Unit | None"
    amount: int


@dataclass
class DyingEvent:
    """Cancellable notification fired before a unit's death is finalized.

    A handler may set ``cancelled`` and ``revive_hp`` to prevent the death.
    Handlers must leave an existing cancellation untouched.
    """

    unit: "Unit"
    source: "Unit | None"
    cancelled: bool = False
    revive_hp: int = 0


@dataclass
class DiedEvent:
    """Raised once when a unit's death is finalized."""

    unit: "Unit"
    killer: "Unit | None"


@dataclass
class HealthChangedEvent:
    """Raised whenever a unit's current HP changes."""

    unit: "Unit"
    current_hp: int
    max_hp: int

    @property
    def percent(self) -> float:
        """Current HP as a percent of max HP (0-100)."""
        if self.max_hp <= 0:
            return 0.0
        return self.current_hp * 100 / self.max_hp


@dataclass
class HealedEvent:
    """Raised after a unit regained HP."""

    unit: "Unit"
    amount: int


@dataclass
class StatusEvent:
    """Raised when a status effect is applied to or expires on a unit."""

    unit: "Unit"
    effect: "StatusEffect"


Handler = Callable[[Any], None]


@dataclass
class _Listener:
    priority: int
    handler: Handler


class Subscription:
    """Handle returned by ``EventHub.subscribe``; call ``unsubscribe`` to remove the listener."""

    def __init__(self, hub: "EventHub", kind: EventKind, listener: _Listener) -> None:
        self._hub = hub
        self._kind = kind
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Remove the listener. Calling twice is a no-op."""
        if not self._active:
            return
        self._hub._remove(self._kind, self._listener)
        self._active = False


@dataclass
class SubscriptionGroup:
    """A set of subscriptions released together."""

    subscriptions: list[Subscription] = field(default_factory=list)

    def add(self, subscription: Subscription) -> Subscription:
        self.subscriptions.append(subscription)
        return subscription

    def unsubscribe(self) -> None:
        for subscription in self.subscriptions:
            subscription.unsubscribe()
        self.subscriptions.clear()


class EventHub:
    """Ordered listener lists, one per event kind.

    Listeners run by ascending priority; equal priorities run in subscription order.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventKind, list[_Listener]] = {}

    def subscribe(self, kind: EventKind, handler: Handler, priority: int = 100) -> Subscription:
        """Add a listener and return its unsubscribe handle."""
        if handler is None:
            raise ValueError("handler is required")
        listeners = self._listeners.setdefault(kind, [])
        listener = _Listener(priority=priority, handler=handler)
        index = bisect_right([entry.priority for entry in listeners], priority)
        listeners.insert(index, listener)
        return Subscription(self, kind, listener)

    def emit(self, kind: EventKind, event: Any) -> None:
        """Notify every listener of ``kind``, in order."""
        # Snapshot so handlers may subscribe/unsubscribe while being notified
        for listener in list(self._listeners.get(kind, ())):
            listener.handler(event)

    def listener_count(self, kind: EventKind | None = None) -> int:
        """Number of listeners for one kind, or for all kinds."""
        if kind is not None:
            return len(self._listeners.get(kind, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def clear(self) -> None:
        self._listeners.clear()

    def _remove(self, kind: EventKind, listener: _Listener) -> None:
        listeners = self._listeners.get(kind)
        if not listeners:
            return
        for index, entry in enumerate(listeners):
            if entry is listener:
                del listeners[index]
                break
