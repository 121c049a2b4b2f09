"""Passives - unit-attached behaviors with an attach/detach lifecycle.

A passive is any object with a ``priority`` and the two lifecycle hooks::

    on_attach(owner, session) -> SubscriptionGroup
    on_detach(owner) -> None

Everything subscribed in ``on_attach`` goes into the returned group; the
manager releases the group on detach, so a passive cannot leak listeners.
Passive priorities: 0 death prevention, 100 normal, 200+ late.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .events import DamagedEvent, DyingEvent, EventKind, HitEvent, SubscriptionGroup
from .modifiers import DamageModifier, ModifierPipeline, ceil_scale
from .status import Bleed, Poison
from .types import DamageContext, Unit

if TYPE_CHECKING:
    from .session import CombatSession

logger = logging.getLogger(__name__)


@runtime_checkable
class Passive(Protocol):
    """Capability interface implemented by every passive."""

    priority: int

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup: ...

    def on_detach(self, owner: Unit) -> None: ...


def subscribe_all(
    owner: Unit,
    handlers: dict[EventKind, Callable[[Any], None]],
    priority: int,
) -> SubscriptionGroup:
    """Subscribe several handlers on the owner's hub and return them as one group."""
    group = SubscriptionGroup()
    for kind, handler in handlers.items():
        group.add(owner.events.subscribe(kind, handler, priority=priority))
    return group


class PassiveManager:
    """Attaches and detaches passives for one combat session.

    Attach order is priority then insertion order; a passive is attached
    exactly once and detached exactly once. Passives that are also damage
    modifiers are registered into the session pipeline while attached.
    """

    def __init__(self, session: "CombatSession", pipeline: ModifierPipeline) -> None:
        self.session = session
        self.pipeline = pipeline
        self._attached: dict[int, tuple[Unit, Any, SubscriptionGroup]] = {}

    def is_attached(self, passive: Any) -> bool:
        return id(passive) in self._attached

    def attach(self, unit: Unit, passive: Any) -> SubscriptionGroup:
        """Attach one passive to a unit and return its subscription group."""
        if unit is None or passive is None:
            raise ValueError("attach requires a unit and a passive")
        if not isinstance(passive, Passive):
            raise TypeError(f"{type(passive).__name__} does not implement the passive lifecycle")
        if self.is_attached(passive):
            owner = self._attached[id(passive)][0]
            raise ValueError(f"{type(passive).__name__} is already attached to {owner.name}")

        group = passive.on_attach(unit, self.session)
        if group is None:
            group = SubscriptionGroup()
        if isinstance(passive, DamageModifier):
            self.pipeline.register(passive)

        self._attached[id(passive)] = (unit, passive, group)
        self._insert_ordered(unit, passive)
        logger.debug("Attached %s to %s", type(passive).__name__, unit.name)
        return group

    def attach_all(self, unit: Unit, passives: list[Any]) -> None:
        """Attach a batch of passives, lowest priority first."""
        for passive in sorted(passives, key=lambda p: p.priority):
            self.attach(unit, passive)

    def detach(self, unit: Unit, passive: Any) -> None:
        """Detach a passive, releasing every subscription it made."""
        entry = self._attached.get(id(passive))
        if entry is None or entry[0] is not unit:
            raise ValueError(f"{type(passive).__name__} is not attached to {unit.name}")

        _, _, group = entry
        passive.on_detach(unit)
        group.unsubscribe()
        if isinstance(passive, DamageModifier):
            self.pipeline.unregister(passive)

        del self._attached[id(passive)]
        unit.passives[:] = [p for p in unit.passives if p is not passive]
        logger.debug("Detached %s from %s", type(passive).__name__, unit.name)

    def detach_all(self, unit: Unit | None = None) -> None:
        """Detach every passive (of one unit, or of every unit) in attach order: priority, then insertion."""
        entries = [entry for entry in self._attached.values() if unit is None or entry[0] is unit]
        for owner, passive, _ in sorted(entries, key=lambda e: e[1].priority):
            self.detach(owner, passive)

    @staticmethod
    def _insert_ordered(unit: Unit, passive: Any) -> None:
        if any(existing is passive for existing in unit.passives):
            return
        index = len(unit.passives)
        for i, existing in enumerate(unit.passives):
            if getattr(existing, "priority", 100) > passive.priority:
                index = i
                break
        unit.passives.insert(index, passive)


# ----------------------------------------------------------------------
# Passive variants
# ----------------------------------------------------------------------


class DeathShield:
    """The first time the owner would die, cancel the death and revive at a percent of max HP.

    Single use: once triggered, later dying events pass through untouched.
    """

    priority = 0

    def __init__(self, revive_percent: float = 0.5) -> None:
        self.revive_percent = revive_percent
        self.triggered = False

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        return subscribe_all(owner, {EventKind.DYING: self._on_dying}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        pass

    def _on_dying(self, event: DyingEvent) -> None:
        # Respect a cancellation made by an earlier handler
        if self.triggered or event.cancelled:
            return

        self.triggered = True
        event.cancelled = True
        event.revive_hp = max(1, ceil_scale(event.unit.stats.max_hp, self.revive_percent))
        logger.info("Death shield consumed by %s (revive at %d)", event.unit.name, event.revive_hp)


class Lifesteal:
    """Heals the owner for a percent of every hit it lands."""

    priority = 100

    def __init__(self, percent: float) -> None:
        self.percent = percent
        self._session: "CombatSession | None" = None
        self._owner: Unit | None = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        self._owner = owner
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None
        self._owner = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None or self._owner is None or event.damage <= 0:
            return
        self._session.heal(self._owner, ceil_scale(event.damage, self.percent))


class Thorns:
    """Reflects half the owner's armor as direct damage to any unit that damages it."""

    priority = 100

    def __init__(self) -> None:
        self._session: "CombatSession | None" = None
        self._reflecting = False

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        return subscribe_all(owner, {EventKind.DAMAGED: self._on_damaged}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None

    def _on_damaged(self, event: DamagedEvent) -> None:
        attacker = event.source
        # Status ticks have no attacker
        if attacker is None or attacker is event.unit or self._session is None:
            return
        if self._reflecting:
            return

        thorns_damage = event.unit.stats.armor // 2
        if thorns_damage <= 0:
            return

        self._reflecting = True
        try:
            self._session.resolver.apply_direct_damage(event.unit, attacker, thorns_damage)
        finally:
            self._reflecting = False


class DoubleStrike:
    """Chance on hit to queue a follow-up strike against the same target.

    The follow-up is resolved after the triggering attack completes and can
    never itself queue another strike.
    """

    priority = 210

    def __init__(self, trigger_chance: float, damage_multiplier: float = 1.0) -> None:
        self.trigger_chance = min(max(trigger_chance, 0.0), 1.0)
        self.damage_multiplier = damage_multiplier
        self._session: "CombatSession | None" = None
        self._owner: Unit | None = None
        self._rng: random.Random | None = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        self._owner = owner
        self._rng = session.rng
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None
        self._owner = None
        self._rng = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None or self._owner is None or self._rng is None:
            return
        resolver = self._session.resolver
        if event.is_extra or resolver.extra_attacks_suspended:
            return
        if event.target.is_dead:
            return

        roll = self._rng.random()
        if roll >= self.trigger_chance:
            return

        base_damage = ceil_scale(self._owner.stats.attack_power, self.damage_multiplier)
        logger.debug("Double strike by %s (roll=%.3f)", self._owner.name, roll)
        resolver.queue_extra_attack(self._owner, event.target, base_damage, reason="double_strike")


class PoisonOnHit:
    """Applies Poison to every unit the owner hits."""

    priority = 100

    def __init__(self, stacks: int = 2, duration: int = 3, base_damage: int = 2) -> None:
        self.stacks = stacks
        self.duration = duration
        self.base_damage = base_damage
        self._session: "CombatSession | None" = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None:
            return
        self._session.apply_status(
            event.target,
            Poison(stacks=self.stacks, duration=self.duration, base_damage=self.base_damage),
        )


class BleedOnHit:
    """Applies Bleed to every unit the owner hits."""

    priority = 100

    def __init__(self, stacks: int = 2, duration: int = 3, base_damage: int = 2) -> None:
        self.stacks = stacks
        self.duration = duration
        self.base_damage = base_damage
        self._session: "CombatSession | None" = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None:
            return
        self._session.apply_status(
            event.target,
            Bleed(stacks=self.stacks, duration=self.duration, base_damage=self.base_damage),
        )


class PoisonAmplifier:
    """When the owner hits an already poisoned unit, adds bonus Poison.

    Runs after ``PoisonOnHit`` so poison applied by the same hit counts.
    """

    priority = 110

    def __init__(self, bonus_stacks: int = 2, bonus_duration: int = 3, bonus_base_damage: int = 2) -> None:
        self.bonus_stacks = bonus_stacks
        self.bonus_duration = bonus_duration
        self.bonus_base_damage = bonus_base_damage
        self._session: "CombatSession | None" = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None or not event.target.has_status(Poison.id):
            return
        self._session.apply_status(
            event.target,
            Poison(stacks=self.bonus_stacks, duration=self.bonus_duration, base_damage=self.bonus_base_damage),
        )


class PhantomStrike:
    """Every N hits, deal an unblockable strike worth a percent of the triggering hit."""

    priority = 100

    def __init__(self, hits_per_trigger: int = 5, damage_percent: float = 0.5) -> None:
        if hits_per_trigger <= 0:
            raise ValueError(f"hits_per_trigger must be positive, got {hits_per_trigger}")
        self.hits_per_trigger = hits_per_trigger
        self.damage_percent = damage_percent
        self.hit_count = 0
        self._session: "CombatSession | None" = None
        self._owner: Unit | None = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self._session = session
        self._owner = owner
        return subscribe_all(owner, {EventKind.ON_HIT: self._on_hit}, self.priority)

    def on_detach(self, owner: Unit) -> None:
        self._session = None
        self._owner = None

    def _on_hit(self, event: HitEvent) -> None:
        if self._session is None or self._owner is None or event.target.is_dead:
            return

        self.hit_count += 1
        if self.hit_count < self.hits_per_trigger:
            return

        self.hit_count = 0
        phantom_damage = ceil_scale(event.damage, self.damage_percent)
        logger.debug("Phantom strike by %s for %d", self._owner.name, phantom_damage)
        self._session.resolver.apply_direct_damage(self._owner, event.target, phantom_damage)


class CritChance(DamageModifier):
    """Passive crit chance for the owner's hits (2x damage by default)."""

    priority = 210

    def __init__(self, crit_chance: float, crit_multiplier: float = 2.0) -> None:
        super().__init__(owner=None)
        self.crit_chance = min(max(crit_chance, 0.0), 1.0)
        self.crit_multiplier = crit_multiplier
        self._rng: random.Random | None = None

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self.owner = owner
        self._rng = session.rng
        return SubscriptionGroup()

    def on_detach(self, owner: Unit) -> None:
        self.owner = None
        self._rng = None

    def matches(self, context: DamageContext) -> bool:
        # Unattached: applies to nobody
        return self.owner is not None and context.source is self.owner

    def modify(self, context: DamageContext) -> None:
        if context.is_critical or self._rng is None:
            return
        if self._rng.random() < self.crit_chance:
            context.is_critical = True
            context.final_value = ceil_scale(context.final_value, self.crit_multiplier)


class Rage(DamageModifier):
    """Damage multiplier of 1 + the owner's missing HP fraction (up to +100%)."""

    priority = 200

    def __init__(self) -> None:
        super().__init__(owner=None)

    def on_attach(self, owner: Unit, session: "CombatSession") -> SubscriptionGroup:
        self.owner = owner
        return SubscriptionGroup()

    def on_detach(self, owner: Unit) -> None:
        self.owner = None

    def matches(self, context: DamageContext) -> bool:
        return self.owner is not None and context.source is self.owner

    def modify(self, context: DamageContext) -> None:
        if self.owner is None:
            return
        missing = max(0.0, 1.0 - self.owner.hp_fraction)
        context.final_value = ceil_scale(context.final_value, round(1.0 + missing, 6))
