"""Status effect engine - damage-over-time effects ticked at turn start."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .events import EventKind, StatusEvent
from .types import Unit

if TYPE_CHECKING:
    from .logging import CombatLogger
    from .resolver import AttackResolver

logger = logging.getLogger(__name__)


@dataclass
class StatusEffect(ABC):
    """Base for ongoing effects.

    An effect with ``duration <= 0`` after a tick is removed at the end of that tick.
    """

    id: ClassVar[str] = ""

    stacks: int
    duration: int
    base_damage: int = 0

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError(f"{type(self).__name__} duration must be positive, got {self.duration}")
        if self.stacks < 0:
            raise ValueError(f"{type(self).__name__} stacks must be non-negative, got {self.stacks}")

    @abstractmethod
    def tick_damage(self) -> int:
        """Damage dealt by the next tick."""

    @abstractmethod
    def merge(self, incoming: "StatusEffect") -> None:
        """Fold a re-application of the same effect into this instance."""

    @property
    def expired(self) -> bool:
        return self.duration <= 0


@dataclass
class StackingEffect(StatusEffect):
    """Effect whose tick damage equals its stack count.

    Re-application adds stacks and adopts the newest duration/base damage.
    """

    def tick_damage(self) -> int:
        return self.stacks

    def merge(self, incoming: StatusEffect) -> None:
        self.stacks += incoming.stacks
        self.duration = incoming.duration
        self.base_damage = incoming.base_damage


@dataclass
class Poison(StackingEffect):
    id: ClassVar[str] = "Poison"


@dataclass
class Bleed(StackingEffect):
    id: ClassVar[str] = "Bleed"


@dataclass
class Burn(StatusEffect):
    """Non-stacking burn: re-application refreshes duration and keeps the higher damage."""

    id: ClassVar[str] = "Burn"

    stacks: int = 1
    duration: int = 3
    base_damage: int = 0
    base_duration: int = field(init=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.base_duration = self.duration

    @classmethod
    def create(cls, damage: int, duration: int) -> "Burn":
        return cls(stacks=1, duration=duration, base_damage=damage)

    def tick_damage(self) -> int:
        return self.base_damage

    def merge(self, incoming: StatusEffect) -> None:
        if incoming.base_damage > self.base_damage:
            logger.debug("Burn refreshed with higher damage: %d -> %d", self.base_damage, incoming.base_damage)
            self.base_damage = incoming.base_damage
        self.duration = self.base_duration


STATUS_EFFECT_TYPES: dict[str, type[StatusEffect]] = {
    Poison.id: Poison,
    Bleed.id: Bleed,
    Burn.id: Burn,
}


@dataclass
class TickResult:
    """Result of ticking one unit's effects at turn start."""

    damage_by_effect: dict[str, int] = field(default_factory=dict)
    expired: list[str] = field(default_factory=list)

    @property
    def total_damage(self) -> int:
        return sum(self.damage_by_effect.values())


class StatusEffectEngine:
    """Owns application, merging, ticking and expiry of status effects."""

    def __init__(self, resolver: "AttackResolver", combat_logger: "CombatLogger | None" = None) -> None:
        self.resolver = resolver
        self.combat_logger = combat_logger

    def apply(self, unit: Unit, effect: StatusEffect) -> StatusEffect | None:
        """Apply ``effect`` to ``unit``, merging into an active effect with the same id.

        Returns the effect instance now active on the unit, or None when the unit is dead.
        """
        if unit is None or effect is None:
            raise ValueError("apply requires a unit and an effect")
        if unit.is_dead:
            return None

        existing = unit.get_status(effect.id)
        if existing is not None:
            existing.merge(effect)
            active = existing
        else:
            unit.status_effects.append(effect)
            active = effect

        logger.debug(
            "%s applied to %s (stacks=%d, duration=%d, damage=%d)",
            effect.id,
            unit.name,
            active.stacks,
            active.duration,
            active.base_damage,
        )
        if self.combat_logger:
            self.combat_logger.log_status_applied(unit, active)
        self.resolver.emit(unit, EventKind.STATUS_APPLIED, StatusEvent(unit=unit, effect=active))
        return active

    def tick_turn_start(self, unit: Unit) -> TickResult:
        """Tick every active effect once.

        Each tick deals its damage directly (no armor, no modifiers), then loses one
        turn of duration; effects reaching zero still deal their final tick and are
        removed after all effects have ticked.
        """
        if unit is None:
            raise ValueError("tick_turn_start requires a unit")

        result = TickResult()
        if not unit.status_effects:
            return result

        expired: list[StatusEffect] = []
        for effect in list(unit.status_effects):
            damage = effect.tick_damage()
            hp_before = unit.stats.current_hp
            dealt = 0
            if damage > 0:
                dealt = self.resolver.apply_direct_damage(None, unit, damage)
            effect.duration -= 1
            result.damage_by_effect[effect.id] = result.damage_by_effect.get(effect.id, 0) + dealt

            if self.combat_logger:
                self.combat_logger.log_status_tick(unit, effect, dealt, hp_before)
            if effect.expired:
                expired.append(effect)

        for effect in expired:
            unit.status_effects.remove(effect)
            result.expired.append(effect.id)
            logger.debug("%s expired on %s", effect.id, unit.name)
            if self.combat_logger:
                self.combat_logger.log_status_expired(unit, effect)
            self.resolver.emit(unit, EventKind.STATUS_EXPIRED, StatusEvent(unit=unit, effect=effect))

        return result

    def clear(self, unit: Unit) -> None:
        """Remove every effect from a unit without expiry notifications."""
        unit.status_effects.clear()
