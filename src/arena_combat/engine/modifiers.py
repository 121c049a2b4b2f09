"""Damage modifier pipeline - ordered transformations over a single damage computation.

Priority bands (convention only):
    0-99     base-value adjustments (flat bonuses)
    100-199  standard percentage multipliers
    200-299  late multipliers (rage, execute, crit)
    300+     post-processing floors and caps
"""

from __future__ import annotations

import logging
import math
import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from decimal import Decimal

from .types import DamageContext, Unit

logger = logging.getLogger(__name__)

SourcePredicate = Callable[["Unit | None"], bool]


def ceil_scale(value: int, factor: float) -> int:
    """Multiply and round up to the nearest integer.

    Works in decimal so that e.g. ``ceil_scale(10, 1.1)`` is 11, not 12.
    """
    return math.ceil(Decimal(value) * Decimal(str(factor)))


def mitigate(damage: int, armor: int) -> int:
    """Armor mitigation: ``ceil(damage * 100 / (100 + armor))``."""
    if armor < 0:
        raise ValueError(f"armor must be non-negative, got {armor}")
    if damage <= 0:
        return 0
    return -(-damage * 100 // (100 + armor))


class DamageModifier(ABC):
    """A priority-ordered transformation of a ``DamageContext``.

    A modifier is unit-scoped when it has an ``owner`` (applies only when the
    owner is the damage source) and global otherwise; a global modifier applies
    to every source accepted by its ``predicate`` (all sources if None).
    """

    priority: int = 100

    def __init__(self, owner: Unit | None = None, predicate: SourcePredicate | None = None) -> None:
        self.owner = owner
        self.predicate = predicate

    def matches(self, context: DamageContext) -> bool:
        """Check if this modifier applies to the context's source."""
        if self.owner is not None:
            return context.source is self.owner
        if self.predicate is not None:
            return self.predicate(context.source)
        return True

    @abstractmethod
    def modify(self, context: DamageContext) -> None:
        """Mutate ``context.final_value`` / ``context.is_critical`` in place."""

    def __repr__(self) -> str:
        owner = self.owner.name if self.owner is not None else None
        return f"{type(self).__name__}(priority={self.priority}, owner={owner!r})"


class FlatDamageModifier(DamageModifier):
    """Adds a flat bonus to every hit."""

    priority = 10

    def __init__(self, bonus: int, owner: Unit | None = None, predicate: SourcePredicate | None = None) -> None:
        super().__init__(owner, predicate)
        self.bonus = bonus

    def modify(self, context: DamageContext) -> None:
        context.final_value += self.bonus


class PercentageDamageModifier(DamageModifier):
    """Multiplies damage (1.25 = +25%, 0.8 = -20%), rounding up."""

    priority = 100

    def __init__(
        self,
        multiplier: float,
        owner: Unit | None = None,
        predicate: SourcePredicate | None = None,
    ) -> None:
        super().__init__(owner, predicate)
        self.multiplier = multiplier

    def modify(self, context: DamageContext) -> None:
        context.final_value = ceil_scale(context.final_value, self.multiplier)


class ExecuteModifier(DamageModifier):
    """Bonus multiplier against targets at or below an HP threshold."""

    priority = 205

    def __init__(
        self,
        health_threshold: float,
        damage_bonus: float,
        owner: Unit | None = None,
        predicate: SourcePredicate | None = None,
    ) -> None:
        super().__init__(owner, predicate)
        self.health_threshold = min(max(health_threshold, 0.0), 1.0)
        self.damage_bonus = damage_bonus

    def modify(self, context: DamageContext) -> None:
        target = context.target
        if target is None:
            return
        if target.hp_fraction <= self.health_threshold:
            context.final_value = ceil_scale(context.final_value, self.damage_bonus)
            logger.debug(
                "Execute bonus on %s (hp=%.2f <= %.2f): %d",
                target.name,
                target.hp_fraction,
                self.health_threshold,
                context.final_value,
            )


class CriticalHitModifier(DamageModifier):
    """Rolls a critical hit; a context that is already critical is left alone."""

    priority = 210

    def __init__(
        self,
        crit_chance: float,
        crit_multiplier: float = 2.0,
        owner: Unit | None = None,
        predicate: SourcePredicate | None = None,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(owner, predicate)
        self.crit_chance = min(max(crit_chance, 0.0), 1.0)
        self.crit_multiplier = crit_multiplier
        self.rng = rng or random.Random()

    def modify(self, context: DamageContext) -> None:
        if context.is_critical:
            return
        roll = self.rng.random()
        if roll < self.crit_chance:
            context.is_critical = True
            context.final_value = ceil_scale(context.final_value, self.crit_multiplier)
            logger.debug("Critical hit (roll=%.3f < %.3f): %d", roll, self.crit_chance, context.final_value)


class MinimumDamageModifier(DamageModifier):
    """Floors the final damage."""

    priority = 300

    def __init__(self, minimum: int, owner: Unit | None = None, predicate: SourcePredicate | None = None) -> None:
        super().__init__(owner, predicate)
        self.minimum = minimum

    def modify(self, context: DamageContext) -> None:
        context.final_value = max(context.final_value, self.minimum)


class DamageCapModifier(DamageModifier):
    """Caps the final damage."""

    priority = 310

    def __init__(self, cap: int, owner: Unit | None = None, predicate: SourcePredicate | None = None) -> None:
        super().__init__(owner, predicate)
        self.cap = cap

    def modify(self, context: DamageContext) -> None:
        context.final_value = min(context.final_value, self.cap)


class ModifierPipeline:
    """Per-session registry of damage modifiers.

    ``process`` runs every matching modifier exactly once, in ascending
    priority; equal priorities run in registration order.
    """

    def __init__(self) -> None:
        self._modifiers: list[DamageModifier] = []
        self._processing = False

    @property
    def modifiers(self) -> list[DamageModifier]:
        """Registered modifiers in application order."""
        return sorted(self._modifiers, key=lambda modifier: modifier.priority)

    def register(self, modifier: DamageModifier) -> None:
        """Register a modifier. Registering the same instance twice is an error."""
        if modifier is None:
            raise ValueError("modifier is required")
        if any(existing is modifier for existing in self._modifiers):
            raise ValueError(f"{modifier!r} is already registered")
        self._modifiers.append(modifier)

    def unregister(self, modifier: DamageModifier) -> bool:
        """Remove a modifier. Returns False if it was not registered."""
        for index, existing in enumerate(self._modifiers):
            if existing is modifier:
                del self._modifiers[index]
                return True
        return False

    def is_registered(self, modifier: DamageModifier) -> bool:
        return any(existing is modifier for existing in self._modifiers)

    def clear(self) -> None:
        self._modifiers.clear()

    def process(self, context: DamageContext) -> DamageContext:
        """Apply every matching modifier to ``context`` and return it."""
        if self._processing:
            raise RuntimeError("ModifierPipeline.process called re-entrantly")

        self._processing = True
        try:
            for modifier in self.modifiers:
                if modifier.matches(context):
                    modifier.modify(context)
        finally:
            self._processing = False

        if context.final_value < 0:
            context.final_value = 0
        return context

    def __len__(self) -> int:
        return len(self._modifiers)
