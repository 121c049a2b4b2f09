"""Unit abilities - actions cast at the start of the owner's turn.

Abilities cast in ascending ``priority`` (lower first), before the owner's
regular attack.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .modifiers import ceil_scale
from .status import Burn
from .types import Unit

if TYPE_CHECKING:
    from .session import CombatSession

logger = logging.getLogger(__name__)


@runtime_checkable
class Ability(Protocol):
    """Capability interface implemented by every unit ability."""

    name: str
    priority: int

    def cast(self, source: Unit, target: Unit, session: "CombatSession") -> int: ...


class Fireball:
    """Deals damage (it can crit), then burns the target for a percent of the damage dealt.

    Burn damage is fixed at application, never crits and does not stack.
    """

    name = "Fireball"
    priority = 50

    def __init__(self, base_damage: int = 10, burn_duration: int = 3, burn_damage_percent: float = 0.5) -> None:
        if base_damage < 0:
            raise ValueError(f"base_damage must be non-negative, got {base_damage}")
        if burn_duration <= 0:
            raise ValueError(f"burn_duration must be positive, got {burn_duration}")
        self.base_damage = base_damage
        self.burn_duration = burn_duration
        self.burn_damage_percent = burn_damage_percent

    def cast(self, source: Unit, target: Unit, session: "CombatSession") -> int:
        """Cast at ``target``.

        Returns:
            Damage dealt by the fireball itself (0 against a dead target)
        """
        if target is None or target.is_dead:
            return 0

        session.combat_logger.log_ability_cast(source, target, self.name)
        dealt = session.resolve_attack(source, target, self.base_damage)
        if dealt > 0 and not target.is_dead:
            burn_damage = ceil_scale(dealt, self.burn_damage_percent)
            session.apply_status(target, Burn.create(damage=burn_damage, duration=self.burn_duration))
            logger.info("Fireball burn applied to %s (%d x %d turns)", target.name, burn_damage, self.burn_duration)
        return dealt


class ArcaneMissiles:
    """Fires several missiles, each resolved as an independent attack."""

    name = "Arcane Missiles"
    priority = 40

    def __init__(self, base_damage: int = 5, missile_count: int = 3) -> None:
        if base_damage < 0:
            raise ValueError(f"base_damage must be non-negative, got {base_damage}")
        if missile_count <= 0:
            raise ValueError(f"missile_count must be positive, got {missile_count}")
        self.base_damage = base_damage
        self.missile_count = missile_count

    def cast(self, source: Unit, target: Unit, session: "CombatSession") -> int:
        if target is None or target.is_dead:
            return 0

        session.combat_logger.log_ability_cast(source, target, self.name)
        total = 0
        for _ in range(self.missile_count):
            # Remaining missiles fizzle once the target is down
            if target.is_dead:
                break
            total += session.resolve_attack(source, target, self.base_damage)
        return total
