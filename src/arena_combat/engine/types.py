"""Type definitions for the combat engine."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .events import EventHub

if TYPE_CHECKING:
    from .status import StatusEffect


@dataclass
class Stats:
    """Mutable combat attributes of a unit.

    ``current_hp`` stays within [0, max_hp] except between a lethal hit and the
    resolution of the dying event, where it may be zero or negative.
    """

    max_hp: int
    current_hp: int
    attack_power: int = 0
    armor: int = 0
    speed: int = 0

    def enumerate(self) -> list[tuple[str, int]]:
        """Display-ordered (label, value) pairs."""
        return [
            ("Max HP", self.max_hp),
            ("Current HP", self.current_hp),
            ("Attack Power", self.attack_power),
            ("Armor", self.armor),
            ("Speed", self.speed),
        ]


@dataclass(eq=False)
class Unit:
    """In-memory representation of a combatant.

    This is plain data: HP and the status list are only written by the attack
    resolver and the status effect engine. Passives, abilities and status
    effects keep their attach/cast order.
    """

    name: str
    stats: Stats
    passives: list[Any] = field(default_factory=list)
    abilities: list[Any] = field(default_factory=list)
    status_effects: list["StatusEffect"] = field(default_factory=list)
    is_dead: bool = False
    events: EventHub = field(default_factory=EventHub, repr=False)

    @classmethod
    def spawn(
        cls,
        name: str,
        max_hp: int,
        attack_power: int = 0,
        armor: int = 0,
        speed: int = 0,
    ) -> "Unit":
        """Create a unit at full HP."""
        if max_hp <= 0:
            raise ValueError(f"max_hp must be positive, got {max_hp}")
        stats = Stats(
            max_hp=max_hp,
            current_hp=max_hp,
            attack_power=attack_power,
            armor=armor,
            speed=speed,
        )
        return cls(name=name, stats=stats)

    def is_alive(self) -> bool:
        """Check if the unit is still alive."""
        return not self.is_dead

    @property
    def hp_fraction(self) -> float:
        """Current HP as a fraction of max HP (0.0-1.0)."""
        if self.stats.max_hp <= 0:
            return 0.0
        return self.stats.current_hp / self.stats.max_hp

    def get_status(self, effect_id: str) -> "StatusEffect | None":
        """Get the active status effect with the given id."""
        for effect in self.status_effects:
            if effect.id == effect_id:
                return effect
        return None

    def has_status(self, effect_id: str) -> bool:
        return self.get_status(effect_id) is not None


class DamageContext:
    """One damage computation, owned by the pipeline call that created it.

    Source and target are held by weak reference; the context never keeps a
    unit alive on its own.
    """

    def __init__(self, source: Unit, target: Unit, base_value: int) -> None:
        if source is None or target is None:
            raise ValueError("DamageContext requires a source and a target")
        self._source = weakref.ref(source)
        self._target = weakref.ref(target)
        self.base_value = base_value
        self.final_value = base_value
        self.is_critical = False

    @property
    def source(self) -> Unit | None:
        return self._source()

    @property
    def target(self) -> Unit | None:
        return self._target()

    def __repr__(self) -> str:
        source = self.source.name if self.source else None
        target = self.target.name if self.target else None
        return (
            f"DamageContext(source={source!r}, target={target!r}, base_value={self.base_value}, "
            f"final_value={self.final_value}, is_critical={self.is_critical})"
        )


@dataclass
class HitRecord:
    """Outcome of a single hit inside an attack chain."""

    source: Unit
    target: Unit
    damage: int
    hp_before: int
    hp_after: int
    is_critical: bool = False
    is_extra: bool = False
    target_died: bool = False


@dataclass
class AttackResult:
    """Result of resolving one attack, including queued follow-up strikes."""

    hits: list[HitRecord] = field(default_factory=list)

    @property
    def damage_dealt(self) -> int:
        """Damage of the primary hit (0 when the attack was a no-op)."""
        for hit in self.hits:
            if not hit.is_extra:
                return hit.damage
        return 0

    @property
    def total_damage(self) -> int:
        """Damage of the primary hit plus every follow-up strike."""
        return sum(hit.damage for hit in self.hits)

    @property
    def extra_hits(self) -> list[HitRecord]:
        return [hit for hit in self.hits if hit.is_extra]
