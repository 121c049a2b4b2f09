"""Boss phases - definitions, the phase state machine and phase abilities."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .events import EventKind, HealthChangedEvent, Subscription
from .modifiers import PercentageDamageModifier
from .types import Unit

if TYPE_CHECKING:
    from .session import CombatSession

logger = logging.getLogger(__name__)


@runtime_checkable
class BossAbility(Protocol):
    """An ability activated when its phase is entered.

    The ability registers itself into the session's passive/modifier systems;
    the controller never deactivates it.
    """

    def activate(self, controller: "BossController") -> None: ...


@dataclass(frozen=True)
class BossStats:
    """Stat template a boss unit is spawned from."""

    max_hp: int
    attack_power: int = 0
    armor: int = 0
    speed: int = 0


@dataclass
class BossPhaseDefinition:
    """One phase of a boss fight.

    Phases are ordered from highest to lowest ``trigger_hp_percent``; the first
    phase should trigger at 100.
    """

    trigger_hp_percent: int
    attack_interval: float = 1.0
    abilities: list[Any] = field(default_factory=list)


@dataclass
class BossDefinition:
    """A boss: identity, stats, phases and difficulty rating."""

    id: str
    display_name: str
    stats: BossStats
    phases: list[BossPhaseDefinition] = field(default_factory=list)
    difficulty_rating: int = 1


def create_boss_unit(definition: BossDefinition) -> Unit:
    """Spawn a full-HP unit for a boss definition."""
    if definition is None:
        raise ValueError("create_boss_unit requires a definition")
    stats = definition.stats
    return Unit.spawn(
        definition.display_name,
        max_hp=stats.max_hp,
        attack_power=stats.attack_power,
        armor=stats.armor,
        speed=stats.speed,
    )


class BossController:
    """Phase state machine driven by the boss unit's health.

    Phases only move forward, one at a time: a single health change that
    crosses two thresholds advances one phase, and the next health change
    advances again. The last phase is terminal.
    """

    def __init__(self, session: "CombatSession") -> None:
        self.session = session
        self._definition: BossDefinition | None = None
        self._boss: Unit | None = None
        self._current_phase = 0
        self._subscription: Subscription | None = None

    @property
    def definition(self) -> BossDefinition | None:
        return self._definition

    @property
    def boss(self) -> Unit | None:
        return self._boss

    @property
    def current_phase(self) -> int:
        """Zero-based index of the active phase."""
        return self._current_phase

    @property
    def phase(self) -> BossPhaseDefinition | None:
        if self._definition is None:
            return None
        return self._definition.phases[self._current_phase]

    @property
    def attack_interval(self) -> float:
        phase = self.phase
        return phase.attack_interval if phase is not None else 0.0

    @property
    def is_final_phase(self) -> bool:
        if self._definition is None:
            return False
        return self._current_phase == len(self._definition.phases) - 1

    def initialize(self, definition: BossDefinition, boss_unit: Unit) -> None:
        """Bind to a boss unit and enter phase 0.

        Args:
            definition: Boss definition with at least one phase
            boss_unit: Unit whose health drives phase transitions
        """
        if definition is None or boss_unit is None:
            raise ValueError("initialize requires a definition and a boss unit")
        if not definition.phases:
            raise ValueError(f"Boss '{definition.id}' has no phases defined")
        if self._definition is not None:
            raise ValueError("BossController is already initialized")

        self._definition = definition
        self._boss = boss_unit
        self._validate_phase_order(definition)

        self._subscription = self.session.subscribe_unit(boss_unit, EventKind.HEALTH_CHANGED, self._on_health_event)
        self._enter_phase(0)

    def on_health_changed(self, unit: Unit, current_hp: int, max_hp: int) -> None:
        """Feed an absolute HP change for the boss unit."""
        if self._boss is None or unit is not self._boss or max_hp <= 0:
            return
        self.on_health_percent(current_hp * 100 / max_hp)

    def on_health_percent(self, percent: float) -> None:
        """Feed an HP percent (0-100); advances at most one phase."""
        if self._definition is None:
            return

        next_phase = self._current_phase + 1
        if next_phase >= len(self._definition.phases):
            return
        if percent <= self._definition.phases[next_phase].trigger_hp_percent:
            self._enter_phase(next_phase)

    def release(self) -> None:
        """Stop following the boss unit's health. Active abilities stay in effect."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_health_event(self, event: HealthChangedEvent) -> None:
        self.on_health_changed(event.unit, event.current_hp, event.max_hp)

    @staticmethod
    def _validate_phase_order(definition: BossDefinition) -> None:
        phases = definition.phases
        if phases[0].trigger_hp_percent != 100:
            logger.warning(
                "Boss '%s' first phase triggers at %d%%, expected 100%%",
                definition.id,
                phases[0].trigger_hp_percent,
            )
        for index in range(1, len(phases)):
            if phases[index].trigger_hp_percent >= phases[index - 1].trigger_hp_percent:
                logger.warning(
                    "Boss '%s' phase %d trigger (%d%%) is not lower than phase %d (%d%%)",
                    definition.id,
                    index,
                    phases[index].trigger_hp_percent,
                    index - 1,
                    phases[index - 1].trigger_hp_percent,
                )

    def _enter_phase(self, phase_index: int) -> None:
        if self._definition is None or self._boss is None:
            raise RuntimeError("BossController is not initialized")
        self._current_phase = phase_index
        phase = self._definition.phases[phase_index]

        logger.info(
            "Boss '%s' entering phase %d (trigger: %d%%)",
            self._definition.id,
            phase_index,
            phase.trigger_hp_percent,
        )
        self.session.combat_logger.log_phase_entered(self._boss, phase_index, phase.trigger_hp_percent)

        for ability in phase.abilities:
            if ability is None:
                logger.warning("Missing ability in phase %d of boss '%s'", phase_index, self._definition.id)
                continue
            ability.activate(self)


class EnrageAbility:
    """Multiplies the boss's damage for the rest of the fight."""

    def __init__(self, multiplier: float = 1.5) -> None:
        self.multiplier = multiplier
        self.modifier: PercentageDamageModifier | None = None

    def activate(self, controller: BossController) -> None:
        if controller.boss is None:
            raise ValueError("EnrageAbility requires an initialized controller")
        self.modifier = PercentageDamageModifier(self.multiplier, owner=controller.boss)
        controller.session.register_modifier(self.modifier)


class GrantPassiveAbility:
    """Attaches a passive to the boss when its phase begins.

    Takes a factory rather than a passive so every boss spawned from the same
    definition gets its own passive state (a used death shield, a hit counter).
    """

    def __init__(self, passive_factory: Callable[[], Any]) -> None:
        if passive_factory is None or not callable(passive_factory):
            raise ValueError("GrantPassiveAbility requires a passive factory")
        self.passive_factory = passive_factory

    def create_passive(self) -> Any:
        passive = self.passive_factory()
        if passive is None:
            raise ValueError("passive factory returned None")
        return passive

    def activate(self, controller: BossController) -> None:
        if controller.boss is None:
            raise ValueError("GrantPassiveAbility requires an initialized controller")
        controller.session.attach_passive(controller.boss, self.create_passive())
