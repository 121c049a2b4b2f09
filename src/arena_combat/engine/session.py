"""Combat session - the per-fight registry of modifiers, passives and listeners."""

from __future__ import annotations

import logging
import random
from typing import Any

from ..config import Settings, get_settings
from .events import EventHub, EventKind, Handler, Subscription, SubscriptionGroup
from .logging import CombatLogger
from .modifiers import DamageModifier, ModifierPipeline
from .passives import PassiveManager
from .resolver import AttackResolver
from .status import StatusEffect, StatusEffectEngine, TickResult
from .types import AttackResult, Unit

logger = logging.getLogger(__name__)


class CombatSession:
    """Everything one fight needs, constructed per fight and discarded after it.

    Nothing here is process-wide: two sessions never see each other's
    modifiers, passives or listeners.

    Usage:
        with CombatSession(fight_id="arena-1") as session:
            session.attach_passive(hero, Lifesteal(0.2))
            session.resolve_attack(hero, goblin, hero.stats.attack_power)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        fight_id: str = "fight",
    ) -> None:
        self.settings = settings or get_settings()
        self.rng = rng or random.Random(self.settings.rng_seed)
        self.events = EventHub()
        self.combat_logger = CombatLogger(fight_id=fight_id)
        self.pipeline = ModifierPipeline()
        self.resolver = AttackResolver(self.pipeline, session_events=self.events, combat_logger=self.combat_logger)
        self.status_engine = StatusEffectEngine(self.resolver, combat_logger=self.combat_logger)
        self.passives = PassiveManager(self, self.pipeline)
        self._subscriptions = SubscriptionGroup()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe_unit(self, unit: Unit, kind: EventKind, handler: Handler, priority: int = 100) -> Subscription:
        """Listen to one unit's events until the session closes.

        Listeners added to the unit by anyone else are left alone by ``close``.
        """
        self._check_open()
        return self._subscriptions.add(unit.events.subscribe(kind, handler, priority=priority))

    def subscribe(self, kind: EventKind, handler: Handler, priority: int = 100) -> Subscription:
        """Listen to an event kind for every unit in this session."""
        return self.events.subscribe(kind, handler, priority=priority)

    # ------------------------------------------------------------------
    # Attacks
    # ------------------------------------------------------------------

    def resolve_attack(self, source: Unit, target: Unit | None, base_damage: int) -> int:
        """Resolve an attack and return the damage dealt by its primary hit."""
        self._check_open()
        return self.resolver.resolve_attack(source, target, base_damage)

    def resolve(self, source: Unit, target: Unit | None, base_damage: int) -> AttackResult:
        """Resolve an attack and return every hit, follow-ups included."""
        self._check_open()
        return self.resolver.resolve(source, target, base_damage)

    def heal(self, unit: Unit, amount: int) -> int:
        return self.resolver.heal(unit, amount)

    # ------------------------------------------------------------------
    # Modifiers and passives
    # ------------------------------------------------------------------

    def register_modifier(self, modifier: DamageModifier) -> None:
        self._check_open()
        self.pipeline.register(modifier)

    def unregister_modifier(self, modifier: DamageModifier) -> bool:
        return self.pipeline.unregister(modifier)

    def attach_passive(self, unit: Unit, passive: Any) -> None:
        self._check_open()
        self.passives.attach(unit, passive)

    def attach_passives(self, unit: Unit, passives: list[Any]) -> None:
        """Attach a batch of passives in priority order."""
        self._check_open()
        self.passives.attach_all(unit, passives)

    def detach_passive(self, unit: Unit, passive: Any) -> None:
        self.passives.detach(unit, passive)

    # ------------------------------------------------------------------
    # Status effects
    # ------------------------------------------------------------------

    def apply_status(self, unit: Unit, effect: StatusEffect) -> StatusEffect | None:
        self._check_open()
        return self.status_engine.apply(unit, effect)

    def tick_turn_start(self, unit: Unit) -> TickResult:
        self._check_open()
        return self.status_engine.tick_turn_start(unit)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Detach every passive and drop every modifier and listener this session added. Idempotent."""
        if self._closed:
            return
        self.passives.detach_all()
        self.pipeline.clear()
        self.resolver.reset()
        self.events.clear()
        self._subscriptions.unsubscribe()
        self._closed = True
        logger.debug("Combat session %s closed", self.combat_logger.fight_id)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("combat session is closed")

    def __enter__(self) -> "CombatSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
