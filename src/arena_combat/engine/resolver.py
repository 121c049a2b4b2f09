"""Attack resolver - runs one attack from mitigation to follow-up strikes."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .events import (
    AttackEvent,
    DamagedEvent,
    DiedEvent,
    DyingEvent,
    EventHub,
    EventKind,
    HealedEvent,
    HealthChangedEvent,
    HitEvent,
)
from .modifiers import ModifierPipeline, mitigate
from .types import AttackResult, DamageContext, HitRecord, Unit

if TYPE_CHECKING:
    from .logging import CombatLogger

logger = logging.getLogger(__name__)


@dataclass
class ExtraAttack:
    """A follow-up strike queued during an attack's on-hit handling."""

    source: Unit
    target: Unit
    base_damage: int
    reason: str = "extra_attack"


class AttackResolver:
    """Resolves attacks and owns every HP mutation.

    Attack flow:
    1. BEFORE_ATTACK is raised on the attacker
    2. Base damage is mitigated by the target's armor (rounded up)
    3. The modifier pipeline runs over the mitigated value
    4. HP is reduced; a lethal hit raises the cancellable DYING event first,
       then either revives the target or finalizes its death (DIED)
    5. ON_HIT and AFTER_ATTACK are raised on the attacker
    6. Follow-up strikes queued during step 5 are drained, FIFO

    While the queue drains, new follow-ups are refused, so a follow-up strike
    can never queue another one; it still deals damage and raises ON_HIT.
    """

    def __init__(
        self,
        pipeline: ModifierPipeline,
        session_events: EventHub | None = None,
        combat_logger: "CombatLogger | None" = None,
    ) -> None:
        self.pipeline = pipeline
        self.session_events = session_events
        self.combat_logger = combat_logger
        self._extra_attacks: deque[ExtraAttack] = deque()
        self._draining = False
        self._depth = 0
        self._hits: list[HitRecord] = []

    @property
    def extra_attacks_suspended(self) -> bool:
        """True while queued follow-up strikes are being resolved."""
        return self._draining

    @property
    def pending_extra_attacks(self) -> int:
        return len(self._extra_attacks)

    def emit(self, unit: Unit, kind: EventKind, event: Any) -> None:
        """Raise an event on the unit's hub, then on the session hub."""
        unit.events.emit(kind, event)
        if self.session_events is not None:
            self.session_events.emit(kind, event)

    # ------------------------------------------------------------------
    # Attacks
    # ------------------------------------------------------------------

    def resolve_attack(self, source: Unit, target: Unit | None, base_damage: int) -> int:
        """Resolve an attack and return the damage of the primary hit."""
        return self.resolve(source, target, base_damage).damage_dealt

    def resolve(self, source: Unit, target: Unit | None, base_damage: int) -> AttackResult:
        """Resolve an attack and return every hit it produced.

        Attacking a missing or dead target is a no-op with an empty result.
        """
        if source is None:
            raise ValueError("resolve_attack requires a source unit")
        if base_damage < 0:
            raise ValueError(f"base_damage must be non-negative, got {base_damage}")
        if target is None or target.is_dead:
            return AttackResult()

        outermost = self._depth == 0
        if outermost:
            self._hits = []
        self._depth += 1
        hits_start = len(self._hits)
        try:
            if self.combat_logger:
                self.combat_logger.log_attack(source, target, base_damage)
            self.emit(source, EventKind.BEFORE_ATTACK, AttackEvent(source=source, target=target))

            self._strike(source, target, base_damage, is_extra=False)

            self.emit(source, EventKind.AFTER_ATTACK, AttackEvent(source=source, target=target))

            if outermost:
                self._drain_extra_attacks()
        finally:
            self._depth -= 1
            if outermost and self._extra_attacks:
                # Follow-ups belong to the attack that queued them
                logger.debug("Dropping %d follow-up(s) of an aborted attack", len(self._extra_attacks))
                self._extra_attacks.clear()

        return AttackResult(hits=list(self._hits[hits_start:]))

    def queue_extra_attack(self, source: Unit, target: Unit, base_damage: int, reason: str = "extra_attack") -> bool:
        """Queue a follow-up strike to run after the current attack.

        Returns False (and queues nothing) while follow-ups are being drained.
        """
        if source is None or target is None:
            raise ValueError("queue_extra_attack requires a source and a target")
        if self._draining:
            logger.debug("Follow-up from %s suppressed while draining", source.name)
            return False
        self._extra_attacks.append(ExtraAttack(source=source, target=target, base_damage=base_damage, reason=reason))
        return True

    def _drain_extra_attacks(self) -> None:
        if not self._extra_attacks:
            return

        self._draining = True
        try:
            while self._extra_attacks:
                extra = self._extra_attacks.popleft()
                if extra.target.is_dead or extra.source.is_dead:
                    continue
                if self.combat_logger:
                    self.combat_logger.log_extra_attack(extra.source, extra.target, extra.base_damage, extra.reason)
                self._strike(extra.source, extra.target, extra.base_damage, is_extra=True)
        finally:
            self._draining = False

    def _strike(self, source: Unit, target: Unit, base_damage: int, is_extra: bool) -> HitRecord:
        mitigated = mitigate(base_damage, target.stats.armor)
        context = DamageContext(source, target, mitigated)
        self.pipeline.process(context)

        hp_before = target.stats.current_hp
        died = self._apply_damage(source, target, context.final_value)
        hit = HitRecord(
            source=source,
            target=target,
            damage=context.final_value,
            hp_before=hp_before,
            hp_after=target.stats.current_hp,
            is_critical=context.is_critical,
            is_extra=is_extra,
            target_died=died,
        )
        self._hits.append(hit)

        logger.debug(
            "%s hit %s: base=%d mitigated=%d final=%d%s",
            source.name,
            target.name,
            base_damage,
            mitigated,
            context.final_value,
            " (crit)" if context.is_critical else "",
        )
        if self.combat_logger:
            self.combat_logger.log_hit(hit)

        self.emit(
            source,
            EventKind.ON_HIT,
            HitEvent(
                source=source,
                target=target,
                damage=context.final_value,
                is_critical=context.is_critical,
                is_extra=is_extra,
            ),
        )
        return hit

    # ------------------------------------------------------------------
    # HP mutation
    # ------------------------------------------------------------------

    def apply_direct_damage(self, source: Unit | None, target: Unit, amount: int) -> int:
        """Apply damage that bypasses armor and modifiers (status ticks, reflects).

        Returns the damage applied; 0 when the target is already dead.
        """
        if target is None:
            raise ValueError("apply_direct_damage requires a target")
        if target.is_dead or amount <= 0:
            return 0
        self._apply_damage(source, target, amount)
        return amount

    def _apply_damage(self, source: Unit | None, target: Unit, amount: int) -> bool:
        """Subtract HP and resolve a lethal hit. Returns True if the target died."""
        if target.is_dead:
            return False

        target.stats.current_hp -= amount
        died = False
        if target.stats.current_hp <= 0:
            died = self._resolve_lethal(source, target)

        self.emit(
            target,
            EventKind.HEALTH_CHANGED,
            HealthChangedEvent(unit=target, current_hp=target.stats.current_hp, max_hp=target.stats.max_hp),
        )
        if amount > 0:
            self.emit(target, EventKind.DAMAGED, DamagedEvent(unit=target, source=source, amount=amount))
        return died

    def _resolve_lethal(self, source: Unit | None, target: Unit) -> bool:
        dying = DyingEvent(unit=target, source=source)
        self.emit(target, EventKind.DYING, dying)

        if dying.cancelled:
            revive_hp = min(max(dying.revive_hp, 1), target.stats.max_hp)
            target.stats.current_hp = revive_hp
            logger.info("Death of %s prevented, revived at %d HP", target.name, revive_hp)
            if self.combat_logger:
                self.combat_logger.log_death_prevented(target, revive_hp)
            return False

        target.stats.current_hp = 0
        target.is_dead = True
        logger.info("%s died", target.name)
        if self.combat_logger:
            self.combat_logger.log_death(target, source)
        self.emit(target, EventKind.DIED, DiedEvent(unit=target, killer=source))
        return True

    def heal(self, unit: Unit, amount: int) -> int:
        """Restore HP up to max. Returns the HP actually restored (0 for dead units)."""
        if unit is None:
            raise ValueError("heal requires a unit")
        if unit.is_dead or amount <= 0:
            return 0

        actual = min(unit.stats.max_hp - unit.stats.current_hp, amount)
        if actual <= 0:
            return 0
        hp_before = unit.stats.current_hp
        unit.stats.current_hp += actual

        if self.combat_logger:
            self.combat_logger.log_heal(unit, actual, hp_before)
        self.emit(unit, EventKind.HEALED, HealedEvent(unit=unit, amount=actual))
        self.emit(
            unit,
            EventKind.HEALTH_CHANGED,
            HealthChangedEvent(unit=unit, current_hp=unit.stats.current_hp, max_hp=unit.stats.max_hp),
        )
        return actual

    def revive(self, unit: Unit, hp: int) -> None:
        """Bring a dead unit back with ``hp`` (clamped to [1, max_hp])."""
        if unit is None:
            raise ValueError("revive requires a unit")
        if not unit.is_dead:
            return

        unit.is_dead = False
        unit.stats.current_hp = min(max(hp, 1), unit.stats.max_hp)
        logger.info("%s revived at %d HP", unit.name, unit.stats.current_hp)
        if self.combat_logger:
            self.combat_logger.log_revive(unit)
        self.emit(unit, EventKind.REVIVED, HealedEvent(unit=unit, amount=unit.stats.current_hp))
        self.emit(
            unit,
            EventKind.HEALTH_CHANGED,
            HealthChangedEvent(unit=unit, current_hp=unit.stats.current_hp, max_hp=unit.stats.max_hp),
        )

    def reset(self) -> None:
        """Drop any queued follow-ups (used when a session closes)."""
        self._extra_attacks.clear()
        self._draining = False
