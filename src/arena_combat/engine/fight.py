"""Fight engine - simulates a whole fight between two units."""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import Settings, get_settings
from .boss import BossController, BossDefinition, create_boss_unit
from .session import CombatSession
from .types import Unit

if TYPE_CHECKING:
    from .logging import CombatLog

logger = logging.getLogger(__name__)

_fight_ids = itertools.count(1)


@dataclass
class FightResult:
    """Outcome of a simulated fight. ``winner`` and ``loser`` are None for a draw."""

    winner: Unit | None
    loser: Unit | None
    rounds: int
    log: "CombatLog"
    final_phase: int | None = None  # Boss fights only

    @property
    def is_draw(self) -> bool:
        return self.winner is None


class CombatEngine:
    """Runs turn-based fights, one fresh combat session per fight.

    Each round both units take a turn, the faster one first. On its turn a unit:
    1. Ticks its status effects (it may die here)
    2. Casts its abilities, lowest priority first
    3. Attacks the other unit with its attack power

    A speed tie goes to the first unit passed in. The fight ends when a unit
    dies, or as a draw after ``max_rounds`` full rounds.

    Passives listed on a unit when the fight starts are attached for the
    fight and detached when it ends.
    """

    def __init__(self, settings: Settings | None = None, rng: random.Random | None = None) -> None:
        self.settings = settings or get_settings()
        self.rng = rng

    def new_session(self) -> CombatSession:
        return CombatSession(settings=self.settings, rng=self.rng, fight_id=f"fight-{next(_fight_ids)}")

    def run_fight(self, first: Unit, second: Unit) -> FightResult:
        """Simulate a fight between two units.

        Args:
            first: First combatant (wins speed ties)
            second: Second combatant

        Returns:
            FightResult with the winner, loser, rounds played and combat log
        """
        if first is None or second is None:
            raise ValueError("run_fight requires two units")
        if first is second:
            raise ValueError("a unit cannot fight itself")

        with self.new_session() as session:
            return self._run(session, first, second)

    def run_boss_fight(self, hero: Unit, definition: BossDefinition) -> FightResult:
        """Simulate a fight between a hero and a freshly spawned boss."""
        if hero is None or definition is None:
            raise ValueError("run_boss_fight requires a hero and a boss definition")

        boss = create_boss_unit(definition)
        with self.new_session() as session:
            controller = BossController(session)
            controller.initialize(definition, boss)
            result = self._run(session, hero, boss)
            result.final_phase = controller.current_phase
            controller.release()
        return result

    def _run(self, session: CombatSession, first: Unit, second: Unit) -> FightResult:
        loadouts = {id(unit): list(unit.passives) for unit in (first, second)}
        for unit in (first, second):
            # Boss phase abilities may already have attached some
            pending = [p for p in loadouts[id(unit)] if not session.passives.is_attached(p)]
            unit.passives[:] = [p for p in unit.passives if session.passives.is_attached(p)]
            session.attach_passives(unit, pending)

        combat_logger = session.combat_logger
        combat_logger.log_fight_start([first, second])

        if second.stats.speed > first.stats.speed:
            leader, follower = second, first
        else:
            leader, follower = first, second
        logger.info(
            "Fight %s started: %s vs %s, %s acts first",
            combat_logger.fight_id,
            first.name,
            second.name,
            leader.name,
        )

        rounds = 0
        try:
            while not first.is_dead and not second.is_dead and rounds < self.settings.max_rounds:
                rounds += 1
                for acting, target in ((leader, follower), (follower, leader)):
                    if first.is_dead or second.is_dead:
                        break
                    combat_logger.start_round(rounds, acting)
                    self._take_turn(session, acting, target)
        finally:
            session.passives.detach_all()
            for unit in (first, second):
                unit.passives[:] = loadouts[id(unit)]

        winner, loser = self._decide(first, second)
        combat_logger.log_fight_end([first, second])
        combat_logger.log_winner(winner)
        logger.info(
            "Fight %s finished after %d rounds: %s",
            combat_logger.fight_id,
            rounds,
            f"{winner.name} wins" if winner else "draw",
        )
        return FightResult(winner=winner, loser=loser, rounds=rounds, log=combat_logger.get_log())

    @staticmethod
    def _take_turn(session: CombatSession, acting: Unit, target: Unit) -> None:
        session.tick_turn_start(acting)
        if acting.is_dead:
            return

        for ability in sorted(acting.abilities, key=lambda a: a.priority):
            if target.is_dead or acting.is_dead:
                return
            ability.cast(acting, target, session)

        if target.is_dead or acting.is_dead:
            return
        session.resolve_attack(acting, target, acting.stats.attack_power)

    @staticmethod
    def _decide(first: Unit, second: Unit) -> tuple[Unit | None, Unit | None]:
        if first.is_dead and not second.is_dead:
            return second, first
        if second.is_dead and not first.is_dead:
            return first, second
        return None, None
