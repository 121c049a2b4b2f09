"""Entry point for running a demo arena fight."""

import logging
import random
import sys

from arena_combat.catalog import load_boss_definition, load_unit
from arena_combat.config import get_settings
from arena_combat.engine import CombatEngine

HERO = {
    "name": "Hero",
    "stats": {"max_hp": 120, "attack_power": 14, "armor": 10, "speed": 6},
    "passives": [
        {"kind": "death_shield"},
        {"kind": "lifesteal", "params": {"percent": 0.2}},
        {"kind": "double_strike", "params": {"trigger_chance": 0.25}},
        {"kind": "crit_chance", "params": {"crit_chance": 0.15}},
    ],
    "abilities": [{"kind": "fireball", "params": {"base_damage": 8}}],
}

BOSS = {
    "id": "bog_witch",
    "display_name": "Bog Witch",
    "stats": {"max_hp": 200, "attack_power": 12, "armor": 20, "speed": 4},
    "phases": [
        {"trigger_hp_percent": 100, "attack_interval": 1.5},
        {
            "trigger_hp_percent": 60,
            "attack_interval": 1.2,
            "abilities": [{"kind": "grant_passive", "passive": {"kind": "poison_on_hit"}}],
        },
        {
            "trigger_hp_percent": 30,
            "attack_interval": 0.8,
            "abilities": [{"kind": "enrage", "multiplier": 1.5}],
        },
    ],
    "difficulty_rating": 2,
}


def main() -> None:
    """Run one boss fight and print its combat log."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    hero = load_unit(HERO, settings)
    boss = load_boss_definition(BOSS, settings)

    engine = CombatEngine(settings=settings, rng=random.Random(settings.rng_seed))
    result = engine.run_boss_fight(hero, boss)

    print(result.log.format_readable())
    if result.is_draw:
        print(f"Draw after {result.rounds} rounds")
    else:
        print(f"{result.winner.name} wins after {result.rounds} rounds (boss phase {result.final_phase})")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
