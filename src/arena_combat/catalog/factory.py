"""Builds engine objects from validated definitions.

Every identifier resolves through a table at load time, so an unknown or
misconfigured definition fails here and never in the middle of a fight.
"""

import logging
from collections.abc import Callable
from enum import Enum
from functools import partial
from typing import Any

from ..config import Settings, get_settings
from ..engine.abilities import ArcaneMissiles, Fireball
from ..engine.boss import (
    BossDefinition,
    BossPhaseDefinition,
    BossStats,
    EnrageAbility,
    GrantPassiveAbility,
)
from ..engine.passives import (
    BleedOnHit,
    CritChance,
    DeathShield,
    DoubleStrike,
    Lifesteal,
    PhantomStrike,
    PoisonAmplifier,
    PoisonOnHit,
    Rage,
    Thorns,
)
from ..engine.types import Unit
from .errors import InvalidDefinitionError, UnknownDefinitionError
from .schemas import (
    AbilityKind,
    AbilitySpec,
    BossAbilityKind,
    BossAbilitySpec,
    BossSchema,
    PassiveKind,
    PassiveSpec,
    UnitSchema,
)

logger = logging.getLogger(__name__)

PASSIVE_MAP: dict[PassiveKind, Callable[..., Any]] = {
    PassiveKind.DEATH_SHIELD: DeathShield,
    PassiveKind.LIFESTEAL: Lifesteal,
    PassiveKind.THORNS: Thorns,
    PassiveKind.DOUBLE_STRIKE: DoubleStrike,
    PassiveKind.POISON_ON_HIT: PoisonOnHit,
    PassiveKind.BLEED_ON_HIT: BleedOnHit,
    PassiveKind.POISON_AMPLIFIER: PoisonAmplifier,
    PassiveKind.PHANTOM_STRIKE: PhantomStrike,
    PassiveKind.CRIT_CHANCE: CritChance,
    PassiveKind.RAGE: Rage,
}

ABILITY_MAP: dict[AbilityKind, Callable[..., Any]] = {
    AbilityKind.FIREBALL: Fireball,
    AbilityKind.ARCANE_MISSILES: ArcaneMissiles,
}

# Parameters that must be whole numbers
INT_PARAMS = {
    "stacks",
    "duration",
    "base_damage",
    "bonus_stacks",
    "bonus_duration",
    "bonus_base_damage",
    "hits_per_trigger",
    "burn_duration",
    "missile_count",
}


def _settings_defaults(kind: PassiveKind, settings: Settings) -> dict[str, float]:
    """Balance defaults taken from settings; explicit params override them."""
    if kind == PassiveKind.DEATH_SHIELD:
        return {"revive_percent": settings.death_shield_revive_percent}
    if kind == PassiveKind.DOUBLE_STRIKE:
        return {"damage_multiplier": settings.double_strike_multiplier}
    if kind == PassiveKind.CRIT_CHANCE:
        return {"crit_multiplier": settings.crit_multiplier}
    return {}


def _coerce(params: dict[str, float]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    for key, value in params.items():
        if key in INT_PARAMS:
            if value != int(value):
                raise InvalidDefinitionError(f"{key} must be a whole number, got {value}")
            coerced[key] = int(value)
        else:
            coerced[key] = value
    return coerced


def _construct(kind: Enum, builder: Callable[..., Any], params: dict[str, Any]) -> Any:
    try:
        return builder(**params)
    except (TypeError, ValueError) as exc:
        raise InvalidDefinitionError(f"invalid parameters for {kind.value}: {exc}") from exc


def build_passive(spec: PassiveSpec, settings: Settings | None = None) -> Any:
    """Create a fresh, unattached passive from its spec."""
    builder = PASSIVE_MAP.get(spec.kind)
    if builder is None:
        raise UnknownDefinitionError(f"unknown passive: {spec.kind!r}")

    params = _settings_defaults(spec.kind, settings or get_settings())
    params.update(spec.params)
    return _construct(spec.kind, builder, _coerce(params))


def build_ability(spec: AbilitySpec) -> Any:
    """Create a unit ability from its spec."""
    builder = ABILITY_MAP.get(spec.kind)
    if builder is None:
        raise UnknownDefinitionError(f"unknown ability: {spec.kind!r}")
    return _construct(spec.kind, builder, _coerce(spec.params))


def build_boss_ability(spec: BossAbilitySpec, settings: Settings | None = None) -> Any:
    """Create a boss phase ability from its spec."""
    match spec.kind:
        case BossAbilityKind.ENRAGE:
            return EnrageAbility(multiplier=spec.multiplier)
        case BossAbilityKind.GRANT_PASSIVE:
            # Built once here so bad parameters fail at load time
            settings = settings or get_settings()
            build_passive(spec.passive, settings)
            return GrantPassiveAbility(partial(build_passive, spec.passive, settings))
        case _:
            raise UnknownDefinitionError(f"unknown boss ability: {spec.kind!r}")


def load_unit(data: UnitSchema | dict[str, Any], settings: Settings | None = None) -> Unit:
    """Validate a unit definition and spawn it at full HP.

    Passives are listed on the unit but not attached; a combat session
    attaches them for the duration of a fight.

    Args:
        data: Raw definition dict or an already validated schema
        settings: Settings for balance defaults (cached settings if None)

    Returns:
        New unit with its passive loadout and abilities
    """
    schema = data if isinstance(data, UnitSchema) else UnitSchema.model_validate(data)
    unit = Unit.spawn(
        schema.name,
        max_hp=schema.stats.max_hp,
        attack_power=schema.stats.attack_power,
        armor=schema.stats.armor,
        speed=schema.stats.speed,
    )
    passives = [build_passive(spec, settings) for spec in schema.passives]
    unit.passives.extend(sorted(passives, key=lambda p: p.priority))
    unit.abilities.extend(build_ability(spec) for spec in schema.abilities)
    logger.debug(
        "Loaded unit %s (%d passives, %d abilities)",
        unit.name,
        len(unit.passives),
        len(unit.abilities),
    )
    return unit


def load_boss_definition(data: BossSchema | dict[str, Any], settings: Settings | None = None) -> BossDefinition:
    """Validate a boss definition and resolve every phase ability."""
    schema = data if isinstance(data, BossSchema) else BossSchema.model_validate(data)
    phases = [
        BossPhaseDefinition(
            trigger_hp_percent=phase.trigger_hp_percent,
            attack_interval=phase.attack_interval,
            abilities=[build_boss_ability(spec, settings) for spec in phase.abilities],
        )
        for phase in schema.phases
    ]
    stats = BossStats(
        max_hp=schema.stats.max_hp,
        attack_power=schema.stats.attack_power,
        armor=schema.stats.armor,
        speed=schema.stats.speed,
    )
    return BossDefinition(
        id=schema.id,
        display_name=schema.display_name,
        stats=stats,
        phases=phases,
        difficulty_rating=schema.difficulty_rating,
    )
