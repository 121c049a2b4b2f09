"""Definition catalog - loads units and bosses from plain data."""

from .errors import InvalidDefinitionError, UnknownDefinitionError
from .factory import (
    ABILITY_MAP,
    PASSIVE_MAP,
    build_ability,
    build_boss_ability,
    build_passive,
    load_boss_definition,
    load_unit,
)
from .schemas import (
    AbilityKind,
    AbilitySpec,
    BossAbilityKind,
    BossAbilitySpec,
    BossPhaseSchema,
    BossSchema,
    PassiveKind,
    PassiveSpec,
    StatsSchema,
    UnitSchema,
)

__all__ = [
    # Errors
    "UnknownDefinitionError",
    "InvalidDefinitionError",
    # Schemas
    "PassiveKind",
    "AbilityKind",
    "BossAbilityKind",
    "StatsSchema",
    "PassiveSpec",
    "AbilitySpec",
    "UnitSchema",
    "BossAbilitySpec",
    "BossPhaseSchema",
    "BossSchema",
    # Factory
    "PASSIVE_MAP",
    "ABILITY_MAP",
    "build_passive",
    "build_ability",
    "build_boss_ability",
    "load_unit",
    "load_boss_definition",
]
