"""Combat engine module - damage pipeline, passives, status effects, bosses and fights."""

from .abilities import Ability, ArcaneMissiles, Fireball
from .boss import (
    BossAbility,
    BossController,
    BossDefinition,
    BossPhaseDefinition,
    BossStats,
    EnrageAbility,
    GrantPassiveAbility,
    create_boss_unit,
)
from .events import EventHub, EventKind, Subscription, SubscriptionGroup
from .fight import CombatEngine, FightResult
from .logging import CombatLog, CombatLogger, LogEntry, LogEventType, UnitSnapshot
from .modifiers import (
    CriticalHitModifier,
    DamageCapModifier,
    DamageModifier,
    ExecuteModifier,
    FlatDamageModifier,
    MinimumDamageModifier,
    ModifierPipeline,
    PercentageDamageModifier,
    mitigate,
)
from .passives import (
    BleedOnHit,
    CritChance,
    DeathShield,
    DoubleStrike,
    Lifesteal,
    Passive,
    PassiveManager,
    PhantomStrike,
    PoisonAmplifier,
    PoisonOnHit,
    Rage,
    Thorns,
)
from .resolver import AttackResolver
from .session import CombatSession
from .status import Bleed, Burn, Poison, StatusEffect, StatusEffectEngine, TickResult
from .types import AttackResult, DamageContext, HitRecord, Stats, Unit

__all__ = [
    # Model
    "Stats",
    "Unit",
    "DamageContext",
    "HitRecord",
    "AttackResult",
    # Events
    "EventHub",
    "EventKind",
    "Subscription",
    "SubscriptionGroup",
    # Modifiers
    "DamageModifier",
    "ModifierPipeline",
    "FlatDamageModifier",
    "PercentageDamageModifier",
    "ExecuteModifier",
    "CriticalHitModifier",
    "MinimumDamageModifier",
    "DamageCapModifier",
    "mitigate",
    # Status effects
    "StatusEffect",
    "StatusEffectEngine",
    "TickResult",
    "Poison",
    "Bleed",
    "Burn",
    # Passives
    "Passive",
    "PassiveManager",
    "DeathShield",
    "Lifesteal",
    "Thorns",
    "DoubleStrike",
    "PoisonOnHit",
    "BleedOnHit",
    "PoisonAmplifier",
    "PhantomStrike",
    "CritChance",
    "Rage",
    # Resolution
    "AttackResolver",
    "CombatSession",
    "CombatEngine",
    "FightResult",
    # Abilities
    "Ability",
    "Fireball",
    "ArcaneMissiles",
    # Bosses
    "BossAbility",
    "BossStats",
    "BossPhaseDefinition",
    "BossDefinition",
    "BossController",
    "EnrageAbility",
    "GrantPassiveAbility",
    "create_boss_unit",
    # Logging
    "CombatLogger",
    "CombatLog",
    "LogEntry",
    "LogEventType",
    "UnitSnapshot",
]
