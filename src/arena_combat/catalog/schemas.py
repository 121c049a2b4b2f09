"""Definition schemas for units, passives, abilities and bosses."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

# =============================================================================
# Identifiers
# =============================================================================


class PassiveKind(str, Enum):
    """Every passive a definition can name."""

    DEATH_SHIELD = "death_shield"
    LIFESTEAL = "lifesteal"
    THORNS = "thorns"
    DOUBLE_STRIKE = "double_strike"
    POISON_ON_HIT = "poison_on_hit"
    BLEED_ON_HIT = "bleed_on_hit"
    POISON_AMPLIFIER = "poison_amplifier"
    PHANTOM_STRIKE = "phantom_strike"
    CRIT_CHANCE = "crit_chance"
    RAGE = "rage"


class AbilityKind(str, Enum):
    """Every unit ability a definition can name."""

    FIREBALL = "fireball"
    ARCANE_MISSILES = "arcane_missiles"


class BossAbilityKind(str, Enum):
    """Every boss phase ability a definition can name."""

    ENRAGE = "enrage"
    GRANT_PASSIVE = "grant_passive"


# =============================================================================
# Units
# =============================================================================


class StatsSchema(BaseModel):
    """Starting stats of a unit."""

    max_hp: int = Field(gt=0, description="Maximum (and starting) HP")
    attack_power: int = Field(default=0, ge=0, description="Base damage of a regular attack")
    armor: int = Field(default=0, ge=0, description="Mitigation: damage x 100 / (100 + armor)")
    speed: int = Field(default=0, ge=0, description="Higher speed acts first")


class PassiveSpec(BaseModel):
    """A passive by identifier plus constructor parameters."""

    kind: PassiveKind
    params: dict[str, float] = Field(default_factory=dict)


class AbilitySpec(BaseModel):
    """A unit ability by identifier plus constructor parameters."""

    kind: AbilityKind
    params: dict[str, float] = Field(default_factory=dict)


class UnitSchema(BaseModel):
    """Complete unit definition."""

    name: str = Field(min_length=1)
    stats: StatsSchema
    passives: list[PassiveSpec] = Field(default_factory=list)
    abilities: list[AbilitySpec] = Field(default_factory=list)


# =============================================================================
# Bosses
# =============================================================================


class BossAbilitySpec(BaseModel):
    """A phase ability: ``enrage`` needs a multiplier, ``grant_passive`` a passive."""

    kind: BossAbilityKind
    multiplier: float | None = Field(default=None, gt=0)
    passive: PassiveSpec | None = None

    @model_validator(mode="after")
    def check_arguments(self) -> "BossAbilitySpec":
        if self.kind == BossAbilityKind.ENRAGE and self.multiplier is None:
            raise ValueError("enrage requires a multiplier")
        if self.kind == BossAbilityKind.GRANT_PASSIVE and self.passive is None:
            raise ValueError("grant_passive requires a passive")
        return self


class BossPhaseSchema(BaseModel):
    """One boss phase."""

    trigger_hp_percent: int = Field(ge=0, le=100, description="HP percent at or below which the phase starts")
    attack_interval: float = Field(default=1.0, gt=0, description="Seconds between attacks in this phase")
    abilities: list[BossAbilitySpec] = Field(default_factory=list)


class BossSchema(BaseModel):
    """Complete boss definition. Phases go from highest to lowest trigger."""

    id: str = Field(min_length=1)
    display_name: str
    stats: StatsSchema
    phases: list[BossPhaseSchema] = Field(min_length=1)
    difficulty_rating: int = Field(default=1, ge=1)
