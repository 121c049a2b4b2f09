"""Tests for loading units and bosses from definitions."""

import pytest
from pydantic import ValidationError

from arena_combat.catalog import (
    ABILITY_MAP,
    PASSIVE_MAP,
    AbilityKind,
    BossAbilitySpec,
    InvalidDefinitionError,
    PassiveKind,
    PassiveSpec,
    UnknownDefinitionError,
    build_boss_ability,
    build_passive,
    load_boss_definition,
    load_unit,
)
from arena_combat.config import Settings
from arena_combat.engine import (
    CritChance,
    DeathShield,
    DoubleStrike,
    EnrageAbility,
    Fireball,
    GrantPassiveAbility,
    Lifesteal,
)


class TestTables:
    """Tests for identifier tables."""

    def test_every_passive_kind_has_a_builder(self):
        """Test that no passive identifier is left unresolved."""
        assert set(PASSIVE_MAP) == set(PassiveKind)

    def test_every_ability_kind_has_a_builder(self):
        """Test that no ability identifier is left unresolved."""
        assert set(ABILITY_MAP) == set(AbilityKind)


class TestBuildPassive:
    """Tests for passive construction."""

    def test_build_with_params(self, settings):
        """Test that parameters reach the constructor."""
        passive = build_passive(PassiveSpec(kind="lifesteal", params={"percent": 0.3}), settings)

        assert isinstance(passive, Lifesteal)
        assert passive.percent == 0.3

    def test_settings_defaults(self):
        """Test that balance defaults come from settings."""
        settings = Settings(
            _env_file=None,
            death_shield_revive_percent=0.25,
            double_strike_multiplier=0.75,
            crit_multiplier=3.0,
        )

        shield = build_passive(PassiveSpec(kind="death_shield"), settings)
        strike = build_passive(PassiveSpec(kind="double_strike", params={"trigger_chance": 0.5}), settings)
        crit = build_passive(PassiveSpec(kind="crit_chance", params={"crit_chance": 0.1}), settings)

        assert isinstance(shield, DeathShield) and shield.revive_percent == 0.25
        assert isinstance(strike, DoubleStrike) and strike.damage_multiplier == 0.75
        assert isinstance(crit, CritChance) and crit.crit_multiplier == 3.0

    def test_explicit_params_override_settings(self, settings):
        """Test that definition parameters win over settings defaults."""
        shield = build_passive(PassiveSpec(kind="death_shield", params={"revive_percent": 0.9}), settings)

        assert shield.revive_percent == 0.9

    def test_whole_number_params_coerced(self, settings):
        """Test that integer parameters arrive as ints."""
        passive = build_passive(PassiveSpec(kind="poison_on_hit", params={"stacks": 3, "duration": 2}), settings)

        assert passive.stacks == 3
        assert isinstance(passive.stacks, int)

    def test_fractional_whole_number_rejected(self, settings):
        """Test that a fractional stack count fails at load time."""
        with pytest.raises(InvalidDefinitionError):
            build_passive(PassiveSpec(kind="poison_on_hit", params={"stacks": 1.5}), settings)

    def test_unknown_parameter_rejected(self, settings):
        """Test that a misspelled parameter fails at load time."""
        with pytest.raises(InvalidDefinitionError):
            build_passive(PassiveSpec(kind="lifesteal", params={"precent": 0.3}), settings)

    def test_unknown_kind_rejected_by_schema(self):
        """Test that an unknown identifier never gets past validation."""
        with pytest.raises(ValidationError):
            PassiveSpec(kind="vampirism")

    def test_unresolvable_kind(self, settings):
        """Test that a spec bypassing validation still fails loudly."""
        spec = PassiveSpec.model_construct(kind="vampirism", params={})

        with pytest.raises(UnknownDefinitionError):
            build_passive(spec, settings)

    def test_fresh_instance_per_build(self, settings):
        """Test that two builds never share passive state."""
        spec = PassiveSpec(kind="death_shield")

        assert build_passive(spec, settings) is not build_passive(spec, settings)


class TestLoadUnit:
    """Tests for unit loading."""

    def test_load_unit(self, settings):
        """Test a complete unit definition."""
        unit = load_unit(
            {
                "name": "Hero",
                "stats": {"max_hp": 80, "attack_power": 12, "armor": 5, "speed": 3},
                "passives": [{"kind": "double_strike", "params": {"trigger_chance": 0.2}}, {"kind": "death_shield"}],
                "abilities": [{"kind": "fireball", "params": {"base_damage": 7}}],
            },
            settings,
        )

        assert unit.name == "Hero"
        assert unit.stats.current_hp == 80
        assert unit.stats.armor == 5
        assert [type(p) for p in unit.passives] == [DeathShield, DoubleStrike]
        assert isinstance(unit.abilities[0], Fireball)
        assert unit.abilities[0].base_damage == 7

    def test_invalid_stats(self, settings):
        """Test that non-positive max HP fails validation."""
        with pytest.raises(ValidationError):
            load_unit({"name": "Ghost", "stats": {"max_hp": 0}}, settings)

    def test_unknown_ability(self, settings):
        """Test that an unknown ability identifier fails at load time."""
        with pytest.raises(ValidationError):
            load_unit({"name": "Hero", "stats": {"max_hp": 10}, "abilities": [{"kind": "meteor"}]}, settings)


class TestLoadBoss:
    """Tests for boss loading."""

    def _create_boss_data(self) -> dict:
        return {
            "id": "lich",
            "display_name": "Lich",
            "stats": {"max_hp": 300, "attack_power": 15, "armor": 10},
            "phases": [
                {"trigger_hp_percent": 100, "attack_interval": 2.0},
                {
                    "trigger_hp_percent": 50,
                    "abilities": [{"kind": "grant_passive", "passive": {"kind": "lifesteal", "params": {"percent": 0.2}}}],
                },
                {"trigger_hp_percent": 20, "abilities": [{"kind": "enrage", "multiplier": 2.0}]},
            ],
            "difficulty_rating": 3,
        }

    def test_load_boss_definition(self, settings):
        """Test that every phase and ability is resolved."""
        definition = load_boss_definition(self._create_boss_data(), settings)

        assert definition.id == "lich"
        assert definition.stats.max_hp == 300
        assert definition.difficulty_rating == 3
        assert [phase.trigger_hp_percent for phase in definition.phases] == [100, 50, 20]
        assert definition.phases[0].attack_interval == 2.0
        assert isinstance(definition.phases[1].abilities[0], GrantPassiveAbility)
        grant = definition.phases[1].abilities[0]
        assert isinstance(grant.create_passive(), Lifesteal)
        assert grant.create_passive() is not grant.create_passive()
        assert isinstance(definition.phases[2].abilities[0], EnrageAbility)
        assert definition.phases[2].abilities[0].multiplier == 2.0

    def test_no_phases_rejected(self, settings):
        """Test that a boss needs at least one phase."""
        data = self._create_boss_data()
        data["phases"] = []

        with pytest.raises(ValidationError):
            load_boss_definition(data, settings)

    def test_enrage_requires_multiplier(self):
        """Test that incomplete boss abilities fail validation."""
        with pytest.raises(ValidationError):
            BossAbilitySpec(kind="enrage")

    def test_build_boss_ability(self, settings):
        """Test building a single boss ability."""
        ability = build_boss_ability(BossAbilitySpec(kind="enrage", multiplier=1.25), settings)

        assert isinstance(ability, EnrageAbility)
        assert ability.multiplier == 1.25

    def test_granted_passive_checked_at_load(self, settings):
        """Test that a granted passive with bad parameters fails when the boss loads."""
        spec = BossAbilitySpec(kind="grant_passive", passive={"kind": "lifesteal", "params": {"precent": 0.3}})

        with pytest.raises(InvalidDefinitionError):
            build_boss_ability(spec, settings)
