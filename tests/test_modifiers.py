"""Tests for armor mitigation and the damage modifier pipeline."""

import math
from fractions import Fraction

import pytest

from arena_combat.engine import (
    CriticalHitModifier,
    DamageCapModifier,
    DamageContext,
    DamageModifier,
    ExecuteModifier,
    FlatDamageModifier,
    MinimumDamageModifier,
    ModifierPipeline,
    PercentageDamageModifier,
    Unit,
    mitigate,
)
from arena_combat.engine.modifiers import ceil_scale


class RecordingModifier(DamageModifier):
    """Records its priority into a shared list when invoked."""

    def __init__(self, priority: int, calls: list[int], owner: Unit | None = None) -> None:
        super().__init__(owner=owner)
        self.priority = priority
        self.calls = calls

    def modify(self, context: DamageContext) -> None:
        self.calls.append(self.priority)


class TestMitigation:
    """Tests for armor mitigation."""

    def test_no_armor_keeps_damage(self):
        """Test that zero armor leaves damage unchanged."""
        assert mitigate(10, 0) == 10

    def test_rounds_up(self):
        """Test that mitigation rounds up."""
        assert mitigate(10, 50) == 7  # 6.67
        assert mitigate(10, 100) == 5
        assert mitigate(1, 1000) == 1

    def test_formula_holds_for_range(self):
        """Test ceil(d * 100 / (100 + a)) and never more than d."""
        for armor in range(0, 301, 7):
            for damage in range(1, 60):
                mitigated = mitigate(damage, armor)
                assert mitigated == math.ceil(Fraction(damage * 100, 100 + armor))
                assert mitigated <= damage

    def test_zero_damage(self):
        """Test that non-positive damage mitigates to zero."""
        assert mitigate(0, 10) == 0

    def test_negative_armor_rejected(self):
        """Test that negative armor is a contract violation."""
        with pytest.raises(ValueError):
            mitigate(10, -1)


class TestCeilScale:
    """Tests for multiplicative rounding."""

    def test_exact_decimal_factor(self):
        """Test that 10 x 1.1 is 11, not 12."""
        assert ceil_scale(10, 1.1) == 11

    def test_half_rounds_up(self):
        """Test that 15 x 1.5 = 22.5 rounds to 23."""
        assert ceil_scale(15, 1.5) == 23


class TestModifierPipeline:
    """Tests for ModifierPipeline ordering and registration."""

    def _create_context(self, damage: int = 10) -> tuple[DamageContext, Unit, Unit]:
        """Create a context between two fresh units."""
        source = Unit.spawn("Source", max_hp=100, attack_power=damage)
        target = Unit.spawn("Target", max_hp=100)
        # The context holds weak references only
        self._units = (source, target)
        return DamageContext(source, target, damage), source, target

    def test_priority_order_regardless_of_registration(self):
        """Test that modifiers run in ascending priority order."""
        for registration in ([10, 100, 210], [210, 100, 10], [100, 210, 10]):
            calls: list[int] = []
            pipeline = ModifierPipeline()
            for priority in registration:
                pipeline.register(RecordingModifier(priority, calls))

            context, _, _ = self._create_context()
            pipeline.process(context)

            assert calls == [10, 100, 210]

    def test_equal_priority_keeps_registration_order(self):
        """Test that ties run in registration order."""
        calls: list[str] = []

        class Named(DamageModifier):
            def __init__(self, name: str) -> None:
                super().__init__()
                self.name = name

            def modify(self, context: DamageContext) -> None:
                calls.append(self.name)

        pipeline = ModifierPipeline()
        for name in ("first", "second", "third"):
            pipeline.register(Named(name))

        context, _, _ = self._create_context()
        pipeline.process(context)

        assert calls == ["first", "second", "third"]

    def test_each_modifier_runs_once(self):
        """Test that every modifier runs exactly once per process call."""
        calls: list[int] = []
        pipeline = ModifierPipeline()
        pipeline.register(RecordingModifier(50, calls))

        context, _, _ = self._create_context()
        pipeline.process(context)
        pipeline.process(context)

        assert calls == [50, 50]

    def test_duplicate_registration_rejected(self):
        """Test that registering the same instance twice raises."""
        pipeline = ModifierPipeline()
        modifier = FlatDamageModifier(5)
        pipeline.register(modifier)

        with pytest.raises(ValueError):
            pipeline.register(modifier)

    def test_unregister(self):
        """Test that unregistered modifiers stop applying."""
        pipeline = ModifierPipeline()
        modifier = FlatDamageModifier(5)
        pipeline.register(modifier)

        assert pipeline.unregister(modifier) is True
        assert pipeline.unregister(modifier) is False
        assert len(pipeline) == 0

        context, _, _ = self._create_context()
        assert pipeline.process(context).final_value == 10

    def test_owner_scope(self):
        """Test that an owned modifier only applies to its owner's damage."""
        context, source, _ = self._create_context()
        stranger = Unit.spawn("Stranger", max_hp=10)

        pipeline = ModifierPipeline()
        pipeline.register(FlatDamageModifier(5, owner=stranger))
        pipeline.register(FlatDamageModifier(3, owner=source))

        assert pipeline.process(context).final_value == 13

    def test_predicate_scope(self):
        """Test that a global modifier applies only to accepted sources."""
        context, _, _ = self._create_context()
        pipeline = ModifierPipeline()
        pipeline.register(FlatDamageModifier(5, predicate=lambda unit: unit is not None and unit.name == "Nobody"))

        assert pipeline.process(context).final_value == 10

    def test_negative_result_clamped(self):
        """Test that the final value never goes below zero."""
        context, _, _ = self._create_context()
        pipeline = ModifierPipeline()
        pipeline.register(FlatDamageModifier(-50))

        assert pipeline.process(context).final_value == 0

    def test_reentrant_process_rejected(self):
        """Test that calling process from inside a modifier raises."""
        pipeline = ModifierPipeline()

        class Reentrant(DamageModifier):
            def modify(self, context: DamageContext) -> None:
                pipeline.process(context)

        pipeline.register(Reentrant())
        context, _, _ = self._create_context()

        with pytest.raises(RuntimeError):
            pipeline.process(context)

        # Guard is released after the failure
        pipeline.unregister(pipeline.modifiers[0])
        assert pipeline.process(context).final_value == 10

    def test_flat_then_percentage(self):
        """Test 10 -> +5 -> x1.5 -> 23."""
        context, source, _ = self._create_context()
        pipeline = ModifierPipeline()
        pipeline.register(PercentageDamageModifier(1.5, owner=source))
        pipeline.register(FlatDamageModifier(5, owner=source))

        assert pipeline.process(context).final_value == 23


class TestModifierVariants:
    """Tests for individual modifier behavior."""

    def _create_context(self, damage: int = 10, target_hp: int = 100) -> DamageContext:
        source = Unit.spawn("Source", max_hp=100, attack_power=damage)
        target = Unit.spawn("Target", max_hp=100)
        target.stats.current_hp = target_hp
        self._units = (source, target)
        return DamageContext(source, target, damage)

    def test_execute_below_threshold(self):
        """Test that execute applies at or below the HP threshold."""
        context = self._create_context(target_hp=25)
        ExecuteModifier(health_threshold=0.25, damage_bonus=2.0).modify(context)
        assert context.final_value == 20

    def test_execute_above_threshold(self):
        """Test that execute does nothing above the threshold."""
        context = self._create_context(target_hp=26)
        ExecuteModifier(health_threshold=0.25, damage_bonus=2.0).modify(context)
        assert context.final_value == 10

    def test_critical_hit(self, fixed_random):
        """Test that a successful roll doubles damage and marks the hit critical."""
        context = self._create_context()
        CriticalHitModifier(crit_chance=0.5, rng=fixed_random(0.1)).modify(context)

        assert context.is_critical is True
        assert context.final_value == 20

    def test_critical_hit_missed(self, fixed_random):
        """Test that a failed roll leaves damage alone."""
        context = self._create_context()
        CriticalHitModifier(crit_chance=0.5, rng=fixed_random(0.9)).modify(context)

        assert context.is_critical is False
        assert context.final_value == 10

    def test_never_recrits(self, fixed_random):
        """Test that an already critical context is not multiplied again."""
        context = self._create_context()
        context.is_critical = True
        CriticalHitModifier(crit_chance=1.0, rng=fixed_random(0.0)).modify(context)

        assert context.final_value == 10

    def test_minimum_and_cap(self):
        """Test the floor and the cap."""
        context = self._create_context(damage=2)
        MinimumDamageModifier(5).modify(context)
        assert context.final_value == 5

        DamageCapModifier(3).modify(context)
        assert context.final_value == 3

    def test_context_requires_units(self):
        """Test that a context without a source is a contract violation."""
        target = Unit.spawn("Target", max_hp=10)
        with pytest.raises(ValueError):
            DamageContext(None, target, 5)
