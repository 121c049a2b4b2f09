"""Shared fixtures for combat engine tests."""

import random

import pytest

from arena_combat.config import Settings
from arena_combat.engine import CombatSession, Unit


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings(_env_file=None, rng_seed=1234)


@pytest.fixture
def session(settings):
    """A combat session where every proc roll succeeds."""
    combat_session = CombatSession(settings=settings, rng=FixedRandom(0.0), fight_id="test")
    yield combat_session
    combat_session.close()


@pytest.fixture
def unlucky_session(settings):
    """A combat session where every proc roll fails."""
    combat_session = CombatSession(settings=settings, rng=FixedRandom(0.999), fight_id="test")
    yield combat_session
    combat_session.close()


@pytest.fixture
def hero() -> Unit:
    return Unit.spawn("Hero", max_hp=100, attack_power=10)


@pytest.fixture
def goblin() -> Unit:
    return Unit.spawn("Goblin", max_hp=100, attack_power=6)


@pytest.fixture
def fixed_random():
    """Factory for random sources that always roll the given value."""
    return FixedRandom
