"""Shared fixtures for the round engine tests."""

import random

import pytest

from cruise.config.settings import GameSettings, HitboxSettings, LedgerSettings, Settings
from cruise.core.state import RoundPhase
from cruise.engine.round import RoundEngine

# 1/64 s is exact in binary floating point, so simulated times add up exactly
STEP = 1 / 64

SHIP_LEFT = 34.0
SHIP_RIGHT = 174.0
LANE_WIDTH = 980.0


class FixedRoll:
    """Stands in for random.Random where a single draw is under test."""

    def __init__(self, value: float):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


class ScriptedUniform:
    """Returns scripted fractions of each requested range."""

    def __init__(self, fractions):
        self._fractions = list(fractions)

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self._fractions.pop(0)


class Driver:
    """Feeds the engine evenly spaced frame timestamps."""

    def __init__(self, engine: RoundEngine):
        self.engine = engine
        self.ts = 0.0
        self.snapshot = engine.tick(self.ts)

    def step(self, frames: int = 1):
        for _ in range(frames):
            self.ts += STEP
            self.snapshot = self.engine.tick(self.ts)
        return self.snapshot

    def run_for(self, seconds: float):
        return self.step(round(seconds / STEP))

    def run_until(self, predicate, limit: float = 30.0):
        for _ in range(round(limit / STEP)):
            self.step()
            if predicate(self.snapshot):
                return self.snapshot
        raise AssertionError(f"condition not reached within {limit}s")


def make_settings(**game) -> Settings:
    return Settings(
        _env_file=None,
        game=GameSettings(**game),
        hitbox=HitboxSettings(),
        ledger=LedgerSettings(),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine(settings) -> RoundEngine:
    return RoundEngine(settings=settings, rng=random.Random(1234))


@pytest.fixture
def driver(engine) -> Driver:
    """Engine past the readiness gate, sitting in the betting window."""
    d = Driver(engine)
    engine.signal_ready(SHIP_LEFT, SHIP_RIGHT, LANE_WIDTH)
    assert engine.phase == RoundPhase.BETTING
    return d


def prime(engine: RoundEngine, plan):
    """Override the hidden flag and multiplier of the idle obstacles, in spawn order.

    Args:
        plan: list of (is_hazard, multiplier) tuples
    """
    idle = [o for o in engine.field.obstacles if o.is_idle]
    for obstacle, (is_hazard, multiplier) in zip(idle, plan):
        obstacle.is_hazard = is_hazard
        obstacle.planned_multiplier = multiplier
    return idle
