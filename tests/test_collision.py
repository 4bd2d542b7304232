"""Tests for contact detection and outcome resolution."""

import random

import pytest

from cruise.config.settings import GameSettings, HitboxSettings, LedgerSettings
from cruise.engine.collision import CollisionResolver, ContactKind
from cruise.engine.kinematics import ObstacleField, ObstacleStatus, ShipGeometry
from cruise.engine.ledger import Ledger
from cruise.engine.round import Round
from cruise.engine.sequencer import MultiplierSequencer

from conftest import LANE_WIDTH, SHIP_LEFT, SHIP_RIGHT, FixedRoll


@pytest.fixture
def obstacle_field():
    game = GameSettings()
    rng = random.Random(0)
    f = ObstacleField(game, HitboxSettings(), MultiplierSequencer(rng), rng)
    f.reset(ShipGeometry(SHIP_LEFT, SHIP_RIGHT, LANE_WIDTH))
    return f


@pytest.fixture
def ledger():
    ledger = Ledger(LedgerSettings())
    ledger.place_bet(10)
    return ledger


@pytest.fixture
def live_round(ledger):
    r = Round(round_id=1)
    ledger.lock_stake(r)
    return r


def resolver_with_roll(roll: float) -> CollisionResolver:
    return CollisionResolver(GameSettings(), HitboxSettings(), FixedRoll(roll))


def touching(obstacle_field, now=0.0, is_hazard=False, multiplier=1.25):
    """Spawn an obstacle whose hitbox already reaches the ship."""
    obstacle = obstacle_field.spawn(0, now)
    obstacle.is_hazard = is_hazard
    obstacle.planned_multiplier = multiplier
    return obstacle


def test_overlap_edges(obstacle_field):
    resolver = resolver_with_roll(0.5)
    obstacle = obstacle_field.spawn(1, now=0.0)

    # hitbox left edge exactly on the ship's right edge counts as contact
    obstacle_field.scroll = obstacle.world_x + 50 - SHIP_RIGHT
    assert resolver.overlaps(obstacle_field, obstacle)

    obstacle_field.scroll -= 0.5
    assert not resolver.overlaps(obstacle_field, obstacle)

    # trailing edge just past the ship's left edge
    obstacle_field.scroll = obstacle.world_x + obstacle.width - SHIP_LEFT + 0.5
    assert not resolver.overlaps(obstacle_field, obstacle)


def test_grace_window_blocks_fresh_obstacles(obstacle_field):
    resolver = resolver_with_roll(0.5)
    obstacle = touching(obstacle_field, now=1.0)

    assert resolver.find_contact(obstacle_field, now=1.1) is None
    assert resolver.find_contact(obstacle_field, now=1.25) is obstacle


def test_safe_hit_updates_round(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.5)
    obstacle = touching(obstacle_field, multiplier=1.20)

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert contact.kind == ContactKind.SAFE
    assert live_round.collected_multiplier == 1.20
    assert live_round.safe_hit_count == 1
    assert obstacle.status == ObstacleStatus.RESOLVING
    assert ledger.balance == 990.0


def test_one_contact_per_tick(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.5)
    first = touching(obstacle_field, multiplier=1.20)
    second = touching(obstacle_field, multiplier=1.40)

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert contact.obstacle is first
    assert second.status == ObstacleStatus.IDLE
    assert live_round.safe_hit_count == 1

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.02)
    assert contact.obstacle is second
    assert live_round.collected_multiplier == 1.40


def test_resolving_obstacles_are_ignored(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.5)
    obstacle = touching(obstacle_field)
    obstacle_field.mark_resolving(obstacle, 0.5)

    assert resolver.resolve(obstacle_field, live_round, ledger, now=1.0) is None


def test_iceberg_lifeboat_pays_once(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.03)
    live_round.collected_multiplier = 1.50
    touching(obstacle_field, is_hazard=True)

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert contact.kind == ContactKind.LIFEBOAT
    assert contact.survival_roll == 0.03
    assert contact.payout == 15.0
    assert ledger.balance == 1005.0
    assert live_round.has_cashed_out


def test_iceberg_lifeboat_after_cash_out(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.01)
    live_round.collected_multiplier = 1.20
    ledger.cash_out(live_round)
    touching(obstacle_field, is_hazard=True)

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert contact.kind == ContactKind.LIFEBOAT
    assert contact.payout == 0.0
    assert ledger.balance == 1002.0


def test_iceberg_crash(obstacle_field, ledger, live_round):
    resolver = resolver_with_roll(0.80)
    obstacle = touching(obstacle_field, is_hazard=True)

    contact = resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert contact.kind == ContactKind.CRASHED
    assert contact.kind.ends_round
    assert ledger.balance == 990.0
    assert live_round.safe_hit_count == 0
    # the iceberg stays intact
    assert obstacle.status == ObstacleStatus.IDLE


def test_survival_draw_only_on_icebergs(obstacle_field, ledger, live_round):
    roll = FixedRoll(0.5)
    resolver = CollisionResolver(GameSettings(), HitboxSettings(), roll)
    touching(obstacle_field)

    resolver.resolve(obstacle_field, live_round, ledger, now=1.0)

    assert roll.calls == 0
