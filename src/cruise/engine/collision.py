"""Collision and outcome resolution.

Every tick the ship hitbox is tested against the idle obstacles in
spawn order. The first overlapping obstacle that is past its spawn
grace window is resolved; anything else waits for the next tick.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional, Tuple

from cruise.config.settings import GameSettings, HitboxSettings
from cruise.engine.kinematics import Obstacle, ObstacleField
from cruise.engine.ledger import Ledger

if TYPE_CHECKING:
    from cruise.engine.round import Round

logger = logging.getLogger(__name__)


class ContactKind(Enum):
    SAFE = auto()
    LIFEBOAT = auto()
    CRASHED = auto()

    @property
    def ends_round(self) -> bool:
        return self != ContactKind.SAFE


@dataclass
class Contact:
    """A resolved ship/obstacle contact."""

    kind: ContactKind
    obstacle: Obstacle
    multiplier: float
    survival_roll: Optional[float] = None
    payout: float = 0.0


class CollisionResolver:
    """Detects contacts and applies their outcome to the round and ledger."""

    def __init__(
        self,
        game: GameSettings,
        hitbox: HitboxSettings,
        rng: Optional[random.Random] = None,
    ):
        self._game = game
        self._hitbox = hitbox
        self.rng = rng or random.Random()

    def ship_hitbox(self, field: ObstacleField) -> Tuple[float, float]:
        geometry = field.geometry
        return (
            geometry.ship_left + self._hitbox.ship_left_pad,
            geometry.ship_right + self._hitbox.ship_right_pad,
        )

    def obstacle_hitbox(self, field: ObstacleField, obstacle: Obstacle) -> Tuple[float, float]:
        left = field.screen_x(obstacle)
        return (
            left + self._hitbox.ice_left_pad,
            left + obstacle.width - self._hitbox.ice_right_pad,
        )

    def overlaps(self, field: ObstacleField, obstacle: Obstacle) -> bool:
        ship_left, ship_right = self.ship_hitbox(field)
        ice_left, ice_right = self.obstacle_hitbox(field, obstacle)
        return ice_left <= ship_right and ice_right >= ship_left

    def find_contact(self, field: ObstacleField, now: float) -> Optional[Obstacle]:
        """First idle, non-fresh obstacle touching the ship."""
        for obstacle in field.obstacles:
            if not obstacle.is_idle:
                continue
            if field.is_fresh(obstacle, now):
                continue
            if self.overlaps(field, obstacle):
                return obstacle
        return None

    def resolve(
        self,
        field: ObstacleField,
        round_state: "Round",
        ledger: Ledger,
        now: float,
    ) -> Optional[Contact]:
        """Resolve at most one contact for this tick.

        Args:
            field: Obstacle set and scroll
            round_state: Live round (multiplier and hit count are updated)
            ledger: Wallet, credited on a lifeboat rescue
            now: Engine time in seconds

        Returns:
            The contact, or None if nothing touched the ship
        """
        obstacle = self.find_contact(field, now)
        if obstacle is None:
            return None

        if not obstacle.is_hazard:
            field.mark_resolving(obstacle, now)
            round_state.collected_multiplier = obstacle.planned_multiplier
            round_state.safe_hit_count += 1
            logger.debug(
                f"Safe hit #{round_state.safe_hit_count} on obstacle {obstacle.id}: "
                f"{obstacle.planned_multiplier:.2f}x"
            )
            return Contact(ContactKind.SAFE, obstacle, obstacle.planned_multiplier)

        # Hidden iceberg: one survival draw decides the round
        roll = self.rng.random()
        multiplier = round_state.collected_multiplier
        if roll < self._game.lifeboat_probability:
            payout = ledger.credit_lifeboat(round_state)
            logger.info(f"Iceberg on obstacle {obstacle.id}, lifeboat (roll={roll:.3f}, payout={payout:.2f})")
            return Contact(ContactKind.LIFEBOAT, obstacle, multiplier, roll, payout)

        logger.info(f"Iceberg on obstacle {obstacle.id}, crashed (roll={roll:.3f})")
        return Contact(ContactKind.CRASHED, obstacle, multiplier, roll)
