"""Obstacle kinematics - world scroll, spawn timing and culling.

Obstacles live in world space and never move; the lane scrolls past
the ship at a constant speed. An obstacle meant to be the k-th upcoming
contact is placed at

    world_x = ship_right - ice_left_pad + scroll + speed * k * HIT_INTERVAL

so its hitbox reaches the ship exactly k intervals after it spawns,
no matter when in the round the spawn happens.
"""

import itertools
import logging
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, List, Optional

from cruise.config.settings import GameSettings, HitboxSettings
from cruise.engine.sequencer import MultiplierSequencer

logger = logging.getLogger(__name__)


class ObstacleStatus(Enum):
    """Lifecycle of an obstacle."""

    IDLE = auto()       # Approaching, can be hit
    RESOLVING = auto()  # Hit, waiting for the settle delay before removal


@dataclass
class Obstacle:
    """A block of ice in the lane.

    ``is_hazard`` is hidden from the renderer until contact.
    """

    id: int
    world_x: float
    width: float
    height: float
    planned_multiplier: float
    spawned_at: float
    is_hazard: bool = field(default=False, repr=False)
    status: ObstacleStatus = ObstacleStatus.IDLE
    resolved_at: Optional[float] = None

    @property
    def is_idle(self) -> bool:
        return self.status == ObstacleStatus.IDLE


@dataclass(frozen=True)
class ShipGeometry:
    """Pixel geometry measured by the renderer, relative to the lane's left edge."""

    ship_left: float
    ship_right: float
    lane_width: float

    def __post_init__(self) -> None:
        if self.ship_right <= self.ship_left:
            raise ValueError(
                f"Ship right edge ({self.ship_right}) must be past its left edge ({self.ship_left})"
            )
        if self.lane_width <= 0:
            raise ValueError(f"Lane width must be positive, got {self.lane_width}")


class ObstacleField:
    """Owns the scroll offset and the obstacle set for the live round."""

    def __init__(
        self,
        game: GameSettings,
        hitbox: HitboxSettings,
        sequencer: MultiplierSequencer,
        rng: Optional[random.Random] = None,
    ):
        self._game = game
        self._hitbox = hitbox
        self._sequencer = sequencer
        self._rng = rng or random.Random()
        self._ids = itertools.count(1)

        self.obstacles: List[Obstacle] = []
        self.scroll: float = 0.0
        self.speed: float = 0.0
        self.geometry: Optional[ShipGeometry] = None
        self._spawn_accum: float = 0.0

    @property
    def hit_interval(self) -> float:
        return self._game.hit_interval

    @property
    def idle_count(self) -> int:
        return sum(1 for o in self.obstacles if o.is_idle)

    def calibrate(self, geometry: ShipGeometry) -> float:
        """Pick a speed that keeps both initial obstacles on screen.

        The raw speed spreads the free lane over two intervals; the
        global speed multiplier then tunes the visual pace. Spawn
        distances scale with speed, so contact timing is unaffected.
        """
        self.geometry = geometry
        free_lane = geometry.lane_width - self._game.lane_margin - geometry.ship_right
        base = max(self._game.min_speed, free_lane / (2 * self._game.hit_interval))
        self.speed = base * self._game.speed_multiplier
        logger.debug(f"Calibrated speed: {self.speed:.1f} px/s (lane={geometry.lane_width})")
        return self.speed

    def reset(self, geometry: ShipGeometry) -> List[Obstacle]:
        """Start a fresh round. Returns the discarded obstacles."""
        discarded = self.obstacles
        self.obstacles = []
        self.scroll = 0.0
        self._spawn_accum = 0.0
        self._sequencer.reset()
        self.calibrate(geometry)
        return discarded

    def spawn_world_x(self, k: int) -> float:
        """World x for an obstacle that should make contact k intervals from now."""
        if self.geometry is None:
            raise ValueError("Cannot spawn before ship geometry is known")
        return (
            self.geometry.ship_right
            - self._hitbox.ice_left_pad
            + self.scroll
            + self.speed * k * self._game.hit_interval
        )

    def spawn(self, k: int, now: float) -> Obstacle:
        obstacle = Obstacle(
            id=next(self._ids),
            world_x=self.spawn_world_x(k),
            width=self._game.obstacle_width,
            height=self._game.obstacle_height,
            planned_multiplier=self._sequencer.next(),
            spawned_at=now,
            is_hazard=self._rng.random() < self._game.hazard_probability,
        )
        self.obstacles.append(obstacle)
        logger.debug(
            f"Spawned obstacle {obstacle.id} at x={obstacle.world_x:.1f} "
            f"(k={k}, {obstacle.planned_multiplier:.2f}x)"
        )
        return obstacle

    def spawn_initial(self, now: float) -> List[Obstacle]:
        """The two opening obstacles, due at one and two intervals."""
        return [self.spawn(1, now), self.spawn(2, now)]

    def advance(self, dt: float) -> None:
        self.scroll += self.speed * dt
        self._spawn_accum += dt

    def replenish(self, now: float, after_safe_hit: bool) -> Optional[Obstacle]:
        """Top the lane back up to the idle limit.

        A safe hit triggers an immediate replacement and restarts the
        cadence; otherwise a cadence spawn happens once per elapsed
        interval. At most one of the two fires per tick.
        """
        limit = self._game.max_idle_obstacles
        if after_safe_hit and self.idle_count < limit:
            self._spawn_accum = 0.0
            return self.spawn(2, now)

        if self._spawn_accum >= self._game.hit_interval and self.idle_count < limit:
            self._spawn_accum -= self._game.hit_interval
            return self.spawn(2, now)

        return None

    def screen_x(self, obstacle: Obstacle) -> float:
        """Left edge of the obstacle's sprite in lane coordinates."""
        return obstacle.world_x - self.scroll

    def is_fresh(self, obstacle: Obstacle, now: float) -> bool:
        return (now - obstacle.spawned_at) < self._game.spawn_grace

    def mark_resolving(self, obstacle: Obstacle, now: float) -> None:
        obstacle.status = ObstacleStatus.RESOLVING
        obstacle.resolved_at = now

    def cull(self) -> List[Obstacle]:
        """Drop obstacles whose trailing edge has left the screen."""
        threshold = self._game.cull_threshold
        kept = [o for o in self.obstacles if self.screen_x(o) + o.width > threshold]
        if len(kept) == len(self.obstacles):
            return []
        kept_ids = {o.id for o in kept}
        removed = [o for o in self.obstacles if o.id not in kept_ids]
        self.obstacles = kept
        return removed

    def remove(self, ids: Iterable[int]) -> List[Obstacle]:
        """Remove obstacles by id. Unknown ids are ignored."""
        drop = set(ids)
        removed = [o for o in self.obstacles if o.id in drop]
        if removed:
            self.obstacles = [o for o in self.obstacles if o.id not in drop]
        return removed

    def get(self, obstacle_id: int) -> Optional[Obstacle]:
        for o in self.obstacles:
            if o.id == obstacle_id:
                return o
        return None
