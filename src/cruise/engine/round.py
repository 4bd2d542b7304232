"""Round engine - drives betting windows, rounds and the per-tick simulation.

All live state is owned here and updated in place: the phase, the
round, the ledger, the sequencer (through the obstacle field) and the
timers. The renderer calls tick() once per frame with a timestamp and
draws the returned snapshot; player input goes through place_bet(),
cancel_bet() and cash_out().

Per tick while RUNNING:
    1. advance scroll
    2. resolve at most one contact
    3. on an iceberg, settle the round and stop
    4. spawn a replacement obstacle
    5. cull obstacles that left the screen
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import List, Optional

from cruise.config.settings import Settings, get_settings
from cruise.core.events import Event, EventBus, EventType
from cruise.core.state import RoundPhase, StateMachine
from cruise.engine.collision import CollisionResolver, Contact, ContactKind
from cruise.engine.kinematics import Obstacle, ObstacleField, ShipGeometry
from cruise.engine.ledger import CommandResult, Ledger, RejectReason
from cruise.engine.sequencer import MultiplierSequencer
from cruise.engine.timers import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class Round:
    """The unit of play, from stake lock to outcome."""

    round_id: int = 0
    collected_multiplier: float = 1.0
    safe_hit_count: int = 0
    active_stake: Optional[float] = None
    has_cashed_out: bool = False
    started_at: Optional[float] = None
    outcome: Optional[ContactKind] = None


@dataclass(frozen=True)
class ObstacleView:
    """What the renderer may know about an obstacle (no hazard flag)."""

    id: int
    world_x: float
    screen_x: float
    width: float
    height: float
    planned_multiplier: float
    is_resolving: bool


@dataclass(frozen=True)
class RoundSnapshot:
    """Read-only view of the engine for one frame."""

    phase: RoundPhase
    collected_multiplier: float
    safe_hit_count: int
    balance: float
    scroll_offset: float
    obstacles: List[ObstacleView] = field(default_factory=list)
    round_id: int = 0
    countdown: int = 0
    message: str = ""
    joined: bool = False
    active_stake: Optional[float] = None
    has_cashed_out: bool = False
    payout_preview: float = 0.0
    pending_bet: float = 0.0


class RoundEngine:
    """Owns one continuous game session."""

    BETTING_START_TIMER = "betting_start"
    COUNTDOWN_TIMER = "betting_countdown"
    RESULT_TIMER = "result_hold"

    BETTING_GROUP = "betting"
    SETTLE_GROUP = "settle"
    ROUND_GROUP = "round"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        event_bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self.event_bus = event_bus or EventBus()
        rng = rng or random.Random(self.settings.seed)

        self.state_machine = StateMachine()
        self.scheduler = Scheduler()
        self.ledger = Ledger(self.settings.ledger)
        self.sequencer = MultiplierSequencer(rng)
        self.field = ObstacleField(self.settings.game, self.settings.hitbox, self.sequencer, rng)
        self.resolver = CollisionResolver(self.settings.game, self.settings.hitbox, rng)

        self.round = Round()
        self.message = ""
        self.countdown = 0

        self._geometry: Optional[ShipGeometry] = None
        self._ship_loaded = False
        self._ready = False
        self._clock = 0.0
        self._last_ts: Optional[float] = None
        self._frame = 0

        self.state_machine.add_listener(self._on_phase_changed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def phase(self) -> RoundPhase:
        return self.state_machine.phase

    @property
    def now(self) -> float:
        """Simulated seconds since the engine was created."""
        return self._clock

    @property
    def is_ready(self) -> bool:
        return self._ready

    # ------------------------------------------------------------------
    # Readiness gate
    # ------------------------------------------------------------------

    def mark_ship_loaded(self) -> None:
        """The ship asset finished loading."""
        self._ship_loaded = True
        self._check_ready()

    def update_geometry(self, ship_left: float, ship_right: float, lane_width: float) -> None:
        """Record measured lane geometry (initial measure or a resize).

        A new measurement takes effect at the next round start so the
        running round keeps its timing.
        """
        self._geometry = ShipGeometry(ship_left, ship_right, lane_width)
        logger.debug(f"Geometry measured: {self._geometry}")
        self._check_ready()

    def signal_ready(self, ship_left: float, ship_right: float, lane_width: float) -> None:
        """Ship loaded and lane measured in one call."""
        self._ship_loaded = True
        self.update_geometry(ship_left, ship_right, lane_width)

    def _check_ready(self) -> None:
        if self._ready or not self._ship_loaded or self._geometry is None:
            return
        self._ready = True
        logger.info("Renderer ready, opening first betting window")
        self._emit(EventType.READY, {
            "ship_left": self._geometry.ship_left,
            "ship_right": self._geometry.ship_right,
            "lane_width": self._geometry.lane_width,
        })
        if self.phase == RoundPhase.IDLE:
            self.open_betting()

    # ------------------------------------------------------------------
    # Phase flow
    # ------------------------------------------------------------------

    def open_betting(self, message: Optional[str] = None) -> bool:
        """Enter the betting window and arm its countdown."""
        self.scheduler.cancel_group(self.BETTING_GROUP)
        self.scheduler.cancel(self.RESULT_TIMER)

        if not self.state_machine.can_transition(RoundPhase.BETTING):
            logger.warning(f"Cannot open betting from {self.phase.name}")
            return False

        # Reset before the transition so phase listeners may bet right away
        self.ledger.reset_join()
        self.round.active_stake = None
        self.round.has_cashed_out = False
        window = self.settings.game.betting_window
        self.countdown = math.ceil(window)
        self.message = message or f"Place your bet. Round starts in {self.countdown}s."

        self.state_machine.transition(RoundPhase.BETTING)
        self.scheduler.schedule(
            self.COUNTDOWN_TIMER, 1.0, self._countdown_step,
            group=self.BETTING_GROUP, interval=1.0,
        )
        self.scheduler.schedule(
            self.BETTING_START_TIMER, window, self.start_round,
            group=self.BETTING_GROUP,
        )
        return True

    def _countdown_step(self) -> None:
        self.countdown = max(0, self.countdown - 1)
        if not self.ledger.joined:
            self.message = f"Place your bet. Round starts in {self.countdown}s."
        self._emit(EventType.BETTING_COUNTDOWN, {"seconds": self.countdown})

    def start_round(self) -> CommandResult:
        """Close the betting window and launch a round.

        Called by the betting timer, or directly to start early.
        """
        if self.phase != RoundPhase.BETTING:
            return CommandResult.rejected(
                RejectReason.INVALID_PHASE_ACTION,
                "A round can only start from the betting window.",
            )

        self.scheduler.cancel_group(self.BETTING_GROUP)

        if not self.ledger.can_afford_round():
            message = "Insufficient balance. Add funds to play."
            logger.warning(f"Round refused: balance {self.ledger.balance:.2f}")
            self.open_betting(message)
            return CommandResult.rejected(RejectReason.INSUFFICIENT_BALANCE, message)

        # Drop anything left over from the previous round
        self.scheduler.cancel_group(self.SETTLE_GROUP)
        discarded = self.field.reset(self._geometry)
        for obstacle in discarded:
            self._emit(EventType.OBSTACLE_REMOVED, {"id": obstacle.id})

        self.round = Round(round_id=self.round.round_id + 1, started_at=self.now)
        stake = self.ledger.lock_stake(self.round)
        self.countdown = 0
        self.state_machine.transition(RoundPhase.RUNNING)

        for obstacle in self.field.spawn_initial(self.now):
            self._emit_spawn(obstacle)

        self.message = "Sail on. Cash out before a crash."
        logger.info(
            f"Round {self.round.round_id} started "
            f"(stake={stake if stake is not None else 'none'}, speed={self.field.speed:.1f})"
        )
        self._emit(EventType.ROUND_STARTED, {
            "round_id": self.round.round_id,
            "stake": stake,
            "speed": self.field.speed,
        })
        return CommandResult.ok(self.message, stake or 0.0)

    def _finish_round(self, contact: Contact) -> None:
        self.round.outcome = contact.kind
        if contact.kind == ContactKind.LIFEBOAT:
            self.state_machine.transition(RoundPhase.LIFEBOAT)
            self.message = "You hit a hidden iceberg... but escaped in lifeboats! Winnings granted."
            event_type = EventType.LIFEBOAT
        else:
            self.state_machine.transition(RoundPhase.CRASHED)
            self.message = "Hidden iceberg! The voyage ends here."
            event_type = EventType.CRASHED

        logger.info(
            f"Round {self.round.round_id} ended: {contact.kind.name} "
            f"at {self.round.collected_multiplier:.2f}x after {self.round.safe_hit_count} safe hits"
        )
        self._emit(event_type, {
            "round_id": self.round.round_id,
            "obstacle_id": contact.obstacle.id,
            "multiplier": contact.multiplier,
            "payout": contact.payout,
            "survival_roll": contact.survival_roll,
        })

        self.scheduler.schedule(
            self.RESULT_TIMER, self.settings.game.result_hold, self.open_betting,
            group=self.ROUND_GROUP,
        )

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def tick(self, timestamp: float) -> RoundSnapshot:
        """Advance the engine to ``timestamp`` (seconds).

        The step is clamped to ``max_tick`` so a slow frame cannot
        tunnel the ship through an obstacle. Timers fire first; the
        obstacle simulation only runs while the phase is RUNNING.
        """
        if self._last_ts is None:
            dt = 0.0
        else:
            dt = min(self.settings.game.max_tick, max(0.0, timestamp - self._last_ts))
        self._last_ts = timestamp
        self._clock += dt
        self._frame += 1

        # A round launched by a timer this tick starts moving next tick
        was_running = self.phase == RoundPhase.RUNNING
        self.scheduler.advance(self._clock)

        if was_running and self.phase == RoundPhase.RUNNING:
            self._simulate(dt)

        return self.snapshot()

    def _simulate(self, dt: float) -> None:
        now = self._clock
        self.field.advance(dt)

        contact = self.resolver.resolve(self.field, self.round, self.ledger, now)
        if contact is not None and contact.kind.ends_round:
            self._finish_round(contact)
            return

        if contact is not None:
            self._schedule_settle(contact.obstacle)
            self._emit(EventType.SAFE_HIT, {
                "round_id": self.round.round_id,
                "obstacle_id": contact.obstacle.id,
                "multiplier": contact.multiplier,
                "safe_hits": self.round.safe_hit_count,
            })

        spawned = self.field.replenish(now, after_safe_hit=contact is not None)
        if spawned is not None:
            self._emit_spawn(spawned)

        for obstacle in self.field.cull():
            self.scheduler.cancel(self._settle_timer_name(obstacle.id))
            self._emit(EventType.OBSTACLE_REMOVED, {"id": obstacle.id})

    @staticmethod
    def _settle_timer_name(obstacle_id: int) -> str:
        return f"settle_{obstacle_id}"

    def _schedule_settle(self, obstacle: Obstacle) -> None:
        obstacle_id = obstacle.id
        self.scheduler.schedule(
            self._settle_timer_name(obstacle_id),
            self.settings.game.settle_delay,
            lambda: self._remove_obstacle(obstacle_id),
            group=self.SETTLE_GROUP,
        )

    def _remove_obstacle(self, obstacle_id: int) -> None:
        for obstacle in self.field.remove([obstacle_id]):
            self._emit(EventType.OBSTACLE_REMOVED, {"id": obstacle.id})

    # ------------------------------------------------------------------
    # Player commands
    # ------------------------------------------------------------------

    def set_pending_bet(self, amount: float) -> CommandResult:
        return self.ledger.set_pending_bet(amount)

    def place_bet(self, amount: Optional[float] = None) -> CommandResult:
        """Join the upcoming round."""
        if self.phase != RoundPhase.BETTING:
            return self._reject(
                RejectReason.INVALID_PHASE_ACTION,
                "Bets are accepted only during the betting window.",
            )

        result = self.ledger.place_bet(amount)
        self.message = result.message
        if result.success:
            self._emit(EventType.BET_PLACED, {"amount": result.amount})
        return result

    def cancel_bet(self) -> CommandResult:
        if self.phase != RoundPhase.BETTING:
            return self._reject(
                RejectReason.INVALID_PHASE_ACTION,
                "Bets can only be canceled during the betting window.",
            )

        result = self.ledger.cancel_bet()
        if result.success:
            self.message = result.message
            self._emit(EventType.BET_CANCELLED)
        return result

    def cash_out(self) -> CommandResult:
        """Take stake x collected multiplier. The ship keeps sailing."""
        if self.phase != RoundPhase.RUNNING:
            return self._reject(
                RejectReason.INVALID_PHASE_ACTION,
                "Cash out is only possible while the round is running.",
            )

        result = self.ledger.cash_out(self.round)
        if result.success:
            self.message = result.message
            self._emit(EventType.CASHED_OUT, {
                "round_id": self.round.round_id,
                "multiplier": self.round.collected_multiplier,
                "payout": result.amount,
            })
        else:
            logger.debug(f"Cash out rejected: {result.reason.name}")
        return result

    def _reject(self, reason: RejectReason, message: str) -> CommandResult:
        logger.debug(f"Command rejected in {self.phase.name}: {reason.name}")
        return CommandResult.rejected(reason, message)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def display_phase(self) -> RoundPhase:
        if self.phase == RoundPhase.RUNNING and self.round.has_cashed_out:
            return RoundPhase.CASHED_OUT
        return self.phase

    def snapshot(self) -> RoundSnapshot:
        views = [
            ObstacleView(
                id=o.id,
                world_x=o.world_x,
                screen_x=self.field.screen_x(o),
                width=o.width,
                height=o.height,
                planned_multiplier=o.planned_multiplier,
                is_resolving=not o.is_idle,
            )
            for o in self.field.obstacles
        ]
        return RoundSnapshot(
            phase=self.display_phase(),
            collected_multiplier=self.round.collected_multiplier,
            safe_hit_count=self.round.safe_hit_count,
            balance=self.ledger.balance,
            scroll_offset=self.field.scroll,
            obstacles=views,
            round_id=self.round.round_id,
            countdown=self.countdown,
            message=self.message,
            joined=self.ledger.joined,
            active_stake=self.round.active_stake,
            has_cashed_out=self.round.has_cashed_out,
            payout_preview=self.ledger.payout_preview(self.round),
            pending_bet=self.ledger.pending_bet,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _on_phase_changed(self, old: RoundPhase, new: RoundPhase) -> None:
        self._emit(EventType.STATE_CHANGED, {"old": old, "new": new})

    def _emit_spawn(self, obstacle: Obstacle) -> None:
        self._emit(EventType.OBSTACLE_SPAWNED, {
            "id": obstacle.id,
            "world_x": obstacle.world_x,
            "multiplier": obstacle.planned_multiplier,
        })

    def _emit(self, event_type: EventType, data: Optional[dict] = None) -> None:
        self.event_bus.emit(Event(type=event_type, data=data or {}, source="round_engine"))
