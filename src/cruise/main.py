"""
Main entry point for CRUISE.

Runs the round engine headless: an autopilot player bets every
round and cashes out at a target multiplier, or the RTP estimator
reports the payout profile of the shipped odds.
"""

import asyncio
import json
import logging
import sys

from cruise.config.settings import Settings, get_settings
from cruise.core.events import Event, EventBus, EventType, tick_event
from cruise.core.state import RoundPhase
from cruise.engine.round import RoundEngine

logger = logging.getLogger(__name__)

# Default lane layout of the reference renderer (px)
SHIP_LEFT = 34.0
SHIP_RIGHT = 174.0
LANE_WIDTH = 980.0


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


class Autopilot:
    """Bets each round and cashes out once the target multiplier is collected."""

    def __init__(self, engine: RoundEngine, target_multiplier: float, rounds: int):
        self.engine = engine
        self.target = target_multiplier
        self.rounds = rounds
        self.finished = 0
        self.done = asyncio.Event()

        bus = engine.event_bus
        bus.subscribe(EventType.STATE_CHANGED, self._on_state_changed)
        bus.subscribe(EventType.SAFE_HIT, self._on_safe_hit)
        bus.subscribe(EventType.LIFEBOAT, self._on_round_over)
        bus.subscribe(EventType.CRASHED, self._on_round_over)

    def _on_state_changed(self, event: Event) -> None:
        if event.data["new"] != RoundPhase.BETTING or self.done.is_set():
            return
        if not self.engine.ledger.can_afford_round():
            logger.warning(
                f"Autopilot stopping after {self.finished} rounds: "
                f"balance {self.engine.ledger.balance:.2f} is below the minimum stake"
            )
            self.done.set()
            return
        self.engine.place_bet()

    def _on_safe_hit(self, event: Event) -> None:
        if event.data["multiplier"] >= self.target and not self.engine.round.has_cashed_out:
            self.engine.cash_out()

    def _on_round_over(self, event: Event) -> None:
        self.finished += 1
        if self.finished >= self.rounds:
            self.done.set()


async def run_autopilot(settings: Settings) -> RoundEngine:
    """Drive the engine on a frame loop until the autopilot is done.

    Frame ticks are queued on the event bus and dispatched by its run
    loop; a SHUTDOWN event stops the loop once the autopilot finishes.
    """
    event_bus = EventBus()
    engine = RoundEngine(settings=settings, event_bus=event_bus)
    autopilot = Autopilot(engine, settings.target_multiplier, settings.rounds)

    def on_tick(event: Event) -> None:
        engine.tick(event.timestamp)

    def on_shutdown(event: Event) -> None:
        event_bus.stop()

    event_bus.subscribe(EventType.TICK, on_tick)
    event_bus.subscribe(EventType.SHUTDOWN, on_shutdown)
    bus_task = asyncio.create_task(event_bus.run())

    engine.signal_ready(SHIP_LEFT, SHIP_RIGHT, LANE_WIDTH)
    start_balance = engine.ledger.balance

    loop = asyncio.get_running_loop()
    frame_time = 1.0 / settings.fps
    frame = 0
    last = loop.time()
    while not autopilot.done.is_set():
        await asyncio.sleep(frame_time)
        now = loop.time()
        frame += 1
        event = tick_event(now - last, frame)
        event.timestamp = now
        event_bus.queue_event(event)
        last = now

    event_bus.queue_event(Event(EventType.SHUTDOWN, source="main"))
    await bus_task

    logger.info(
        f"Played {autopilot.finished} rounds: balance {start_balance:.2f} -> "
        f"{engine.ledger.balance:.2f}"
    )
    return engine


def run_rtp(settings: Settings) -> None:
    """Print RTP estimates for a few cash-out policies."""
    from cruise.sim.rtp import simulate_rtp

    seed = settings.seed if settings.seed is not None else 42
    for cash_out_after in (1, 2, 3, 5, 6, None):
        result = simulate_rtp(
            rounds=settings.rtp_rounds,
            cash_out_after=cash_out_after,
            seed=seed,
            game=settings.game,
        )
        print(json.dumps(result.to_dict()))


def main() -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()
    get_settings.cache_clear()
    settings = get_settings()

    setup_logging(settings.debug)

    logger.info("CRUISE starting...")

    try:
        if settings.mode == "autopilot":
            asyncio.run(run_autopilot(settings))
        elif settings.mode == "rtp":
            run_rtp(settings)
        else:
            logger.error(f"Unknown mode: {settings.mode}")
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("CRUISE stopped")


if __name__ == "__main__":
    main()
