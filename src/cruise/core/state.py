"""
Round phase state machine for CRUISE.

States:
    IDLE: Waiting for the renderer to report geometry (pre-first-round)
    BETTING: Betting window open, countdown running
    RUNNING: Obstacle simulation active
    CASHED_OUT: Display-only phase for a running round that was cashed out
    CRASHED: Hidden iceberg hit, stake forfeited
    LIFEBOAT: Hidden iceberg hit, survived with payout

CASHED_OUT is never entered by the machine itself: cashing out is a
ledger event and the simulation stays RUNNING.
"""

from enum import Enum, auto
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class RoundPhase(Enum):
    """Round phases."""
    IDLE = auto()
    BETTING = auto()
    RUNNING = auto()
    CASHED_OUT = auto()
    CRASHED = auto()
    LIFEBOAT = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (RoundPhase.CRASHED, RoundPhase.LIFEBOAT)


PhaseListener = Callable[[RoundPhase, RoundPhase], None]


class StateMachine:
    """
    Manages the round phase and its transitions.

    Refuses transitions that are not listed in VALID_TRANSITIONS
    and notifies listeners of every accepted change.
    """

    VALID_TRANSITIONS: list[tuple[RoundPhase, RoundPhase]] = [
        # One-time readiness gate
        (RoundPhase.IDLE, RoundPhase.BETTING),

        # From BETTING
        (RoundPhase.BETTING, RoundPhase.BETTING),  # Re-open on insufficient balance
        (RoundPhase.BETTING, RoundPhase.RUNNING),

        # From RUNNING
        (RoundPhase.RUNNING, RoundPhase.CRASHED),
        (RoundPhase.RUNNING, RoundPhase.LIFEBOAT),

        # Terminal phases settle back into betting
        (RoundPhase.CRASHED, RoundPhase.BETTING),
        (RoundPhase.LIFEBOAT, RoundPhase.BETTING),
    ]

    def __init__(self, initial_phase: RoundPhase = RoundPhase.IDLE) -> None:
        self._phase = initial_phase
        self._listeners: list[PhaseListener] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)
        logger.info(f"StateMachine initialized with phase: {initial_phase.name}")

    @property
    def phase(self) -> RoundPhase:
        """Get current phase."""
        return self._phase

    def can_transition(self, to_phase: RoundPhase) -> bool:
        """Check if transition to given phase is valid."""
        return (self._phase, to_phase) in self._valid_transitions

    def transition(self, to_phase: RoundPhase) -> bool:
        """
        Attempt to transition to a new phase.

        Args:
            to_phase: Target phase

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_phase):
            logger.warning(
                f"Invalid transition: {self._phase.name} -> {to_phase.name}"
            )
            return False

        old_phase = self._phase
        self._phase = to_phase

        logger.info(f"Phase transition: {old_phase.name} -> {to_phase.name}")

        for listener in self._listeners:
            try:
                listener(old_phase, to_phase)
            except Exception as e:
                logger.error(f"Error in phase listener: {e}")

        return True

    def add_listener(self, callback: PhaseListener) -> None:
        """Add a phase change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: PhaseListener) -> None:
        """Remove a phase change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)
