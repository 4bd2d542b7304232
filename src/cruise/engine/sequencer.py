"""Multiplier sequencer - plans the multiplier carried by each obstacle.

Schedule by 1-based index within a round:
    1st:     uniform 1.10x - 1.30x
    2nd-5th: climb by 0.05 - 0.30, capped at 2.10x
    6th+:    climb by 1.00 - 3.00, uncapped

Values are rounded to cents when generated so that the stored,
displayed and paid multipliers are the same number.
"""

import random
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

FIRST_RANGE = (1.10, 1.30)
EARLY_INCREMENT = (0.05, 0.30)
EARLY_CAP = 2.10
EARLY_LAST_INDEX = 5
LATE_INCREMENT = (1.00, 3.00)


class UniformSource(Protocol):
    def uniform(self, a: float, b: float) -> float: ...


@dataclass(frozen=True)
class SequencerState:
    """Position in the round's multiplier plan."""

    next_index: int = 1
    last_planned: float = 1.0


def plan_next(state: SequencerState, rng: UniformSource) -> Tuple[float, SequencerState]:
    """Plan the next multiplier.

    Args:
        state: Current sequencer state
        rng: Random source (only ``uniform`` is used)

    Returns:
        The planned multiplier and the advanced state
    """
    idx = state.next_index
    last = state.last_planned

    if idx == 1:
        nxt = round(rng.uniform(*FIRST_RANGE), 2)
    elif idx <= EARLY_LAST_INDEX:
        inc = rng.uniform(*EARLY_INCREMENT)
        nxt = round(min(EARLY_CAP, last + inc), 2)
        if nxt <= last:
            # Cap reached: the cap wins over strict growth
            nxt = round(min(EARLY_CAP, last + EARLY_INCREMENT[0]), 2)
    else:
        inc = round(rng.uniform(*LATE_INCREMENT), 2)
        nxt = round(last + inc, 2)

    return nxt, SequencerState(next_index=idx + 1, last_planned=nxt)


class MultiplierSequencer:
    """Holds the sequencer state for the live round."""

    def __init__(self, rng: Optional[UniformSource] = None):
        self._rng = rng or random.Random()
        self._state = SequencerState()

    @property
    def state(self) -> SequencerState:
        return self._state

    def reset(self) -> None:
        """Back to (1, 1) for a new round."""
        self._state = SequencerState()

    def next(self) -> float:
        multiplier, self._state = plan_next(self._state, self._rng)
        return multiplier
