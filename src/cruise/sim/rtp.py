"""
Return-to-player estimator.

Plays the outcome model (sequencer, hidden icebergs, lifeboat draw)
without kinematics, for a fixed cash-out policy, and reports the
realized RTP with a 95% confidence interval.

Usage:
    from cruise.sim.rtp import simulate_rtp
    result = simulate_rtp(rounds=100_000, cash_out_after=2, seed=42)
    print(result.to_dict())
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from cruise.config.settings import GameSettings
from cruise.engine.sequencer import MultiplierSequencer

logger = logging.getLogger(__name__)

# Upper edges of the reporting buckets
BUCKET_EDGES = [0.0, 1.0, 2.0, 5.0, 10.0, 50.0, 100.0]
BUCKET_LABELS = ["0x", "<=1x", "1-2x", "2-5x", "5-10x", "10-50x", "50-100x", "100x+"]


@dataclass
class RTPResult:
    """Simulation results for one cash-out policy."""
    rounds: int
    cash_out_after: Optional[int]
    rtp: float
    house_edge: float
    hit_rate: float  # share of rounds that returned anything
    avg_multiplier: float  # mean return over paying rounds
    max_multiplier: float
    total_wagered: float
    total_returned: float
    lifeboat_rate: float
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "rounds": self.rounds,
            "cash_out_after": self.cash_out_after,
            "rtp": round(self.rtp, 4),
            "house_edge": round(self.house_edge, 4),
            "hit_rate": round(self.hit_rate, 4),
            "avg_multiplier": round(self.avg_multiplier, 4),
            "max_multiplier": round(self.max_multiplier, 2),
            "total_wagered": round(self.total_wagered, 2),
            "total_returned": round(self.total_returned, 2),
            "lifeboat_rate": round(self.lifeboat_rate, 4),
            "confidence_95": [round(x, 4) for x in self.confidence_95],
            "distribution": self.distribution,
        }


def play_round(
    game: GameSettings,
    sequencer: MultiplierSequencer,
    rng: random.Random,
    cash_out_after: Optional[int],
) -> tuple[float, bool]:
    """Play one unit-stake round.

    Returns:
        (returned multiplier, whether the lifeboat paid)
    """
    sequencer.reset()
    collected = 1.0
    hits = 0

    while True:
        planned = sequencer.next()
        if rng.random() >= game.hazard_probability:
            collected = planned
            hits += 1
            if cash_out_after is not None and hits >= cash_out_after:
                # Paid now; whatever happens later cannot pay again
                return collected, False
            continue

        if rng.random() < game.lifeboat_probability:
            return collected, True
        return 0.0, False


def simulate_rtp(
    rounds: int = 100_000,
    cash_out_after: Optional[int] = 2,
    seed: int = 42,
    game: Optional[GameSettings] = None,
) -> RTPResult:
    """Run a Monte Carlo simulation.

    Args:
        rounds: Number of unit-stake rounds
        cash_out_after: Cash out after this many safe hits (None rides to the iceberg)
        seed: RNG seed
        game: Game settings (defaults to the shipped odds)

    Returns:
        RTPResult with measured RTP and distribution
    """
    if rounds <= 0:
        raise ValueError(f"rounds must be positive, got {rounds}")
    if cash_out_after is not None and cash_out_after < 1:
        raise ValueError(f"cash_out_after must be at least 1, got {cash_out_after}")

    game = game or GameSettings()
    rng = random.Random(seed)
    sequencer = MultiplierSequencer(rng)

    returns = np.empty(rounds, dtype=np.float64)
    lifeboats = 0
    for i in range(rounds):
        returns[i], rescued = play_round(game, sequencer, rng, cash_out_after)
        lifeboats += rescued

    total_returned = float(returns.sum())
    paying = returns[returns > 0]
    rtp = total_returned / rounds
    std_err = float(returns.std(ddof=1) / np.sqrt(rounds)) if rounds > 1 else 0.0
    ci = (rtp - 1.96 * std_err, rtp + 1.96 * std_err)

    # right=True: a 0.0 loss lands in bin 0, 2.00x counts as 1-2x
    bins = np.digitize(returns, BUCKET_EDGES, right=True)
    counts = np.bincount(bins, minlength=len(BUCKET_LABELS))
    distribution = {
        label: round(int(count) / rounds, 4)
        for label, count in zip(BUCKET_LABELS, counts)
        if count
    }

    logger.info(f"RTP over {rounds} rounds (cash out after {cash_out_after}): {rtp:.4f}")

    return RTPResult(
        rounds=rounds,
        cash_out_after=cash_out_after,
        rtp=rtp,
        house_edge=1.0 - rtp,
        hit_rate=float(np.count_nonzero(returns)) / rounds,
        avg_multiplier=float(paying.mean()) if paying.size else 0.0,
        max_multiplier=float(returns.max()),
        total_wagered=float(rounds),
        total_returned=total_returned,
        lifeboat_rate=lifeboats / rounds,
        confidence_95=ci,
        distribution=distribution,
    )
