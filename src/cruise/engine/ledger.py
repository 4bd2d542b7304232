"""Betting and payout ledger.

The balance changes in exactly two places: the stake is deducted
when a joined round starts, and a payout is credited on cash-out or
on a lifeboat rescue. Both are guarded so each happens at most once
per round. Rejections come back as CommandResult values, never as
exceptions.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional

from cruise.config.settings import LedgerSettings

if TYPE_CHECKING:
    from cruise.engine.round import Round

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def money(value: float) -> float:
    """Round to cents."""
    return round(value, 2)


class RejectReason(Enum):
    """Why a player command was refused."""

    INSUFFICIENT_BALANCE = auto()
    INVALID_PHASE_ACTION = auto()
    DUPLICATE_CASH_OUT = auto()
    NOT_JOINED = auto()


@dataclass
class CommandResult:
    """Outcome of a player command."""

    success: bool
    message: str
    reason: Optional[RejectReason] = None
    amount: float = 0.0

    @classmethod
    def ok(cls, message: str, amount: float = 0.0) -> "CommandResult":
        return cls(success=True, message=message, amount=amount)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "CommandResult":
        return cls(success=False, message=message, reason=reason)


class Ledger:
    """Wallet and the bet being configured for the next round.

    Phase checks live in the round engine. The per-round stake and
    the one-shot payout guard live on the Round, which the ledger
    reads and updates when it deducts or credits.
    """

    def __init__(self, settings: LedgerSettings):
        self._settings = settings
        self.balance: float = money(settings.starting_balance)
        self.pending_bet: float = money(settings.default_bet)
        self.joined: bool = False
        self.locked_stake: Optional[float] = None  # set on join, read at round start

    @property
    def min_stake(self) -> float:
        return self._settings.min_stake

    def can_afford_round(self) -> bool:
        return self.balance >= self._settings.min_stake

    def set_pending_bet(self, amount: float) -> CommandResult:
        """Configure the bet for the next join.

        Never touches the balance or a stake that is already placed.
        """
        self.pending_bet = money(max(self._settings.min_stake, amount))
        return CommandResult.ok(f"Bet set to {self.pending_bet:.2f}.", self.pending_bet)

    def place_bet(self, amount: Optional[float] = None) -> CommandResult:
        """Join the upcoming round with ``amount`` (or the pending bet)."""
        if self.balance < self._settings.min_stake:
            return CommandResult.rejected(
                RejectReason.INSUFFICIENT_BALANCE,
                "Insufficient balance to place a bet.",
            )

        requested = self.pending_bet if amount is None else amount
        stake = money(clamp(requested, self._settings.min_stake, self.balance))
        self.pending_bet = stake
        self.locked_stake = stake
        self.joined = True
        logger.info(f"Bet placed: {stake:.2f}")
        return CommandResult.ok(f"Bet placed: {stake:.2f} - starting soon...", stake)

    def cancel_bet(self) -> CommandResult:
        if not self.joined:
            return CommandResult.rejected(RejectReason.NOT_JOINED, "No bet to cancel.")
        self.joined = False
        self.locked_stake = None
        logger.info("Bet cancelled")
        return CommandResult.ok("Bet canceled. You can place a new bet before the round starts.")

    def reset_join(self) -> None:
        """A new betting window starts with nobody joined."""
        self.joined = False
        self.locked_stake = None

    def lock_stake(self, round_state: "Round") -> Optional[float]:
        """Deduct the stake at round start.

        Returns:
            The stake, or None if the player did not join
        """
        round_state.has_cashed_out = False
        if not self.joined or self.locked_stake is None:
            round_state.active_stake = None
            return None

        stake = money(clamp(self.locked_stake, self._settings.min_stake, self.balance))
        round_state.active_stake = stake
        self.balance = money(self.balance - stake)
        logger.info(f"Stake locked: {stake:.2f} (balance {self.balance:.2f})")
        return stake

    def cash_out(self, round_state: "Round") -> CommandResult:
        """Credit stake x collected multiplier, once per round."""
        if not self.joined or round_state.active_stake is None:
            return CommandResult.rejected(
                RejectReason.NOT_JOINED,
                "You did not join this round.",
            )
        if round_state.has_cashed_out:
            return CommandResult.rejected(
                RejectReason.DUPLICATE_CASH_OUT,
                "Already cashed out this round.",
            )

        payout = self._credit(round_state)
        return CommandResult.ok(f"Cashed out {payout:.2f}! Voyage continues.", payout)

    def credit_lifeboat(self, round_state: "Round") -> float:
        """Pay the rescued stake unless the round was already paid. Returns the payout."""
        if not self.joined or round_state.active_stake is None or round_state.has_cashed_out:
            return 0.0
        return self._credit(round_state)

    def payout_preview(self, round_state: "Round") -> float:
        if not self.joined or round_state.active_stake is None:
            return 0.0
        return money(round_state.active_stake * round_state.collected_multiplier)

    def _credit(self, round_state: "Round") -> float:
        multiplier = round_state.collected_multiplier
        payout = money(round_state.active_stake * multiplier)
        self.balance = money(self.balance + payout)
        round_state.has_cashed_out = True
        logger.info(f"Payout credited: {payout:.2f} at {multiplier:.2f}x (balance {self.balance:.2f})")
        return payout
