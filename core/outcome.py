"""Wagers, round outcomes and settlement arithmetic."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from core.hand import BLACKJACK


class Outcome(Enum):
    """Outcome of a wager."""

    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    PUSHED = "PUSHED"

    def __str__(self) -> str:
        return self.value

    @property
    def is_final(self) -> bool:
        """Check if the wager has been decided."""
        return self != Outcome.PENDING


@dataclass
class Wager:
    """A stake placed on one round. The amount is debited when it is created."""

    amount: Decimal
    outcome: Outcome = Outcome.PENDING

    def __post_init__(self) -> None:
        self.amount = Decimal(str(self.amount))


def determine_outcome(player_score: int, dealer_score: int) -> Outcome:
    """
    Compare final totals once the dealer has played.

    A busted player never reaches this point; that round is already lost.

    Returns:
        WON if the dealer busts or the player is higher,
        LOST if the dealer is higher, PUSHED on a tie
    """
    if dealer_score > BLACKJACK:
        return Outcome.WON
    if player_score > dealer_score:
        return Outcome.WON
    if player_score < dealer_score:
        return Outcome.LOST
    return Outcome.PUSHED


def payout(outcome: Outcome, amount: Decimal) -> Decimal:
    """
    Amount credited back to the balance at settlement.

    The stake was debited at bet time, so a win returns stake plus even
    money, a push returns the stake and a loss returns nothing.
    """
    amount = Decimal(str(amount))
    if outcome == Outcome.WON:
        return amount * 2
    if outcome == Outcome.PUSHED:
        return amount
    if outcome == Outcome.LOST:
        return Decimal("0")
    raise ValueError("Cannot pay out a pending wager")


def net_result(outcome: Outcome, amount: Decimal) -> Decimal:
    """Net profit of a settled wager: +amount, -amount, or 0 for a push."""
    amount = Decimal(str(amount))
    if outcome == Outcome.WON:
        return amount
    if outcome == Outcome.LOST:
        return -amount
    if outcome == Outcome.PUSHED:
        return Decimal("0")
    raise ValueError("Pending wager has no net result")
