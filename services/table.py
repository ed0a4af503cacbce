"""Per-player blackjack table: wires a round to the balance and ledger services."""

import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator

from core.exceptions import (
    ActionInProgress,
    BalanceServiceError,
    InvalidAction,
    LedgerServiceError,
)
from core.game import EventType, RoundSession, RoundState, validate_bet
from core.game.state import Controls
from core.outcome import payout
from services.balance import BalanceService
from services.ledger import BetLedgerService, BetRecord

logger = logging.getLogger(__name__)

CREDIT_FAILED_MESSAGE = "Failed to update balance. Please contact support."


class BlackjackTable:
    """
    Settlement and persistence around one player's round.

    The round itself stays pure; this class debits the stake before dealing,
    credits the payout and writes the ledger record once the round settles.
    Only one action runs at a time: a second action issued while a service
    call is outstanding is refused rather than queued.
    """

    def __init__(
        self,
        player_id: str,
        balances: BalanceService,
        ledger: BetLedgerService,
        session: RoundSession | None = None,
        game_id: str = "BLACKJACK",
    ) -> None:
        self.player_id = player_id
        self.balances = balances
        self.ledger = ledger
        self.session = session or RoundSession()
        self.game_id = game_id
        self.errors: list[str] = []
        self.last_record_id: str | None = None
        self._busy = asyncio.Lock()

    @property
    def state(self) -> RoundState:
        """Current round state."""
        return self.session.state

    @property
    def busy(self) -> bool:
        """Check if an action is waiting on a service call."""
        return self._busy.locked()

    @property
    def controls(self) -> Controls:
        """Controls enabled for the player; all disabled while busy."""
        if self.busy:
            return Controls()
        return self.session.controls

    async def balance(self) -> Decimal:
        """Player's current balance."""
        return await self.balances.get_balance(self.player_id)

    @asynccontextmanager
    async def _exclusive(self, action: str) -> AsyncIterator[None]:
        if self._busy.locked():
            raise ActionInProgress(f"Cannot {action} while another action is in progress")
        async with self._busy:
            yield

    async def place_bet(self, amount: Decimal | int | str) -> RoundState:
        """
        Debit the stake, then deal.

        Raises:
            InvalidAction: If the round is not waiting for a bet
            InvalidBet: If the amount is not positive
            InsufficientFunds: If the amount exceeds the balance
            BalanceServiceError: If the balance cannot be read or debited;
                no cards are dealt
        """
        async with self._exclusive("bet"):
            if self.session.state != RoundState.BETTING:
                raise InvalidAction(f"Cannot bet during {self.session.state}")

            balance = await self.balances.get_balance(self.player_id)
            stake = validate_bet(amount, balance)

            try:
                new_balance = await self.balances.adjust_balance(self.player_id, -stake)
            except BalanceServiceError:
                logger.warning("Debit of %s failed for player %s", stake, self.player_id)
                raise

            self.errors.clear()
            self.session.events.emit_new(
                EventType.BALANCE_DEBITED,
                amount=str(stake),
                balance=str(new_balance),
            )
            logger.info("Player %s bet %s", self.player_id, stake)
            return self.session.place_bet(stake, balance)

    async def hit(self) -> RoundState:
        """Player hits; settles immediately on a bust."""
        async with self._exclusive("hit"):
            state = self.session.hit()
            if self.session.is_settled:
                await self._settle()
            return state

    async def stand(self) -> RoundState:
        """Player stands; the dealer plays and the round settles."""
        async with self._exclusive("stand"):
            state = self.session.stand()
            if self.session.is_settled:
                await self._settle()
            return state

    async def reset(self) -> RoundState:
        """Clear the round and return to betting."""
        async with self._exclusive("reset"):
            state = self.session.reset()
            self.errors.clear()
            self.last_record_id = None
            return state

    async def _settle(self) -> None:
        """Credit the payout, then record the wager in the ledger exactly once."""
        wager = self.session.wager
        assert wager is not None

        credit = payout(wager.outcome, wager.amount)
        if credit > 0:
            try:
                new_balance = await self.balances.adjust_balance(self.player_id, credit)
            except BalanceServiceError as e:
                logger.error("Credit of %s failed for player %s: %s", credit, self.player_id, e)
                self.errors.append(CREDIT_FAILED_MESSAGE)
                self.session.events.emit_new(EventType.SERVICE_ERROR, service="balance", message=str(e))
            else:
                self.session.events.emit_new(
                    EventType.BALANCE_CREDITED,
                    amount=str(credit),
                    balance=str(new_balance),
                )

        record = BetRecord(
            player_id=self.player_id,
            game_id=self.game_id,
            amount=wager.amount,
            outcome=wager.outcome,
            player_score=self.session.player_score,
            dealer_score=self.session.dealer_score,
        )
        try:
            self.last_record_id = await self.ledger.record(record)
        except LedgerServiceError as e:
            logger.exception("Failed to record bet for player %s", self.player_id)
            self.errors.append(f"Failed to record bet: {e}")
            self.session.events.emit_new(EventType.SERVICE_ERROR, service="ledger", message=str(e))
        else:
            self.session.events.emit_new(EventType.BET_RECORDED, record_id=self.last_record_id)

        logger.info(
            "Player %s %s %s (player %d, dealer %d)",
            self.player_id,
            wager.outcome.value.lower(),
            wager.amount,
            self.session.player_score,
            self.session.dealer_score,
        )
