"""Blackjack round engine with state machine."""

from decimal import Decimal
from random import Random
from typing import Callable

from transitions import Machine

from core.cards import Card, Deck
from core.dealer import DEALER_STANDS_ON, dealer_should_hit
from core.exceptions import DeckExhausted, InsufficientFunds, InvalidAction, InvalidBet
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import TRANSITIONS, Controls, RoundState, controls_for
from core.hand import Hand, Side
from core.outcome import Outcome, Wager, determine_outcome

OUTCOME_EVENTS = {
    Outcome.WON: EventType.PLAYER_WINS,
    Outcome.LOST: EventType.PLAYER_LOSES,
    Outcome.PUSHED: EventType.PUSH,
}


def validate_bet(amount: Decimal | int | str, balance: Decimal | int | str) -> Decimal:
    """
    Check a bet against the available balance.

    Returns:
        The amount as a Decimal

    Raises:
        InvalidBet: If the amount is not positive
        InsufficientFunds: If the amount exceeds the balance
    """
    amount = Decimal(str(amount))
    balance = Decimal(str(balance))
    if not amount.is_finite() or amount <= 0:
        raise InvalidBet(f"Bet must be a positive amount, got {amount}")
    if amount > balance:
        raise InsufficientFunds(required=amount, available=balance)
    return amount


class RoundSession:
    """
    One player's blackjack round, driven by a state machine.

    Owns the deck, both hands and the wager. This is pure game logic:
    balances are passed in and never touched, so every transition can be
    exercised without any service. Communication happens through events,
    return values and raised errors only.
    """

    # State machine states
    STATES = [s.name.lower() for s in RoundState]

    def __init__(
        self,
        deck: Deck | None = None,
        rng: Random | None = None,
        dealer_stands_on: int = DEALER_STANDS_ON,
    ) -> None:
        """
        Initialize a round waiting for a bet.

        Args:
            deck: Deck to deal from (a fresh 52-card deck if not provided)
            rng: Random number generator for reproducible draws
            dealer_stands_on: Lowest total the dealer stands on
        """
        self.deck = deck if deck is not None else Deck(rng=rng)
        self.player_hand = Hand(side=Side.PLAYER)
        self.dealer_hand = Hand(side=Side.DEALER)
        self.wager: Wager | None = None
        self.dealer_stands_on = dealer_stands_on
        self.is_abandoned = False
        self.events = EventEmitter()

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=TRANSITIONS,
            initial="betting",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def state(self) -> RoundState:
        """Get current round state as enum."""
        return RoundState[self._machine_state.upper()]  # type: ignore

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to round events."""
        self.events.subscribe(handler, event_type)

    def place_bet(self, amount: Decimal | int | str, balance: Decimal | int | str) -> RoundState:
        """
        Place a wager and deal the opening cards.

        Args:
            amount: Stake for this round
            balance: Player's balance before the stake is debited

        Returns:
            The state after dealing (PLAYER_TURN)

        Raises:
            InvalidAction: If the round is not waiting for a bet
            InvalidBet: If the amount is not positive
            InsufficientFunds: If the amount exceeds the balance
            DeckExhausted: If the deck runs out while dealing
        """
        if self.state != RoundState.BETTING:
            raise InvalidAction(f"Cannot bet during {self.state}")

        stake = validate_bet(amount, balance)
        self.wager = Wager(amount=stake)
        self.events.emit_new(EventType.BET_PLACED, amount=str(stake))

        self.start_dealing()  # Trigger state transition
        self._deal_initial_cards()
        return self.state

    def _deal_initial_cards(self) -> None:
        """Deal player, dealer hole card, player, dealer up card."""
        self._deal(self.player_hand)
        self._deal(self.dealer_hand, face_up=False)
        self._deal(self.player_hand)
        self._deal(self.dealer_hand)

        self.begin_player_turn()
        self.events.emit_new(
            EventType.ROUND_STARTED,
            player_score=self.player_score,
            dealer_showing=self.dealer_score,
        )

        if self.player_hand.is_twenty_one:
            self.events.emit_new(EventType.HIT_DISABLED, player_score=self.player_score)

    def _deal(self, hand: Hand, face_up: bool = True) -> Card:
        """Move one card from the deck into a hand."""
        try:
            card = self.deck.draw()
        except DeckExhausted:
            self._abandon()
            raise

        if not face_up:
            card = card.face_down()
        hand.add_card(card)
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card),
            hand=str(hand.side),
            hand_value=hand.score,
            cards_remaining=self.deck.cards_remaining,
        )
        return card

    def _abandon(self) -> None:
        """Stop a round the deck can no longer serve."""
        self.is_abandoned = True
        self.events.emit_new(EventType.DECK_EXHAUSTED)
        self.abandon()
        self.events.emit_new(EventType.ROUND_ABANDONED, state=self.state.name)

    def _require_player_turn(self, action: str) -> None:
        if self.state != RoundState.PLAYER_TURN:
            raise InvalidAction(f"Cannot {action} during {self.state}")

    def hit(self) -> RoundState:
        """
        Player takes another card.

        Returns:
            PLAYER_TURN, or SETTLED if the player busts

        Raises:
            InvalidAction: Outside the player's turn, or with a total of 21
            DeckExhausted: If the deck is empty
        """
        self._require_player_turn("hit")
        if self.player_hand.is_twenty_one:
            raise InvalidAction("Cannot hit on 21")

        self._deal(self.player_hand)
        self.events.emit_new(EventType.PLAYER_HIT, hand_value=self.player_score)

        if self.player_hand.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_value=self.player_score)
            self._reveal_hole_card()
            self.player_busts()
            self._finish(Outcome.LOST)
        elif self.player_hand.is_twenty_one:
            self.events.emit_new(EventType.HIT_DISABLED, player_score=self.player_score)

        return self.state

    def stand(self) -> RoundState:
        """
        Player stands; the dealer reveals and plays out their hand.

        Returns:
            SETTLED

        Raises:
            InvalidAction: Outside the player's turn
            DeckExhausted: If the deck runs out during the dealer's draws
        """
        self._require_player_turn("stand")

        self.events.emit_new(EventType.PLAYER_STAND, hand_value=self.player_score)
        self._reveal_hole_card()
        self.player_stands()
        self._play_dealer()
        return self.state

    def _reveal_hole_card(self) -> None:
        for card in self.dealer_hand.reveal_hidden():
            self.events.emit_new(
                EventType.DEALER_REVEALS,
                card=str(card),
                hand_value=self.dealer_score,
            )

    def _play_dealer(self) -> None:
        """Dealer draws until reaching the stand threshold."""
        while dealer_should_hit(self.dealer_score, self.dealer_stands_on):
            self._deal(self.dealer_hand)
            self.events.emit_new(EventType.DEALER_HITS, hand_value=self.dealer_score)

        if self.dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=self.dealer_score)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.dealer_score)

        outcome = determine_outcome(self.player_score, self.dealer_score)
        self.dealer_done()
        self._finish(outcome)

    def _finish(self, outcome: Outcome) -> None:
        """Record the outcome on the wager once the round is settled."""
        assert self.wager is not None
        self.wager.outcome = outcome
        self.events.emit_new(
            OUTCOME_EVENTS[outcome],
            player_score=self.player_score,
            dealer_score=self.dealer_score,
        )
        self.events.emit_new(
            EventType.ROUND_SETTLED,
            outcome=outcome.value,
            amount=str(self.wager.amount),
        )

    def reset(self) -> RoundState:
        """
        Return to betting with a full deck, empty hands and no wager.

        Resetting while already waiting for a bet leaves the round unchanged.
        The event history is cleared, so it only ever holds one round.

        Raises:
            InvalidAction: While a round is still being played
        """
        if self.state == RoundState.BETTING:
            return self.state
        if self.state != RoundState.SETTLED:
            raise InvalidAction(f"Cannot reset during {self.state}")

        self.deck.reset()
        self.player_hand.clear()
        self.dealer_hand.clear()
        self.wager = None
        self.is_abandoned = False
        self.new_round()
        # History covers the current round only
        self.events.clear_history()
        self.events.emit_new(EventType.ROUND_RESET, cards_remaining=self.deck.cards_remaining)
        return self.state

    @property
    def player_score(self) -> int:
        """Player's visible total."""
        return self.player_hand.score

    @property
    def dealer_score(self) -> int:
        """Dealer's visible total (the hole card counts only once revealed)."""
        return self.dealer_hand.score

    @property
    def outcome(self) -> Outcome | None:
        """Outcome of the current wager, if one has been placed."""
        return self.wager.outcome if self.wager else None

    @property
    def is_settled(self) -> bool:
        """Check if the wager has been decided."""
        return self.state == RoundState.SETTLED and not self.is_abandoned

    @property
    def cards_remaining(self) -> int:
        """Return the number of undealt cards."""
        return self.deck.cards_remaining

    @property
    def controls(self) -> Controls:
        """Controls enabled in the current state."""
        return controls_for(
            self.state,
            player_at_21=self.player_hand.is_twenty_one,
            abandoned=self.is_abandoned,
        )

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.controls.can_hit

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.controls.can_stand
