"""Pytest fixtures for blackjack round tests."""

import os

# Tests run against the in-memory stores
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from decimal import Decimal
from random import Random

from core.cards import Card, Deck
from core.game import RoundSession
from core.hand import Hand, Side
from services.balance import InMemoryBalanceService
from services.ledger import InMemoryBetLedger
from services.table import BlackjackTable

PLAYER_ID = "player-1"


class StackedDeck(Deck):
    """A deck that deals the given cards first, in order, then draws at random."""

    def __init__(self, order: list[Card], rng: Random | None = None) -> None:
        super().__init__(rng=rng)
        self._order = list(order)

    def draw(self) -> Card:
        if self._order and len(self):
            return self.take(self._order.pop(0))
        return super().draw()


def cards(*specs: str) -> list[Card]:
    """Build face-up cards from strings like 'AS', '10H', 'KC'."""
    return [Card.from_string(s) for s in specs]


def hand_of(*specs: str, side: Side = Side.PLAYER) -> Hand:
    """Build a hand from card strings."""
    return Hand(side=side, cards=cards(*specs))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def deck(rng):
    """A full deck."""
    return Deck(rng=rng)


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def round_session(rng):
    """A round waiting for a bet."""
    return RoundSession(rng=rng)


@pytest.fixture
def stacked_round():
    """Factory for a round whose deck deals the given cards first.

    Deal order is player, dealer hole card, player, dealer up card,
    then hits and dealer draws.
    """

    def _make(*specs: str) -> RoundSession:
        return RoundSession(deck=StackedDeck(cards(*specs), rng=Random(7)))

    return _make


@pytest_asyncio.fixture
async def balances():
    """Balance service with a funded player."""
    service = InMemoryBalanceService()
    await service.open_account(PLAYER_ID, Decimal("100"))
    return service


@pytest.fixture
def ledger():
    """Empty bet ledger."""
    return InMemoryBetLedger()


@pytest.fixture
def stacked_table(balances, ledger, stacked_round):
    """Factory for a table whose round deals the given cards first."""

    def _make(*specs: str) -> BlackjackTable:
        return BlackjackTable(
            player_id=PLAYER_ID,
            balances=balances,
            ledger=ledger,
            session=stacked_round(*specs),
        )

    return _make


@pytest.fixture
def make_hand():
    """Factory for hands built from card strings like 'AS', '10H'."""
    return hand_of


@pytest.fixture
def player_id():
    """ID of the funded player."""
    return PLAYER_ID
