"""Core blackjack round engine - 100% UI-agnostic and service-free."""

from core.cards import Card, Deck, Rank, Suit
from core.hand import Hand, Side, score_cards
from core.outcome import Outcome, Wager

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "Hand",
    "Side",
    "score_cards",
    "Outcome",
    "Wager",
]
