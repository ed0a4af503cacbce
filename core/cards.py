"""Card and Deck classes - immutable card values and a draw-without-replacement deck."""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from random import Random
from typing import Iterator

from core.exceptions import DeckExhausted

DECK_SIZE = 52


class Suit(Enum):
    """Card suits."""

    CLUBS = auto()
    DIAMONDS = auto()
    HEARTS = auto()
    SPADES = auto()

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks."""

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        if self.value <= 10:
            return str(self.value)
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @property
    def points(self) -> int:
        """Return the fixed point value of a non-ace rank (face cards = 10).

        Aces have no fixed value; the hand evaluator decides between 1 and 11.
        """
        if self == Rank.ACE:
            raise ValueError("Ace has no fixed point value")
        return min(self.value, 10)

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable playing card.

    Equality and hashing use rank and suit only, so a card compares equal to
    its revealed copy. Revealing never mutates a card: ``revealed()`` returns
    the face-up copy that replaces it in its hand.
    """

    rank: Rank
    suit: Suit
    face_up: bool = field(default=True, compare=False)

    def __str__(self) -> str:
        if not self.face_up:
            return "??"
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        state = "" if self.face_up else ", hidden"
        return f"Card({self.rank.name}, {self.suit.name}{state})"

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    def face_down(self) -> "Card":
        """Return a face-down copy of this card."""
        return replace(self, face_up=False)

    def revealed(self) -> "Card":
        """Return the face-up copy of this card."""
        if self.face_up:
            return self
        return replace(self, face_up=True)

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a face-up card from a string like '2♣', 'AS', 'Kh'."""
        text = s.strip().upper()
        rank_text, suit_text = text[:-1], text[-1:]

        rank = _RANKS_BY_TEXT.get(rank_text)
        if rank is None:
            raise ValueError(f"Invalid rank in card string: {s!r}")
        suit = _SUITS_BY_TEXT.get(suit_text)
        if suit is None:
            raise ValueError(f"Invalid suit in card string: {s!r}")
        return cls(rank, suit)


# Accepted spellings for Card.from_string: "10" or "T" for ten, suit letter or symbol
_RANKS_BY_TEXT = {str(rank): rank for rank in Rank} | {"T": Rank.TEN}
_SUITS_BY_TEXT = {suit.name[0]: suit for suit in Suit} | {str(suit): suit for suit in Suit}


def full_deck() -> list[Card]:
    """Return the 52 canonical cards in suit-major order."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class Deck:
    """
    A single 52-card deck that is never shuffled.

    Cards leave the deck by drawing a uniformly random index from what is
    left. Drawn cards are never put back until ``reset()``.
    """

    def __init__(self, rng: Random | None = None) -> None:
        """Initialize a full deck."""
        self._rng = rng or Random()
        self._cards: list[Card] = []
        self.reset()

    @classmethod
    def from_cards(cls, cards: list[Card], rng: Random | None = None) -> "Deck":
        """Create a deck holding exactly the given undealt cards."""
        deck = cls(rng=rng)
        deck._cards = list(cards)
        return deck

    def reset(self) -> None:
        """Repopulate the deck with all 52 cards."""
        self._cards = full_deck()

    def draw(self) -> Card:
        """
        Remove and return a uniformly random card.

        Raises:
            DeckExhausted: If no cards are left
        """
        if not self._cards:
            raise DeckExhausted("All cards have been drawn")
        index = self._rng.randrange(len(self._cards))
        return self._cards.pop(index)

    def take(self, card: Card) -> Card:
        """
        Remove one specific card from the deck.

        Raises:
            ValueError: If the card is not in the deck
        """
        index = self._cards.index(card)
        return self._cards.pop(index)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __contains__(self, card: object) -> bool:
        return card in self._cards

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards)
