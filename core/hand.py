"""Hand evaluation for blackjack."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from core.cards import Card

BLACKJACK = 21
ACE_HIGH = 11
ACE_LOW = 1


class Side(Enum):
    """Which side of the table a hand belongs to."""

    PLAYER = "player"
    DEALER = "dealer"

    def __str__(self) -> str:
        return self.value


def score_cards(cards: Iterable[Card]) -> int:
    """
    Score a sequence of cards under the sequential ace rule.

    Only face-up cards count. Non-ace cards are summed first, then each
    face-up ace is valued in hand order against the running total:

    - 1 if counting it as 11 would pass 21
    - 1 if counting it as 11 would land exactly on 21 while the hand holds
      more than one ace (hidden ones included), leaving the 11 for a later ace
    - 11 otherwise

    Returns:
        The hand total; 0 for an empty hand
    """
    cards = list(cards)
    total = sum(c.rank.points for c in cards if c.face_up and not c.is_ace)
    ace_count = sum(1 for c in cards if c.is_ace)

    for card in cards:
        if not card.is_ace or not card.face_up:
            continue
        if total + ACE_HIGH > BLACKJACK:
            total += ACE_LOW
        elif total + ACE_HIGH == BLACKJACK and ace_count > 1:
            total += ACE_LOW
        else:
            total += ACE_HIGH

    return total


@dataclass
class Hand:
    """An ordered hand of cards owned by one side of the table."""

    side: Side = Side.PLAYER
    cards: list[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def reveal_hidden(self) -> list[Card]:
        """
        Turn every face-down card face up.

        Returns:
            The cards that were revealed, in hand order
        """
        revealed = []
        for i, card in enumerate(self.cards):
            if not card.face_up:
                self.cards[i] = card.revealed()
                revealed.append(self.cards[i])
        return revealed

    def clear(self) -> None:
        """Remove all cards from the hand."""
        self.cards.clear()

    @property
    def score(self) -> int:
        """Total of the face-up cards."""
        return score_cards(self.cards)

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (score > 21)."""
        return self.score > BLACKJACK

    @property
    def is_twenty_one(self) -> bool:
        """Check if the visible total is exactly 21."""
        return self.score == BLACKJACK

    @property
    def hidden_cards(self) -> list[Card]:
        """Return the face-down cards."""
        return [c for c in self.cards if not c.face_up]

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: object) -> bool:
        return card in self.cards

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = "(BUST)" if self.is_busted else f"({self.score})"
        return f"{self.side}: {cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.side.name}, {self.cards!r}, score={self.score})"
