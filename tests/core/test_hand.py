"""Tests for Hand evaluation."""

import pytest
from hypothesis import given, strategies as st

from core.cards import Card, Rank, Suit
from core.hand import Hand, Side, score_cards


@st.composite
def card_strategy(draw, face_up=None, ranks=None):
    """Generate a random card, optionally face down."""
    rank = draw(st.sampled_from(ranks or list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    up = draw(st.booleans()) if face_up is None else face_up
    return Card(rank, suit, face_up=up)


NON_ACES = [r for r in Rank if r != Rank.ACE]


class TestScoring:
    """Tests for the sequential ace rule."""

    @pytest.mark.parametrize(
        "specs, expected",
        [
            (("AS", "KH"), 21),
            (("AS", "AH"), 12),
            (("AS", "AH", "9C"), 21),
            (("AS", "AH", "AC"), 13),
            (("10S", "9H"), 19),
            ((), 0),
            (("AS", "6H"), 17),
            (("AS", "5H", "8C"), 14),
            (("10S", "AH", "AC"), 12),
            (("8S", "AH", "AC", "AD"), 21),
            (("JS", "QH"), 20),
            (("10S", "6H", "KC"), 26),
        ],
    )
    def test_score_table(self, make_hand, specs, expected):
        """Test scores for known hands."""
        assert make_hand(*specs).score == expected

    def test_aces_processed_after_other_cards(self, make_hand):
        """Test that card order does not change the total."""
        assert make_hand("AS", "AH", "9C").score == make_hand("9C", "AS", "AH").score

    def test_hidden_card_not_counted(self):
        """Test that a face-down card contributes nothing."""
        hand = Hand(cards=[Card(Rank.NINE, Suit.SPADES), Card(Rank.KING, Suit.HEARTS, face_up=False)])
        assert hand.score == 9

    def test_hidden_ace_not_counted(self):
        """Test that a face-down ace contributes nothing."""
        hand = Hand(cards=[Card(Rank.ACE, Suit.SPADES, face_up=False), Card(Rank.KING, Suit.HEARTS)])
        assert hand.score == 10

    def test_hidden_ace_still_defers_high_value(self):
        """Test that a hidden ace counts toward the more-than-one-ace check."""
        hand = Hand(
            cards=[
                Card(Rank.TEN, Suit.SPADES),
                Card(Rank.ACE, Suit.HEARTS, face_up=False),
                Card(Rank.ACE, Suit.CLUBS),
            ]
        )
        # 10 + 11 would be exactly 21 but the hand holds two aces
        assert hand.score == 11

        hand.reveal_hidden()
        assert hand.score == 12

    @given(st.lists(card_strategy(face_up=True, ranks=NON_ACES), max_size=8))
    def test_no_aces_is_plain_sum(self, cards):
        """Test that hands without aces score the sum of their points."""
        assert score_cards(cards) == sum(c.rank.points for c in cards)

    @given(
        st.lists(card_strategy(), max_size=6),
        st.lists(card_strategy(face_up=False, ranks=NON_ACES), max_size=3),
    )
    def test_hidden_non_aces_never_change_score(self, cards, hidden):
        """Test that adding face-down non-aces leaves the score alone."""
        assert score_cards(cards + hidden) == score_cards(cards)

    @given(st.lists(card_strategy(face_up=True), max_size=8))
    def test_at_most_one_ace_counts_high(self, cards):
        """Test that the total never exceeds the all-low total by more than 10."""
        low = sum(1 if c.is_ace else c.rank.points for c in cards)
        assert score_cards(cards) in (low, low + 10)


class TestHand:
    """Tests for the Hand class."""

    def test_empty_hand(self, empty_hand):
        """Test empty hand properties."""
        assert len(empty_hand) == 0
        assert empty_hand.score == 0
        assert not empty_hand.is_busted
        assert not empty_hand.is_twenty_one

    def test_add_card(self, empty_hand):
        """Test adding cards to hand."""
        empty_hand.add_card(Card(Rank.TEN, Suit.SPADES))
        assert len(empty_hand) == 1
        assert empty_hand.score == 10

    def test_bust(self, make_hand):
        """Test bust detection."""
        hand = make_hand("10S", "9H", "5C")
        assert hand.score == 24
        assert hand.is_busted

    def test_twenty_one(self, make_hand):
        """Test 21 detection."""
        assert make_hand("AS", "KH").is_twenty_one
        assert make_hand("7S", "7H", "7C").is_twenty_one

    def test_reveal_hidden(self):
        """Test that revealing flips every hidden card in place."""
        hole = Card(Rank.SIX, Suit.HEARTS, face_up=False)
        hand = Hand(side=Side.DEALER, cards=[hole, Card(Rank.NINE, Suit.CLUBS)])
        assert hand.hidden_cards == [hole]
        assert hand.score == 9

        revealed = hand.reveal_hidden()

        assert revealed == [hole]
        assert revealed[0].face_up
        assert hand.hidden_cards == []
        assert hand.cards[0].face_up
        assert hand.score == 15

    def test_reveal_with_nothing_hidden(self, make_hand):
        """Test revealing a fully visible hand."""
        hand = make_hand("2S", "3H")
        assert hand.reveal_hidden() == []
        assert hand.score == 5

    def test_hidden_cards(self):
        """Test picking out the face-down cards."""
        up = Card(Rank.NINE, Suit.CLUBS)
        down = Card(Rank.SIX, Suit.HEARTS, face_up=False)
        hand = Hand(cards=[down, up])
        assert hand.hidden_cards == [down]

    def test_clear(self, make_hand):
        """Test clearing a hand."""
        hand = make_hand("2S", "3H")
        hand.clear()
        assert len(hand) == 0
        assert hand.score == 0

    def test_str_shows_bust(self, make_hand):
        """Test string representation."""
        assert str(make_hand("10S", "9H")) == "player: 10♠ 9♥ (19)"
        assert "(BUST)" in str(make_hand("10S", "9H", "5C"))
