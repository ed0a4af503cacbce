"""Dealer drawing policy."""

DEALER_STANDS_ON = 17


def dealer_should_hit(score: int, stands_on: int = DEALER_STANDS_ON) -> bool:
    """
    Decide whether the dealer draws another card.

    The dealer stands on every total of 17 or more, soft 17 included.

    Args:
        score: Dealer's current total with all cards face up
        stands_on: Lowest total the dealer stands on

    Returns:
        True if the dealer must hit
    """
    return score < stands_on
