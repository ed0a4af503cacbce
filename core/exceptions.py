"""Blackjack error taxonomy.

Round errors are raised by the pure engine; service errors are raised by the
balance and ledger adapters. Every error carries a stable ``code`` used by
the API layer.
"""


class BlackjackError(Exception):
    """Base class for all blackjack errors."""

    code = "blackjack_error"


class InvalidAction(BlackjackError):
    """Action not allowed in the current round state."""

    code = "invalid_action"


class InvalidBet(BlackjackError):
    """Bet amount is not a positive number."""

    code = "invalid_bet"


class InsufficientFunds(BlackjackError):
    """Bet exceeds the available balance."""

    code = "insufficient_funds"

    def __init__(self, required, available) -> None:
        self.required = required
        self.available = available
        super().__init__(f"Bet of {required} exceeds balance of {available}")


class DeckExhausted(BlackjackError):
    """No cards left to draw; the round must be abandoned."""

    code = "deck_exhausted"


class ActionInProgress(BlackjackError):
    """Another action is still waiting on a service call."""

    code = "action_in_progress"


class ServiceError(BlackjackError):
    """An external collaborator failed."""

    code = "service_error"


class BalanceServiceError(ServiceError):
    """The balance service could not read or adjust a balance."""

    code = "balance_service_error"


class AccountNotFound(BalanceServiceError):
    """No balance exists for the player."""

    code = "account_not_found"


class LedgerServiceError(ServiceError):
    """The bet ledger could not record a wager."""

    code = "ledger_service_error"
