"""Balance and ledger collaborators, and the table that settles rounds against them."""

from services.balance import BalanceService, InMemoryBalanceService, RedisBalanceService
from services.ledger import BetLedgerService, BetRecord, InMemoryBetLedger, RedisBetLedger
from services.table import BlackjackTable

__all__ = [
    "BalanceService",
    "InMemoryBalanceService",
    "RedisBalanceService",
    "BetLedgerService",
    "BetRecord",
    "InMemoryBetLedger",
    "RedisBetLedger",
    "BlackjackTable",
]
