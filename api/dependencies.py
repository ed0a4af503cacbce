"""Process-wide balance and ledger services, backed by Redis when available."""

from fastapi import HTTPException

from api.session import get_redis_client, player_id_from_token
from services.balance import BalanceService, InMemoryBalanceService, RedisBalanceService
from services.ledger import BetLedgerService, InMemoryBetLedger, RedisBetLedger

_balance_service: BalanceService | None = None
_bet_ledger: BetLedgerService | None = None


async def get_balance_service() -> BalanceService:
    """Get or create the balance service."""
    global _balance_service

    if _balance_service is None:
        client = await get_redis_client()
        _balance_service = RedisBalanceService(client) if client else InMemoryBalanceService()
    return _balance_service


async def get_bet_ledger() -> BetLedgerService:
    """Get or create the bet ledger."""
    global _bet_ledger

    if _bet_ledger is None:
        client = await get_redis_client()
        _bet_ledger = RedisBetLedger(client) if client else InMemoryBetLedger()
    return _bet_ledger


def override_services(
    balances: BalanceService | None = None,
    ledger: BetLedgerService | None = None,
) -> None:
    """Replace the process-wide services (used by tests)."""
    global _balance_service, _bet_ledger
    _balance_service = balances
    _bet_ledger = ledger


def require_player_id(token: str | None) -> str:
    """
    Resolve the player behind a signed session token.

    Raises:
        HTTPException: 401 if the token is missing, forged or expired
    """
    player_id = player_id_from_token(token) if token else None
    if player_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return player_id
