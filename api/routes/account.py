"""Account API endpoints: balance and bet history."""

from typing import Annotated

from fastapi import APIRouter, Header, Query

from api.dependencies import get_balance_service, get_bet_ledger, require_player_id
from api.schemas import BalanceResponse, BetHistoryResponse, BetRecordResponse
from config import config

router = APIRouter()


@router.get("/balance")
async def get_balance(
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> BalanceResponse:
    """Get the player's balance."""
    player_id = require_player_id(token)
    balances = await get_balance_service()
    return BalanceResponse(balance=await balances.get_balance(player_id))


@router.get("/bets")
async def get_bets(
    token: Annotated[str, Header(alias="X-Session-ID")],
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> BetHistoryResponse:
    """Get the player's settled wagers, newest first."""
    player_id = require_player_id(token)
    ledger = await get_bet_ledger()
    history = await ledger.history(player_id, limit or config.game.history_limit)
    return BetHistoryResponse(
        bets=[
            BetRecordResponse(
                id=record_id,
                game_id=record.game_id,
                amount=record.amount,
                outcome=record.outcome.value,
                net=record.net,
                timestamp=record.timestamp,
                player_score=record.player_score,
                dealer_score=record.dealer_score,
            )
            for record_id, record in history
        ]
    )
