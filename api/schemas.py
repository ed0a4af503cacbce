"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal


# Game schemas
class BetRequest(BaseModel):
    """Request to place a bet."""

    amount: Decimal = Field(..., gt=0, description="Bet amount")


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand"]


class CardResponse(BaseModel):
    """Card representation. Hidden cards carry no rank or suit."""

    model_config = ConfigDict(from_attributes=True)

    rank: str | None
    suit: str | None
    hidden: bool = False


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    score: int
    is_busted: bool


class WagerResponse(BaseModel):
    """Wager on the current round."""

    amount: Decimal
    outcome: Literal["PENDING", "WON", "LOST", "PUSHED"]


class ControlsResponse(BaseModel):
    """Enabled player controls."""

    can_bet: bool
    can_hit: bool
    can_stand: bool
    can_reset: bool


class RoundStateResponse(BaseModel):
    """Current round state."""

    state: str
    message: str
    player_hand: HandResponse
    dealer_hand: HandResponse
    wager: WagerResponse | None
    balance: Decimal | None
    cards_remaining: int
    is_abandoned: bool
    controls: ControlsResponse
    errors: list[str] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """A newly opened table session."""

    session_id: str
    balance: Decimal


# Account schemas
class BalanceResponse(BaseModel):
    """Player balance."""

    balance: Decimal


class BetRecordResponse(BaseModel):
    """A settled wager from the ledger."""

    id: str
    game_id: str
    amount: Decimal
    outcome: Literal["WON", "LOST", "PUSHED"]
    net: Decimal
    timestamp: datetime
    player_score: int
    dealer_score: int


class BetHistoryResponse(BaseModel):
    """A player's ledger entries, newest first."""

    bets: list[BetRecordResponse]

