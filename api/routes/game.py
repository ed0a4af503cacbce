"""Game API endpoints."""

import time
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Header

from api.dependencies import get_balance_service, get_bet_ledger, require_player_id
from api.schemas import (
    ActionRequest,
    BetRequest,
    CardResponse,
    ControlsResponse,
    HandResponse,
    RoundStateResponse,
    SessionResponse,
    WagerResponse,
)
from api.session import get_round_store, issue_token
from config import config
from core.cards import Card, Deck, Rank, Suit
from core.exceptions import BalanceServiceError
from core.game import RoundSession, RoundState
from core.hand import Hand
from core.outcome import Outcome, Wager
from services.table import BlackjackTable

router = APIRouter()

# Live tables by player ID, backed by the round store
_tables: dict[str, BlackjackTable] = {}

# Round store record keys
KEY_ROUND = "round"
KEY_CREATED_AT = "created_at"
KEY_LAST_ACTIVITY = "last_activity"

OUTCOME_MESSAGES = {
    Outcome.WON: "You Win!",
    Outcome.LOST: "Dealer Wins!",
    Outcome.PUSHED: "Tie!",
}


def _serialize_card(card: Card) -> dict[str, Any]:
    """Serialize a card to a dict."""
    return {"rank": card.rank.value, "suit": card.suit.value, "face_up": card.face_up}


def _deserialize_card(data: dict[str, Any]) -> Card:
    """Deserialize a card from a dict."""
    return Card(Rank(data["rank"]), Suit(data["suit"]), face_up=data.get("face_up", True))


def _serialize_round(session: RoundSession) -> dict[str, Any]:
    """Serialize a round for session storage."""
    wager = None
    if session.wager is not None:
        wager = {"amount": str(session.wager.amount), "outcome": session.wager.outcome.value}

    return {
        "state": session.state.name,
        "deck": [_serialize_card(c) for c in session.deck],
        "player_hand": [_serialize_card(c) for c in session.player_hand],
        "dealer_hand": [_serialize_card(c) for c in session.dealer_hand],
        "wager": wager,
        "is_abandoned": session.is_abandoned,
        "dealer_stands_on": session.dealer_stands_on,
    }


def _deserialize_round(data: dict[str, Any]) -> RoundSession:
    """Restore a round from session data."""
    session = RoundSession(
        deck=Deck.from_cards([_deserialize_card(c) for c in data["deck"]]),
        dealer_stands_on=data.get("dealer_stands_on", config.game.dealer_stands_on),
    )
    session.machine.set_state(data["state"].lower())

    for card in data["player_hand"]:
        session.player_hand.add_card(_deserialize_card(card))
    for card in data["dealer_hand"]:
        session.dealer_hand.add_card(_deserialize_card(card))

    if data["wager"] is not None:
        session.wager = Wager(
            amount=Decimal(data["wager"]["amount"]),
            outcome=Outcome(data["wager"]["outcome"]),
        )
    session.is_abandoned = data["is_abandoned"]
    return session


async def save_table(table: BlackjackTable) -> None:
    """Write a table's round to the round store."""
    store = await get_round_store()
    record = await store.load(table.player_id) or {KEY_CREATED_AT: int(time.time())}
    record[KEY_ROUND] = _serialize_round(table.session)
    record[KEY_LAST_ACTIVITY] = int(time.time())
    await store.save(table.player_id, record)


async def _new_table(player_id: str, session: RoundSession | None = None) -> BlackjackTable:
    """Build a table for a player, opening their account if needed."""
    balances = await get_balance_service()
    ledger = await get_bet_ledger()
    await balances.open_account(player_id, config.game.starting_balance)
    return BlackjackTable(
        player_id=player_id,
        balances=balances,
        ledger=ledger,
        session=session or RoundSession(dealer_stands_on=config.game.dealer_stands_on),
        game_id=config.game.game_id,
    )


async def get_table(token: str) -> BlackjackTable:
    """Get the table behind a player token, restoring its round if one was stored."""
    player_id = require_player_id(token)

    if player_id in _tables:
        return _tables[player_id]

    store = await get_round_store()
    record = await store.load(player_id)
    session = None
    if record and KEY_ROUND in record:
        session = _deserialize_round(record[KEY_ROUND])

    table = await _new_table(player_id, session)
    # A concurrent request may have seated the player while we awaited
    if player_id in _tables:
        return _tables[player_id]
    _tables[player_id] = table
    if session is None:
        await save_table(table)
    return table


def _card_to_response(card: Card) -> CardResponse:
    """Convert a Card to CardResponse, masking face-down cards."""
    if not card.face_up:
        return CardResponse(rank=None, suit=None, hidden=True)
    return CardResponse(rank=str(card.rank), suit=str(card.suit))


def _hand_to_response(hand: Hand) -> HandResponse:
    """Convert a Hand to HandResponse."""
    return HandResponse(
        cards=[_card_to_response(c) for c in hand.cards],
        score=hand.score,
        is_busted=hand.is_busted,
    )


def round_message(session: RoundSession) -> str:
    """Status line shown to the player."""
    if session.is_abandoned:
        return "All cards have been drawn"
    if session.state == RoundState.BETTING:
        return "Place a Bet!"
    if session.state == RoundState.SETTLED and session.wager is not None:
        if session.player_hand.is_busted:
            return "Bust!"
        return OUTCOME_MESSAGES[session.wager.outcome]
    return "Hit or Stand?"


async def round_state_response(table: BlackjackTable) -> RoundStateResponse:
    """Convert a table's round to a response."""
    session = table.session
    try:
        balance = await table.balance()
    except BalanceServiceError:
        balance = None

    wager = None
    if session.wager is not None:
        wager = WagerResponse(amount=session.wager.amount, outcome=session.wager.outcome.value)

    controls = table.controls
    return RoundStateResponse(
        state=session.state.name,
        message=round_message(session),
        player_hand=_hand_to_response(session.player_hand),
        dealer_hand=_hand_to_response(session.dealer_hand),
        wager=wager,
        balance=balance,
        cards_remaining=session.cards_remaining,
        is_abandoned=session.is_abandoned,
        controls=ControlsResponse(
            can_bet=controls.can_bet,
            can_hit=controls.can_hit,
            can_stand=controls.can_stand,
            can_reset=controls.can_reset,
        ),
        errors=list(table.errors),
    )


@router.post("/new")
async def new_game() -> SessionResponse:
    """Seat a new player with a fresh account."""
    player_id, token = issue_token()

    table = await _new_table(player_id)
    _tables[player_id] = table
    await save_table(table)

    return SessionResponse(session_id=token, balance=await table.balance())


@router.get("/state")
async def get_state(
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> RoundStateResponse:
    """Get current round state."""
    table = await get_table(token)
    return await round_state_response(table)


@router.post("/bet")
async def place_bet(
    request: BetRequest,
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> RoundStateResponse:
    """Place a bet and deal cards."""
    table = await get_table(token)
    try:
        await table.place_bet(request.amount)
    finally:
        await save_table(table)
    return await round_state_response(table)


@router.post("/action")
async def player_action(
    request: ActionRequest,
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> RoundStateResponse:
    """Execute a player action."""
    table = await get_table(token)

    actions = {
        "hit": table.hit,
        "stand": table.stand,
    }

    try:
        await actions[request.action]()
    finally:
        await save_table(table)
    return await round_state_response(table)


@router.post("/reset")
async def reset_round(
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> RoundStateResponse:
    """Clear the settled round and return to betting."""
    table = await get_table(token)
    await table.reset()
    await save_table(table)
    return await round_state_response(table)
