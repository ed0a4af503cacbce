"""Tests for the WebSocket endpoint and its message handling."""

import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from api import session as session_module
from api.dependencies import override_services
from api.main import app
from api.routes import game as game_routes
from api.websocket import TableFeed, apply_command, event_message
from core.exceptions import InvalidAction
from core.game import EventType, RoundState
from core.game.events import GameEvent
from services.balance import InMemoryBalanceService
from services.ledger import InMemoryBetLedger


@pytest.fixture
def test_client():
    override_services(InMemoryBalanceService(), InMemoryBetLedger())
    session_module._round_store = None
    game_routes._tables.clear()
    with TestClient(app) as client:
        yield client
    game_routes._tables.clear()
    override_services()


class TestApplyCommand:
    """Tests for running client commands against a table."""

    @pytest.mark.asyncio
    async def test_bet_then_stand(self, stacked_table):
        table = stacked_table("AS", "10H", "KC", "QD")

        assert await apply_command(table, {"type": "bet", "amount": "10"}) is None
        assert table.state == RoundState.PLAYER_TURN

        assert await apply_command(table, {"type": "action", "action": "stand"}) is None
        assert table.state == RoundState.SETTLED
        assert await table.balance() == Decimal("110")

    @pytest.mark.asyncio
    async def test_reset(self, stacked_table):
        table = stacked_table("10S", "9H", "9C", "10D")
        await apply_command(table, {"type": "bet", "amount": 10})
        await apply_command(table, {"type": "action", "action": "stand"})

        assert await apply_command(table, {"type": "reset"}) is None
        assert table.state == RoundState.BETTING

    @pytest.mark.asyncio
    async def test_bad_amount(self, stacked_table):
        error = await apply_command(stacked_table(), {"type": "bet", "amount": "lots"})
        assert error["type"] == "error"
        assert "Invalid bet amount" in error["message"]

    @pytest.mark.asyncio
    async def test_unknown_action(self, stacked_table):
        error = await apply_command(stacked_table(), {"type": "action", "action": "split"})
        assert error["message"] == "Unknown action: split"

    @pytest.mark.asyncio
    async def test_unknown_type(self, stacked_table):
        error = await apply_command(stacked_table(), {"type": "surrender"})
        assert error["error"] == "invalid_message"

    @pytest.mark.asyncio
    async def test_domain_errors_propagate(self, stacked_table):
        with pytest.raises(InvalidAction):
            await apply_command(stacked_table(), {"type": "action", "action": "hit"})


def test_event_message():
    event = GameEvent(EventType.PLAYER_HIT, {"hand_value": 15})

    message = event_message(event)

    assert message["type"] == "event"
    assert message["event_type"] == "PLAYER_HIT"
    assert message["data"] == {"hand_value": 15}


def test_invalid_session_closes(test_client):
    with test_client.websocket_connect("/ws/game/forged-token") as websocket:
        message = websocket.receive_json()

    assert message["type"] == "error"
    assert message["error"] == "invalid_session"


def test_initial_state_sent(test_client):
    session_id = test_client.post("/api/game/new").json()["session_id"]

    with test_client.websocket_connect(f"/ws/game/{session_id}") as websocket:
        message = websocket.receive_json()

    assert message["type"] == "state_update"
    assert message["state"]["state"] == "BETTING"
    assert Decimal(message["state"]["balance"]) == Decimal("1000")


class RecordingSocket:
    """Stands in for a WebSocket, keeping what the feed does to it."""

    def __init__(self) -> None:
        self.sent = []
        self.close_code = None

    async def accept(self):
        pass

    async def send_json(self, message):
        self.sent.append(message)

    async def close(self, code=1000):
        self.close_code = code


class TestTableFeed:
    """One live socket per player."""

    @pytest.mark.asyncio
    async def test_second_socket_replaces_first(self):
        feed = TableFeed()
        first, second = RecordingSocket(), RecordingSocket()

        await feed.join(first, "p1")
        await feed.join(second, "p1")

        assert first.close_code == 1008
        assert second.close_code is None
        assert feed.connected == 1

    @pytest.mark.asyncio
    async def test_stale_leave_keeps_new_socket(self):
        feed = TableFeed()
        first, second = RecordingSocket(), RecordingSocket()
        await feed.join(first, "p1")
        await feed.join(second, "p1")

        feed.leave(first, "p1")
        await feed.send("p1", {"type": "state_update"})

        assert second.sent == [{"type": "state_update"}]
        assert first.sent == []

    @pytest.mark.asyncio
    async def test_events_reach_the_new_socket(self, stacked_table):
        feed = TableFeed()
        table = stacked_table("10S", "6H", "7C", "9D")
        first, second = RecordingSocket(), RecordingSocket()
        await feed.join(first, table.player_id)
        await feed.join(second, table.player_id)
        feed.leave(first, table.player_id)
        feed.watch(table)

        await table.place_bet(10)
        pump = asyncio.create_task(feed.pump(table.player_id))
        await asyncio.sleep(0)
        pump.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pump

        assert first.sent == []
        assert second.sent
        assert second.sent[0]["type"] == "event"

    @pytest.mark.asyncio
    async def test_leave_forgets_player(self):
        feed = TableFeed()
        socket = RecordingSocket()
        await feed.join(socket, "p1")

        feed.leave(socket, "p1")
        await feed.send("p1", {"type": "state_update"})

        assert feed.connected == 0
        assert socket.sent == []
