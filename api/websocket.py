"""Live table over a WebSocket: client commands in, round events and state out."""

import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from api.routes.game import get_table, round_state_response, save_table
from core.exceptions import BlackjackError
from core.game.events import GameEvent
from services.table import BlackjackTable

logger = logging.getLogger(__name__)

router = APIRouter()


class TableFeed:
    """
    Fan round events out to connected players.

    Each player has at most one socket; joining again closes the older
    one with 1008 (policy violation). A table is subscribed once, the
    first time it is watched; its events are queued per player and
    drained by that player's sender task.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._queues: dict[str, asyncio.Queue[GameEvent]] = {}
        self._watched: dict[str, BlackjackTable] = {}

    async def join(self, websocket: WebSocket, player_id: str) -> None:
        """Accept a socket, closing any socket the player already had open."""
        await websocket.accept()
        previous = self._sockets.get(player_id)
        self._sockets[player_id] = websocket
        self._queues[player_id] = asyncio.Queue()

        if previous is not None:
            logger.info("Player %s reconnected; closing the previous socket", player_id)
            try:
                await previous.close(code=1008)
            except RuntimeError as e:
                logger.debug("Previous socket already closed: %s", e)

    def leave(self, websocket: WebSocket, player_id: str) -> None:
        """Forget a socket, unless it has already been replaced."""
        if self._sockets.get(player_id) is not websocket:
            return
        del self._sockets[player_id]
        self._queues.pop(player_id, None)

    def watch(self, table: BlackjackTable) -> None:
        """Queue the table's round events for its player."""
        if self._watched.get(table.player_id) is table:
            return
        player_id = table.player_id
        table.session.subscribe(lambda event: self._enqueue(player_id, event))
        self._watched[player_id] = table

    def _enqueue(self, player_id: str, event: GameEvent) -> None:
        queue = self._queues.get(player_id)
        if queue is not None:
            queue.put_nowait(event)

    async def pump(self, player_id: str) -> None:
        """Send queued events until cancelled."""
        queue = self._queues[player_id]
        while True:
            event = await queue.get()
            await self.send(player_id, event_message(event))

    async def send(self, player_id: str, message: dict[str, Any]) -> None:
        websocket = self._sockets.get(player_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.debug("Dropping message for closed socket: %s", e)

    @property
    def connected(self) -> int:
        return len(self._sockets)


feed = TableFeed()


async def state_message(table: BlackjackTable) -> dict[str, Any]:
    state = await round_state_response(table)
    return {"type": "state_update", "state": state.model_dump(mode="json")}


def event_message(event: GameEvent) -> dict[str, Any]:
    return {
        "type": "event",
        "event_type": event.event_type.name,
        "data": event.data,
        "timestamp": event.timestamp.isoformat(),
    }


def error_message(message: str, code: str = "invalid_message") -> dict[str, Any]:
    return {"type": "error", "message": message, "error": code}


async def apply_command(table: BlackjackTable, command: dict[str, Any]) -> dict[str, Any] | None:
    """
    Run one client command against the table.

    Domain errors propagate; malformed commands come back as an error
    message instead.
    """
    kind = command.get("type")

    if kind == "get_state":
        return None
    if kind == "reset":
        await table.reset()
        return None
    if kind == "bet":
        try:
            amount = Decimal(str(command.get("amount", 0)))
        except InvalidOperation:
            return error_message(f"Invalid bet amount: {command.get('amount')}")
        await table.place_bet(amount)
        return None
    if kind == "action":
        action = command.get("action")
        if action == "hit":
            await table.hit()
        elif action == "stand":
            await table.stand()
        else:
            return error_message(f"Unknown action: {action}")
        return None

    return error_message(f"Unknown message type: {kind}")


@router.websocket("/game/{token}")
async def game_websocket(websocket: WebSocket, token: str) -> None:
    """
    Play a table over a WebSocket.

    Client sends {"type": "bet", "amount": ...}, {"type": "action",
    "action": "hit"|"stand"}, {"type": "reset"} or {"type": "get_state"}.
    Server sends state_update after every command, event for each round
    event, and error for rejected commands.
    """
    try:
        table = await get_table(token)
    except HTTPException as e:
        await websocket.accept()
        await websocket.send_json(error_message(e.detail, "invalid_session"))
        await websocket.close(code=1008)
        return

    player_id = table.player_id
    await feed.join(websocket, player_id)
    feed.watch(table)
    await feed.send(player_id, await state_message(table))
    sender = asyncio.create_task(feed.pump(player_id))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                command = json.loads(raw)
            except json.JSONDecodeError:
                command = None
            if not isinstance(command, dict):
                await feed.send(player_id, error_message("Message must be a JSON object"))
                continue

            try:
                error = await apply_command(table, command)
            except BlackjackError as e:
                error = error_message(str(e), e.code)
            finally:
                await save_table(table)

            if error is not None:
                await feed.send(player_id, error)
            await feed.send(player_id, await state_message(table))
    except WebSocketDisconnect:
        logger.debug("Player %s disconnected", player_id)
    finally:
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        feed.leave(websocket, player_id)
