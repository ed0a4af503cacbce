"""Round engine and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import Controls, RoundState
from core.game.engine import RoundSession, validate_bet

__all__ = [
    "GameEvent",
    "EventType",
    "Controls",
    "RoundState",
    "RoundSession",
    "validate_bet",
]
