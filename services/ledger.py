"""Bet ledger with Redis backend and in-memory implementation."""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.exceptions import LedgerServiceError
from core.outcome import Outcome, net_result


@dataclass(frozen=True)
class BetRecord:
    """A settled wager as written to the ledger."""

    player_id: str
    amount: Decimal
    outcome: Outcome
    player_score: int
    dealer_score: int
    game_id: str = "BLACKJACK"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def net(self) -> Decimal:
        """Profit or loss on the wager; zero for a push."""
        return net_result(self.outcome, self.amount)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record for storage."""
        return {
            "player_id": self.player_id,
            "game_id": self.game_id,
            "amount": str(self.amount),
            "outcome": self.outcome.value,
            "net": str(self.net),
            "timestamp": self.timestamp.isoformat(),
            "player_score": self.player_score,
            "dealer_score": self.dealer_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BetRecord":
        """Deserialize a stored record."""
        return cls(
            player_id=data["player_id"],
            game_id=data["game_id"],
            amount=Decimal(data["amount"]),
            outcome=Outcome(data["outcome"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            player_score=data["player_score"],
            dealer_score=data["dealer_score"],
        )


class BetLedgerService(ABC):
    """Abstract bet ledger."""

    @abstractmethod
    async def record(self, record: BetRecord) -> str:
        """
        Persist a settled wager.

        Returns:
            The new record's ID
        """
        ...

    @abstractmethod
    async def history(self, player_id: str, limit: int = 50) -> list[tuple[str, BetRecord]]:
        """Get a player's records, newest first."""
        ...


class InMemoryBetLedger(BetLedgerService):
    """In-memory ledger for local development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, list[tuple[str, BetRecord]]] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def record(self, record: BetRecord) -> str:
        """Persist a settled wager."""
        async with self._lock:
            record_id = str(self._next_id)
            self._next_id += 1
            self._records.setdefault(record.player_id, []).append((record_id, record))
            return record_id

    async def history(self, player_id: str, limit: int = 50) -> list[tuple[str, BetRecord]]:
        """Get a player's records, newest first."""
        records = self._records.get(player_id, [])
        return list(reversed(records))[:limit]


class RedisBetLedger(BetLedgerService):
    """Redis-backed ledger: one JSON list per player, newest first."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client
        self._prefix = "casino:bets:"
        self._id_key = "casino:bets:next_id"

    def _key(self, player_id: str) -> str:
        """Get Redis key for a player's bet list."""
        return f"{self._prefix}{player_id}"

    async def record(self, record: BetRecord) -> str:
        """Persist a settled wager."""
        try:
            record_id = str(await self._redis.incr(self._id_key))
            entry = {"id": record_id, **record.to_dict()}
            await self._redis.lpush(self._key(record.player_id), json.dumps(entry))
        except RedisError as e:
            raise LedgerServiceError(f"Could not record bet: {e}") from e
        return record_id

    async def history(self, player_id: str, limit: int = 50) -> list[tuple[str, BetRecord]]:
        """Get a player's records, newest first."""
        try:
            entries = await self._redis.lrange(self._key(player_id), 0, limit - 1)
        except RedisError as e:
            raise LedgerServiceError(f"Could not read bet history: {e}") from e
        history = []
        for raw in entries:
            data = json.loads(raw)
            history.append((data.pop("id"), BetRecord.from_dict(data)))
        return history
