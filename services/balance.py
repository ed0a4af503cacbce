"""Balance service with Redis backend and in-memory implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from core.exceptions import AccountNotFound, BalanceServiceError

logger = logging.getLogger(__name__)


class BalanceService(ABC):
    """Abstract balance store. Every adjustment is atomic."""

    @abstractmethod
    async def open_account(self, player_id: str, initial: Decimal) -> Decimal:
        """Create a balance for a player, keeping any existing one."""
        ...

    @abstractmethod
    async def get_balance(self, player_id: str) -> Decimal:
        """Get a player's balance."""
        ...

    @abstractmethod
    async def adjust_balance(self, player_id: str, delta: Decimal) -> Decimal:
        """
        Add delta (may be negative) to a player's balance.

        Returns:
            The new balance
        """
        ...


class InMemoryBalanceService(BalanceService):
    """In-memory balances for local development and tests."""

    def __init__(self) -> None:
        self._balances: dict[str, Decimal] = {}
        self._lock = asyncio.Lock()

    async def open_account(self, player_id: str, initial: Decimal) -> Decimal:
        """Create a balance for a player, keeping any existing one."""
        async with self._lock:
            return self._balances.setdefault(player_id, Decimal(str(initial)))

    async def get_balance(self, player_id: str) -> Decimal:
        """Get a player's balance."""
        if player_id not in self._balances:
            raise AccountNotFound(f"No balance for player {player_id}")
        return self._balances[player_id]

    async def adjust_balance(self, player_id: str, delta: Decimal) -> Decimal:
        """Add delta to a player's balance."""
        async with self._lock:
            if player_id not in self._balances:
                raise AccountNotFound(f"No balance for player {player_id}")
            self._balances[player_id] += Decimal(str(delta))
            return self._balances[player_id]


class RedisBalanceService(BalanceService):
    """Redis-backed balances stored as decimal strings."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client
        self._prefix = "casino:balance:"

    def _key(self, player_id: str) -> str:
        """Get Redis key for a player's balance."""
        return f"{self._prefix}{player_id}"

    async def open_account(self, player_id: str, initial: Decimal) -> Decimal:
        """Create a balance for a player, keeping any existing one."""
        try:
            await self._redis.setnx(self._key(player_id), str(initial))
        except RedisError as e:
            raise BalanceServiceError(f"Could not open account: {e}") from e
        return await self.get_balance(player_id)

    async def get_balance(self, player_id: str) -> Decimal:
        """Get a player's balance."""
        try:
            value = await self._redis.get(self._key(player_id))
        except RedisError as e:
            raise BalanceServiceError(f"Could not read balance: {e}") from e
        if value is None:
            raise AccountNotFound(f"No balance for player {player_id}")
        return Decimal(value.decode() if isinstance(value, bytes) else value)

    async def adjust_balance(self, player_id: str, delta: Decimal) -> Decimal:
        """Add delta to a player's balance inside a WATCH/MULTI transaction."""
        key = self._key(player_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        value = await pipe.get(key)
                        if value is None:
                            raise AccountNotFound(f"No balance for player {player_id}")
                        current = Decimal(value.decode() if isinstance(value, bytes) else value)
                        new_balance = current + Decimal(str(delta))
                        pipe.multi()
                        pipe.set(key, str(new_balance))
                        await pipe.execute()
                        return new_balance
                    except WatchError:
                        logger.debug("Balance for %s changed during update, retrying", player_id)
                        continue
        except RedisError as e:
            raise BalanceServiceError(f"Could not adjust balance: {e}") from e
