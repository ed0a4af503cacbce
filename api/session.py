"""Player tokens and round persistence, Redis-backed with an in-memory fallback."""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any
from uuid import uuid4

import redis.asyncio as redis
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from redis.exceptions import RedisError

from config import config

logger = logging.getLogger(__name__)


class TokenSigner:
    """Sign player IDs into opaque tokens using itsdangerous."""

    def __init__(self, secret_key: str | None = None, salt: str = "casino-table") -> None:
        self._serializer = URLSafeTimedSerializer(secret_key or config.security.secret_key, salt=salt)

    def sign(self, player_id: str) -> str:
        """Create a token carrying a player ID."""
        return self._serializer.dumps(player_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Recover the player ID from a token.

        Args:
            token: Token issued by sign()
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The player ID, or None if the token is forged or expired
        """
        try:
            return self._serializer.loads(token, max_age=max_age or config.session_ttl)
        except (BadSignature, SignatureExpired):
            return None


_signer: TokenSigner | None = None


def get_signer() -> TokenSigner:
    """Get or create the process-wide signer."""
    global _signer
    if _signer is None:
        _signer = TokenSigner()
    return _signer


def issue_token() -> tuple[str, str]:
    """
    Mint a new player.

    Returns:
        (player_id, signed token)
    """
    player_id = str(uuid4())
    return player_id, get_signer().sign(player_id)


def player_id_from_token(token: str) -> str | None:
    """Resolve a token to its player ID, or None if it does not verify."""
    return get_signer().unsign(token)


class RoundStore(ABC):
    """Where each player's serialized round lives between requests."""

    @abstractmethod
    async def load(self, player_id: str) -> dict[str, Any] | None:
        """Get the stored record for a player, if it has not expired."""
        ...

    @abstractmethod
    async def save(self, player_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        """Store a player's record, refreshing its expiry."""
        ...


class InMemoryRoundStore(RoundStore):
    """Process-local round store for development and tests."""

    def __init__(self) -> None:
        # player_id -> (data, monotonic deadline)
        self._rounds: dict[str, tuple[dict[str, Any], float]] = {}

    async def load(self, player_id: str) -> dict[str, Any] | None:
        entry = self._rounds.get(player_id)
        if entry is None:
            return None
        data, deadline = entry
        if deadline < time.monotonic():
            del self._rounds[player_id]
            return None
        return data

    async def save(self, player_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        self.purge_expired()
        self._rounds[player_id] = (data, time.monotonic() + (ttl or config.session_ttl))

    def __len__(self) -> int:
        return len(self._rounds)

    def purge_expired(self) -> int:
        """Drop every expired record; returns how many were dropped."""
        now = time.monotonic()
        expired = [pid for pid, (_, deadline) in self._rounds.items() if deadline < now]
        for pid in expired:
            del self._rounds[pid]
        return len(expired)


class RedisRoundStore(RoundStore):
    """Redis-backed round store; records are JSON with a TTL."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client
        self._prefix = "casino:round:"

    def _key(self, player_id: str) -> str:
        return f"{self._prefix}{player_id}"

    async def load(self, player_id: str) -> dict[str, Any] | None:
        data = await self._redis.get(self._key(player_id))
        return None if data is None else json.loads(data)

    async def save(self, player_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        await self._redis.setex(self._key(player_id), ttl or config.session_ttl, json.dumps(data))


# Shared Redis client; stays None once a connection attempt has failed
_redis_client: redis.Redis | None = None
_redis_checked = False


async def get_redis_client() -> redis.Redis | None:
    """Connect to Redis once; return None when it is disabled or unreachable."""
    global _redis_client, _redis_checked

    if _redis_checked:
        return _redis_client
    _redis_checked = True

    if not config.redis.enabled:
        logger.info("Redis disabled; using in-memory stores")
        return None

    client = redis.from_url(config.redis.url)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable at %s (%s); using in-memory stores", config.redis.url, e)
        return None

    _redis_client = client
    return _redis_client


_round_store: RoundStore | None = None


async def get_round_store() -> RoundStore:
    """Get or create the round store."""
    global _round_store

    if _round_store is None:
        client = await get_redis_client()
        _round_store = RedisRoundStore(client) if client else InMemoryRoundStore()
    return _round_store
