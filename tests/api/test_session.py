"""Tests for player tokens and the round store."""

import json
import time
from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi import HTTPException

import api.session as session_module
from api.dependencies import require_player_id
from config import RedisConfig
from api.session import (
    InMemoryRoundStore,
    RedisRoundStore,
    TokenSigner,
    get_redis_client,
    get_round_store,
    get_signer,
    issue_token,
    player_id_from_token,
)


class TestTokenSigner:
    """Tests for TokenSigner class."""

    def test_unsign_returns_original_id(self):
        signer = TokenSigner(secret_key="test-secret")

        token = signer.sign("player-456")

        assert token != "player-456"
        assert signer.unsign(token, max_age=3600) == "player-456"

    def test_unsign_invalid_token_returns_none(self):
        signer = TokenSigner(secret_key="test-secret")
        assert signer.unsign("invalid-token-data", max_age=3600) is None

    def test_unsign_wrong_secret_returns_none(self):
        """Test that a token signed with another key is refused."""
        token = TokenSigner(secret_key="secret-one").sign("player")
        assert TokenSigner(secret_key="secret-two").unsign(token, max_age=3600) is None

    def test_unsign_expired_token_returns_none(self):
        """Test that tokens older than max_age are refused."""
        signer = TokenSigner(secret_key="test-secret")
        token = signer.sign("player")

        original_time = time.time
        with patch("time.time", lambda: original_time() + 7200):
            result = signer.unsign(token, max_age=3600)

        assert result is None

    def test_get_signer_returns_singleton(self, monkeypatch):
        monkeypatch.setattr(session_module, "_signer", None)
        assert get_signer() is get_signer()


class TestTokens:
    """Tests for issuing and resolving player tokens."""

    def test_issue_token(self):
        player_id, token = issue_token()

        assert len(player_id) == 36
        assert player_id_from_token(token) == player_id

    def test_each_token_is_a_new_player(self):
        assert issue_token()[0] != issue_token()[0]

    def test_require_player_id(self):
        player_id, token = issue_token()
        assert require_player_id(token) == player_id

    @pytest.mark.parametrize("token", [None, "", "forged"])
    def test_bad_token_is_401(self, token):
        with pytest.raises(HTTPException) as exc_info:
            require_player_id(token)
        assert exc_info.value.status_code == 401


class TestInMemoryRoundStore:
    """Tests for InMemoryRoundStore class."""

    @pytest_asyncio.fixture
    async def store(self):
        return InMemoryRoundStore()

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        record = {"round": {"state": "BETTING", "deck": []}, "created_at": 1}

        await store.save("player", record, ttl=3600)

        assert await store.load("player") == record

    @pytest.mark.asyncio
    async def test_load_missing(self, store):
        assert await store.load("nobody") is None

    @pytest.mark.asyncio
    async def test_expired_record_not_returned(self, store):
        await store.save("player", {"round": None}, ttl=60)

        later = time.monotonic() + 120
        with patch("api.session.time.monotonic", return_value=later):
            assert await store.load("player") is None

    @pytest.mark.asyncio
    async def test_purge_expired(self, store):
        await store.save("a", {}, ttl=1)
        await store.save("b", {}, ttl=1)
        await store.save("c", {}, ttl=3600)

        later = time.monotonic() + 10
        with patch("api.session.time.monotonic", return_value=later):
            assert store.purge_expired() == 2

        assert await store.load("c") == {}

    @pytest.mark.asyncio
    async def test_save_drops_expired_records(self, store):
        for player in ("a", "b", "c"):
            await store.save(player, {}, ttl=1)

        later = time.monotonic() + 10
        with patch("api.session.time.monotonic", return_value=later):
            await store.save("d", {}, ttl=3600)

        assert len(store) == 1


class TestRedisRoundStore:
    """Tests for the Redis store against a mocked client."""

    @pytest.mark.asyncio
    async def test_save_uses_prefix_and_ttl(self):
        client = AsyncMock()

        await RedisRoundStore(client).save("player", {"round": None}, ttl=60)

        client.setex.assert_awaited_once_with("casino:round:player", 60, json.dumps({"round": None}))

    @pytest.mark.asyncio
    async def test_load_decodes_json(self):
        client = AsyncMock()
        client.get.return_value = b'{"round": {"state": "SETTLED"}}'

        assert await RedisRoundStore(client).load("player") == {"round": {"state": "SETTLED"}}

    @pytest.mark.asyncio
    async def test_load_missing(self):
        client = AsyncMock()
        client.get.return_value = None

        assert await RedisRoundStore(client).load("player") is None


class TestStoreSelection:
    """Redis is optional; the in-memory store takes over without it."""

    @pytest.mark.asyncio
    async def test_disabled_redis_gives_no_client(self, monkeypatch):
        monkeypatch.setattr(session_module, "_redis_checked", False)
        monkeypatch.setattr(session_module, "_redis_client", None)
        monkeypatch.setattr(session_module, "_round_store", None)

        assert await get_redis_client() is None
        assert isinstance(await get_round_store(), InMemoryRoundStore)

    @pytest.mark.asyncio
    async def test_unreachable_redis_falls_back(self, monkeypatch, caplog):
        monkeypatch.setattr(session_module, "_redis_checked", False)
        monkeypatch.setattr(session_module, "_redis_client", None)
        enabled = replace(session_module.config, redis=RedisConfig(enabled=True))
        monkeypatch.setattr(session_module, "config", enabled)

        client = AsyncMock()
        client.ping.side_effect = ConnectionRefusedError("refused")
        with patch("api.session.redis.from_url", return_value=client):
            assert await get_redis_client() is None

        assert "using in-memory stores" in caplog.text

    @pytest.mark.asyncio
    async def test_store_is_shared(self, monkeypatch):
        monkeypatch.setattr(session_module, "_round_store", None)
        assert await get_round_store() is await get_round_store()
