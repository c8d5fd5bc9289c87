"""
Unit Tests for RedisClient

Tests command error mapping and the not-connected guard with a mocked
redis.asyncio client.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError, ResponseError, TimeoutError

from reactive_cache.core.exceptions import CacheConnectionError, CacheKeyError
from reactive_cache.infrastructure.cache import redis_client as redis_client_module
from reactive_cache.infrastructure.cache.redis_client import OperationExecutor, RedisClient


@pytest.mark.unit
class TestOperationExecutor:
    """Test command execution and error mapping."""

    @pytest.fixture
    def raw_redis(self):
        return MagicMock()

    @pytest.fixture
    def executor(self, raw_redis):
        return OperationExecutor(raw_redis)

    @pytest.mark.asyncio
    async def test_set_converts_ttl_to_milliseconds(self, executor, raw_redis):
        """Test that a TTL in seconds becomes PX milliseconds."""
        raw_redis.set = AsyncMock(return_value=True)

        assert await executor.set("k", "v", ttl=1.5, nx=True) is True
        raw_redis.set.assert_called_once_with("k", "v", px=1500, nx=True)

    @pytest.mark.asyncio
    async def test_set_without_ttl_has_no_expiry(self, executor, raw_redis):
        """Test that ttl=None writes without PX."""
        raw_redis.set = AsyncMock(return_value=True)

        await executor.set("k", "v")
        raw_redis.set.assert_called_once_with("k", "v", px=None, nx=False)

    @pytest.mark.asyncio
    async def test_set_nx_refused_returns_false(self, executor, raw_redis):
        """Test that SET NX on an existing key reports False."""
        raw_redis.set = AsyncMock(return_value=None)

        assert await executor.set("k", "v", ttl=10, nx=True) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ConnectionError("refused"), TimeoutError("slow")])
    async def test_connection_errors_map_to_cache_connection_error(self, executor, raw_redis, error):
        """Test that connection loss surfaces as CacheConnectionError."""
        raw_redis.get = AsyncMock(side_effect=error)

        with pytest.raises(CacheConnectionError) as exc_info:
            await executor.get("k")

        assert exc_info.value.details == {"key": "k"}
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_command_errors_map_to_cache_key_error(self, executor, raw_redis):
        """Test that other Redis errors surface as CacheKeyError."""
        raw_redis.xgroup_create = AsyncMock(side_effect=ResponseError("BUSYGROUP exists"))

        with pytest.raises(CacheKeyError, match="BUSYGROUP"):
            await executor.xgroup_create("s", "g")

    @pytest.mark.asyncio
    async def test_eval_passes_keys_and_args(self, executor, raw_redis):
        """Test EVAL argument layout."""
        raw_redis.eval = AsyncMock(return_value=1)

        assert await executor.eval("script", ["k1"], ["a1"]) == 1
        raw_redis.eval.assert_called_once_with("script", 1, "k1", "a1")

    @pytest.mark.asyncio
    async def test_zrangebyscore_limit(self, executor, raw_redis):
        """Test that a limit is sent as start/num."""
        raw_redis.zrangebyscore = AsyncMock(return_value=["m"])

        assert await executor.zrangebyscore("z", "-inf", 10, limit=5) == ["m"]
        raw_redis.zrangebyscore.assert_called_once_with("z", "-inf", 10, start=0, num=5)


@pytest.mark.unit
class TestRedisClientGuard:
    """Test behaviour before connect()."""

    @pytest.mark.asyncio
    async def test_commands_require_connection(self):
        """Test that commands before connect raise with a suggestion."""
        client = RedisClient()

        with pytest.raises(CacheConnectionError) as exc_info:
            await client.get("k")

        assert "suggestion" in exc_info.value.details
        assert client.is_connected() is False

    @pytest.mark.asyncio
    async def test_set_forwards_ttl_and_nx(self):
        """Test that set passes key, value, ttl and nx through to the executor."""
        client = RedisClient()
        client._executor = MagicMock()
        client._executor.set = AsyncMock(return_value=True)

        assert await client.set("k", "v", 2, True) is True
        client._executor.set.assert_awaited_once_with("k", "v", 2, True)


@pytest.mark.unit
class TestGetRedisClient:
    """Test the module-level client accessor."""

    def test_returns_one_shared_unconnected_client(self, monkeypatch):
        """Test that the accessor creates the client lazily and reuses it."""
        monkeypatch.setattr(redis_client_module, "_redis_client", None)

        client = redis_client_module.get_redis_client()

        assert redis_client_module.get_redis_client() is client
        assert client.is_connected() is False
