"""
Unit Tests for ValueStore and ExclusiveLease

Both run against the in-memory FakeRedisClient.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from reactive_cache.core.exceptions import (
    CacheConnectionError,
    CacheSerializationError,
    LeaseError,
)
from reactive_cache.infrastructure.cache.value_store import ValueStore
from reactive_cache.infrastructure.lease.exclusive_lease import ExclusiveLease


@pytest.mark.unit
class TestValueStore:
    """Test JSON value storage with optional expiry."""

    @pytest.fixture
    def value_store(self, fake_redis):
        return ValueStore(fake_redis, namespace="rc")

    def test_namespace_defaults_to_settings(self, fake_redis):
        """Test that the namespace comes from CACHE_NAMESPACE by default."""
        assert ValueStore(fake_redis).namespace == "reactive_cache"

    def test_empty_namespace_leaves_keys_alone(self, fake_redis):
        """Test that an empty namespace does not prefix keys."""
        assert ValueStore(fake_redis, namespace="").storage_key("a:b") == "a:b"

    @pytest.mark.asyncio
    async def test_write_then_read(self, value_store, fake_redis):
        """Test that values are JSON encoded under the namespaced key."""
        await value_store.write("project:1", {"open": 3, "tags": ["a"]})

        assert fake_redis.data["rc:project:1"] == '{"open":3,"tags":["a"]}'
        assert await value_store.read("project:1") == {"open": 3, "tags": ["a"]}

    @pytest.mark.asyncio
    async def test_missing_key_reads_none(self, value_store):
        """Test that absent keys read as None."""
        assert await value_store.read("nope") is None

    @pytest.mark.asyncio
    async def test_write_without_ttl_never_expires(self, value_store, fake_redis, clock):
        """Test that ttl=None stores the value indefinitely."""
        await value_store.write("v", "V1")
        clock.advance(10**6)

        assert await value_store.read("v") == "V1"
        assert "rc:v" not in fake_redis.expires_at

    @pytest.mark.asyncio
    async def test_write_with_ttl_expires(self, value_store, clock):
        """Test that entries written with a TTL disappear after it."""
        await value_store.write("alive", True, ttl=600)

        clock.advance(599)
        assert await value_store.read("alive") is True
        clock.advance(1)
        assert await value_store.read("alive") is None

    @pytest.mark.asyncio
    async def test_delete_counts_existing_keys(self, value_store):
        """Test that delete returns how many keys existed."""
        await value_store.write("a", 1)

        assert await value_store.delete("a", "b") == 1
        assert await value_store.read("a") is None
        assert await value_store.delete() == 0

    @pytest.mark.asyncio
    async def test_corrupt_payload_raises(self, value_store, fake_redis):
        """Test that undecodable stored data is a serialization error."""
        fake_redis.data["rc:bad"] = "{not json"

        with pytest.raises(CacheSerializationError):
            await value_store.read("bad")

    @pytest.mark.asyncio
    async def test_unserialisable_value_raises(self, value_store):
        """Test that values orjson cannot encode are rejected."""
        with pytest.raises(CacheSerializationError) as exc_info:
            await value_store.write("obj", object())

        assert exc_info.value.details["value_type"] == "object"

    @pytest.mark.asyncio
    async def test_redis_failure_propagates(self):
        """Test that Redis errors are not swallowed."""
        redis = MagicMock()
        redis.get = AsyncMock(side_effect=CacheConnectionError("down"))

        with pytest.raises(CacheConnectionError):
            await ValueStore(redis, namespace="rc").read("k")


@pytest.mark.unit
class TestExclusiveLease:
    """Test SET NX PX leases with compare-and-delete release."""

    @pytest.fixture
    def lease(self, fake_redis):
        return ExclusiveLease(fake_redis)

    def test_lease_key_prefix(self):
        """Test that lease keys are prefixed."""
        assert ExclusiveLease.lease_key("project:1") == "exclusive_lease:project:1"

    @pytest.mark.asyncio
    async def test_obtain_is_exclusive(self, lease):
        """Test that a second obtain fails while the first is held."""
        token = await lease.try_obtain("k", 120)

        assert token is not None
        assert await lease.try_obtain("k", 120) is None

    @pytest.mark.asyncio
    async def test_cancel_releases(self, lease):
        """Test that the holder's cancel frees the lease."""
        token = await lease.try_obtain("k", 120)

        assert await lease.cancel("k", token) is True
        assert await lease.exists("k") is False
        assert await lease.try_obtain("k", 120) is not None

    @pytest.mark.asyncio
    async def test_cancel_with_wrong_token_keeps_lease(self, lease):
        """Test that only the holder's token releases the lease."""
        await lease.try_obtain("k", 120)

        assert await lease.cancel("k", "someone-else") is False
        assert await lease.exists("k") is True

    @pytest.mark.asyncio
    async def test_lease_expires(self, lease, clock):
        """Test that an unreleased lease expires after its timeout."""
        stale = await lease.try_obtain("k", 120)
        clock.advance(120)

        fresh = await lease.try_obtain("k", 120)

        assert fresh is not None
        assert await lease.cancel("k", stale) is False
        assert await lease.exists("k") is True

    @pytest.mark.asyncio
    async def test_ttl(self, lease, clock):
        """Test remaining lease time reporting."""
        assert await lease.ttl("k") is None

        await lease.try_obtain("k", 120)
        clock.advance(20)

        assert await lease.ttl("k") == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_redis_failure_becomes_lease_error(self):
        """Test that Redis failures surface as LeaseError."""
        redis = MagicMock()
        redis.set = AsyncMock(side_effect=CacheConnectionError("down"))

        with pytest.raises(LeaseError) as exc_info:
            await ExclusiveLease(redis).try_obtain("k", 120)

        assert exc_info.value.details["original_error"] == "CacheConnectionError"
        assert exc_info.value.details["key"] == "k"
