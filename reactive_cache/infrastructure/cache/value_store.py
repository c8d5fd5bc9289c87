"""
Redis-backed value store for reactive cache entries.

Values are JSON-encoded with orjson so any JSON-compatible value a subject
computes round-trips through Redis. Keys are prefixed with CACHE_NAMESPACE.
"""

from typing import Any

import orjson

from reactive_cache.core.config.constants import KEY_SEPARATOR
from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.exceptions import CacheSerializationError
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


class ValueStore:
    """
    Read/write/delete with optional expiry over a RedisClient.

    Every call reads through to Redis; nothing is cached in-process.

    Usage:
        store = ValueStore(redis_client)
        await store.write("project:1:alive", True, ttl=600)
        await store.read("project:1:alive")   # True
    """

    def __init__(self, redis_client: RedisClient, namespace: str | None = None):
        self._redis = redis_client
        self._namespace = get_settings().CACHE_NAMESPACE if namespace is None else namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def storage_key(self, key: str) -> str:
        """Physical Redis key for a logical cache key."""
        if not self._namespace:
            return key
        return f"{self._namespace}{KEY_SEPARATOR}{key}"

    async def read(self, key: str) -> Any | None:
        """
        Read and decode a value.

        Returns:
            Decoded value, or None when absent or expired

        Raises:
            CacheSerializationError: If the stored payload is not valid JSON
            CacheError: If Redis fails
        """
        raw = await self._redis.get(self.storage_key(key))
        if raw is None:
            return None

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.error("Stored value is not valid JSON", stage="STORE.READ", key=key, error=str(e))
            raise CacheSerializationError(
                f"Stored value for '{key}' could not be decoded", details={"key": key}
            ) from e

    async def write(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Encode and write a value.

        Args:
            key: Logical cache key
            value: JSON-compatible value
            ttl: Expiry in seconds; None keeps the entry until deleted

        Raises:
            CacheSerializationError: If the value is not JSON-serialisable
            CacheError: If Redis fails
        """
        try:
            payload = orjson.dumps(value).decode("utf-8")
        except TypeError as e:
            raise CacheSerializationError(
                f"Value for '{key}' is not serialisable: {e}",
                details={"key": key, "value_type": type(value).__name__},
            ) from e

        await self._redis.set(self.storage_key(key), payload, ttl=ttl)
        logger.debug("Value written", stage="STORE.WRITE", key=key, ttl=ttl)

    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""
        if not keys:
            return 0
        return await self._redis.delete(*(self.storage_key(k) for k in keys))
