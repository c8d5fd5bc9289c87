"""
Cache-Related Exceptions

Exceptions raised by the Redis client and the value store adapter.
"""

from reactive_cache.core.exceptions.base import ReactiveCacheError


class CacheError(ReactiveCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the cache (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key operation fails.

    Common causes:
    - Operation timeout
    - Connection dropped mid-command
    - Memory limit exceeded
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded for, or decoded from, the store."""
    pass
