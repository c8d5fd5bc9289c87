"""
Cache Infrastructure

- **redis_client.py**: pooled async Redis client shared by store, lease and queue
- **value_store.py**: JSON value store with optional expiry
"""

from .redis_client import RedisClient, get_redis_client
from .value_store import ValueStore

__all__ = [
    "RedisClient",
    "ValueStore",
    "get_redis_client",
]
