"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

The same client backs three collaborators of the reactive cache:
    - ValueStore: GET / SET PX / DEL
    - ExclusiveLease: SET NX PX / EVAL compare-and-delete / PTTL
    - RedisQueue: XADD / XREADGROUP / XACK / XAUTOCLAIM + ZADD / ZRANGEBYSCORE / ZREM
"""

import time
from collections.abc import Awaitable
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.exceptions import CacheConnectionError, CacheKeyError
from reactive_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle, pooling, and reconnection
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    Pool Configuration:
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    - Retry on timeout: Enabled
    """

    def __init__(self, settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        try:
            self._pool = ConnectionPool(
                host=self._settings.redis.REDIS_HOST,
                port=self._settings.redis.REDIS_PORT,
                db=self._settings.redis.REDIS_DB,
                password=self._settings.redis.REDIS_PASSWORD,
                max_connections=self._settings.redis.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=self._settings.redis.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=self._settings.redis.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=self._settings.redis.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,  # Return strings instead of bytes
            )

            self._client = redis.Redis(connection_pool=self._pool)

            # Verify the pool actually reaches a server before reporting success
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=self._settings.redis.REDIS_HOST,
                port=self._settings.redis.REDIS_PORT,
                max_connections=self._settings.redis.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={
                    "host": self._settings.redis.REDIS_HOST,
                    "port": self._settings.redis.REDIS_PORT,
                },
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        """Get the Redis client instance."""
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        """Get the connection pool instance."""
        return self._pool

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Connection/timeout failures become CacheConnectionError
    - Any other RedisError becomes CacheKeyError
    - Every failure is logged with the command and its key
    - The original exception is chained for debugging
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    async def _execute(self, command: str, awaitable: Awaitable[Any], **context) -> Any:
        try:
            return await awaitable
        except (ConnectionError, TimeoutError) as e:
            logger.error(
                f"Redis {command} failed: connection lost",
                stage=f"REDIS.{command}",
                error=str(e),
                **context,
            )
            raise CacheConnectionError(
                message=f"Redis {command} failed: {e}", details=context
            ) from e
        except RedisError as e:
            logger.error(f"Redis {command} failed", stage=f"REDIS.{command}", error=str(e), **context)
            raise CacheKeyError(message=f"Redis {command} failed: {e}", details=context) from e

    # -------------------------------------------------------------------------
    # Basic Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        return await self._execute("GET", self._redis.get(key), key=key)

    async def set(
        self, key: str, value: str, ttl: float | None = None, nx: bool = False
    ) -> bool:
        """
        Set value in Redis.

        STAGE-REDIS.SET: Redis SET operation

        Args:
            key: Redis key
            value: Value to set
            ttl: Time-to-live in seconds, millisecond precision (optional)
            nx: Only set if key doesn't exist (SET NX)

        Returns:
            True if the value was written (False when NX prevented it)
        """
        px = max(1, int(ttl * 1000)) if ttl is not None else None
        result = await self._execute(
            "SET", self._redis.set(key, value, px=px, nx=nx), key=key
        )
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from Redis.

        STAGE-REDIS.DEL: Redis DELETE operation
        """
        return await self._execute("DEL", self._redis.delete(*keys), keys=list(keys))

    async def exists(self, *keys: str) -> int:
        """Return how many of ``keys`` exist."""
        return await self._execute("EXISTS", self._redis.exists(*keys), keys=list(keys))

    async def pttl(self, key: str) -> int:
        """
        Get remaining TTL of a key in milliseconds.

        Returns:
            TTL in ms, -1 if no TTL, -2 if key doesn't exist
        """
        return await self._execute("PTTL", self._redis.pttl(key), key=key)

    async def eval(self, script: str, keys: list[str], args: list[Any]) -> Any:
        """Run a Lua script atomically."""
        return await self._execute(
            "EVAL", self._redis.eval(script, len(keys), *keys, *args), keys=keys
        )

    # -------------------------------------------------------------------------
    # Sorted Set Operations (for delayed jobs)
    # -------------------------------------------------------------------------

    async def zadd(self, name: str, mapping: dict[str, float]) -> int:
        """Add members with scores to a sorted set."""
        return await self._execute("ZADD", self._redis.zadd(name, mapping), name=name)

    async def zrangebyscore(
        self, name: str, min_score: float | str, max_score: float | str, limit: int | None = None
    ) -> list[str]:
        """Return members with scores in [min, max], lowest first."""
        if limit is None:
            awaitable = self._redis.zrangebyscore(name, min_score, max_score)
        else:
            awaitable = self._redis.zrangebyscore(name, min_score, max_score, start=0, num=limit)
        return await self._execute("ZRANGEBYSCORE", awaitable, name=name)

    async def zrem(self, name: str, *members: str) -> int:
        """Remove members from a sorted set; returns how many were removed."""
        return await self._execute("ZREM", self._redis.zrem(name, *members), name=name)

    async def zcard(self, name: str) -> int:
        """Number of members in a sorted set."""
        return await self._execute("ZCARD", self._redis.zcard(name), name=name)

    # -------------------------------------------------------------------------
    # Stream Operations (for the job queue)
    # -------------------------------------------------------------------------

    async def xgroup_create(self, name: str, group: str) -> bool:
        """Create a consumer group (and the stream) reading from the beginning."""
        return await self._execute(
            "XGROUP", self._redis.xgroup_create(name, group, id="0", mkstream=True),
            name=name, group=group,
        )

    async def xadd(self, name: str, fields: dict[str, str], max_len: int | None = None) -> str:
        """Append an entry to a stream, trimming approximately to ``max_len``."""
        return await self._execute(
            "XADD", self._redis.xadd(name, fields, maxlen=max_len, approximate=True), name=name
        )

    async def xlen(self, name: str) -> int:
        """Stream length."""
        return await self._execute("XLEN", self._redis.xlen(name), name=name)

    async def xreadgroup(
        self, group: str, consumer: str, streams: dict[str, str], count: int, block: int
    ) -> list:
        """Read entries for a consumer group."""
        return await self._execute(
            "XREADGROUP",
            self._redis.xreadgroup(group, consumer, streams, count=count, block=block),
            group=group, consumer=consumer,
        )

    async def xack(self, name: str, group: str, *ids: str) -> int:
        """Acknowledge entries."""
        return await self._execute("XACK", self._redis.xack(name, group, *ids), name=name)

    async def xautoclaim(
        self, name: str, group: str, consumer: str, min_idle_ms: int, count: int
    ) -> list:
        """Transfer ownership of entries pending longer than ``min_idle_ms``."""
        return await self._execute(
            "XAUTOCLAIM",
            self._redis.xautoclaim(name, group, consumer, min_idle_ms, start_id="0-0", count=count),
            name=name, consumer=consumer,
        )


# =============================================================================
# LAYER 3: HEALTH MONITORING
# Health checks and connection pool metrics
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size
    """

    def __init__(self, connection_manager: ConnectionManager, settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool:
            health["pool_size"] = pool.max_connections

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# Clean interface that coordinates all layers
# =============================================================================


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("key", "value", ttl=600)
        value = await client.get("key")

        await client.disconnect()
    """

    def __init__(self, settings=None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()

        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.info(
            "Redis client initialized",
            stage="REDIS.1",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        """Check Redis connection health."""
        return await self._conn_mgr.ping()

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError(
                "Redis client is not connected"
            ).with_suggestion("Call `await client.connect()` before issuing commands")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Get value from Redis."""
        return await self._require_executor().get(key)

    async def set(
        self, key: str, value: str, ttl: float | None = None, nx: bool = False
    ) -> bool:
        """Set value in Redis."""
        return await self._require_executor().set(key, value, ttl, nx)

    async def delete(self, *keys: str) -> int:
        """Delete keys from Redis."""
        return await self._require_executor().delete(*keys)

    async def exists(self, *keys: str) -> int:
        """Check if keys exist in Redis."""
        return await self._require_executor().exists(*keys)

    async def pttl(self, key: str) -> int:
        """Get TTL of a key in milliseconds."""
        return await self._require_executor().pttl(key)

    async def eval(self, script: str, keys: list[str], args: list[Any]) -> Any:
        """Run a Lua script atomically."""
        return await self._require_executor().eval(script, keys, args)

    async def zadd(self, name: str, mapping: dict[str, float]) -> int:
        """Add members to a sorted set."""
        return await self._require_executor().zadd(name, mapping)

    async def zrangebyscore(
        self, name: str, min_score: float | str, max_score: float | str, limit: int | None = None
    ) -> list[str]:
        """Range a sorted set by score."""
        return await self._require_executor().zrangebyscore(name, min_score, max_score, limit)

    async def zrem(self, name: str, *members: str) -> int:
        """Remove members from a sorted set."""
        return await self._require_executor().zrem(name, *members)

    async def zcard(self, name: str) -> int:
        """Sorted set size."""
        return await self._require_executor().zcard(name)

    async def xgroup_create(self, name: str, group: str) -> bool:
        """Create a stream consumer group."""
        return await self._require_executor().xgroup_create(name, group)

    async def xadd(self, name: str, fields: dict[str, str], max_len: int | None = None) -> str:
        """Append to a stream."""
        return await self._require_executor().xadd(name, fields, max_len)

    async def xlen(self, name: str) -> int:
        """Stream length."""
        return await self._require_executor().xlen(name)

    async def xreadgroup(
        self, group: str, consumer: str, streams: dict[str, str], count: int, block: int
    ) -> list:
        """Read from a consumer group."""
        return await self._require_executor().xreadgroup(group, consumer, streams, count, block)

    async def xack(self, name: str, group: str, *ids: str) -> int:
        """Acknowledge stream entries."""
        return await self._require_executor().xack(name, group, *ids)

    async def xautoclaim(
        self, name: str, group: str, consumer: str, min_idle_ms: int, count: int
    ) -> list:
        """Claim stale pending entries."""
        return await self._require_executor().xautoclaim(name, group, consumer, min_idle_ms, count)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """
    Get the global Redis client instance (singleton).

    Returns:
        RedisClient: Global Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client
