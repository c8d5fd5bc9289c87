"""
Reactive Cache Service

Wires the Redis-backed collaborators together and hands out one controller
per registered subject type.

Architecture:
    ReactiveCacheService
        ├── RedisClient (shared connection pool)
        ├── ValueStore (values and liveness markers)
        ├── ExclusiveLease -> LeaseGuard (single-flight compute)
        ├── RedisQueue -> ComputeScheduler (compute jobs, delayed jobs)
        └── SubjectRegistry (subject type name -> controller)

Usage:
    service = await init_reactive_cache()
    projects = service.register(project_type)

    value = await projects.read_with_trigger(project, render)

    await close_reactive_cache()
"""

from typing import Any

from reactive_cache.caching.controller import ReactiveCacheController
from reactive_cache.caching.lease_guard import LeaseGuard
from reactive_cache.caching.registry import SubjectRegistry
from reactive_cache.caching.scheduler import ComputeScheduler
from reactive_cache.caching.subject import SubjectType
from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.cache.redis_client import RedisClient
from reactive_cache.infrastructure.cache.value_store import ValueStore
from reactive_cache.infrastructure.lease.exclusive_lease import ExclusiveLease
from reactive_cache.infrastructure.message_queue.redis_queue import RedisQueue

logger = get_logger(__name__)


class ReactiveCacheService:
    """
    Owns the infrastructure shared by every subject type.

    Collaborators can be injected (tests pass in-memory fakes); anything left
    out is built on the Redis client during construction.
    """

    def __init__(
        self,
        redis_client: RedisClient | None = None,
        store: ValueStore | None = None,
        lease_manager: ExclusiveLease | None = None,
        queue: RedisQueue | None = None,
        registry: SubjectRegistry | None = None,
        settings=None,
    ):
        self._settings = settings or get_settings()
        self._redis = redis_client or RedisClient(self._settings)

        self.store = store or ValueStore(self._redis, self._settings.CACHE_NAMESPACE)
        self.lease_manager = lease_manager or ExclusiveLease(self._redis)
        self.queue = queue or RedisQueue(redis_client=self._redis)
        self.scheduler = ComputeScheduler(self.queue)
        self.lease_guard = LeaseGuard(self.lease_manager)
        self.registry = registry or SubjectRegistry()

        self._initialized = False

    @property
    def redis(self) -> RedisClient:
        return self._redis

    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Connect to Redis and create the job queue's consumer group.

        STAGE-RC.INIT
        """
        if self._initialized:
            return

        if not self._redis.is_connected():
            await self._redis.connect()
        await self.queue.initialize()

        self._initialized = True
        logger.info(
            "Reactive cache service initialized",
            stage="RC.INIT",
            subject_types=self.registry.names(),
        )

    def register(self, subject_type: SubjectType) -> ReactiveCacheController:
        """
        Build and register the controller for a subject type.

        Raises:
            ConfigurationError: If the name is already taken
        """
        controller = ReactiveCacheController(
            subject_type,
            store=self.store,
            lease_guard=self.lease_guard,
            scheduler=self.scheduler,
        )
        self.registry.register(controller)
        logger.info(
            "Subject type registered",
            stage="RC.REGISTER",
            subject_type=subject_type.name,
            lifetime=subject_type.config.lifetime,
            refresh_interval=subject_type.config.refresh_interval,
            lease_timeout=subject_type.config.lease_timeout,
        )
        return controller

    def controller(self, name: str) -> ReactiveCacheController:
        """
        Raises:
            SubjectTypeNotFoundError: If ``name`` was never registered
        """
        return self.registry.get(name)

    async def health_check(self) -> dict[str, Any]:
        health = await self._redis.health_check()
        health["subject_types"] = self.registry.names()
        health["initialized"] = self._initialized
        return health

    async def shutdown(self) -> None:
        """
        Close the queue and the Redis connection.

        STAGE-RC.SHUTDOWN
        """
        await self.queue.close()
        await self._redis.disconnect()
        self._initialized = False
        logger.info("Reactive cache service shut down", stage="RC.SHUTDOWN")


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_service: ReactiveCacheService | None = None


def get_reactive_cache_service() -> ReactiveCacheService:
    """Get the global reactive cache service (singleton)."""
    global _service

    if _service is None:
        _service = ReactiveCacheService()

    return _service


async def init_reactive_cache() -> ReactiveCacheService:
    """Create (if needed) and initialize the global service."""
    service = get_reactive_cache_service()
    await service.initialize()
    return service


async def close_reactive_cache() -> None:
    """Shut down and drop the global service."""
    global _service

    if _service:
        await _service.shutdown()
        _service = None
