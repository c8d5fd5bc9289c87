"""
Liveness tracking.

A subject is alive while ``<base>:alive`` exists. Each read rewrites it with
TTL = lifetime; once reads stop the marker expires and the subject is dormant.
"""

from typing import Any

from reactive_cache.caching.key_resolver import KeyResolver
from reactive_cache.core.config.constants import ALIVE_QUALIFIER
from reactive_cache.core.interfaces.value_store import ValueBackend
from reactive_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


class LivenessTracker:
    def __init__(self, store: ValueBackend, resolver: KeyResolver, lifetime: float):
        self._store = store
        self._resolver = resolver
        self._lifetime = lifetime

    @property
    def lifetime(self) -> float:
        return self._lifetime

    def alive_key(self, subject: Any) -> str:
        return self._resolver.resolve(subject, ALIVE_QUALIFIER)

    async def mark_alive(self, subject: Any) -> None:
        """(Re)write the marker; store errors propagate."""
        key = self.alive_key(subject)
        await self._store.write(key, True, ttl=self._lifetime)
        logger.debug("Subject marked alive", stage="RC.LIVENESS", key=key, lifetime=self._lifetime)

    async def is_alive(self, subject: Any) -> bool:
        return bool(await self._store.read(self.alive_key(subject)))
