"""
Scoped exclusive lease.

Runs a body only when the lease could be taken, and always gives the lease
back afterwards. At most one body runs per key at a time across processes.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from reactive_cache.core.interfaces.value_store import LeaseManager
from reactive_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


class LeaseGuard:
    """
    Usage:
        guard = LeaseGuard(ExclusiveLease(redis_client))
        ran = await guard.with_lease("project:1", 120, compute)
    """

    def __init__(self, lease_manager: LeaseManager):
        self._leases = lease_manager

    async def with_lease(
        self, key: str, timeout: float, body: Callable[[], Awaitable[Any]]
    ) -> bool:
        """
        Run ``body`` while holding the lease for ``key``.

        Returns:
            False if the lease is held elsewhere (body not run), True otherwise

        Raises:
            LeaseError: If the lease manager cannot be reached
            Exception: Whatever ``body`` raises, after the lease is released
        """
        token = await self._leases.try_obtain(key, timeout)
        if token is None:
            logger.debug("Lease not obtained, skipping", stage="LEASE.GUARD", key=key)
            return False

        try:
            await body()
        finally:
            try:
                await self._leases.cancel(key, token)
            except Exception as e:
                logger.error("Failed to release lease", stage="LEASE.GUARD", key=key, error=str(e))
                raise

        return True
