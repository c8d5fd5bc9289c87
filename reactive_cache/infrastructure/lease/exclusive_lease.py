"""
Exclusive Lease

Distributed, time-bounded mutual exclusion over Redis.

Algorithm:
    1. try_obtain: SET exclusive_lease:<key> <uuid> NX PX <timeout>
       - Returns the uuid when the key was created, None when it already exists
    2. cancel: Lua compare-and-delete
       - Deletes the key only if it still holds the caller's uuid, so a holder
         whose lease already expired cannot release a newer holder's lease
    3. Expiry: Redis removes the key after <timeout> if the holder never cancels
"""

import uuid

from reactive_cache.core.config.constants import LEASE_KEY_PREFIX
from reactive_cache.core.exceptions import CacheError, LeaseError
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


CANCEL_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class ExclusiveLease:
    """
    Lease manager keyed by arbitrary strings.

    Usage:
        leases = ExclusiveLease(redis_client)
        token = await leases.try_obtain("project:1", timeout=120)
        if token:
            try:
                ...
            finally:
                await leases.cancel("project:1", token)
    """

    def __init__(self, redis_client: RedisClient):
        self._redis = redis_client

    @staticmethod
    def lease_key(key: str) -> str:
        return f"{LEASE_KEY_PREFIX}{key}"

    async def try_obtain(self, key: str, timeout: float) -> str | None:
        """
        Try to obtain the lease without blocking.

        STAGE-LEASE.OBTAIN

        Returns:
            A token when obtained, None when another holder has it

        Raises:
            LeaseError: If Redis cannot execute the command
        """
        token = str(uuid.uuid4())
        try:
            obtained = await self._redis.set(self.lease_key(key), token, ttl=timeout, nx=True)
        except CacheError as e:
            raise LeaseError.from_exception(e, message=f"Failed to obtain lease for '{key}'", key=key) from e

        if not obtained:
            logger.debug("Lease held elsewhere", stage="LEASE.OBTAIN", key=key)
            return None

        logger.debug("Lease obtained", stage="LEASE.OBTAIN", key=key, timeout=timeout)
        return token

    async def cancel(self, key: str, token: str) -> bool:
        """
        Release the lease if ``token`` still owns it.

        STAGE-LEASE.CANCEL

        Returns:
            True if this call removed the lease

        Raises:
            LeaseError: If Redis cannot execute the script
        """
        try:
            removed = await self._redis.eval(CANCEL_SCRIPT, [self.lease_key(key)], [token])
        except CacheError as e:
            raise LeaseError.from_exception(e, message=f"Failed to cancel lease for '{key}'", key=key) from e

        if not removed:
            logger.warning("Lease expired before release", stage="LEASE.CANCEL", key=key)
        return bool(removed)

    async def exists(self, key: str) -> bool:
        """Whether anyone currently holds the lease."""
        try:
            return bool(await self._redis.exists(self.lease_key(key)))
        except CacheError as e:
            raise LeaseError.from_exception(e, key=key) from e

    async def ttl(self, key: str) -> float | None:
        """
        Remaining lease time in seconds.

        Returns:
            Seconds left, or None when the lease is not held
        """
        try:
            remaining_ms = await self._redis.pttl(self.lease_key(key))
        except CacheError as e:
            raise LeaseError.from_exception(e, key=key) from e

        if remaining_ms < 0:
            return None
        return remaining_ms / 1000.0
