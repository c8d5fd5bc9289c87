"""
Reactive Cache Controller

Keeps one subject type's values fresh only while they are being read.

Read path (read_with_trigger):
    alive + value present  -> handler(value)      [warm]
    alive + no value       -> nothing             [warming]
    not alive              -> nothing             [dormant]
    always afterwards      -> mark alive, enqueue a compute cycle now

Compute path (compute_cycle), run by a worker per queued job:
    lease held elsewhere   -> return              [locked]
    not alive              -> return, no requeue  [dormant, chain ends]
    alive                  -> calculate; requeue after refresh_interval
                              whether or not calculate raised; store result

State per subject:
    Dormant --read--> Warming --compute--> Warm --compute--> Warm
    Warm/Warming --compute finds marker expired--> Dormant
"""

import inspect
import time
from collections.abc import Callable
from typing import Any

from reactive_cache.caching.key_resolver import KeyResolver
from reactive_cache.caching.lease_guard import LeaseGuard
from reactive_cache.caching.liveness import LivenessTracker
from reactive_cache.caching.scheduler import ComputeScheduler
from reactive_cache.caching.subject import SubjectType, subject_id
from reactive_cache.core.config.constants import ComputeOutcome, ReadState
from reactive_cache.core.interfaces.value_store import ValueBackend
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


def is_present(value: Any) -> bool:
    """
    Whether a stored value counts as present.

    None, False, empty strings, whitespace-only strings and empty collections
    are all treated as absent.
    """
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list | tuple | dict | set):
        return len(value) > 0
    return True


class ReactiveCacheController:
    """
    Orchestrates liveness, leasing, scheduling and storage for one SubjectType.

    Usage:
        controller = ReactiveCacheController(project_type, store, leases, scheduler)

        # request handling code
        stats = await controller.read_with_trigger(project, lambda v: v["stats"])

        # worker, for each queued job
        await controller.compute_cycle(project)
    """

    def __init__(
        self,
        subject_type: SubjectType,
        store: ValueBackend,
        lease_guard: LeaseGuard,
        scheduler: ComputeScheduler,
        resolver: KeyResolver | None = None,
        liveness: LivenessTracker | None = None,
        metrics_collector=None,
    ):
        self._type = subject_type
        self._config = subject_type.config
        self._store = store
        self._lease_guard = lease_guard
        self._scheduler = scheduler
        self._resolver = resolver or KeyResolver(self._config.key_template)
        self._liveness = liveness or LivenessTracker(store, self._resolver, self._config.lifetime)
        self._metrics = metrics_collector or get_metrics_collector()

    @property
    def subject_type(self) -> SubjectType:
        return self._type

    @property
    def name(self) -> str:
        return self._type.name

    @property
    def liveness(self) -> LivenessTracker:
        return self._liveness

    def base_key(self, subject: Any) -> str:
        return self._resolver.resolve(subject)

    # =========================================================================
    # Read path
    # =========================================================================

    async def read_with_trigger(
        self, subject: Any, handler: Callable[[Any], Any]
    ) -> Any | None:
        """
        Surface the cached value to ``handler`` if the subject is warm.

        Whatever happens while reading or inside the handler, the subject is
        marked alive and a compute cycle is enqueued before returning.

        Args:
            subject: Object with an ``id``
            handler: Sync or async callable receiving the cached value

        Returns:
            The handler's result when warm, otherwise None

        Raises:
            CacheError / QueueError: Store or queue failures
            Exception: Whatever ``handler`` raises (after liveness refresh)
        """
        state = ReadState.DORMANT
        try:
            if await self._liveness.is_alive(subject):
                value = await self._store.read(self.base_key(subject))
                if is_present(value):
                    state = ReadState.WARM
                    result = handler(value)
                    if inspect.isawaitable(result):
                        result = await result
                    return result
                state = ReadState.WARMING
            return None
        finally:
            self._metrics.record_read(self.name, state.value)
            logger.debug(
                "Read with trigger",
                stage="RC.READ",
                subject_type=self.name,
                subject_id=subject_id(subject),
                state=state.value,
            )
            await self._liveness.mark_alive(subject)
            await self._scheduler.enqueue_now(self.name, subject)

    # =========================================================================
    # Compute path
    # =========================================================================

    async def compute_cycle(self, subject: Any) -> ComputeOutcome:
        """
        Recompute and store the subject's value if it is still being read.

        Returns:
            LOCKED when another worker holds the lease, DORMANT when liveness
            has expired (no reschedule), COMPUTED after a successful store

        Raises:
            LeaseError / CacheError / QueueError: Infrastructure failures
            Exception: Whatever the calculation raises, after the next cycle
                has been queued
        """
        key = self.base_key(subject)
        outcome: list[ComputeOutcome] = []

        async def _guarded() -> None:
            if not await self._liveness.is_alive(subject):
                outcome.append(ComputeOutcome.DORMANT)
                logger.info(
                    "Subject dormant, refresh chain ends",
                    stage="RC.COMPUTE",
                    subject_type=self.name,
                    key=key,
                )
                return

            started = time.perf_counter()
            try:
                value = await self._type.calculate(subject)
            except Exception as e:
                self._metrics.record_compute_cycle(self.name, "failed")
                logger.error(
                    "Calculation failed",
                    stage="RC.COMPUTE",
                    subject_type=self.name,
                    key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            finally:
                self._metrics.record_compute_duration(self.name, time.perf_counter() - started)
                await self._scheduler.enqueue_after(
                    self._config.refresh_interval, self.name, subject
                )

            await self._store.write(key, value)
            outcome.append(ComputeOutcome.COMPUTED)
            logger.info("Value computed and stored", stage="RC.COMPUTE", subject_type=self.name, key=key)

        obtained = await self._lease_guard.with_lease(key, self._config.lease_timeout, _guarded)
        result = outcome[0] if obtained else ComputeOutcome.LOCKED

        self._metrics.record_compute_cycle(self.name, result.value)
        if result is ComputeOutcome.LOCKED:
            logger.debug("Compute already in progress", stage="RC.COMPUTE", subject_type=self.name, key=key)
        return result

    # =========================================================================
    # Clear
    # =========================================================================

    async def clear(self, subject: Any) -> None:
        """Delete both the cached value and the liveness marker."""
        key = self.base_key(subject)
        await self._store.delete(key, self._liveness.alive_key(subject))
        logger.info("Reactive cache cleared", stage="RC.CLEAR", subject_type=self.name, key=key)
