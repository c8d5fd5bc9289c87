"""
Reactive Caching Worker - Compute Cycle Consumer

Runs compute cycles for the jobs the reactive cache puts on its queue.

Architecture:
    ReactiveCachingWorker (Public API)
        ├── JobProcessor (One message -> one compute cycle, ack policy)
        ├── DelayedJobPromoter (Moves due delayed jobs into the stream)
        └── ConsumerLoop (Claim stale, consume, process batch, back off)

Flow:
    1. Reclaim messages a crashed consumer left pending
    2. Consume a batch of new messages
    3. For each message: parse ComputeJob, find controller, load subject
    4. Run controller.compute_cycle(subject)
    5. Acknowledge, unless an infrastructure error means it should be redelivered

Ack Policy:
    - Processed / locked / dormant        -> ack
    - Malformed, unknown type, no subject -> ack (poison pill, logged)
    - Calculation raised                  -> ack (next cycle is already queued)
    - Value could not be serialized       -> ack (retrying cannot fix it)
    - Store, lease or queue failure       -> no ack (redelivered via claim)
"""

import asyncio
import socket
from dataclasses import dataclass

from reactive_cache.caching.registry import SubjectRegistry
from reactive_cache.caching.scheduler import ComputeJob
from reactive_cache.caching.service import ReactiveCacheService, get_reactive_cache_service
from reactive_cache.core.config.constants import JobResult
from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.exceptions import (
    CacheError,
    CacheSerializationError,
    InvalidJobError,
    LeaseError,
    QueueError,
    SubjectTypeNotFoundError,
)
from reactive_cache.core.interfaces.message_queue import QueueMessage
from reactive_cache.core.logging.logger import clear_job_id, get_logger, set_job_id
from reactive_cache.infrastructure.message_queue.redis_queue import RedisQueue
from reactive_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

INFRASTRUCTURE_ERRORS = (CacheError, LeaseError, QueueError)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class WorkerConfig:
    """
    Worker configuration parameters.

    Attributes:
        batch_size: Number of messages to consume per batch
        poll_interval_ms: Blocking read timeout when the stream is empty
        error_backoff_seconds: Backoff after consumer loop errors
        shutdown_timeout_seconds: Graceful shutdown timeout
        claim_idle_ms: Pending time after which another consumer's message is reclaimed
        promote_interval_seconds: How often due delayed jobs are promoted
        promote_batch_size: Delayed jobs promoted per pass
    """
    batch_size: int = 10
    poll_interval_ms: int = 2000
    error_backoff_seconds: float = 5.0
    shutdown_timeout_seconds: float = 5.0
    claim_idle_ms: int = 300_000
    promote_interval_seconds: float = 1.0
    promote_batch_size: int = 100

    @classmethod
    def from_settings(cls, settings=None) -> "WorkerConfig":
        worker = (settings or get_settings()).worker
        return cls(
            batch_size=worker.WORKER_BATCH_SIZE,
            poll_interval_ms=worker.WORKER_POLL_INTERVAL_MS,
            error_backoff_seconds=worker.WORKER_ERROR_BACKOFF_SECONDS,
            shutdown_timeout_seconds=worker.WORKER_SHUTDOWN_TIMEOUT_SECONDS,
            claim_idle_ms=worker.WORKER_CLAIM_IDLE_MS,
            promote_interval_seconds=worker.SCHEDULER_POLL_INTERVAL,
            promote_batch_size=worker.SCHEDULER_BATCH_SIZE,
        )


# =============================================================================
# LAYER 1: MESSAGE PROCESSING
# =============================================================================

class JobProcessor:
    """
    Turns one queue message into one compute cycle.

    Dependencies are injected so tests can pass fakes for the queue and
    controllers.
    """

    def __init__(self, registry: SubjectRegistry, queue, metrics=None):
        self._registry = registry
        self._queue = queue
        self._metrics = metrics or get_metrics_collector()

    async def process(self, message: QueueMessage) -> JobResult:
        """
        Process a single queue message.

        Returns:
            How the message was handled
        """
        try:
            job = ComputeJob.from_payload(message.payload)
        except InvalidJobError as e:
            logger.error(
                "Failed to parse compute job",
                stage="WORKER.PARSE",
                message_id=message.id,
                error=str(e),
            )
            # Acknowledge invalid message to prevent poison pill
            return await self._finish(message, JobResult.INVALID, ack=True)

        set_job_id(job.job_id)
        try:
            return await self._run(message, job)
        finally:
            clear_job_id()

    async def _run(self, message: QueueMessage, job: ComputeJob) -> JobResult:
        try:
            controller = self._registry.get(job.subject_type)
        except SubjectTypeNotFoundError as e:
            logger.error(
                "Unknown subject type, dropping job",
                stage="WORKER.LOOKUP",
                subject_type=job.subject_type,
                registered=e.details.get("registered"),
            )
            return await self._finish(message, JobResult.UNKNOWN_TYPE, ack=True)

        try:
            subject = await controller.subject_type.loader(job.subject_id)
            if subject is None:
                logger.info(
                    "Subject no longer exists, dropping job",
                    stage="WORKER.LOAD",
                    subject_type=job.subject_type,
                    subject_id=job.subject_id,
                )
                return await self._finish(message, JobResult.SUBJECT_MISSING, ack=True)

            outcome = await controller.compute_cycle(subject)

        except CacheSerializationError as e:
            logger.error(
                "Computed value could not be stored, dropping job",
                stage="WORKER.COMPUTE",
                subject_type=job.subject_type,
                subject_id=job.subject_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self._finish(message, JobResult.COMPUTE_FAILED, ack=True)

        except INFRASTRUCTURE_ERRORS as e:
            logger.error(
                "Infrastructure failure, leaving job for redelivery",
                stage="WORKER.INFRA",
                subject_type=job.subject_type,
                subject_id=job.subject_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self._finish(message, JobResult.INFRA_FAILED, ack=False)

        except Exception as e:
            logger.error(
                "Compute cycle failed",
                stage="WORKER.COMPUTE",
                subject_type=job.subject_type,
                subject_id=job.subject_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return await self._finish(message, JobResult.COMPUTE_FAILED, ack=True)

        logger.debug(
            "Compute job processed",
            stage="WORKER.DONE",
            subject_type=job.subject_type,
            subject_id=job.subject_id,
            outcome=outcome.value,
        )
        return await self._finish(message, JobResult.PROCESSED, ack=True)

    async def _finish(self, message: QueueMessage, result: JobResult, ack: bool) -> JobResult:
        if ack:
            await self._queue.acknowledge(message.id)
        self._metrics.record_worker_job(result.value)
        return result


# =============================================================================
# LAYER 2: DELAYED JOB PROMOTION
# =============================================================================

class DelayedJobPromoter:
    """Periodically moves due delayed jobs into the stream."""

    def __init__(self, queue: RedisQueue, config: WorkerConfig):
        self._queue = queue
        self._config = config
        self._stop_event = asyncio.Event()

    async def promote_once(self) -> int:
        return await self._queue.promote_due(limit=self._config.promote_batch_size)

    async def start(self) -> None:
        self._stop_event.clear()
        logger.info(
            "Delayed job promoter started",
            stage="WORKER.PROMOTE",
            interval=self._config.promote_interval_seconds,
        )

        while not self._stop_event.is_set():
            try:
                await self.promote_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(
                    "Delayed job promotion failed",
                    stage="WORKER.PROMOTE",
                    error=str(e),
                    error_type=type(e).__name__,
                )

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._config.promote_interval_seconds
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Delayed job promoter stopped", stage="WORKER.PROMOTE")

    def stop(self) -> None:
        self._stop_event.set()


# =============================================================================
# LAYER 3: CONSUMER LOOP
# =============================================================================

class ConsumerLoop:
    """
    Manages the consumer loop lifecycle.

    Messages of one batch are processed concurrently: different subjects may
    compute in parallel, and the lease serialises the same subject.
    """

    def __init__(
        self,
        queue: RedisQueue,
        processor: JobProcessor,
        config: WorkerConfig,
        consumer_name: str,
    ):
        self._queue = queue
        self._processor = processor
        self._config = config
        self._consumer_name = consumer_name
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """
        Run until stop() is called.

        Loop errors are logged and followed by a backoff so a Redis outage
        does not turn into a tight error loop.
        """
        self._running = True
        self._shutdown_event.clear()

        logger.info(
            "Consumer loop started",
            stage="WORKER.LOOP",
            consumer=self._consumer_name,
            batch_size=self._config.batch_size,
            poll_interval_ms=self._config.poll_interval_ms,
        )

        while self._running and not self._shutdown_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Consumer loop cancelled", stage="WORKER.LOOP", consumer=self._consumer_name)
                break
            except Exception as e:
                logger.error(
                    "Consumer loop error, backing off",
                    stage="WORKER.LOOP",
                    consumer=self._consumer_name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                await asyncio.sleep(self._config.error_backoff_seconds)

        logger.info("Consumer loop stopped", stage="WORKER.LOOP", consumer=self._consumer_name)

    def stop(self) -> None:
        self._running = False
        self._shutdown_event.set()
        logger.info("Consumer loop stop requested", stage="WORKER.LOOP", consumer=self._consumer_name)

    async def run_once(self) -> list[JobResult]:
        """Claim stale messages, consume new ones, and process them."""
        messages = await self._queue.claim_stale(
            self._consumer_name,
            min_idle_ms=self._config.claim_idle_ms,
            count=self._config.batch_size,
        )
        if not messages:
            messages = await self._queue.consume(
                consumer_name=self._consumer_name,
                batch_size=self._config.batch_size,
                block_ms=self._config.poll_interval_ms,
            )

        if not messages:
            # No messages - brief sleep to prevent tight loop
            await asyncio.sleep(0.1)
            return []

        logger.debug(
            "Consumed message batch",
            stage="WORKER.LOOP",
            consumer=self._consumer_name,
            batch_size=len(messages),
        )
        return list(await asyncio.gather(*(self._processor.process(m) for m in messages)))


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================

class ReactiveCachingWorker:
    """
    Background worker running compute cycles for every registered subject type.

    Usage:
        worker = ReactiveCachingWorker()
        await worker.initialize()
        await worker.start()  # Blocks until stopped

        # In another task/signal handler:
        worker.stop()

    Lifecycle:
        1. Create instance (subject types registered on the service)
        2. Call initialize() to connect and build the loops
        3. Call start() to begin processing (blocks)
        4. Call stop() from another task to shut down
        5. Call cleanup() to release resources
    """

    def __init__(
        self,
        service: ReactiveCacheService | None = None,
        consumer_name: str | None = None,
        config: WorkerConfig | None = None,
    ):
        self._service = service
        self._config = config or WorkerConfig.from_settings()

        # Format: worker-{hostname}-{instance_id}
        self._consumer_name = consumer_name or f"worker-{socket.gethostname()}-{id(self)}"

        self._consumer_loop: ConsumerLoop | None = None
        self._promoter: DelayedJobPromoter | None = None
        self._initialized = False

    @property
    def consumer_name(self) -> str:
        return self._consumer_name

    @property
    def config(self) -> WorkerConfig:
        return self._config

    async def initialize(self) -> None:
        """
        Connect the service and build the consumer loop and promoter.

        Raises:
            Exception: If initialization fails
        """
        if self._initialized:
            logger.debug("Worker already initialized, skipping", stage="WORKER.INIT")
            return

        logger.info("Initializing worker", stage="WORKER.INIT", consumer=self._consumer_name)

        try:
            if self._service is None:
                self._service = get_reactive_cache_service()
            await self._service.initialize()

            processor = JobProcessor(self._service.registry, self._service.queue)
            self._consumer_loop = ConsumerLoop(
                queue=self._service.queue,
                processor=processor,
                config=self._config,
                consumer_name=self._consumer_name,
            )
            self._promoter = DelayedJobPromoter(self._service.queue, self._config)

            self._initialized = True

            logger.info(
                "Worker initialized successfully",
                stage="WORKER.INIT",
                consumer=self._consumer_name,
                subject_types=self._service.registry.names(),
                config={
                    "batch_size": self._config.batch_size,
                    "poll_interval_ms": self._config.poll_interval_ms,
                    "claim_idle_ms": self._config.claim_idle_ms,
                },
            )

        except Exception as e:
            logger.error(
                "Worker initialization failed",
                stage="WORKER.INIT",
                consumer=self._consumer_name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise

    async def start(self) -> None:
        """
        Run the consumer loop and the delayed job promoter until stopped.

        Raises:
            RuntimeError: If initialize() not called first
        """
        if not self._initialized:
            raise RuntimeError("Worker not initialized. Call initialize() first.")

        logger.info("Starting worker", stage="WORKER.START", consumer=self._consumer_name)
        await asyncio.gather(self._consumer_loop.start(), self._promoter.start())

    def stop(self) -> None:
        """Signal both loops to stop after their current pass."""
        if self._consumer_loop:
            self._consumer_loop.stop()
            self._promoter.stop()
        else:
            logger.warning(
                "Stop called but consumer loop not initialized",
                stage="WORKER.STOP",
                consumer=self._consumer_name,
            )

    async def cleanup(self) -> None:
        """Release the service's connections. Call after start() returns."""
        logger.info("Cleaning up worker resources", stage="WORKER.CLEANUP", consumer=self._consumer_name)

        if self._service:
            try:
                await self._service.shutdown()
            except Exception as e:
                logger.error(
                    "Error shutting down reactive cache service",
                    stage="WORKER.CLEANUP",
                    error=str(e),
                    error_type=type(e).__name__,
                )

        self._initialized = False
        logger.info("Worker cleanup complete", stage="WORKER.CLEANUP", consumer=self._consumer_name)


# =============================================================================
# GLOBAL INSTANCE MANAGEMENT (Singleton Pattern)
# =============================================================================

_worker_instance: ReactiveCachingWorker | None = None
_worker_task: asyncio.Task | None = None


async def start_reactive_caching_worker() -> ReactiveCachingWorker:
    """
    Start the global worker in a background task.

    Returns:
        ReactiveCachingWorker: Running worker instance
    """
    global _worker_instance, _worker_task

    if _worker_instance is None:
        _worker_instance = ReactiveCachingWorker()
        await _worker_instance.initialize()

    if _worker_task is None or _worker_task.done():
        _worker_task = asyncio.create_task(_worker_instance.start())
        logger.info("Worker task started", stage="WORKER.START")

    return _worker_instance


async def stop_reactive_caching_worker() -> None:
    """
    Stop the global worker.

    Waits up to the configured timeout for a graceful stop, then cancels.
    """
    global _worker_instance, _worker_task

    if _worker_instance:
        _worker_instance.stop()

    if _worker_task:
        timeout = (
            _worker_instance.config.shutdown_timeout_seconds if _worker_instance else 5.0
        )
        try:
            await asyncio.wait_for(_worker_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Worker shutdown timed out, cancelling", stage="WORKER.STOP")
            _worker_task.cancel()
            try:
                await _worker_task
            except asyncio.CancelledError:
                pass
        _worker_task = None

    if _worker_instance:
        await _worker_instance.cleanup()
        _worker_instance = None
