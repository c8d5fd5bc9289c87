"""
Redis Streams Job Queue with Delayed Delivery

Architecture:
    RedisQueue (Public API)
        ├── StreamManager (Stream lifecycle, consumer groups, stale claims)
        ├── DelayedJobSet (Sorted set of jobs scored by due time)
        ├── BackpressureController (Queue depth monitoring and retry logic)
        ├── MessageSerializer (Payload encoding/decoding)
        └── MetricsRecorder (Queue metrics and observability)

Why Redis Streams?
    - Consumer groups spread compute jobs across workers
    - Pending entries list + XACK gives at-least-once delivery
    - XAUTOCLAIM recovers messages left behind by crashed consumers

Delayed Jobs:
    produce_delayed() stores the job in <stream>:delayed with score = due
    time. promote_due() moves due jobs into the stream. Only the caller whose
    ZREM actually removed a member produces it, so concurrent promoters never
    duplicate a job.
"""

import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import orjson
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from reactive_cache.core.config.constants import DELAYED_SET_SUFFIX
from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.exceptions import CacheError, QueueConsumerError, QueueError, QueueFullError
from reactive_cache.core.interfaces.message_queue import MessageQueue, QueueMessage
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.cache.redis_client import RedisClient, get_redis_client
from reactive_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: STREAM MANAGEMENT
# Handles Redis Stream lifecycle and consumer group operations
# =============================================================================


class StreamManager:
    """
    Manages Redis Stream lifecycle and consumer groups.

    Consumer Group Pattern:
    - Stream: Ordered log of compute jobs
    - Group: All reactive caching workers
    - Consumer: Individual worker instance
    - Pending: Jobs delivered but not acknowledged
    """

    def __init__(self, stream_name: str, group_name: str, redis_client: RedisClient):
        self._stream_name = stream_name
        self._group_name = group_name
        self._redis = redis_client
        self._initialized = False

    async def initialize(self) -> None:
        """
        Create the consumer group if it doesn't exist (idempotent).

        STAGE-QUEUE.1: Initialization

        Raises:
            QueueError: If initialization fails
        """
        if self._initialized:
            return

        try:
            await self._redis.xgroup_create(self._stream_name, self._group_name)
            logger.info("Consumer group created", stage="QUEUE.1", group=self._group_name)
        except CacheError as e:
            if "BUSYGROUP" in str(e):
                logger.info(
                    "Consumer group already exists (OK)", stage="QUEUE.1", group=self._group_name
                )
            else:
                logger.error("Failed to create consumer group", stage="QUEUE.ERR", error=str(e))
                raise QueueError(f"Failed to create consumer group: {e}") from e

        self._initialized = True

    async def get_stream_length(self) -> int:
        """Current number of entries in the stream."""
        return await self._redis.xlen(self._stream_name)

    async def add_message(self, message_data: dict[str, str], max_len: int) -> str:
        """
        Append a message, trimming approximately to ``max_len``.

        Returns:
            Message ID (e.g., "1234567890123-0")
        """
        message_id = await self._redis.xadd(self._stream_name, message_data, max_len=max_len)
        logger.debug("Message produced", stage="QUEUE.PROD", id=message_id)
        return message_id

    async def read_messages(
        self, consumer_name: str, batch_size: int, block_ms: int
    ) -> list[tuple[str, dict[str, str]]]:
        """
        Read never-delivered messages for this consumer group.

        Returns:
            List of (message_id, message_data) tuples
        """
        response = await self._redis.xreadgroup(
            self._group_name, consumer_name, {self._stream_name: ">"},
            count=batch_size, block=block_ms,
        )

        messages = []
        if response:
            # response format: [[stream_name, [[id, {data}]]]]
            for _stream, msg_list in response:
                for msg_id, msg_data in msg_list:
                    messages.append((msg_id, msg_data))

        return messages

    async def claim_stale_messages(
        self, consumer_name: str, min_idle_ms: int, count: int
    ) -> list[tuple[str, dict[str, str]]]:
        """
        Take over messages another consumer received but never acknowledged.

        STAGE-QUEUE.CLAIM

        Returns:
            List of (message_id, message_data) tuples now owned by ``consumer_name``
        """
        response = await self._redis.xautoclaim(
            self._stream_name, self._group_name, consumer_name, min_idle_ms, count
        )
        if not response or len(response) < 2:
            return []

        # response format: [next_start_id, [[id, {data}], ...], (deleted_ids)]
        return [(msg_id, msg_data) for msg_id, msg_data in response[1] if msg_data]

    async def acknowledge_message(self, message_id: str) -> None:
        """Remove a message from the pending entries list."""
        await self._redis.xack(self._stream_name, self._group_name, message_id)

    def is_initialized(self) -> bool:
        return self._initialized


# =============================================================================
# LAYER 2: DELAYED JOBS
# Sorted set of serialized jobs scored by due time (epoch seconds)
# =============================================================================


class DelayedJobSet:
    """
    Holds jobs that must not be delivered before their due time.

    Each member is a JSON envelope {"token": <uuid>, "payload": {...}} so two
    identical payloads scheduled twice stay two separate jobs.
    """

    def __init__(self, set_name: str, redis_client: RedisClient):
        self._set_name = set_name
        self._redis = redis_client

    @property
    def name(self) -> str:
        return self._set_name

    async def schedule(self, payload: dict[str, Any], due_at: float) -> str:
        """Store a job for delivery at ``due_at``; returns its token."""
        token = str(uuid.uuid4())
        member = orjson.dumps({"token": token, "payload": payload}).decode("utf-8")
        await self._redis.zadd(self._set_name, {member: due_at})
        return token

    async def due_members(self, now: float, limit: int) -> list[str]:
        """Members due at or before ``now``, oldest first."""
        return await self._redis.zrangebyscore(self._set_name, "-inf", now, limit)

    async def take(self, member: str) -> bool:
        """Remove a member; True only for the caller that removed it."""
        return await self._redis.zrem(self._set_name, member) == 1

    async def restore(self, member: str, due_at: float) -> None:
        """Put a member back after a failed promotion."""
        await self._redis.zadd(self._set_name, {member: due_at})

    async def size(self) -> int:
        return await self._redis.zcard(self._set_name)

    @staticmethod
    def unpack(member: str) -> dict[str, Any]:
        return orjson.loads(member)["payload"]


# =============================================================================
# LAYER 3: BACKPRESSURE CONTROL
# Monitors queue depth and applies backpressure when approaching capacity
# =============================================================================


class BackpressureController:
    """
    Controls backpressure and queue capacity management.

    Strategy:
    1. Monitor queue depth
    2. If approaching capacity (>threshold%), warn
    3. If at capacity, retry with exponential backoff
    4. If still full after retries, reject request
    """

    def __init__(
        self,
        max_depth: int,
        threshold: float,
        max_retries: int,
        base_delay: float,
        max_delay: float,
        stream_name: str,
        on_retry: Callable[[], None] | None = None,
    ):
        self._max_depth = max_depth
        self._threshold = threshold
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._stream_name = stream_name
        self._on_retry = on_retry

    def check_capacity(self, current_depth: int) -> tuple[bool, bool]:
        """
        Check queue capacity and determine backpressure action.

        Returns:
            (is_full, is_approaching_full) tuple
        """
        threshold_depth = int(self._threshold * self._max_depth)
        is_approaching_full = current_depth >= threshold_depth
        is_full = current_depth >= self._max_depth

        if is_full:
            logger.warning(
                "Queue at capacity, applying backpressure",
                stage="QUEUE.BACKPRESSURE",
                stream=self._stream_name,
                current_length=current_depth,
                max_length=self._max_depth,
                retries=self._max_retries,
            )
        elif is_approaching_full:
            logger.warning(
                "Queue approaching capacity",
                stage="QUEUE.WARNING",
                stream=self._stream_name,
                current_length=current_depth,
                max_length=self._max_depth,
                utilization=round(current_depth / self._max_depth * 100, 1),
            )

        return is_full, is_approaching_full

    def _before_sleep(self, retry_state) -> None:
        if self._on_retry:
            self._on_retry()
        logger.info(
            "Backpressure retry",
            stage="QUEUE.RETRY",
            attempt=retry_state.attempt_number,
            delay=round(retry_state.idle_for, 3),
            stream=self._stream_name,
        )

    def create_retry_handler(
        self,
        produce_fn: Callable[[], Awaitable[str]],
        check_depth_fn: Callable[[], Awaitable[int]],
    ):
        """
        Create retry handler with exponential backoff and jitter.

        Returns:
            Async function that retries with backpressure
        """

        @retry(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential_jitter(initial=self._base_delay, max=self._max_delay),
            retry=retry_if_exception_type(QueueFullError),
            before_sleep=self._before_sleep,
            reraise=True,
        )
        async def _retry_with_backpressure():
            current_depth = await check_depth_fn()

            if current_depth >= self._max_depth:
                raise QueueFullError(
                    f"Queue full after {self._max_retries} retries: "
                    f"{current_depth}/{self._max_depth} messages in {self._stream_name}"
                )

            return await produce_fn()

        return _retry_with_backpressure


# =============================================================================
# LAYER 4: MESSAGE SERIALIZATION
# Handles encoding and decoding of message payloads
# =============================================================================


class MessageSerializer:
    """
    Serializes and deserializes message payloads.

    Serialization Strategy:
    - Every field is stored as a JSON value, so types survive the round trip
      (the string "null" stays a string, 1.5 stays a float)
    - Auto-add timestamp if not present
    """

    @staticmethod
    def serialize(payload: dict[str, Any]) -> dict[str, str]:
        """Encode each payload field as JSON for XADD."""
        data = dict(payload)
        if "timestamp" not in data:
            data["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        return {k: orjson.dumps(v, default=str).decode("utf-8") for k, v in data.items()}

    @staticmethod
    def deserialize(message_data: dict[str, str]) -> dict[str, Any]:
        """
        Parse stream fields back into a payload.

        Fields that are not valid JSON (written by another producer) stay
        raw strings.
        """
        parsed_data = {}
        for k, v in message_data.items():
            try:
                parsed_data[k] = orjson.loads(v)
            except orjson.JSONDecodeError:
                parsed_data[k] = v

        return parsed_data

    def to_queue_messages(self, raw: list[tuple[str, dict[str, str]]]) -> list[QueueMessage]:
        messages = []
        for msg_id, msg_data in raw:
            parsed = self.deserialize(msg_data)
            messages.append(
                QueueMessage(id=msg_id, payload=parsed, timestamp=parsed.get("timestamp", ""))
            )
        return messages


# =============================================================================
# LAYER 5: METRICS RECORDING
# =============================================================================


class MetricsRecorder:
    """Records queue metrics for observability."""

    def __init__(self, metrics_collector, queue_type: str = "redis"):
        self._metrics = metrics_collector
        self._queue_type = queue_type

    def record_produce_attempt(self) -> None:
        self._metrics.record_queue_produce_attempt(self._queue_type)

    def record_produce_success(self) -> None:
        self._metrics.record_queue_produce_success(self._queue_type)

    def record_produce_failure(self, reason: str) -> None:
        self._metrics.record_queue_produce_failure(self._queue_type, reason)

    def record_queue_depth(self, stream_name: str, depth: int) -> None:
        self._metrics.record_queue_depth(stream_name, depth)

    def record_backpressure_retry(self) -> None:
        self._metrics.record_queue_backpressure_retry(self._queue_type)

    def record_promoted(self, stream_name: str, count: int) -> None:
        self._metrics.record_jobs_promoted(stream_name, count)


# =============================================================================
# LAYER 6: PUBLIC API
# =============================================================================


class RedisQueue(MessageQueue):
    """
    Redis Streams-based job queue with delayed delivery.

    Usage:
        queue = RedisQueue("reactive_caching", "workers")
        await queue.initialize()

        await queue.produce({"subject_type": "project", "subject_id": "1"})
        await queue.produce_delayed({"subject_type": "project", "subject_id": "1"}, delay=60)

        await queue.promote_due()
        messages = await queue.consume("worker-1", batch_size=10)
        await queue.acknowledge(messages[0].id)

    STAGE-QUEUE: Queue operations
    """

    def __init__(
        self,
        stream_name: str | None = None,
        group_name: str | None = None,
        redis_client: RedisClient | None = None,
        metrics_collector=None,
    ):
        settings = get_settings()

        self._redis = redis_client
        self._stream_mgr: StreamManager | None = None
        self._delayed: DelayedJobSet | None = None
        self._backpressure: BackpressureController | None = None
        self._serializer = MessageSerializer()
        self._metrics = MetricsRecorder(metrics_collector or get_metrics_collector())

        self._stream_name = f"queue:{stream_name or settings.queue.QUEUE_STREAM_NAME}"
        self._group_name = group_name or settings.queue.QUEUE_GROUP_NAME
        self._max_depth = settings.queue.QUEUE_MAX_DEPTH

        logger.info(
            "Redis Queue initialized",
            stage="QUEUE.0",
            stream=self._stream_name,
            group=self._group_name,
            max_depth=self._max_depth,
            backpressure_threshold=settings.queue.QUEUE_BACKPRESSURE_THRESHOLD,
        )

    @property
    def stream_name(self) -> str:
        return self._stream_name

    @property
    def group_name(self) -> str:
        return self._group_name

    @property
    def delayed_set_name(self) -> str:
        return f"{self._stream_name}{DELAYED_SET_SUFFIX}"

    async def initialize(self) -> None:
        """
        Initialize Redis connection and consumer group.

        STAGE-QUEUE.1: Initialization
        """
        if self._stream_mgr and self._stream_mgr.is_initialized():
            return

        if self._redis is None:
            self._redis = get_redis_client()
        if not self._redis.is_connected():
            await self._redis.connect()

        settings = get_settings()

        self._stream_mgr = StreamManager(self._stream_name, self._group_name, self._redis)
        await self._stream_mgr.initialize()

        self._delayed = DelayedJobSet(self.delayed_set_name, self._redis)

        self._backpressure = BackpressureController(
            max_depth=self._max_depth,
            threshold=settings.queue.QUEUE_BACKPRESSURE_THRESHOLD,
            max_retries=settings.queue.QUEUE_BACKPRESSURE_MAX_RETRIES,
            base_delay=settings.queue.QUEUE_BACKPRESSURE_BASE_DELAY,
            max_delay=settings.queue.QUEUE_BACKPRESSURE_MAX_DELAY,
            stream_name=self._stream_name,
            on_retry=self._metrics.record_backpressure_retry,
        )

    async def _ensure_initialized(self) -> None:
        if not self._stream_mgr or not self._stream_mgr.is_initialized():
            await self.initialize()

    async def produce(self, payload: dict[str, Any], max_len: int | None = None) -> str:
        """
        Add a message to the stream with backpressure handling.

        STAGE-QUEUE.PROD: Produce message

        Returns:
            Message ID

        Raises:
            QueueFullError: If queue is full after retries
            QueueError: If produce fails
        """
        await self._ensure_initialized()

        if max_len is None:
            max_len = self._max_depth

        self._metrics.record_produce_attempt()

        try:
            stream_length = await self._stream_mgr.get_stream_length()
            self._metrics.record_queue_depth(self._stream_name, stream_length)

            is_full, _ = self._backpressure.check_capacity(stream_length)

            if is_full:
                message_id = await self._produce_with_backpressure(payload, max_len)
            else:
                message_id = await self._produce_message(payload, max_len)

            self._metrics.record_produce_success()
            return message_id

        except CacheError as e:
            self._metrics.record_produce_failure("redis_error")
            logger.error("Failed to produce message", stage="QUEUE.ERR", error=str(e))
            raise QueueError(f"Failed to produce message: {e}") from e

    async def _produce_with_backpressure(self, payload: dict[str, Any], max_len: int) -> str:
        retry_handler = self._backpressure.create_retry_handler(
            produce_fn=lambda: self._produce_message(payload, max_len),
            check_depth_fn=self._stream_mgr.get_stream_length,
        )

        try:
            return await retry_handler()
        except QueueFullError:
            self._metrics.record_produce_failure("queue_full")
            raise

    async def _produce_message(self, payload: dict[str, Any], max_len: int) -> str:
        message_data = self._serializer.serialize(payload)
        return await self._stream_mgr.add_message(message_data, max_len)

    async def produce_delayed(self, payload: dict[str, Any], delay: float) -> str:
        """
        Schedule a message for delivery after ``delay`` seconds.

        STAGE-QUEUE.DELAY

        Returns:
            Token of the delayed job

        Raises:
            QueueError: If Redis fails
        """
        await self._ensure_initialized()

        due_at = time.time() + max(0.0, delay)
        try:
            token = await self._delayed.schedule(payload, due_at)
        except CacheError as e:
            self._metrics.record_produce_failure("redis_error")
            logger.error("Failed to schedule delayed message", stage="QUEUE.ERR", error=str(e))
            raise QueueError(f"Failed to schedule delayed message: {e}") from e

        logger.debug("Delayed message scheduled", stage="QUEUE.DELAY", token=token, delay=delay)
        return token

    async def promote_due(self, now: float | None = None, limit: int = 100) -> int:
        """
        Move delayed jobs whose due time has passed into the stream.

        STAGE-QUEUE.PROMOTE

        Returns:
            Number of jobs this call promoted

        Raises:
            QueueError: If Redis fails (a job taken but not produced is put back)
        """
        await self._ensure_initialized()

        now = time.time() if now is None else now
        try:
            members = await self._delayed.due_members(now, limit)
        except CacheError as e:
            raise QueueError(f"Failed to read delayed jobs: {e}") from e

        promoted = 0
        for member in members:
            try:
                if not await self._delayed.take(member):
                    # Another promoter got there first
                    continue
            except CacheError as e:
                raise QueueError(f"Failed to take delayed job: {e}") from e

            try:
                await self.produce(DelayedJobSet.unpack(member))
            except QueueError:
                logger.error(
                    "Failed to promote delayed job, restoring it",
                    stage="QUEUE.PROMOTE",
                    stream=self._stream_name,
                )
                await self._delayed.restore(member, now)
                raise

            promoted += 1

        if promoted:
            self._metrics.record_promoted(self._stream_name, promoted)
            logger.debug("Delayed jobs promoted", stage="QUEUE.PROMOTE", count=promoted)

        return promoted

    async def consume(
        self, consumer_name: str, batch_size: int = 10, block_ms: int = 2000
    ) -> list[QueueMessage]:
        """
        Consume new messages from the queue.

        STAGE-QUEUE.CONS: Consume messages
        """
        await self._ensure_initialized()

        try:
            raw_messages = await self._stream_mgr.read_messages(consumer_name, batch_size, block_ms)
        except CacheError as e:
            logger.error("Failed to consume messages", stage="QUEUE.ERR", error=str(e))
            raise QueueConsumerError(f"Failed to consume messages: {e}") from e

        return self._serializer.to_queue_messages(raw_messages)

    async def claim_stale(
        self, consumer_name: str, min_idle_ms: int, count: int = 10
    ) -> list[QueueMessage]:
        """
        Reclaim messages left unacknowledged for at least ``min_idle_ms``.

        STAGE-QUEUE.CLAIM
        """
        await self._ensure_initialized()

        try:
            raw_messages = await self._stream_mgr.claim_stale_messages(
                consumer_name, min_idle_ms, count
            )
        except CacheError as e:
            logger.error("Failed to claim stale messages", stage="QUEUE.ERR", error=str(e))
            raise QueueConsumerError(f"Failed to claim stale messages: {e}") from e

        if raw_messages:
            logger.info(
                "Reclaimed stale messages",
                stage="QUEUE.CLAIM",
                consumer=consumer_name,
                count=len(raw_messages),
            )
        return self._serializer.to_queue_messages(raw_messages)

    async def acknowledge(self, message_id: str) -> None:
        """
        Acknowledge a processed message.

        STAGE-QUEUE.ACK: Acknowledge message
        """
        await self._ensure_initialized()

        try:
            await self._stream_mgr.acknowledge_message(message_id)
        except CacheError as e:
            logger.error("Failed to acknowledge message", stage="QUEUE.ERR", error=str(e))
            raise QueueError(f"Failed to acknowledge message: {e}") from e

    async def depth(self) -> dict[str, int]:
        """Current stream length and delayed job count."""
        await self._ensure_initialized()
        try:
            return {
                "stream": await self._stream_mgr.get_stream_length(),
                "delayed": await self._delayed.size(),
            }
        except CacheError as e:
            raise QueueError(f"Failed to read queue depth: {e}") from e

    async def close(self) -> None:
        """Close the queue (no-op: the Redis client is shared)."""
        pass
