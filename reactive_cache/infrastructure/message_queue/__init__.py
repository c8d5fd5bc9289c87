from .redis_queue import (
    BackpressureController,
    DelayedJobSet,
    MessageSerializer,
    RedisQueue,
    StreamManager,
)

__all__ = [
    "BackpressureController",
    "DelayedJobSet",
    "MessageSerializer",
    "RedisQueue",
    "StreamManager",
]
