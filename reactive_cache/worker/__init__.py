from .reactive_caching_worker import (
    ConsumerLoop,
    DelayedJobPromoter,
    JobProcessor,
    ReactiveCachingWorker,
    WorkerConfig,
    start_reactive_caching_worker,
    stop_reactive_caching_worker,
)

__all__ = [
    "ConsumerLoop",
    "DelayedJobPromoter",
    "JobProcessor",
    "ReactiveCachingWorker",
    "WorkerConfig",
    "start_reactive_caching_worker",
    "stop_reactive_caching_worker",
]
