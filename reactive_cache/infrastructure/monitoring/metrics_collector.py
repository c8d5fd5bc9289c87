#!/usr/bin/env python3
"""
Metrics Collector with Prometheus Integration

Metrics for the reactive cache:
- Reads by observed state (warm / warming / dormant)
- Compute cycles by subject type and outcome
- Compute duration histograms
- Jobs enqueued and delayed jobs promoted
- Queue produce attempts, failures, depth and backpressure retries
- Worker job results

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Histogram buckets for latency percentiles
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from reactive_cache.core.config.settings import get_settings
from reactive_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

READS = Counter(
    'reactive_cache_reads_total',
    'Read-with-trigger calls by observed state',
    ['subject_type', 'state']
)

COMPUTE_CYCLES = Counter(
    'reactive_cache_compute_cycles_total',
    'Compute cycles by outcome',
    ['subject_type', 'outcome']  # computed, locked, dormant, failed
)

COMPUTE_DURATION = Histogram(
    'reactive_cache_compute_duration_seconds',
    'Duration of the subject calculation',
    ['subject_type'],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

JOBS_ENQUEUED = Counter(
    'reactive_cache_jobs_enqueued_total',
    'Compute jobs submitted to the queue',
    ['subject_type', 'kind']  # now, delayed
)

JOBS_PROMOTED = Counter(
    'reactive_cache_delayed_jobs_promoted_total',
    'Delayed jobs moved into the stream',
    ['queue_name']
)

WORKER_JOBS = Counter(
    'reactive_cache_worker_jobs_total',
    'Queue messages handled by workers',
    ['result']
)

QUEUE_PRODUCE_ATTEMPTS = Counter(
    'reactive_cache_queue_produce_attempts_total',
    'Total queue produce attempts',
    ['queue_type']
)

QUEUE_PRODUCE_SUCCESS = Counter(
    'reactive_cache_queue_produce_success_total',
    'Total successful queue produces',
    ['queue_type']
)

QUEUE_PRODUCE_FAILURES = Counter(
    'reactive_cache_queue_produce_failures_total',
    'Total failed queue produces',
    ['queue_type', 'reason']
)

QUEUE_DEPTH = Gauge(
    'reactive_cache_queue_depth',
    'Current queue depth',
    ['queue_name']
)

QUEUE_BACKPRESSURE_RETRIES = Counter(
    'reactive_cache_queue_backpressure_retries_total',
    'Total backpressure retry attempts',
    ['queue_type']
)

APP_INFO = Info(
    'reactive_cache_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = get_metrics_collector()
        metrics.record_read("project", "warm")
        metrics.record_compute_cycle("project", "computed")
        output = metrics.get_prometheus_metrics()
    """

    def __init__(self):
        settings = get_settings()

        APP_INFO.info({
            'version': settings.app.APP_VERSION,
            'environment': settings.app.ENVIRONMENT,
            'app_name': settings.app.APP_NAME,
        })

        logger.info("Metrics collector initialized", stage="M.0")

    # =========================================================================
    # Reactive Cache Metrics
    # =========================================================================

    def record_read(self, subject_type: str, state: str) -> None:
        """Record a read-with-trigger call."""
        READS.labels(subject_type=subject_type, state=state).inc()

    def record_compute_cycle(self, subject_type: str, outcome: str) -> None:
        """Record the outcome of a compute cycle."""
        COMPUTE_CYCLES.labels(subject_type=subject_type, outcome=outcome).inc()

    def record_compute_duration(self, subject_type: str, duration_seconds: float) -> None:
        """Record how long a calculation took."""
        COMPUTE_DURATION.labels(subject_type=subject_type).observe(duration_seconds)

    def record_job_enqueued(self, subject_type: str, kind: str) -> None:
        """Record a compute job submission."""
        JOBS_ENQUEUED.labels(subject_type=subject_type, kind=kind).inc()

    def record_jobs_promoted(self, queue_name: str, count: int) -> None:
        """Record delayed jobs moved into the stream."""
        if count:
            JOBS_PROMOTED.labels(queue_name=queue_name).inc(count)

    def record_worker_job(self, result: str) -> None:
        """Record how a worker handled one message."""
        WORKER_JOBS.labels(result=result).inc()

    # =========================================================================
    # Queue Metrics
    # =========================================================================

    def record_queue_produce_attempt(self, queue_type: str) -> None:
        QUEUE_PRODUCE_ATTEMPTS.labels(queue_type=queue_type).inc()

    def record_queue_produce_success(self, queue_type: str) -> None:
        QUEUE_PRODUCE_SUCCESS.labels(queue_type=queue_type).inc()

    def record_queue_produce_failure(self, queue_type: str, reason: str) -> None:
        QUEUE_PRODUCE_FAILURES.labels(queue_type=queue_type, reason=reason).inc()

    def record_queue_depth(self, queue_name: str, depth: int) -> None:
        QUEUE_DEPTH.labels(queue_name=queue_name).set(depth)

    def record_queue_backpressure_retry(self, queue_type: str) -> None:
        QUEUE_BACKPRESSURE_RETRIES.labels(queue_type=queue_type).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """Get metrics in Prometheus text exposition format."""
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Content type for the exposition format."""
        return CONTENT_TYPE_LATEST


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """
    Get the global metrics collector instance (singleton).

    Returns:
        MetricsCollector: Global metrics collector instance
    """
    global _metrics_collector

    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()

    return _metrics_collector
