#!/usr/bin/env python3
"""
Structured Logging Module using structlog

This module provides structured logging with:
- Job ID correlation so every log line of one compute cycle can be grouped
- Stage identifiers for execution flow
- JSON formatting for log aggregation
- Context processors for automatic field injection

Architectural Decision: structlog for production logging
- Context-aware logging with automatic field injection
- JSON output for log aggregation (ELK, Splunk, etc.)
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from reactive_cache.core.config.settings import get_settings

# Context variable for the job currently being processed by a worker
job_id_ctx: ContextVar[str | None] = ContextVar("job_id", default=None)


def add_job_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add job ID to log event from context variable.

    STAGE-L.1: Job ID injection
    """
    job_id = job_id_ctx.get()
    if job_id and "job_id" not in event_dict:
        event_dict["job_id"] = job_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Uppercase the log level.

    STAGE-L.3: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_job_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="RC.READ")
    """
    return structlog.get_logger(name)


def set_job_id(job_id: str) -> None:
    """
    Set job ID in context for the message being processed.

    Called by the worker before handing a message to the controller so every
    log entry of that compute cycle carries the same job_id.
    """
    job_id_ctx.set(job_id)


def get_job_id() -> str | None:
    """Get current job ID from context."""
    return job_id_ctx.get()


def clear_job_id() -> None:
    """Clear job ID from context."""
    job_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Usage:
        log_stage(logger, "RC.COMPUTE", "Value stored", key="project:1")
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)
