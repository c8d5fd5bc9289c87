#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
reactive cache library and its background worker. All infrastructure
configuration is centralized here; per-subject cache behaviour (key template,
lease timeout, refresh interval, lifetime) lives on each subject type's
ReactiveCacheConfig instead.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis configuration shared by the value store, the lease manager and the
    job queue.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class QueueSettings(BaseSettings):
    """
    Job queue configuration (Redis Streams + delayed sorted set).

    STAGE-0.2: Queue configuration

    Backpressure:
    - Warn when depth crosses QUEUE_BACKPRESSURE_THRESHOLD of QUEUE_MAX_DEPTH
    - Retry with exponential jitter when the stream is full
    """

    QUEUE_STREAM_NAME: str = Field(default="reactive_caching", description="Stream name for compute jobs")
    QUEUE_GROUP_NAME: str = Field(default="reactive_caching_workers", description="Consumer group name")
    QUEUE_MAX_DEPTH: int = Field(default=100000, description="Maximum stream length")
    QUEUE_BACKPRESSURE_THRESHOLD: float = Field(default=0.8, description="Warning threshold (0.0-1.0)")
    QUEUE_BACKPRESSURE_MAX_RETRIES: int = Field(default=3, description="Produce retries when full")
    QUEUE_BACKPRESSURE_BASE_DELAY: float = Field(default=0.1, description="Initial retry delay (seconds)")
    QUEUE_BACKPRESSURE_MAX_DELAY: float = Field(default=1.0, description="Maximum retry delay (seconds)")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class WorkerSettings(BaseSettings):
    """
    Compute worker configuration.

    STAGE-0.3: Worker configuration
    """

    WORKER_BATCH_SIZE: int = Field(default=10, description="Messages consumed per batch")
    WORKER_POLL_INTERVAL_MS: int = Field(default=2000, description="Blocking read timeout (ms)")
    WORKER_ERROR_BACKOFF_SECONDS: float = Field(default=5.0, description="Backoff after loop errors")
    WORKER_SHUTDOWN_TIMEOUT_SECONDS: float = Field(default=5.0, description="Graceful shutdown timeout")
    WORKER_CLAIM_IDLE_MS: int = Field(
        default=300000, description="Idle time before a pending message is reclaimed (ms)"
    )
    SCHEDULER_POLL_INTERVAL: float = Field(default=1.0, description="Delayed job promotion interval (seconds)")
    SCHEDULER_BATCH_SIZE: int = Field(default=100, description="Delayed jobs promoted per pass")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="reactive-cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from reactive_cache.core.config.settings import get_settings

        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        stream = settings.queue.QUEUE_STREAM_NAME
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Cache settings
    CACHE_NAMESPACE: str = Field(default="reactive_cache", description="Prefix for value store keys")

    # Queue settings
    QUEUE_STREAM_NAME: str = Field(default="reactive_caching", description="Stream name for compute jobs")
    QUEUE_GROUP_NAME: str = Field(default="reactive_caching_workers", description="Consumer group name")
    QUEUE_MAX_DEPTH: int = Field(default=100000, description="Maximum stream length")
    QUEUE_BACKPRESSURE_THRESHOLD: float = Field(default=0.8, description="Warning threshold (0.0-1.0)")
    QUEUE_BACKPRESSURE_MAX_RETRIES: int = Field(default=3, description="Produce retries when full")
    QUEUE_BACKPRESSURE_BASE_DELAY: float = Field(default=0.1, description="Initial retry delay (seconds)")
    QUEUE_BACKPRESSURE_MAX_DELAY: float = Field(default=1.0, description="Maximum retry delay (seconds)")

    # Worker settings
    WORKER_BATCH_SIZE: int = Field(default=10, description="Messages consumed per batch")
    WORKER_POLL_INTERVAL_MS: int = Field(default=2000, description="Blocking read timeout (ms)")
    WORKER_ERROR_BACKOFF_SECONDS: float = Field(default=5.0, description="Backoff after loop errors")
    WORKER_SHUTDOWN_TIMEOUT_SECONDS: float = Field(default=5.0, description="Graceful shutdown timeout")
    WORKER_CLAIM_IDLE_MS: int = Field(
        default=300000, description="Idle time before a pending message is reclaimed (ms)"
    )
    SCHEDULER_POLL_INTERVAL: float = Field(default=1.0, description="Delayed job promotion interval (seconds)")
    SCHEDULER_BATCH_SIZE: int = Field(default=100, description="Delayed jobs promoted per pass")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="reactive-cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("QUEUE_BACKPRESSURE_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v):
        """Threshold is a fraction of QUEUE_MAX_DEPTH."""
        if not 0.0 < v <= 1.0:
            raise ValueError("QUEUE_BACKPRESSURE_THRESHOLD must be in (0.0, 1.0]")
        return v

    # Nested configuration views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def queue(self) -> QueueSettings:
        """Get queue settings."""
        return QueueSettings(
            QUEUE_STREAM_NAME=self.QUEUE_STREAM_NAME,
            QUEUE_GROUP_NAME=self.QUEUE_GROUP_NAME,
            QUEUE_MAX_DEPTH=self.QUEUE_MAX_DEPTH,
            QUEUE_BACKPRESSURE_THRESHOLD=self.QUEUE_BACKPRESSURE_THRESHOLD,
            QUEUE_BACKPRESSURE_MAX_RETRIES=self.QUEUE_BACKPRESSURE_MAX_RETRIES,
            QUEUE_BACKPRESSURE_BASE_DELAY=self.QUEUE_BACKPRESSURE_BASE_DELAY,
            QUEUE_BACKPRESSURE_MAX_DELAY=self.QUEUE_BACKPRESSURE_MAX_DELAY,
        )

    @property
    def worker(self) -> WorkerSettings:
        """Get worker settings."""
        return WorkerSettings(
            WORKER_BATCH_SIZE=self.WORKER_BATCH_SIZE,
            WORKER_POLL_INTERVAL_MS=self.WORKER_POLL_INTERVAL_MS,
            WORKER_ERROR_BACKOFF_SECONDS=self.WORKER_ERROR_BACKOFF_SECONDS,
            WORKER_SHUTDOWN_TIMEOUT_SECONDS=self.WORKER_SHUTDOWN_TIMEOUT_SECONDS,
            WORKER_CLAIM_IDLE_MS=self.WORKER_CLAIM_IDLE_MS,
            SCHEDULER_POLL_INTERVAL=self.SCHEDULER_POLL_INTERVAL,
            SCHEDULER_BATCH_SIZE=self.SCHEDULER_BATCH_SIZE,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.4: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
