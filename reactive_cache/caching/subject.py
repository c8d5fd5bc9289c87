"""
Subject Types

A subject is any object with an ``id``. Everything the reactive cache needs to
know about a *kind* of subject lives on its SubjectType: an immutable
ReactiveCacheConfig plus how to load an instance and how to compute its value.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from reactive_cache.core.config.constants import (
    DEFAULT_LEASE_TIMEOUT_SECONDS,
    DEFAULT_LIFETIME_SECONDS,
    DEFAULT_REFRESH_INTERVAL_SECONDS,
)
from reactive_cache.core.exceptions import ConfigurationError

KeyPart = Union[str, int, Sequence[Any]]
KeyTemplate = Union[KeyPart, Callable[[Any], KeyPart]]


@dataclass(frozen=True)
class ReactiveCacheConfig:
    """
    Per-type configuration shared by every subject of that type.

    Attributes:
        key_template: Fixed key, sequence of parts, or a callable of the subject
            returning either
        lease_timeout: Seconds a compute lease may be held before it expires
        refresh_interval: Seconds between compute cycles while alive
        lifetime: Seconds a subject stays alive after its last read
    """

    key_template: KeyTemplate
    lease_timeout: float = DEFAULT_LEASE_TIMEOUT_SECONDS
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    lifetime: float = DEFAULT_LIFETIME_SECONDS

    def __post_init__(self):
        template = self.key_template
        if not callable(template) and template in (None, "", [], ()):
            raise ConfigurationError("key_template must not be empty")

        for name in ("lease_timeout", "refresh_interval", "lifetime"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive number of seconds",
                    details={name: value},
                )


@dataclass
class SubjectType:
    """
    A kind of cacheable subject.

    Attributes:
        name: Identifier carried in compute jobs (e.g. "project")
        config: Immutable cache configuration
        loader: ``async (subject_id: str) -> subject | None``
        calculate: ``async (subject) -> value``; the expensive computation

    Example:
        projects = SubjectType(
            name="project",
            config=ReactiveCacheConfig(key_template=lambda p: ["project", p.id, "stats"]),
            loader=load_project,
            calculate=compute_project_stats,
        )
    """

    name: str
    config: ReactiveCacheConfig
    loader: Callable[[str], Awaitable[Any | None]]
    calculate: Callable[[Any], Awaitable[Any]]
    description: str = field(default="")

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Subject type name must not be empty")


def subject_id(subject: Any) -> str:
    """String id of a subject, as carried in compute jobs."""
    try:
        return str(subject.id)
    except AttributeError as e:
        raise ConfigurationError(
            f"Subject {subject!r} has no 'id' attribute"
        ).with_suggestion("Cacheable subjects must expose an `id`") from e
