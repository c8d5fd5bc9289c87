"""
System Constants and Enumerations

Defaults and fixed identifiers used across the reactive cache.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for state management
"""

from enum import Enum

# ============================================================================
# Subject Defaults (seconds)
# ============================================================================

DEFAULT_LEASE_TIMEOUT_SECONDS = 2 * 60
DEFAULT_REFRESH_INTERVAL_SECONDS = 60
DEFAULT_LIFETIME_SECONDS = 10 * 60


# ============================================================================
# Key Layout
# ============================================================================

KEY_SEPARATOR = ":"
ALIVE_QUALIFIER = "alive"
LEASE_KEY_PREFIX = "exclusive_lease:"
DELAYED_SET_SUFFIX = ":delayed"


# ============================================================================
# Outcomes
# ============================================================================


class ReadState(str, Enum):
    """
    What a read-with-trigger call observed.

    WARM: value present and surfaced to the handler
    WARMING: subject alive but no value stored yet
    DORMANT: liveness marker absent or expired
    """

    WARM = "warm"
    WARMING = "warming"
    DORMANT = "dormant"


class ComputeOutcome(str, Enum):
    """
    Result of a single compute cycle.

    LOCKED: another worker holds the lease; nothing done
    DORMANT: lease obtained but the subject is no longer alive; chain ends
    COMPUTED: value recomputed, stored, next cycle queued
    """

    LOCKED = "locked"
    DORMANT = "dormant"
    COMPUTED = "computed"


class JobResult(str, Enum):
    """Worker-side result of handling one queue message."""

    PROCESSED = "processed"
    INVALID = "invalid"
    UNKNOWN_TYPE = "unknown_type"
    SUBJECT_MISSING = "subject_missing"
    COMPUTE_FAILED = "compute_failed"
    INFRA_FAILED = "infra_failed"
