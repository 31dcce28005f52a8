"""
Enumeration types for the Nawala checker system.

These enums provide type-safe constants for check frequencies, cycle states,
error codes and logging levels throughout the system.
"""

from enum import Enum


class CheckFrequency(Enum):
    """How often a monitored domain should be checked.

    Only HOURLY is driven by the scheduler today.
    """

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class CycleState(Enum):
    """States of the reconciliation cycle state machine."""

    IDLE = "idle"
    FETCHING = "fetching"
    QUERYING = "querying"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    FAILED = "failed"


class CycleStatus(Enum):
    """Final outcome of one reconciliation trigger."""

    COMPLETED = "completed"
    EMPTY = "empty"  # no eligible domains, nothing done
    FAILED = "failed"
    SKIPPED = "skipped"  # another cycle was already running


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ErrorCode(Enum):
    """Error codes carried by NawalaCheckerError subclasses."""

    INVALID_FORMAT = "invalid_format"
    INVALID_FREQUENCY = "invalid_frequency"
    BATCH_TOO_LARGE = "batch_too_large"
    EMPTY_BATCH = "empty_batch"
    DUPLICATE_DOMAIN = "duplicate_domain"
    NOT_FOUND = "not_found"
    ORACLE_REQUEST_FAILED = "oracle_request_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    HMAC_MISMATCH = "hmac_mismatch"
    NOTIFICATION_FAILED = "notification_failed"
