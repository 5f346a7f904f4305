"""Failure taxonomy for allocation runs.

Row-level failures (validation, lookup, capacity) are raised by the
resolution helpers and caught inside each strategy loop, where they become a
tallied failure with a reason code. Nothing here is meant to escape a
strategy invocation.
"""

from __future__ import annotations


class AllocationError(Exception):
    """Base class for engine failures. ``reason`` is a short machine code."""

    reason = "allocation_error"

    def __init__(self, message: str = "", *, reason: str | None = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class ValidationFailure(AllocationError):
    reason = "invalid_row"


class LookupFailure(AllocationError):
    reason = "not_found"


class CapacityExhausted(AllocationError):
    reason = "no_capacity"


class PersistenceError(AllocationError):
    reason = "persistence_failed"


class BatchLimitExceeded(PersistenceError):
    reason = "batch_limit_exceeded"


class ImportSyntaxError(AllocationError):
    """The import source could not be parsed at all; the run is aborted."""

    reason = "unparseable_import"
