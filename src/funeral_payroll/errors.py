"""Error taxonomy for payroll period processing.

Every error here is recoverable at the caller. The HTTP layer maps them to
4xx responses and the CLI prints them; none of them should end the process.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PayrollError(Exception):
    """Base class for payroll domain errors."""

    code = "PAYROLL_ERROR"


class InvalidRangeError(PayrollError):
    """Raised when a period ends before it starts."""

    code = "INVALID_RANGE"

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Period end {end} is before start {start}")


class NotFoundError(PayrollError):
    """Raised when a referenced period, record, receipt or collaborator is missing."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class InvalidTransitionError(PayrollError):
    """Raised when an operation is not allowed in the current state."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AlreadyExistsError(PayrollError):
    """Raised when a receipt already exists for a payroll record."""

    code = "ALREADY_EXISTS"

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} already exists for {key}")


class ConflictError(PayrollError):
    """Raised when a concurrent write hits a uniqueness-constrained key."""

    code = "CONFLICT"


async def retry_on_conflict(operation: Callable[[], Awaitable[T]]) -> T:
    """Run an idempotent operation, retrying it once on ConflictError."""
    try:
        return await operation()
    except ConflictError as exc:
        logger.warning("Conflict detected, retrying once: %s", exc)
        return await operation()
