"""Typed exceptions for payroll operations.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so handlers catch by type and never parse messages.

    PayrollError
    +-- ValidationError          400
    +-- NotFoundError            404
    +-- ConflictError            409
        +-- WeekLockedError
        +-- InvalidTransitionError
"""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for all expected payroll failures."""

    code: str = "PAYROLL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)


class ValidationError(PayrollError):
    """Missing or malformed input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(PayrollError):
    """A referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)


class ConflictError(PayrollError):
    """The write conflicts with the current state of the data."""

    code = "CONFLICT"
    status_code = 409


class WeekLockedError(ConflictError):
    """A payroll week is locked against further changes."""

    code = "WEEK_LOCKED"

    def __init__(self, year: int, week: int, label: str = "Week"):
        self.year = year
        self.week = week
        super().__init__(f"{label} {week}, {year} is locked", year=year, week=week)


class InvalidTransitionError(ConflictError):
    """Raised when an invalid status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, from_status=from_status, to_status=to_status)
