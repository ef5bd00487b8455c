"""Scheduling domain errors - each carries the HTTP status the API renders it with"""

from typing import Optional


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed input rejected before any query runs"""

    status_code = 400


class InvalidTimeFormat(ValidationError):
    pass


class NotFoundError(SchedulingError):
    """Referenced record is missing or belongs to another tenant"""

    status_code = 404


class InvalidStatusTransition(SchedulingError):
    status_code = 409


class ConcurrencyConflict(SchedulingError):
    """
    The commit-time slot guard rejected the write.

    Another booking for the same professional or exclusive resource was
    committed after this caller's conflict check; re-run the check.
    """

    status_code = 409


class SchedulingConflictError(SchedulingError):
    """Raised by the combined check-and-book path when the slot is not free"""

    status_code = 409

    def __init__(self, conflicts: list, message: Optional[str] = None):
        super().__init__(message or (conflicts[0].message if conflicts else "Scheduling conflict"))
        self.conflicts = conflicts


class PersistenceError(SchedulingError):
    status_code = 500
