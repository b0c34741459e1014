"""Scheduling error taxonomy, rendered by the app-level exception handler"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for failures surfaced to API clients"""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict:
        return {"success": False, "error": self.message, "details": self.details}


class ValidationError(SchedulingError):
    """Missing or malformed input"""

    status_code = 400


class InvalidReference(SchedulingError):
    """Salon, staff or service id doesn't exist or doesn't belong together"""

    status_code = 400


class Conflict(SchedulingError):
    """Requested time overlaps an existing appointment"""

    status_code = 409


class NotFound(SchedulingError):
    status_code = 404


class InvalidTransition(SchedulingError):
    """Appointment status change not allowed from its current status"""

    status_code = 400


class Unexpected(SchedulingError):
    status_code = 500
