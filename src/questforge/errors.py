"""Domain failures raised by the progression engine.

Every failure is scoped to a single request: it is raised inside the
transaction, the session is rolled back, and the API layer renders it as
``{"detail": ..., "code": ...}`` with the status below. Duplicate
submissions are never failures.
"""

from __future__ import annotations


class ProgressionError(ValueError):
    """Base class for typed engine failures."""

    code = "progression_error"
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotAuthenticated(ProgressionError):
    code = "not_authenticated"
    status_code = 401


class ValidationFailed(ProgressionError):
    code = "validation_failed"
    status_code = 422


class CapacityExceeded(ProgressionError):
    code = "capacity_exceeded"
    status_code = 409


class OwnershipViolation(ProgressionError):
    code = "ownership_violation"
    status_code = 403


class PathMismatch(ProgressionError):
    code = "path_mismatch"
    status_code = 409


class NotFound(ProgressionError):
    code = "not_found"
    status_code = 404


class AuthorizationError(ProgressionError):
    code = "authorization_error"
    status_code = 403
