# Overview: Domain error taxonomy shared by services and routes.

"""
SalesFlow error hierarchy.

Every domain error carries the HTTP status the API layer answers with, so
routes can translate any SalesFlowError without knowing which service
raised it.

    SalesFlowError
    ├── ValidationError         400  malformed / missing input
    │   └── IncompleteProfileError  400  principal has no customer profile
    ├── NotFoundError           404  referenced document absent
    ├── ForbiddenError          403  document exists, caller does not own it
    ├── ConflictError           409  business rule conflict
    │   └── InvalidTransitionError  409  illegal lifecycle move (strict mode)
    └── StorageFailure          500  record store read/write failed
"""

from __future__ import annotations


class SalesFlowError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(SalesFlowError, ValueError):
    """400-level input problem."""

    status_code = 400
    code = "VALIDATION_ERROR"


class IncompleteProfileError(ValidationError):
    """The principal resolves to no customer profile; onboarding comes first."""

    code = "PROFILE_INCOMPLETE"

    def __init__(self, message: str = "Please complete your profile first", details: dict | None = None):
        super().__init__(message, details)


class NotFoundError(SalesFlowError):
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(SalesFlowError):
    """The document exists but belongs to someone else."""

    status_code = 403
    code = "FORBIDDEN"


class ConflictError(SalesFlowError):
    """409-level business rule conflict."""

    status_code = 409
    code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"


class StorageFailure(SalesFlowError):
    """Record store failure. Not retried beyond the unit-of-work retry policy."""

    status_code = 500
    code = "STORAGE_FAILURE"

    def __init__(self, message: str = "Storage failure", details: dict | None = None):
        super().__init__(message, details)
