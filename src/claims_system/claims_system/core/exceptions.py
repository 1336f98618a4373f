"""Typed exception hierarchy.

Every business rule violation raises a subclass of ``DomainError``. Each class
carries a stable machine-readable ``code`` and the HTTP status the web layer
maps it to, so callers catch by type and never parse messages.

    DomainError
    +-- UnauthenticatedError      (no principal)
    +-- AuthenticationError       (bad credentials)
    +-- ForbiddenError            (missing role/permission)
    +-- NotFoundError
    +-- ValidationError
    +-- NotConfiguredError        (no applicable rate entry)
    +-- ConflictError             (replay / concurrent modification)
    |   +-- InvalidTransitionError
    +-- AuditWriteError           (must-record audit failed)
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"
    http_status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message())
        self.message = str(self)

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace("_", " ")


class UnauthenticatedError(DomainError):
    """Raised when no principal is attached to the request."""

    code = "unauthenticated"
    http_status = 401

    @classmethod
    def default_message(cls) -> str:
        return "Authentication required"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    code = "invalid_credentials"
    http_status = 401


class ForbiddenError(DomainError):
    """Raised when a principal lacks permission for an action.

    The message never names the role or permission that was missing.
    """

    code = "forbidden"
    http_status = 403

    @classmethod
    def default_message(cls) -> str:
        return "You do not have permission to perform this action"


class NotFoundError(DomainError):
    code = "not_found"
    http_status = 404


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_failed"
    http_status = 400


class NotConfiguredError(DomainError):
    """Raised when no rate configuration applies to a reference date."""

    code = "not_configured"
    http_status = 422


class ConflictError(DomainError):
    """Raised on a concurrent modification or a replayed transition."""

    code = "conflict"
    http_status = 409

    def __init__(self, message: str = "", *, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


class InvalidTransitionError(ConflictError):
    """Raised when the requested transition is not in the transition table."""

    code = "invalid_transition"

    def __init__(self, message: str = "", *, current_status: Optional[str] = None, target_status: Optional[str] = None):
        super().__init__(message, current_status=current_status)
        self.target_status = target_status


class AuditWriteError(DomainError):
    """Raised when a compliance-relevant audit entry could not be written."""

    code = "audit_failed"
    http_status = 500


class ConfigurationError(RuntimeError):
    """Raised at import time when a static table is inconsistent."""
