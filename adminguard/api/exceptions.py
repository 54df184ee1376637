"""
ADMINGUARD - Exception Hierarchy
================================

Structured exception types for the admin access-control core.

Exception Categories:
    - UnauthenticatedError: No valid actor, caller must re-authenticate
    - ForbiddenError: Role, MFA, freshness or permission check failed
    - NotFoundError: Target principal is absent
    - ExternalError: Side-effect or store failure, retriable by the caller
    - AuditWriteError: Audit entry could not be made durable
"""

from typing import Any, Dict, Optional


class AdminGuardError(Exception):
    """
    Base exception for all ADMINGUARD errors.

    Attributes:
        message: Human-readable error description
        code: Optional error code for programmatic handling
        details: Optional dict with additional context
        recoverable: Whether error can potentially be retried
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


# =============================================================================
# TERMINAL ERRORS
# =============================================================================


class UnauthenticatedError(AdminGuardError):
    """No valid actor could be resolved from the request."""

    pass


class ForbiddenError(AdminGuardError):
    """Actor is authenticated but the access check failed."""

    pass


class NotFoundError(AdminGuardError):
    """Target principal does not exist."""

    pass


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class ExternalError(AdminGuardError):
    """A collaborator store or side effect failed."""

    recoverable: bool = True


class ExternalTimeoutError(ExternalError):
    """A collaborator call exceeded its time budget."""

    pass


class AuditWriteError(AdminGuardError):
    """Audit entry could not be persisted after bounded retries."""

    def __init__(self, message: str, attempts: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def is_recoverable(error: Exception) -> bool:
    """
    Determine if an error is potentially recoverable.

    Recoverable errors may be retried by the request-handling layer.
    """
    if isinstance(error, AdminGuardError):
        return error.recoverable

    # Bare timeouts from client libraries are treated like ExternalTimeoutError
    return isinstance(error, (TimeoutError, ConnectionError))


def is_critical(error: Exception) -> bool:
    """A missing audit entry is a compliance gap, not an inconvenience."""
    return isinstance(error, AuditWriteError)


__all__ = [
    "AdminGuardError",
    "UnauthenticatedError",
    "ForbiddenError",
    "NotFoundError",
    "ExternalError",
    "ExternalTimeoutError",
    "AuditWriteError",
    "is_recoverable",
    "is_critical",
]
