# Overview: Error taxonomy shared by services and the HTTP boundary.

"""
Every failure that crosses the HTTP boundary is one of these types.

Services and decorators raise them; only the error handlers registered in
create_app() turn them into JSON responses. Each class pins its status code
so the mapping lives in exactly one place.
"""

from __future__ import annotations


class FinOpsError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.error)
        self.message = message or self.error

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class AuthenticationError(FinOpsError):
    """Missing, malformed, expired or revoked bearer token."""

    status_code = 401
    error = "Authentication required"

    def __init__(self, message: str | None = None, reason: str = "invalid-token"):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        return {**super().to_dict(), "reason": self.reason}


class AuthorizationError(FinOpsError):
    """Valid identity, forbidden action. Carries the evaluator's reason code."""

    status_code = 403
    error = "Permission denied"

    def __init__(self, message: str | None = None, reason: str = "insufficient-role"):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        return {**super().to_dict(), "reason": self.reason}


class ValidationError(FinOpsError):
    """400-level input problem (unknown department, role, scope, missing field)."""

    status_code = 400
    error = "Invalid request"

    def __init__(self, message: str | None = None, reason: str | None = None):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.reason:
            body["reason"] = self.reason
        return body


class NotFoundError(FinOpsError):
    status_code = 404
    error = "Not found"


class ConflictError(FinOpsError):
    """409-level conflict (duplicate email, status already decided)."""

    status_code = 409
    error = "Conflict"


class DependencyError(FinOpsError):
    """Identity provider or store unreachable. Callers only see a generic message."""

    status_code = 500
    error = "Internal server error"

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.error}
