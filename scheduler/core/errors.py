"""
Domain error taxonomy.

Services raise these; a single exception handler in ``scheduler.main`` turns
them into JSON responses using ``STATUS_BY_KIND``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    CSRF = "csrf_validation_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    BILLING = "billing_error"
    CONFIGURATION = "configuration_error"
    UNAVAILABLE = "service_unavailable"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CSRF: 403,
    ErrorKind.QUOTA_EXCEEDED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.EXPIRED: 400,
    ErrorKind.BILLING: 502,
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.UNAVAILABLE: 503,
}


class AppError(Exception):
    """Base for every error a service may raise."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Request failed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.kind.value,
                "message": self.message,
                "status": self.status_code,
                **self.details,
            }
        }


class Unauthorized(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidCredentials(AppError):
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid username or password"


class Forbidden(AppError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied"


class CSRFRejected(AppError):
    kind = ErrorKind.CSRF
    default_message = "Invalid or missing CSRF token."


class QuotaExceeded(AppError):
    kind = ErrorKind.QUOTA_EXCEEDED
    default_message = "Plan limit reached"


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid request data"


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "Already exists"


class Expired(AppError):
    kind = ErrorKind.EXPIRED
    default_message = "This invite has expired"


class BillingError(AppError):
    kind = ErrorKind.BILLING
    default_message = "Payment provider request failed"


class ConfigurationError(AppError):
    kind = ErrorKind.CONFIGURATION
    default_message = "Service is not configured"


class ServiceUnavailable(AppError):
    kind = ErrorKind.UNAVAILABLE
    default_message = "Database connection error. Please try again later."
