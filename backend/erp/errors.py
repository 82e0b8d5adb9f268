# Overview: Typed service errors and their HTTP status mapping.

"""
Service error taxonomy.

Services raise these; route handlers are the only place that turns them
into JSON bodies and status codes (see error_response). No service returns
an HTTP-shaped value.

NOT FOUND vs CROSS-TENANT: a lookup of an entity owned by another
organization raises NotFoundError with the same message as a missing one.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base for all expected, client-visible failures."""
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    status_code = 400


class AuthenticationError(ServiceError):
    """401: no valid session."""
    status_code = 401


class AuthorizationError(ServiceError):
    """403: authenticated but not allowed (missing grant, system role mutation)."""
    status_code = 403


class NotFoundError(ServiceError):
    """404: entity absent or owned by another organization."""
    status_code = 404


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    """A ledger write would drive a stock level below zero."""

    def __init__(self, message: str = "Insufficient stock", *, available: int | None = None,
                 requested: int | None = None):
        details = None
        if available is not None or requested is not None:
            details = {"available": available, "requested": requested}
        super().__init__(message, details)
        self.available = available
        self.requested = requested


class ConcurrencyConflictError(ConflictError):
    """Concurrent writers collided on the same row; the caller may retry."""
    retryable = True


def error_response(exc: ServiceError) -> tuple[dict, int]:
    body: dict[str, Any] = {"error": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    if getattr(exc, "retryable", False):
        body["retryable"] = True
    return body, exc.status_code
