# Overview: Domain error taxonomy shared by services and routes.

"""
Every business failure raised by the service layer is a DomainError.
Routes catch DomainError at the request boundary, roll back the session
and render {"error": <code>, "message": <text>} with ``status_code``.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 400
    code = "DomainError"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(DomainError, ValueError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "ValidationError"


class Forbidden(DomainError):
    """Role, capability or shop-access check failed."""

    status_code = 403
    code = "Forbidden"


class NotFound(DomainError):
    status_code = 404
    code = "NotFound"


class InvalidTransition(DomainError):
    """Order status change not reachable from the current status."""

    status_code = 403
    code = "InvalidTransition"


class InsufficientStock(DomainError):
    """Roasting batch would drive green coffee stock negative."""

    status_code = 400
    code = "InsufficientStock"


class ConflictError(DomainError):
    """Business rule conflict, e.g. duplicate username."""

    status_code = 409
    code = "Conflict"


class SideEffectFailure(DomainError):
    """
    A side effect of an order transition failed.

    The transition is rolled back together with the side effect.
    """

    status_code = 500
    code = "SideEffectFailure"
