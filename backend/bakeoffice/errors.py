# Overview: Domain error taxonomy shared by services and routes.

"""
Domain errors.

Every business failure raised by a service is a DomainError carrying the
HTTP status the route layer answers with. Routes never guess a status code:
they catch DomainError and serialize it.

    400 ValidationError        malformed or missing input
    403 ForbiddenError         role does not allow the operation
    404 NotFoundError          missing, or outside the caller's tenant
    409 ConflictError          business invariant would be violated
    500 PersistenceError       commit failed; transaction rolled back
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.details)
        return body


class ValidationError(DomainError):
    """400-level input problem."""

    status_code = 400


class InvalidAmountError(ValidationError):
    """Amount is zero, negative, or not an integer."""


class ForbiddenError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    """Entity missing or belonging to another tenant (never distinguished)."""

    status_code = 404


class ConflictError(DomainError):
    """409-level business rule conflict."""

    status_code = 409


class OverpaymentError(ConflictError):
    pass


class InsufficientStockError(ConflictError):
    pass


class AlreadyConfirmedError(ConflictError):
    pass


class InvalidTransitionError(ConflictError):
    pass


class CreditLimitExceededError(ConflictError):
    pass


class DuplicateSaleDateError(ConflictError):
    pass


class PersistenceError(DomainError):
    status_code = 500

    def to_dict(self) -> dict:
        # Never leak driver messages to clients
        return {"error": "Failed to save changes"}
