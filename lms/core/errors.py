"""Domain error taxonomy.

Services raise these; the HTTP layer maps each kind to a status code in
one place (see ``lms.main``).  They are expected, caller-recoverable
conditions, so they are never logged with a stack trace.

    UnauthorizedError     401  no identity where one is required
    ForbiddenError        403  identity lacks role/ownership/enrollment
    NotFoundError         404  course/chapter/lesson/enrollment missing
    ConflictError         409  would violate a uniqueness invariant
    InvalidStateError     400  target state forbids the operation
    PaymentRequiredError  402  paid course, payment not confirmed
    ValidationFailedError 422  domain-level input validation
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID


class DomainError(Exception):
    kind: str = "error"
    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def extra(self) -> dict[str, Any]:
        """Additional fields merged into the error response body."""
        return {}


class UnauthorizedError(DomainError):
    kind = "unauthorized"
    status_code = 401


class ForbiddenError(DomainError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404


class ConflictError(DomainError):
    kind = "conflict"
    status_code = 409


class InvalidStateError(DomainError):
    kind = "invalid_state"
    status_code = 400


class ValidationFailedError(DomainError):
    kind = "validation_failed"
    status_code = 422


class PaymentRequiredError(DomainError):
    """Carries enough of the course for the caller to start a checkout."""

    kind = "payment_required"
    status_code = 402

    def __init__(self, course_id: UUID, title: str, price: Decimal) -> None:
        super().__init__("Payment required")
        self.course_id = course_id
        self.title = title
        self.price = price

    def extra(self) -> dict[str, Any]:
        return {
            "course": {
                "id": str(self.course_id),
                "title": self.title,
                "price": str(self.price),
            }
        }
