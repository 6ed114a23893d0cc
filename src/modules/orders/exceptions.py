"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  All of
them are ``DomainError`` subclasses, so the project exception handler
translates them into HTTP responses without per-view ``try/except``.
"""

from __future__ import annotations

from typing import Optional

from modules.core.exceptions import DomainError, ErrorKind


class OrderNotFound(DomainError):
    """The requested order does not exist or has been soft-deleted."""

    kind = ErrorKind.NOT_FOUND
    code = "ORDER_NOT_FOUND"


class InvalidTransition(DomainError):
    """The requested status change is not in the transition table."""

    kind = ErrorKind.INVALID_TRANSITION
    code = "INVALID_TRANSITION"


class InvalidOrderState(DomainError):
    """The operation is not allowed in the order's current status."""

    kind = ErrorKind.INVALID_STATE
    code = "INVALID_STATE"


class OrderRejected(DomainError):
    """Order creation failed after compensating every reservation made so far.

    ``cause`` is the original error (usually ``InsufficientStock``); the
    HTTP status is taken from it.
    """

    kind = ErrorKind.ORDER_REJECTED
    code = "ORDER_REJECTED"

    def __init__(self, message: str = "", *, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause
