"""Shared domain error taxonomy and the DRF exception handler.

Every business failure raised by a service is a ``DomainError`` tagged with
one ``ErrorKind`` from a closed set.  The kind decides the HTTP status; the
``code`` preserves the catalog's canonical error code (``INVALID_INPUT``,
``PRODUCT_NOT_FOUND``, ``DATABASE_ERROR``, ``CALCULATION_ERROR``,
``UPDATE_FAILED``) or an order-specific one.

All API errors, domain or DRF, are rendered in one shape::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_STATE = "INVALID_STATE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    ORDER_REJECTED = "ORDER_REJECTED"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"


ERROR_KIND_HTTP_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorKind.ORDER_REJECTED: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENCY_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class DomainError(Exception):
    """Base class for business rule violations.

    Subclasses set ``kind`` and a default ``code``; a caller may override
    the code per instance (e.g. a catalog failure surfaced as
    ``CALCULATION_ERROR`` instead of ``DATABASE_ERROR``).
    """

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    code: str = "INVALID_INPUT"

    def __init__(self, message: str = "", *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def http_status(self) -> int:
        return ERROR_KIND_HTTP_STATUS[self.kind]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, code={self.code}, message={self.message!r})"


class InvalidInput(DomainError):
    """Malformed request data (non-positive quantity, unknown operation, ...)."""

    kind = ErrorKind.INVALID_INPUT
    code = "INVALID_INPUT"


class DependencyFailure(DomainError):
    """A collaborator (catalog, persistence) is unavailable."""

    kind = ErrorKind.DEPENDENCY_FAILURE
    code = "DATABASE_ERROR"


# ---------------------------------------------------------------------------
# API rendering
# ---------------------------------------------------------------------------


def _error_type(status_code: int) -> str:
    if status_code >= 500:
        return "server_error"
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "validation_error"
    return "client_error"


def _flatten_validation_detail(
    detail: Any, attr: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Flatten DRF's nested ``ValidationError.detail`` into a list of errors."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            nested_attr = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                nested_attr = attr
            errors.extend(_flatten_validation_detail(value, nested_attr))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                nested_attr = str(index) if attr is None else f"{attr}.{index}"
                errors.extend(_flatten_validation_detail(value, nested_attr))
            else:
                errors.extend(_flatten_validation_detail(value, attr))
        return errors
    return [
        {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }
    ]


def _domain_error_response(exc: DomainError) -> Response:
    status_code = exc.http_status
    cause = getattr(exc, "cause", None)
    if isinstance(cause, DomainError):
        status_code = cause.http_status
    if exc.code == "CALCULATION_ERROR":
        status_code = status.HTTP_502_BAD_GATEWAY

    errors = [{"code": exc.code, "detail": exc.message, "attr": None}]
    if isinstance(cause, DomainError):
        errors.append({"code": cause.code, "detail": cause.message, "attr": None})

    log = logger.warning if status_code < 500 else logger.error
    log(
        "api.domain_error",
        kind=exc.kind.value,
        code=exc.code,
        status_code=status_code,
    )
    return Response(
        {"type": _error_type(status_code), "errors": errors},
        status=status_code,
    )


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER`` rendering every error in the standard shape."""
    if isinstance(exc, DomainError):
        return _domain_error_response(exc)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        errors = _flatten_validation_detail(exc.detail)
    else:
        detail = response.data.get("detail", "") if isinstance(response.data, dict) else ""
        errors = [
            {
                "code": getattr(detail, "code", None) or getattr(exc, "default_code", "error"),
                "detail": str(detail),
                "attr": None,
            }
        ]

    response.data = {"type": _error_type(response.status_code), "errors": errors}
    return response
