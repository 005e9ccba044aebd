from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from django.core.exceptions import (
    PermissionDenied as DjangoPermissionDenied,
    ValidationError as DjangoValidationError,
)
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    MethodNotAllowed,
    NotAuthenticated,
    NotFound,
    ParseError,
    PermissionDenied,
    Throttled,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.api.utils import error_response, status_for
from apps.common import get_logger
from apps.common.errors import DomainError

logger = get_logger(__name__).bind(component="api", layer="exception")

SERVER_ERROR_MESSAGE = "Something went wrong"

# DRF exception -> (code, fallback message, whether the payload is returned as details)
DRF_ERRORS: Tuple[Tuple[type, str, str, bool], ...] = (
    (ValidationError, "VALIDATION_ERROR", "Validation failed", True),
    (ParseError, "VALIDATION_ERROR", "Malformed request", True),
    (AuthenticationFailed, "UNAUTHORIZED", "Authentication failed", False),
    (NotAuthenticated, "UNAUTHORIZED", "Authentication required", False),
    (PermissionDenied, "FORBIDDEN", "You do not have permission to perform this action", False),
    (NotFound, "NOT_FOUND", "Resource not found", False),
    (MethodNotAllowed, "METHOD_NOT_ALLOWED", "Method not allowed", False),
    (Throttled, "TOO_MANY_REQUESTS", "Request was throttled", False),
)

# Client-facing advice for order failures the shopper can act on.
DOMAIN_HINTS = {
    "NETWORK_ERROR": "Check your connection and place the order again.",
    "DUPLICATE_ORDER": "Place the order again.",
    "INSUFFICIENT_STOCK": "Reduce the quantity or remove the item from your cart.",
    "EMPTY_CART": "Add items to your cart before checking out.",
}


class ApplicationError(Exception):
    """
    Error raised from services or views and rendered as the standard envelope.

    Args:
        code: Machine readable error code; also selects the HTTP status.
        message: User-safe explanation.
        status_code: Explicit HTTP status overriding the code mapping.
        details: Structured details, e.g. per-field messages.
        hint: What the client can do about it.
        headers: Extra response headers.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        hint: Optional[str] = None,
        headers: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code or status_for(code)
        self.details = details
        self.hint = hint
        self.headers = headers

    @classmethod
    def from_domain_error(cls, exc: DomainError) -> "ApplicationError":
        return cls(exc.code, exc.message, details=exc.details, hint=DOMAIN_HINTS.get(exc.code))

    def to_response(self) -> Response:
        return error_response(
            self.code,
            self.message,
            self.details,
            http_status=self.status_code,
            hint=self.hint,
            headers=self.headers,
        )


def global_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """DRF ``EXCEPTION_HANDLER``: every error leaves the API in the same envelope."""
    log = _bind_logger(context)

    if isinstance(exc, DomainError):
        backend_code = getattr(exc, "backend_code", None)
        exc = ApplicationError.from_domain_error(exc)
        if exc.status_code >= 500:
            log.warning(
                "Domain error",
                code=exc.code,
                status=exc.status_code,
                backend_code=getattr(backend_code, "value", backend_code),
            )

    if isinstance(exc, ApplicationError):
        log.info("Handled application error", code=exc.code, status=exc.status_code)
        return exc.to_response()

    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(_django_validation_detail(exc))

    response = drf_exception_handler(exc, context)
    if response is None:
        log.exception("Unhandled exception bubbled to global handler")
        return error_response(
            "SERVER_ERROR", SERVER_ERROR_MESSAGE, http_status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    code, message, details, hint = _describe(exc, response.data, response.status_code)
    if response.status_code >= 500:
        log.error("Converted server error", code=code, status=response.status_code)
    else:
        log.info("Converted API exception", code=code, status=response.status_code)
    return error_response(
        code,
        message,
        details,
        http_status=response.status_code,
        hint=hint,
        headers=dict(response.headers) if getattr(response, "headers", None) else None,
    )


def _bind_logger(context: Dict[str, Any]):
    log = logger
    view = context.get("view")
    request = context.get("request")
    if view is not None:
        log = log.bind(view=type(view).__name__)
    if request is not None:
        log = log.bind(method=getattr(request, "method", None), path=getattr(request, "path", None))
    return log


def _django_validation_detail(exc: DjangoValidationError):
    if hasattr(exc, "message_dict"):
        return exc.message_dict
    return list(exc.messages)


def _describe(
    exc: Exception, payload: Any, status_code: int
) -> Tuple[str, str, Optional[Any], Optional[str]]:
    if status_code >= 500:
        return "SERVER_ERROR", SERVER_ERROR_MESSAGE, None, None
    if isinstance(exc, DjangoPermissionDenied):
        exc = PermissionDenied()
    elif isinstance(exc, Http404):
        exc = NotFound()

    for exc_type, code, fallback, with_details in DRF_ERRORS:
        if isinstance(exc, exc_type):
            details = payload if with_details else None
            hint = None
            if isinstance(exc, Throttled) and exc.wait is not None:
                details = {"retryAfter": exc.wait}
                hint = "Wait before retrying this request."
            elif isinstance(exc, MethodNotAllowed):
                allowed = getattr(exc, "allowed_methods", None)
                details = {"allowedMethods": list(allowed)} if allowed else None
            return code, _message(payload, fallback, with_details), details, hint

    code = "CONFLICT" if status_code == status.HTTP_409_CONFLICT else "REQUEST_FAILED"
    if isinstance(exc, APIException) and isinstance(exc.default_code, str):
        code = exc.default_code.upper()
    details = payload if isinstance(payload, (dict, list)) and payload else None
    return code, _message(payload, "Request failed", False), details, None


def _message(payload: Any, fallback: str, field_errors: bool) -> str:
    # Field-level payloads keep the generic message; fields travel as details.
    if field_errors and isinstance(payload, dict) and "detail" not in payload:
        return fallback
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
        return payload["detail"]
    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    return fallback


__all__ = ["ApplicationError", "global_exception_handler"]
