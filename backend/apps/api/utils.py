from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.serializers import as_serializer_error

# (code, message, details) as returned by cart and auth services.
ErrorTuple = Tuple[str, str, Optional[Any]]

DEFAULT_ERROR_STATUS = status.HTTP_400_BAD_REQUEST

ERROR_STATUS_MAP = {
    # generic
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "METHOD_NOT_ALLOWED": status.HTTP_405_METHOD_NOT_ALLOWED,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "TOO_MANY_REQUESTS": status.HTTP_429_TOO_MANY_REQUESTS,
    "SERVER_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "SERVICE_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    # checkout and orders
    "EMPTY_CART": status.HTTP_400_BAD_REQUEST,
    "DUPLICATE_ORDER": status.HTTP_409_CONFLICT,
    "INSUFFICIENT_STOCK": status.HTTP_409_CONFLICT,
    "ORDER_NOT_CANCELLABLE": status.HTTP_409_CONFLICT,
    "ORDER_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "NETWORK_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(code: str) -> int:
    return ERROR_STATUS_MAP.get(code.strip().upper(), DEFAULT_ERROR_STATUS)


def _normalize_details(details: Any) -> Any:
    if isinstance(details, ValidationError):
        return as_serializer_error(details)
    if isinstance(details, Mapping):
        return dict(details)
    if isinstance(details, Exception):
        # Exception text may carry backend internals; only the type is exposed.
        return {"type": details.__class__.__name__}
    return details


def error_response(
    code: str,
    message: str,
    details: Optional[Any] = None,
    http_status: Optional[int] = None,
    *,
    hint: Optional[str] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> Response:
    """
    Build the error envelope every endpoint returns:
    ``{"error": {"code", "message", "status", "details"?, "hint"?}}``.

    The status comes from ``ERROR_STATUS_MAP`` unless ``http_status`` is given.
    """
    code = (code or "").strip().upper()
    message = (message or "").strip()
    if not code or not message:
        raise ValueError("error_response requires a code and a message")

    status_code = int(http_status) if http_status is not None else status_for(code)
    if not 100 <= status_code <= 599:
        raise ValueError(f"Invalid HTTP status for error response: {status_code}")

    body: Dict[str, Any] = {"code": code, "message": message, "status": status_code}
    if details is not None:
        body["details"] = _normalize_details(details)
    if hint:
        body["hint"] = hint
    return Response(
        {"error": body},
        status=status_code,
        headers={str(k): str(v) for k, v in headers.items()} if headers else None,
    )


def service_error_response(error: ErrorTuple) -> Response:
    code, message, details = error
    return error_response(code, message, details)
