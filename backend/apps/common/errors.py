from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from django.db import DatabaseError, IntegrityError, InterfaceError, OperationalError


class BackendErrorCode(str, Enum):
    NETWORK = "network"
    DUPLICATE = "duplicate"
    INSUFFICIENT_STOCK = "insufficient_stock"
    CONSTRAINT = "constraint"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


# SQLSTATE classes reported by PostgreSQL drivers.
_SQLSTATE_CODES = {
    "23505": BackendErrorCode.DUPLICATE,
    "23514": BackendErrorCode.INSUFFICIENT_STOCK,
}


class BackendError(Exception):
    """Failure reported by a persistence collaborator, classified by ``code``."""

    def __init__(
        self,
        code: BackendErrorCode,
        message: str = "",
        *,
        operation: Optional[str] = None,
    ):
        super().__init__(message or code.value)
        self.code = code
        self.operation = operation

    def __repr__(self) -> str:
        return f"BackendError(code={self.code.value!r}, operation={self.operation!r})"


class TransientBackendError(BackendError):
    """A ``NETWORK`` failure; the same call may succeed later."""


def _sqlstate(exc: BaseException) -> Optional[str]:
    cause = exc.__cause__
    return getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)


def classify_db_error(exc: BaseException) -> BackendErrorCode:
    state = _sqlstate(exc)
    if state in _SQLSTATE_CODES:
        return _SQLSTATE_CODES[state]
    if isinstance(exc, IntegrityError):
        return BackendErrorCode.CONSTRAINT
    if isinstance(exc, (OperationalError, InterfaceError)):
        return BackendErrorCode.NETWORK
    return BackendErrorCode.UNKNOWN


@contextmanager
def backend_errors(operation: str) -> Iterator[None]:
    """Re-raise ORM/driver errors as ``BackendError`` with a typed code."""
    try:
        yield
    except BackendError:
        raise
    except DatabaseError as exc:
        code = classify_db_error(exc)
        error_cls = TransientBackendError if code is BackendErrorCode.NETWORK else BackendError
        raise error_cls(code, str(exc), operation=operation) from exc


class DomainError(Exception):
    """Error with a stable API code and a user-safe message.

    Raised from services; the API exception handler renders it as a structured
    error response.
    """

    def __init__(self, code: str, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
