from __future__ import annotations

from typing import Any, Dict, Optional

from apps.common.errors import BackendError, BackendErrorCode, DomainError

from .constants import USER_MESSAGES


class OrderError(DomainError):
    code = "ORDER_FAILED"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            self.code, message or USER_MESSAGES.get(self.code, "Request failed"), details=details
        )


class EmptyCartError(OrderError):
    code = "EMPTY_CART"


class CheckoutValidationError(OrderError):
    code = "VALIDATION_ERROR"

    def __init__(self, errors: Dict[str, str]):
        super().__init__(details=dict(errors))
        self.errors = dict(errors)


class PersistenceError(OrderError):
    """Hard failure writing the order. ``backend_code`` keeps the typed cause."""

    code = "ORDER_FAILED"

    def __init__(
        self,
        backend_code: BackendErrorCode = BackendErrorCode.UNKNOWN,
        *,
        step: Optional[str] = None,
    ):
        super().__init__()
        self.backend_code = backend_code
        self.step = step


class NetworkError(PersistenceError):
    code = "NETWORK_ERROR"


class DuplicateOrderError(PersistenceError):
    code = "DUPLICATE_ORDER"


class InsufficientStockError(PersistenceError):
    code = "INSUFFICIENT_STOCK"


class GenericOrderError(PersistenceError):
    code = "ORDER_FAILED"


_PERSISTENCE_ERRORS = {
    BackendErrorCode.NETWORK: NetworkError,
    BackendErrorCode.DUPLICATE: DuplicateOrderError,
    BackendErrorCode.INSUFFICIENT_STOCK: InsufficientStockError,
}


def persistence_error_for(exc: BackendError, step: str) -> PersistenceError:
    error_cls = _PERSISTENCE_ERRORS.get(exc.code, GenericOrderError)
    return error_cls(exc.code, step=step)


class InventoryAdjustmentError(OrderError):
    """Soft: a stock bookkeeping call failed; the order stands."""

    code = "INVENTORY_ADJUSTMENT_FAILED"

    def __init__(self, entry_id: int, cause: BaseException):
        super().__init__(f"Inventory adjustment {entry_id} failed")
        self.entry_id = entry_id
        self.cause = cause
        backend_code = getattr(cause, "code", None)
        self.backend_code = (
            backend_code if isinstance(backend_code, BackendErrorCode) else BackendErrorCode.UNKNOWN
        )


class HandoffUnavailableError(OrderError):
    """Soft: the messaging app cannot be opened; callers fall back to a phone link."""

    code = "HANDOFF_UNAVAILABLE"


class GuardMismatchError(OrderError):
    code = "ORDER_NOT_CANCELLABLE"


class OrderNotFoundError(OrderError):
    code = "NOT_FOUND"
