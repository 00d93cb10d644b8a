# ==============================================================================
# DOMAIN ERRORS - Exception hierarchy shared by services and routes
# ==============================================================================
# Every error raised by services carries the HTTP status the API layer
# should answer with. Routes never build error responses by hand; the
# Flask error handler in main.py serializes OrderDeskError.to_dict().
#
#   OrderDeskError
#   ├── ValidationError          400  bad/missing field, checked before I/O
#   ├── BusinessRuleError        400  stock gate (checker)
#   │   ├── VariantNotFoundError
#   │   ├── SizeNotAvailableError
#   │   └── InsufficientStockError
#   ├── ReferenceNotFoundError   400  dangling id inside a payload
#   │   ├── CustomerNotFoundError
#   │   ├── ProductReferenceError
#   │   └── OrderReferenceError
#   ├── ConflictError            400  unique code / phone
#   ├── NotFoundError            404  terminal, never retried
#   │   └── OrderNotFoundError
#   ├── AuthError                401
#   ├── PermissionDeniedError    403
#   └── TransientStoreError      503  only class eligible for retry
# ==============================================================================

from typing import Any, Dict, Optional


class OrderDeskError(Exception):
    """Base class for every error surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Payload returned to the caller."""
        payload = {'error': self.message}
        payload.update(self.details)
        return payload


class ValidationError(OrderDeskError):
    """Malformed or missing input detected before any write."""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        details = {'field': field} if field else {}
        super().__init__(message, details)
        self.field = field


class BusinessRuleError(OrderDeskError):
    """An item failed the stock gate; the whole mutation is aborted."""

    status_code = 400

    def __init__(
        self,
        message: str,
        product_id: int = None,
        color: str = None,
        size: str = None,
        available_qty: int = 0
    ):
        super().__init__(message, {
            'product_id': product_id,
            'color': color,
            'size': size,
            'available_quantity': available_qty,
        })
        self.product_id = product_id
        self.color = color
        self.size = size
        self.available_qty = available_qty


class VariantNotFoundError(BusinessRuleError):
    pass


class SizeNotAvailableError(BusinessRuleError):
    pass


class InsufficientStockError(BusinessRuleError):
    pass


class ReferenceNotFoundError(OrderDeskError):
    """An id inside the submitted payload points at nothing."""

    status_code = 400


class CustomerNotFoundError(ReferenceNotFoundError):
    def __init__(self, customer_id: Any):
        super().__init__('Invalid customer reference', {'customer_id': customer_id})
        self.customer_id = customer_id


class ProductReferenceError(ReferenceNotFoundError):
    def __init__(self, product_id: Any):
        super().__init__('Invalid product reference', {'product_id': product_id})
        self.product_id = product_id


class OrderReferenceError(ReferenceNotFoundError):
    def __init__(self, order_ids):
        super().__init__('Invalid order reference', {'order_ids': list(order_ids)})
        self.order_ids = list(order_ids)


class ConflictError(OrderDeskError):
    status_code = 400


class NotFoundError(OrderDeskError):
    """Target of a lookup/update/delete does not exist."""

    status_code = 404


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: Any):
        super().__init__('Order not found')
        self.order_id = order_id


class AuthError(OrderDeskError):
    status_code = 401


class PermissionDeniedError(OrderDeskError):
    status_code = 403


class TransientStoreError(OrderDeskError):
    """The store could not be reached in time; safe to retry the whole call."""

    status_code = 503
