"""
Typed failures of the order lifecycle core.

Every failure raised by the validator, state machine and lifecycle service is
an ``OrderLifecycleError`` subclass carrying an ``OrderErrorKind``. The
transport layer maps kinds to responses; nothing here knows about HTTP.
"""

import enum
from typing import Any, Optional

from restaurant_orders.services.orders.enums import OrderStatus


class OrderErrorKind(str, enum.Enum):
    BAD_ORDER_REQUEST = "bad_order_request"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    ILLEGAL_STATUS_TRANSITION = "illegal_status_transition"
    ORDER_NOT_FOUND = "order_not_found"
    RESTAURANT_NOT_FOUND = "restaurant_not_found"
    CLIENT_NOT_FOUND = "client_not_found"
    PRODUCT_NOT_FOUND = "product_not_found"
    INTERNAL_FAILURE = "internal_failure"


class ValidationFailure(str, enum.Enum):
    """Reason attached to a BadOrderRequest."""

    INVALID_RESTAURANT_ID = "InvalidRestaurantId"
    INVALID_CLIENT_ID = "InvalidClientId"
    INVALID_INITIAL_STATUS = "InvalidInitialStatus"
    EMPTY_ORDER_LINES = "EmptyOrderLines"
    INVALID_PRODUCT_ID = "InvalidProductId"
    INVALID_LINE_QUANTITY = "InvalidLineQuantity"
    INVALID_LINE_SUBTOTAL = "InvalidLineSubtotal"
    TOTAL_MISMATCH = "TotalMismatch"
    INVALID_DATE_RANGE = "InvalidDateRange"


class OrderLifecycleError(Exception):
    """Base exception for order lifecycle failures."""

    kind: OrderErrorKind = OrderErrorKind.INTERNAL_FAILURE
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class BadOrderRequest(OrderLifecycleError):
    """Raised when an order request breaks a structural or business rule."""

    kind = OrderErrorKind.BAD_ORDER_REQUEST

    def __init__(self, message: str, reason: ValidationFailure, **context: Any):
        super().__init__(message, reason=reason.value, **context)
        self.reason = reason


class UnauthorizedAccess(OrderLifecycleError):
    """Raised when an authenticated identity is not entitled to an action."""

    kind = OrderErrorKind.UNAUTHORIZED_ACCESS


class IllegalStatusTransition(OrderLifecycleError):
    """Raised when a requested status change is not in the transition graph."""

    kind = OrderErrorKind.ILLEGAL_STATUS_TRANSITION

    def __init__(
        self,
        message: str,
        current_status: OrderStatus,
        requested_status: OrderStatus,
        **context: Any,
    ):
        super().__init__(
            message,
            current_status=current_status.value,
            requested_status=requested_status.value,
            **context,
        )
        self.current_status = current_status
        self.requested_status = requested_status


class OrderNotFound(OrderLifecycleError):
    kind = OrderErrorKind.ORDER_NOT_FOUND


class RestaurantNotFound(OrderLifecycleError):
    kind = OrderErrorKind.RESTAURANT_NOT_FOUND


class ClientNotFound(OrderLifecycleError):
    kind = OrderErrorKind.CLIENT_NOT_FOUND


class ProductNotFound(OrderLifecycleError):
    kind = OrderErrorKind.PRODUCT_NOT_FOUND


class InternalFailure(OrderLifecycleError):
    """
    Raised when a collaborator fails unexpectedly.

    The only kind a caller may retry. The core never retries it itself.
    """

    kind = OrderErrorKind.INTERNAL_FAILURE
    retryable = True

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message, operation=operation, **context)
        self.operation = operation
