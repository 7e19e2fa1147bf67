"""Structural and business validation of incoming order requests."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Tuple

from restaurant_orders.core.logging import get_logger
from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.errors import BadOrderRequest, ValidationFailure
from restaurant_orders.services.orders.models import (
    OrderLineRequest,
    OrderRequest,
    ValidOrder,
)

logger = get_logger(__name__)

CURRENCY_QUANTUM = Decimal("0.01")

# Amount columns are Numeric(10, 2).
MAX_AMOUNT = Decimal("100000000")


def is_currency_amount(value: Decimal) -> bool:
    """Check value is finite, in [0, MAX_AMOUNT) and has at most 2 fraction digits."""
    if not value.is_finite() or value < 0 or value >= MAX_AMOUNT:
        return False
    try:
        return value == value.quantize(CURRENCY_QUANTUM)
    except InvalidOperation:
        return False


def as_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class OrderRequestValidator:
    """
    Pure validator for order requests.

    Rules are checked in a fixed order and the first failure is raised as
    ``BadOrderRequest`` carrying its ``ValidationFailure`` reason. Existence of
    the referenced restaurant, client and products is not checked here.
    """

    def validate(self, request: OrderRequest) -> ValidOrder:
        """
        Validate an order request.

        Args:
            request: Proposed order

        Returns:
            ValidOrder built from the request

        Raises:
            BadOrderRequest: If any rule fails
        """
        if request.restaurant_id <= 0:
            self._fail(
                ValidationFailure.INVALID_RESTAURANT_ID,
                "Restaurant id must be positive",
                restaurant_id=request.restaurant_id,
            )

        if request.client_id <= 0:
            self._fail(
                ValidationFailure.INVALID_CLIENT_ID,
                "Client id must be positive",
                client_id=request.client_id,
            )

        if request.status is not None and request.status != OrderStatus.PENDIENTE:
            self._fail(
                ValidationFailure.INVALID_INITIAL_STATUS,
                f"New orders must start as {OrderStatus.PENDIENTE.value}",
                status=request.status.value,
            )

        if not request.lines:
            self._fail(
                ValidationFailure.EMPTY_ORDER_LINES,
                "Order must contain at least one line",
            )

        for index, line in enumerate(request.lines):
            self._validate_line(index, line)

        expected_total = sum((line.subtotal for line in request.lines), Decimal("0"))
        if not is_currency_amount(request.total) or request.total != expected_total:
            self._fail(
                ValidationFailure.TOTAL_MISMATCH,
                "Order total does not match the sum of line subtotals",
                total=str(request.total),
                expected_total=str(expected_total),
            )

        return ValidOrder(
            restaurant_id=request.restaurant_id,
            client_id=request.client_id,
            comments=request.comments,
            lines=request.lines,
            total=request.total,
        )

    def validate_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> Tuple[datetime, datetime]:
        """
        Validate a finder date range, inclusive on both ends.

        Returns:
            The bounds converted to UTC, naive ones read as UTC

        Raises:
            BadOrderRequest: If start is after end
        """
        start, end = as_utc(start), as_utc(end)
        if start > end:
            self._fail(
                ValidationFailure.INVALID_DATE_RANGE,
                "Start date must not be after end date",
                start=start.isoformat(),
                end=end.isoformat(),
            )
        return start, end

    def _validate_line(self, index: int, line: OrderLineRequest) -> None:
        if line.product_id <= 0:
            self._fail(
                ValidationFailure.INVALID_PRODUCT_ID,
                "Product id must be positive",
                line_index=index,
                product_id=line.product_id,
            )
        if line.quantity < 1:
            self._fail(
                ValidationFailure.INVALID_LINE_QUANTITY,
                "Line quantity must be at least 1",
                line_index=index,
                quantity=line.quantity,
            )
        if not is_currency_amount(line.subtotal):
            self._fail(
                ValidationFailure.INVALID_LINE_SUBTOTAL,
                "Line subtotal must be a non-negative amount with 2 decimals",
                line_index=index,
                subtotal=str(line.subtotal),
            )

    @staticmethod
    def _fail(reason: ValidationFailure, message: str, **context) -> None:
        logger.warning(
            "Order request rejected",
            reason=reason.value,
            **context,
        )
        raise BadOrderRequest(message, reason=reason, **context)
