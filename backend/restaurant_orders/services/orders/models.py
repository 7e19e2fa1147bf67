"""
Immutable value records used by the order lifecycle core.

Requests are deliberately permissive: they only coerce types, so that the
validator can report each business rule as its own failure reason.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from restaurant_orders.services.orders.enums import OrderStatus


class OrderLineRequest(BaseModel):
    """One requested line of a new order."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int
    subtotal: Decimal


class OrderRequest(BaseModel):
    """
    Proposed order as submitted by a client.

    Attributes:
        restaurant_id: Restaurant receiving the order
        client_id: Client placing the order
        status: Requested initial status, must be pendiente when given
        comments: Free text notes
        lines: Requested order lines
        total: Declared order total
    """

    model_config = ConfigDict(frozen=True)

    restaurant_id: int
    client_id: int
    status: Optional[OrderStatus] = None
    comments: Optional[str] = None
    lines: Tuple[OrderLineRequest, ...] = ()
    total: Decimal


class ValidOrder(BaseModel):
    """Order request that passed every structural and business rule."""

    model_config = ConfigDict(frozen=True)

    restaurant_id: int
    client_id: int
    comments: Optional[str] = None
    lines: Tuple[OrderLineRequest, ...]
    total: Decimal


class OrderLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    product_price: Optional[Decimal] = None
    quantity: int
    subtotal: Decimal


class Order(BaseModel):
    """
    Order record.

    ``id`` is None until the order store assigns one. Status changes produce
    a new record through ``with_status``.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    client_id: int
    restaurant_id: int
    restaurant_name: Optional[str] = None
    status: OrderStatus
    total: Decimal
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: Tuple[OrderLine, ...] = Field(..., min_length=1)

    def with_status(
        self,
        status: OrderStatus,
        updated_at: datetime,
        comments: Optional[str] = None,
    ) -> "Order":
        """
        Build the next version of this order.

        Args:
            status: New status
            updated_at: Timestamp of the accepted mutation
            comments: Replacement comments, current comments kept when None

        Returns:
            New Order record
        """
        return self.model_copy(
            update={
                "status": status,
                "updated_at": updated_at,
                "comments": self.comments if comments is None else comments,
            }
        )


class OrderPage(BaseModel):
    """One page of orders with the total number of matching rows."""

    model_config = ConfigDict(frozen=True)

    items: List[Order]
    total: int
    skip: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.skip + len(self.items) < self.total
