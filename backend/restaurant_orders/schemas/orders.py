"""
Order Pydantic schemas for API request/response validation.

Request schemas only enforce transport-level shape (types and field sizes).
Business rules such as positive ids, quantities and the total invariant are
checked by the order validator so each failure gets its own reason.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.models import (
    Order,
    OrderLineRequest,
    OrderPage,
    OrderRequest,
)


class OrderLineCreate(BaseModel):
    """Order line in a create request."""

    product_id: int = Field(..., description="Ordered product identifier")
    quantity: int = Field(..., description="Number of units")
    subtotal: Decimal = Field(..., description="Line subtotal with 2 decimals")


class OrderCreateRequest(BaseModel):
    """Request schema for placing a new order."""

    model_config = ConfigDict(str_strip_whitespace=True)

    restaurant_id: int = Field(..., description="Restaurant receiving the order")
    client_id: int = Field(..., description="Client placing the order")
    status: Optional[OrderStatus] = Field(
        None,
        description="Initial status, must be pendiente when given",
    )
    comments: Optional[str] = Field(
        None,
        max_length=1000,
        description="Order notes",
    )
    lines: List[OrderLineCreate] = Field(
        default_factory=list,
        description="Order lines",
    )
    total: Decimal = Field(..., description="Order total")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return OrderStatus.from_string(v)
        return v

    def to_domain(self) -> OrderRequest:
        return OrderRequest(
            restaurant_id=self.restaurant_id,
            client_id=self.client_id,
            status=self.status,
            comments=self.comments,
            lines=tuple(
                OrderLineRequest(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    subtotal=line.subtotal,
                )
                for line in self.lines
            ),
            total=self.total,
        )


class OrderStatusUpdate(BaseModel):
    """Request schema for an order status change."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: OrderStatus = Field(..., description="Requested order status")
    comments: Optional[str] = Field(
        None,
        max_length=1000,
        description="Replacement order notes",
    )

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        """Accept status names in any case."""
        if isinstance(v, str):
            return OrderStatus.from_string(v)
        return v


class OrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    product_price: Optional[Decimal] = None
    quantity: int
    subtotal: Decimal


class OrderResponse(BaseModel):
    """Order details returned by every order endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Order identifier")
    client_id: int
    restaurant_id: int
    restaurant_name: Optional[str] = None
    status: OrderStatus
    total: Decimal
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[OrderLineResponse]

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls.model_validate(order)


class OrderPageResponse(BaseModel):
    """Paginated order listing."""

    items: List[OrderResponse]
    total: int = Field(..., description="Total number of matching orders")
    skip: int
    limit: int
    has_more: bool

    @classmethod
    def from_page(cls, page: OrderPage) -> "OrderPageResponse":
        return cls(
            items=[OrderResponse.from_order(order) for order in page.items],
            total=page.total,
            skip=page.skip,
            limit=page.limit,
            has_more=page.has_more,
        )
