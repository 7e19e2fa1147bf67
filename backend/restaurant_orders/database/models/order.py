"""
Order and order line models.

An order belongs to one client and one restaurant and owns its lines: lines
are inserted with the order and deleted with it.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant_orders.database.base import Base, TimestampMixin
from restaurant_orders.services.orders.enums import OrderStatus

if TYPE_CHECKING:
    from restaurant_orders.database.models.restaurant import Product, Restaurant


class Order(Base, TimestampMixin):
    """
    Client order placed with a restaurant.

    Attributes:
        id: Unique order identifier
        client_id: User who placed the order
        restaurant_id: Restaurant receiving the order
        status: Current order status
        total: Order total, equal to the sum of line subtotals
        comments: Free text notes
        lines: Order lines in insertion order
        created_at: Record creation timestamp (from TimestampMixin)
        updated_at: Last modification timestamp (from TimestampMixin)
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    client_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="User who placed the order",
    )

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Restaurant receiving the order",
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            create_constraint=True,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=OrderStatus.PENDIENTE,
        index=True,
        comment="Current order status",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Order total",
    )

    comments: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Order notes",
    )

    restaurant: Mapped["Restaurant"] = relationship("Restaurant", lazy="joined")

    lines: Mapped[List["OrderLine"]] = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_orders_total_non_negative"),
        Index("ix_orders_restaurant_created", "restaurant_id", "created_at"),
        Index("ix_orders_client_created", "client_id", "created_at"),
    )


class OrderLine(Base):
    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
    )

    order: Mapped["Order"] = relationship("Order", back_populates="lines")
    product: Mapped["Product"] = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        CheckConstraint("subtotal >= 0", name="ck_order_lines_subtotal_non_negative"),
    )
