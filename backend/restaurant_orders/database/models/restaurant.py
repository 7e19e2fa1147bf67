"""
Restaurant and product models.

Catalog management happens elsewhere; orders only need the restaurant owner,
the restaurant name and product existence, name and price.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant_orders.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from restaurant_orders.database.models.user import User


class Restaurant(Base, TimestampMixin):
    """
    Restaurant owned by a RESTAURANTE user.

    Attributes:
        id: Unique restaurant identifier
        owner_id: Owning user
        name: Restaurant name
        products: Products on the menu
    """

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="User who owns the restaurant",
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Restaurant name",
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="restaurants",
        lazy="joined",
    )

    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="restaurant",
        lazy="select",
    )


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Unit price",
    )

    restaurant: Mapped["Restaurant"] = relationship(
        "Restaurant",
        back_populates="products",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )
