"""
User model.

Users are created by the authentication service. This API only reads them to
confirm that an order's client exists and to resolve restaurant ownership.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant_orders.database.base import Base, TimestampMixin
from restaurant_orders.services.auth.identity import UserRole

if TYPE_CHECKING:
    from restaurant_orders.database.models.restaurant import Restaurant


class User(Base, TimestampMixin):
    """
    User account.

    Attributes:
        id: Unique user identifier
        email: User email address (unique)
        full_name: Display name
        role: Role carried in issued tokens
        restaurants: Restaurants owned by this user
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )

    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
        comment="User display name",
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            create_constraint=True,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=UserRole.CLIENTE,
        index=True,
        comment="User role for access control",
    )

    restaurants: Mapped[List["Restaurant"]] = relationship(
        "Restaurant",
        back_populates="owner",
        lazy="select",
    )
