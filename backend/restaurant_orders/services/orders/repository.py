"""
Order data access with SQLAlchemy.

This module implements the persistence collaborators of the order lifecycle
service on top of a synchronous SQLAlchemy Session: SqlAlchemyOrderStore and
the restaurant, client and product lookups. The session is owned by the
request; these classes flush but never commit. Database errors are raised as
OrderRepositoryError.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restaurant_orders.core.logging import get_logger
from restaurant_orders.database.models.order import Order as OrderRow
from restaurant_orders.database.models.order import OrderLine as OrderLineRow
from restaurant_orders.database.models.restaurant import Product, Restaurant
from restaurant_orders.database.models.user import User
from restaurant_orders.services.auth.identity import UserRole
from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.models import Order, OrderLine, OrderPage
from restaurant_orders.services.orders.ports import (
    ClientLookup,
    OrderStore,
    ProductLookup,
    RestaurantLookup,
)

logger = get_logger(__name__)


class OrderRepositoryError(Exception):
    """Base exception for order repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


@contextmanager
def _database_errors(message: str, **context: Any) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(message, error=str(e), error_type=type(e).__name__, **context)
        raise OrderRepositoryError(message, error=str(e), **context) from e


def to_domain(row: OrderRow) -> Order:
    """Convert an ORM order row, lines included, to an Order record."""
    return Order(
        id=row.id,
        client_id=row.client_id,
        restaurant_id=row.restaurant_id,
        restaurant_name=row.restaurant.name if row.restaurant else None,
        status=row.status,
        total=row.total,
        comments=row.comments,
        created_at=row.created_at,
        updated_at=row.updated_at,
        lines=tuple(
            OrderLine(
                id=line.id,
                product_id=line.product_id,
                product_name=line.product.name if line.product else None,
                product_price=line.product.price if line.product else None,
                quantity=line.quantity,
                subtotal=line.subtotal,
            )
            for line in row.lines
        ),
    )


class SqlAlchemyOrderStore(OrderStore):
    """
    Order store backed by the orders and order_lines tables.

    Attributes:
        session: Request-scoped database session
    """

    def __init__(self, session: Session):
        self.session = session

    def save(self, order: Order) -> Order:
        """
        Insert a new order with its lines, or update an existing one.

        Updates only touch status, comments and updated_at; the other columns
        are immutable after creation.

        Raises:
            OrderRepositoryError: If the write fails or the order is gone
        """
        if order.id is None:
            return self._insert(order)

        with _database_errors("Failed to update order", order_id=order.id):
            row = self.session.get(OrderRow, order.id)
            if row is None:
                raise OrderRepositoryError(
                    "Order disappeared before update", order_id=order.id
                )
            row.status = order.status
            row.comments = order.comments
            row.updated_at = order.updated_at
            self.session.flush()

            logger.debug(
                "Order updated",
                order_id=row.id,
                status=row.status.value,
            )
            return to_domain(row)

    def _insert(self, order: Order) -> Order:
        with _database_errors(
            "Failed to create order",
            client_id=order.client_id,
            restaurant_id=order.restaurant_id,
        ):
            row = OrderRow(
                client_id=order.client_id,
                restaurant_id=order.restaurant_id,
                status=order.status,
                total=order.total,
                comments=order.comments,
                created_at=order.created_at,
                updated_at=order.updated_at,
                lines=[
                    OrderLineRow(
                        product_id=line.product_id,
                        quantity=line.quantity,
                        subtotal=line.subtotal,
                    )
                    for line in order.lines
                ],
            )
            self.session.add(row)
            self.session.flush()

            logger.debug(
                "Order inserted",
                order_id=row.id,
                line_count=len(row.lines),
            )
            return to_domain(row)

    def find_by_id(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        with _database_errors("Failed to fetch order", order_id=order_id):
            stmt = select(OrderRow).where(OrderRow.id == order_id)
            if for_update:
                stmt = stmt.with_for_update(of=OrderRow)
            row = self.session.scalars(stmt).unique().one_or_none()
            return to_domain(row) if row is not None else None

    def find_by_restaurant(self, restaurant_id: int) -> List[Order]:
        with _database_errors(
            "Failed to fetch restaurant orders", restaurant_id=restaurant_id
        ):
            return self._fetch(
                select(OrderRow).where(OrderRow.restaurant_id == restaurant_id)
            )

    def find_by_owner(self, owner_id: int, skip: int, limit: int) -> OrderPage:
        """
        Page through orders of every restaurant owned by ``owner_id``.

        Returns:
            OrderPage, empty when the owner has no restaurants
        """
        with _database_errors("Failed to fetch owner orders", owner_id=owner_id):
            condition = OrderRow.restaurant_id.in_(
                select(Restaurant.id).where(Restaurant.owner_id == owner_id)
            )
            total = self.session.scalar(
                select(func.count()).select_from(OrderRow).where(condition)
            )
            items = self._fetch(
                select(OrderRow).where(condition).offset(skip).limit(limit)
            )

            logger.debug(
                "Owner orders fetched",
                owner_id=owner_id,
                count=len(items),
                total=total,
            )
            return OrderPage(items=items, total=total or 0, skip=skip, limit=limit)

    def find_by_client(self, client_id: int) -> List[Order]:
        with _database_errors("Failed to fetch client orders", client_id=client_id):
            return self._fetch(select(OrderRow).where(OrderRow.client_id == client_id))

    def find_by_status(self, restaurant_id: int, status: OrderStatus) -> List[Order]:
        with _database_errors(
            "Failed to fetch orders by status",
            restaurant_id=restaurant_id,
            status=status.value,
        ):
            return self._fetch(
                select(OrderRow).where(
                    OrderRow.restaurant_id == restaurant_id,
                    OrderRow.status == status,
                )
            )

    def find_by_date_range(
        self, restaurant_id: int, start: datetime, end: datetime
    ) -> List[Order]:
        with _database_errors(
            "Failed to fetch orders by date range", restaurant_id=restaurant_id
        ):
            return self._fetch(
                select(OrderRow).where(
                    OrderRow.restaurant_id == restaurant_id,
                    OrderRow.created_at.between(start, end),
                )
            )

    def find_by_client_and_date_range(
        self, client_id: int, start: datetime, end: datetime
    ) -> List[Order]:
        with _database_errors(
            "Failed to fetch client orders by date range", client_id=client_id
        ):
            return self._fetch(
                select(OrderRow).where(
                    OrderRow.client_id == client_id,
                    OrderRow.created_at.between(start, end),
                )
            )

    def delete(self, order_id: int) -> None:
        with _database_errors("Failed to delete order", order_id=order_id):
            row = self.session.get(OrderRow, order_id)
            if row is None:
                return
            self.session.delete(row)
            self.session.flush()
            logger.debug("Order row deleted", order_id=order_id)

    def _fetch(self, stmt: Select) -> List[Order]:
        stmt = stmt.order_by(OrderRow.created_at.desc(), OrderRow.id.desc())
        return [to_domain(row) for row in self.session.scalars(stmt).unique()]


class SqlAlchemyRestaurantLookup(RestaurantLookup):
    def __init__(self, session: Session):
        self.session = session

    def owner_id_of(self, restaurant_id: int) -> Optional[int]:
        with _database_errors(
            "Failed to resolve restaurant owner", restaurant_id=restaurant_id
        ):
            return self.session.scalar(
                select(Restaurant.owner_id).where(Restaurant.id == restaurant_id)
            )


class SqlAlchemyClientLookup(ClientLookup):
    """A client is a user with the CLIENTE role."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, client_id: int) -> bool:
        with _database_errors("Failed to check client", client_id=client_id):
            found = self.session.scalar(
                select(User.id).where(
                    User.id == client_id,
                    User.role == UserRole.CLIENTE,
                )
            )
            return found is not None


class SqlAlchemyProductLookup(ProductLookup):
    def __init__(self, session: Session):
        self.session = session

    def exists(self, product_id: int) -> bool:
        with _database_errors("Failed to check product", product_id=product_id):
            found = self.session.scalar(
                select(Product.id).where(Product.id == product_id)
            )
            return found is not None
