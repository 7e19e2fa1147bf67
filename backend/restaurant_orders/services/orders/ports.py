"""
Collaborator interfaces consumed by the order lifecycle service.

Implementations live at the boundary: SQLAlchemy adapters in
``repository.py``, the bearer token identity provider in ``api/deps.py`` and
in-memory fakes in the test suite.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from restaurant_orders.services.auth.identity import IdentityContext
from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.models import Order, OrderPage


class IdentityProvider(ABC):
    @abstractmethod
    def current_identity(self) -> IdentityContext:
        """Return the verified identity of the current caller."""


class RestaurantLookup(ABC):
    @abstractmethod
    def owner_id_of(self, restaurant_id: int) -> Optional[int]:
        """Return the owning user id, or None when the restaurant does not exist."""


class ClientLookup(ABC):
    @abstractmethod
    def exists(self, client_id: int) -> bool:
        ...


class ProductLookup(ABC):
    @abstractmethod
    def exists(self, product_id: int) -> bool:
        ...


class OrderStore(ABC):
    """
    Persistence collaborator for orders.

    Callers updating an order load it with ``for_update=True`` so concurrent
    updates of the same order are serialized by the store.
    """

    @abstractmethod
    def save(self, order: Order) -> Order:
        """Insert a new order (id None) or update status, comments and updated_at."""

    @abstractmethod
    def find_by_id(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        ...

    @abstractmethod
    def find_by_restaurant(self, restaurant_id: int) -> List[Order]:
        ...

    @abstractmethod
    def find_by_owner(self, owner_id: int, skip: int, limit: int) -> OrderPage:
        """Orders of every restaurant owned by ``owner_id``, newest first."""

    @abstractmethod
    def find_by_client(self, client_id: int) -> List[Order]:
        ...

    @abstractmethod
    def find_by_status(self, restaurant_id: int, status: OrderStatus) -> List[Order]:
        ...

    @abstractmethod
    def find_by_date_range(
        self, restaurant_id: int, start: datetime, end: datetime
    ) -> List[Order]:
        """Orders of a restaurant created within [start, end]."""

    @abstractmethod
    def find_by_client_and_date_range(
        self, client_id: int, start: datetime, end: datetime
    ) -> List[Order]:
        ...

    @abstractmethod
    def delete(self, order_id: int) -> None:
        ...
