"""
Database models package initialization.

Models are imported here so they register with the Base metadata before
``Base.metadata.create_all`` or relationship resolution runs.
"""

from restaurant_orders.database.base import Base, TimestampMixin
from restaurant_orders.database.models.order import Order, OrderLine
from restaurant_orders.database.models.restaurant import Product, Restaurant
from restaurant_orders.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Restaurant",
    "Product",
    "Order",
    "OrderLine",
]
