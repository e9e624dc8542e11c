"""
Database models package initialization.

Models are imported here so they are registered with the Base metadata for
Alembic and relationship resolution.
"""

from ponno.database.base import Base, BaseModel, TimestampMixin, UUIDMixin
from ponno.database.models.district import District
from ponno.database.models.user import User, UserRole
from ponno.database.models.product import Product
from ponno.database.models.order import Order

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "District",
    "User",
    "UserRole",
    "Product",
    "Order",
]
