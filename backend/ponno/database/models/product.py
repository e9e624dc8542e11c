"""
Product model for farmer listings.

Products belong to a farmer and a district. ``is_active`` is the soft-delete
marker; orders reference products, so listings are deactivated rather than
removed. ``available_quantity`` is decremented when orders are placed.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ponno.database.base import BaseModel
from ponno.database.models.district import District
from ponno.database.models.user import User


class Product(BaseModel):
    """
    Farmer's product listing.

    Attributes:
        farmer_id: Owning farmer
        name: Product name
        description: Free-text description
        price: Unit price, positive
        image_url: Product image in the object store
        district_id: District the product is sold in
        category: Optional category label
        unit: Sale unit (kg, piece, liter, dozen, quintal)
        available_quantity: Stock left for ordering, never negative
        is_active: Soft-delete marker
    """

    __tablename__ = "products"

    farmer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning farmer",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Unit price",
    )

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    district_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("districts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="District the product is sold in",
    )

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    unit: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="kg",
        server_default="kg",
    )

    available_quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
        comment="Stock available for ordering",
    )

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        index=True,
        comment="Soft-delete marker",
    )

    farmer: Mapped[User] = relationship(User, foreign_keys=[farmer_id], lazy="raise")

    district: Mapped[District] = relationship(
        District,
        foreign_keys=[district_id],
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_products_district_active", "district_id", "is_active"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        CheckConstraint(
            "available_quantity >= 0",
            name="ck_products_available_quantity_non_negative",
        ),
        {"comment": "Farmer product listings"},
    )

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, name='{self.name}', price={self.price}, "
            f"available_quantity={self.available_quantity})>"
        )
