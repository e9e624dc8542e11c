"""
Order model for customer purchases of farmer products.

An order captures a price snapshot: ``unit_price`` is copied from the product
when the order is booked and ``total_price`` is computed once from it, so later
price changes never alter existing orders. Commission is earned by the agent
attached to the order.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ponno.database.base import BaseModel
from ponno.database.models.product import Product
from ponno.database.models.user import User
from ponno.services.orders.enums import OrderStatus


class Order(BaseModel):
    """
    Customer order for a single product.

    Attributes:
        product_id: Ordered product
        customer_id: Customer who placed the order
        agent_id: Delivery agent, optional
        quantity: Ordered quantity, positive
        unit_price: Product price at booking time
        total_price: quantity x unit_price at booking time
        commission: Agent commission amount, zero without an agent
        commission_rate: Commission percentage
        status: Lifecycle status
        delivery_address: Free-text delivery address
        customer_notes: Notes written by the customer
        agent_notes: Notes written by the agent on status updates
    """

    __tablename__ = "orders"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Ordered product",
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Customer who placed the order",
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Assigned delivery agent",
    )

    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Product price snapshot at booking time",
    )

    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    commission: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
    )

    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("5.00"),
        server_default="5.00",
        comment="Commission percentage",
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=OrderStatus.BOOKED,
        server_default=OrderStatus.BOOKED.value,
        index=True,
    )

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    agent_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    product: Mapped[Product] = relationship(
        Product,
        foreign_keys=[product_id],
        lazy="raise",
    )

    customer: Mapped[User] = relationship(
        User,
        foreign_keys=[customer_id],
        lazy="raise",
    )

    agent: Mapped[Optional[User]] = relationship(
        User,
        foreign_keys=[agent_id],
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_orders_created_at", "created_at"),
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
        CheckConstraint(
            "status IN ('booked', 'confirmed', 'picked', 'delivered', 'cancelled')",
            name="ck_orders_status_valid",
        ),
        CheckConstraint(
            "agent_id IS NOT NULL OR commission = 0",
            name="ck_orders_commission_requires_agent",
        ),
        {"comment": "Customer orders with price snapshot and agent commission"},
    )

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, status={self.status.value}, "
            f"total_price={self.total_price})>"
        )

    def involves(self, user_id: uuid.UUID) -> bool:
        """
        Check whether a user is a party to this order.

        Parties are the customer, the assigned agent and the farmer owning the
        ordered product. Requires ``product`` to be loaded.
        """
        return user_id in (self.customer_id, self.agent_id, self.product.farmer_id)
