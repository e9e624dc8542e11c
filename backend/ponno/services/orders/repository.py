"""
Order data access repository.

This module implements the OrderRepository class providing async methods for
inserting orders, applying column patches, fetching orders with their product,
farmer, customer and agent loaded, and listing orders under a role predicate
with filtering, sorting and pagination. Database failures are logged and
translated into StoreError.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ponno.core.exceptions import store_error_from_exception
from ponno.core.logging import get_logger
from ponno.database.models.order import Order
from ponno.database.models.product import Product
from ponno.services.orders.enums import OrderStatus

logger = get_logger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_price": Order.total_price,
    "status": Order.status,
}
DEFAULT_SORT_COLUMN = "created_at"


def _order_load_options() -> list[Any]:
    return [
        selectinload(Order.product).selectinload(Product.farmer),
        selectinload(Order.customer),
        selectinload(Order.agent),
    ]


class OrderRepository:
    """
    Repository for order data access operations.

    All methods share the caller's session, so writes made here take part in
    the request's unit of work and are committed or rolled back together.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def insert_order(self, **data: Any) -> Order:
        """
        Insert a new order and return it with relationships loaded.

        Args:
            **data: Order column values

        Returns:
            Created order

        Raises:
            StoreError: If the insert fails
        """
        try:
            order = Order(**data)
            self.session.add(order)
            await self.session.flush()

            logger.info(
                "Order inserted",
                order_id=str(order.id),
                product_id=str(order.product_id),
                customer_id=str(order.customer_id),
            )

        except SQLAlchemyError as e:
            logger.error(
                "Order insert failed",
                product_id=str(data.get("product_id")),
                error=str(e),
            )
            raise store_error_from_exception(e, "Failed to create order") from e

        return await self.get_order(order.id)

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Get order by ID with product, farmer, customer and agent loaded.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise

        Raises:
            StoreError: If query fails
        """
        try:
            stmt = (
                select(Order)
                .where(Order.id == order_id)
                .options(*_order_load_options())
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(stmt)
            order = result.scalar_one_or_none()

            logger.debug(
                "Order lookup",
                order_id=str(order_id),
                found=order is not None,
            )
            return order

        except SQLAlchemyError as e:
            logger.error("Failed to fetch order", order_id=str(order_id), error=str(e))
            raise store_error_from_exception(
                e, "Failed to fetch order", order_id=str(order_id)
            ) from e

    async def update_order(self, order_id: uuid.UUID, **patch: Any) -> Optional[Order]:
        """
        Apply a column patch to an order.

        Args:
            order_id: Order identifier
            **patch: Column values to set

        Returns:
            Updated order with relationships loaded, None if it does not exist

        Raises:
            StoreError: If the update fails
        """
        try:
            stmt = (
                update(Order)
                .where(Order.id == order_id)
                .values(**patch)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)

            logger.info(
                "Order updated",
                order_id=str(order_id),
                fields=sorted(patch),
                rowcount=result.rowcount,
            )

        except SQLAlchemyError as e:
            logger.error("Order update failed", order_id=str(order_id), error=str(e))
            raise store_error_from_exception(
                e, "Failed to update order", order_id=str(order_id)
            ) from e

        if not result.rowcount:
            return None
        return await self.get_order(order_id)

    async def list_orders(
        self,
        customer_id: Optional[uuid.UUID] = None,
        agent_id: Optional[uuid.UUID] = None,
        farmer_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
        sort_by: str = DEFAULT_SORT_COLUMN,
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Order], int]:
        """
        List orders matching a role predicate and optional filters.

        Args:
            customer_id: Restrict to orders placed by this customer
            agent_id: Restrict to orders assigned to this agent
            farmer_id: Restrict to orders for this farmer's products
            status: Optional status filter
            sort_by: Sort column name, unknown names fall back to created_at
            sort_order: "asc" or "desc"
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders, total_count)

        Raises:
            StoreError: If query fails
        """
        conditions = []
        if customer_id is not None:
            conditions.append(Order.customer_id == customer_id)
        if agent_id is not None:
            conditions.append(Order.agent_id == agent_id)
        if status is not None:
            conditions.append(Order.status == status)

        sort_column = SORTABLE_COLUMNS.get(sort_by, SORTABLE_COLUMNS[DEFAULT_SORT_COLUMN])
        ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()

        try:
            stmt = select(Order).options(*_order_load_options())
            count_stmt = select(func.count()).select_from(Order)

            if farmer_id is not None:
                stmt = stmt.join(Order.product)
                count_stmt = count_stmt.join(Product, Order.product_id == Product.id)
                conditions.append(Product.farmer_id == farmer_id)

            stmt = stmt.where(*conditions).order_by(ordering).offset(skip).limit(limit)
            count_stmt = count_stmt.where(*conditions)

            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)

            orders = result.scalars().all()
            total = count_result.scalar_one()

            logger.debug(
                "Orders listed",
                customer_id=str(customer_id) if customer_id else None,
                agent_id=str(agent_id) if agent_id else None,
                farmer_id=str(farmer_id) if farmer_id else None,
                status=status.value if status else None,
                count=len(orders),
                total=total,
            )
            return orders, total

        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise store_error_from_exception(e, "Failed to fetch orders") from e

    async def delete_order(self, order_id: uuid.UUID) -> bool:
        """
        Permanently remove an order row.

        Returns:
            True if a row was deleted

        Raises:
            StoreError: If the delete fails
        """
        try:
            result = await self.session.execute(
                delete(Order)
                .where(Order.id == order_id)
                .execution_options(synchronize_session=False)
            )
            deleted = bool(result.rowcount)

            logger.info("Order deleted", order_id=str(order_id), deleted=deleted)
            return deleted

        except SQLAlchemyError as e:
            logger.error("Order delete failed", order_id=str(order_id), error=str(e))
            raise store_error_from_exception(
                e, "Failed to delete order", order_id=str(order_id)
            ) from e
