"""
Product data access repository.

Read and write access to product listings as needed by the order subsystem,
including the conditional stock decrement used when orders are booked.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.exceptions import store_error_from_exception
from ponno.core.logging import get_logger
from ponno.database.models.product import Product

logger = get_logger(__name__)


class ProductRepository:
    """Repository for product data access operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize product repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def get_product(
        self,
        product_id: uuid.UUID,
        active_only: bool = True,
    ) -> Optional[Product]:
        """
        Get product by ID.

        Args:
            product_id: Product identifier
            active_only: Ignore soft-deleted products

        Returns:
            Product if found, None otherwise

        Raises:
            StoreError: If query fails
        """
        try:
            stmt = select(Product).where(Product.id == product_id)
            if active_only:
                stmt = stmt.where(Product.is_active.is_(True))

            result = await self.session.execute(stmt)
            product = result.scalar_one_or_none()

            logger.debug(
                "Product lookup",
                product_id=str(product_id),
                found=product is not None,
            )
            return product

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch product",
                product_id=str(product_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to fetch product", product_id=str(product_id)
            ) from e

    async def update_product(
        self,
        product_id: uuid.UUID,
        **patch: Any,
    ) -> Optional[Product]:
        """
        Apply a column patch to a product.

        Args:
            product_id: Product identifier
            **patch: Column values to set

        Returns:
            Updated product, None if it does not exist

        Raises:
            StoreError: If the update fails
        """
        try:
            stmt = (
                update(Product)
                .where(Product.id == product_id)
                .values(**patch)
                .returning(Product)
                .execution_options(synchronize_session="fetch")
            )
            result = await self.session.execute(stmt)
            product = result.scalar_one_or_none()

            logger.info(
                "Product updated",
                product_id=str(product_id),
                fields=sorted(patch),
                found=product is not None,
            )
            return product

        except SQLAlchemyError as e:
            logger.error(
                "Failed to update product",
                product_id=str(product_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to update product", product_id=str(product_id)
            ) from e

    async def decrement_available_quantity(
        self,
        product_id: uuid.UUID,
        quantity: Decimal,
    ) -> bool:
        """
        Atomically take ``quantity`` out of a product's stock.

        The decrement only happens when enough stock is left, so two concurrent
        orders can never drive ``available_quantity`` below zero.

        Args:
            product_id: Product identifier
            quantity: Quantity to remove, positive

        Returns:
            True if a row was decremented, False if stock was insufficient

        Raises:
            StoreError: If the update fails
        """
        try:
            stmt = (
                update(Product)
                .where(
                    Product.id == product_id,
                    Product.available_quantity >= quantity,
                )
                .values(available_quantity=Product.available_quantity - quantity)
                .returning(Product.available_quantity)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            remaining = result.scalar_one_or_none()

            if remaining is None:
                logger.warning(
                    "Stock decrement affected no rows",
                    product_id=str(product_id),
                    quantity=str(quantity),
                )
                return False

            logger.info(
                "Stock decremented",
                product_id=str(product_id),
                quantity=str(quantity),
                remaining=str(remaining),
            )
            return True

        except SQLAlchemyError as e:
            logger.error(
                "Failed to decrement stock",
                product_id=str(product_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to update product stock", product_id=str(product_id)
            ) from e
