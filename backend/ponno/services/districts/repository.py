"""
District data access repository.

CRUD access to districts plus the reference and statistics queries used to
guard deletion and to describe a district.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.exceptions import store_error_from_exception
from ponno.core.logging import get_logger
from ponno.database.models.district import District
from ponno.database.models.order import Order
from ponno.database.models.product import Product
from ponno.database.models.user import User, UserRole

logger = get_logger(__name__)


class DistrictRepository:
    """Repository for district data access operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize district repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def list_districts(self) -> Sequence[District]:
        """
        Get all districts ordered by name.

        Raises:
            StoreError: If query fails
        """
        try:
            result = await self.session.execute(select(District).order_by(District.name))
            return result.scalars().all()

        except SQLAlchemyError as e:
            logger.error("Failed to list districts", error=str(e))
            raise store_error_from_exception(e, "Failed to fetch districts") from e

    async def get_district(self, district_id: uuid.UUID) -> Optional[District]:
        """
        Get district by ID.

        Returns:
            District if found, None otherwise

        Raises:
            StoreError: If query fails
        """
        try:
            result = await self.session.execute(
                select(District).where(District.id == district_id)
            )
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch district",
                district_id=str(district_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to fetch district", district_id=str(district_id)
            ) from e

    async def create_district(self, name: str) -> District:
        """
        Create a district.

        Args:
            name: Unique district name

        Returns:
            Created district

        Raises:
            StoreError: DUPLICATE_ENTRY if the name is taken, STORE_ERROR on
                other failures
        """
        try:
            district = District(name=name)
            self.session.add(district)
            await self.session.flush()
            await self.session.refresh(district)

            logger.info("District created", district_id=str(district.id), name=name)
            return district

        except SQLAlchemyError as e:
            logger.error("Failed to create district", name=name, error=str(e))
            raise store_error_from_exception(
                e, "Failed to create district", name=name
            ) from e

    async def delete_district(self, district_id: uuid.UUID) -> bool:
        """
        Delete a district.

        Returns:
            True if a row was deleted

        Raises:
            StoreError: If the delete fails
        """
        try:
            result = await self.session.execute(
                delete(District)
                .where(District.id == district_id)
                .execution_options(synchronize_session=False)
            )
            deleted = bool(result.rowcount)

            logger.info("District deleted", district_id=str(district_id), deleted=deleted)
            return deleted

        except SQLAlchemyError as e:
            logger.error(
                "Failed to delete district",
                district_id=str(district_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to delete district", district_id=str(district_id)
            ) from e

    async def is_in_use(self, district_id: uuid.UUID) -> bool:
        """
        Check whether any user or product references the district.

        Raises:
            StoreError: If query fails
        """
        try:
            stmt = select(
                exists().where(User.district_id == district_id)
                | exists().where(Product.district_id == district_id)
            )
            result = await self.session.execute(stmt)
            return bool(result.scalar())

        except SQLAlchemyError as e:
            logger.error(
                "Failed to check district references",
                district_id=str(district_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to check district references", district_id=str(district_id)
            ) from e

    async def get_district_stats(self, district_id: uuid.UUID) -> dict[str, int]:
        """
        Count active users by role, active products and orders in a district.

        Orders are attributed to the district of their product.

        Returns:
            Mapping of statistic name to count

        Raises:
            StoreError: If query fails
        """

        def active_users(*roles: UserRole):
            stmt = (
                select(func.count())
                .select_from(User)
                .where(User.district_id == district_id, User.is_active.is_(True))
            )
            if roles:
                stmt = stmt.where(User.role.in_(roles))
            return stmt.scalar_subquery()

        stmt = select(
            active_users().label("total_users"),
            active_users(UserRole.FARMER).label("total_farmers"),
            active_users(UserRole.CUSTOMER).label("total_customers"),
            active_users(UserRole.AGENT).label("total_agents"),
            select(func.count())
            .select_from(Product)
            .where(Product.district_id == district_id, Product.is_active.is_(True))
            .scalar_subquery()
            .label("total_products"),
            select(func.count())
            .select_from(Order)
            .join(Product, Order.product_id == Product.id)
            .where(Product.district_id == district_id)
            .scalar_subquery()
            .label("total_orders"),
        )

        try:
            result = await self.session.execute(stmt)
            row = result.one()
            return dict(row._mapping)

        except SQLAlchemyError as e:
            logger.error(
                "Failed to compute district stats",
                district_id=str(district_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to fetch district statistics", district_id=str(district_id)
            ) from e
