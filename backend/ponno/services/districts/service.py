"""
District service.

Lookup and administration of districts. Deletion is refused while any user or
product still references the district.
"""

import math
import uuid
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.exceptions import BusinessRuleError, NotFoundError
from ponno.core.logging import get_logger
from ponno.database.models.district import District
from ponno.database.models.user import User
from ponno.services.districts.repository import DistrictRepository
from ponno.services.users.repository import UserRepository

logger = get_logger(__name__)


class DistrictService:
    """Service for district lookup and administration."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.districts = DistrictRepository(session)
        self.users = UserRepository(session)

    async def list_districts(self) -> Sequence[District]:
        return await self.districts.list_districts()

    async def get_district(self, district_id: uuid.UUID) -> District:
        """
        Get a district or raise.

        Raises:
            NotFoundError: DISTRICT_NOT_FOUND if it does not exist
        """
        district = await self.districts.get_district(district_id)
        if district is None:
            raise NotFoundError(
                "District not found",
                code="DISTRICT_NOT_FOUND",
                district_id=str(district_id),
            )
        return district

    async def get_district_with_stats(
        self,
        district_id: uuid.UUID,
    ) -> tuple[District, dict[str, int]]:
        district = await self.get_district(district_id)
        stats = await self.districts.get_district_stats(district_id)
        return district, stats

    async def list_district_agents(
        self,
        district_id: uuid.UUID,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[District, Sequence[User], dict[str, Any]]:
        """
        Page through the active agents of a district.

        Returns:
            Tuple of (district, agents, pagination)

        Raises:
            NotFoundError: DISTRICT_NOT_FOUND if the district does not exist
        """
        district = await self.get_district(district_id)
        agents, total = await self.users.list_active_agents(
            district_id,
            skip=(page - 1) * limit,
            limit=limit,
        )
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }
        return district, agents, pagination

    async def create_district(self, name: str) -> District:
        """
        Create a district with a unique name.

        Raises:
            StoreError: DUPLICATE_ENTRY (409) if the name is taken
        """
        district = await self.districts.create_district(name.strip())
        logger.info("District registered", district_id=str(district.id))
        return district

    async def delete_district(self, district_id: uuid.UUID) -> None:
        """
        Delete an unreferenced district.

        Raises:
            NotFoundError: DISTRICT_NOT_FOUND if it does not exist
            BusinessRuleError: DISTRICT_IN_USE if users or products reference it
        """
        await self.get_district(district_id)

        if await self.districts.is_in_use(district_id):
            raise BusinessRuleError(
                "Cannot delete district with existing users or products",
                code="DISTRICT_IN_USE",
                district_id=str(district_id),
            )

        await self.districts.delete_district(district_id)
