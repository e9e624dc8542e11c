"""
User data access repository.

Users are created by the identity flow; this repository only reads them.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.exceptions import store_error_from_exception
from ponno.core.logging import get_logger
from ponno.database.models.user import User, UserRole

logger = get_logger(__name__)


class UserRepository:
    """Repository for user lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        """
        Get user by ID regardless of role or status.

        Raises:
            StoreError: If query fails
        """
        try:
            result = await self.session.execute(
                select(User).where(User.id == user_id)
            )
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error("Failed to fetch user", user_id=str(user_id), error=str(e))
            raise store_error_from_exception(
                e, "Failed to fetch user", user_id=str(user_id)
            ) from e

    async def get_active_agent(self, agent_id: uuid.UUID) -> Optional[User]:
        """
        Get a user only if it is an active agent.

        Args:
            agent_id: Candidate agent identifier

        Returns:
            The agent, or None if the user is missing, inactive or not an agent

        Raises:
            StoreError: If query fails
        """
        try:
            stmt = select(User).where(
                User.id == agent_id,
                User.role == UserRole.AGENT,
                User.is_active.is_(True),
            )
            result = await self.session.execute(stmt)
            agent = result.scalar_one_or_none()

            logger.debug(
                "Agent lookup",
                agent_id=str(agent_id),
                found=agent is not None,
            )
            return agent

        except SQLAlchemyError as e:
            logger.error("Failed to fetch agent", agent_id=str(agent_id), error=str(e))
            raise store_error_from_exception(
                e, "Failed to fetch agent", agent_id=str(agent_id)
            ) from e

    async def list_active_agents(
        self,
        district_id: uuid.UUID,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[Sequence[User], int]:
        """
        List active agents of a district ordered by name.

        Args:
            district_id: District identifier
            skip: Number of records to skip
            limit: Maximum number of records, None for all

        Returns:
            Tuple of (agents, total_count)

        Raises:
            StoreError: If query fails
        """
        conditions = (
            User.role == UserRole.AGENT,
            User.is_active.is_(True),
            User.district_id == district_id,
        )
        try:
            stmt = select(User).where(*conditions).order_by(User.name).offset(skip)
            if limit is not None:
                stmt = stmt.limit(limit)

            count_stmt = select(func.count()).select_from(User).where(*conditions)

            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)

            agents = result.scalars().all()
            total = count_result.scalar_one()

            logger.debug(
                "Active agents fetched",
                district_id=str(district_id),
                count=len(agents),
                total=total,
            )
            return agents, total

        except SQLAlchemyError as e:
            logger.error(
                "Failed to list agents",
                district_id=str(district_id),
                error=str(e),
            )
            raise store_error_from_exception(
                e, "Failed to fetch agents", district_id=str(district_id)
            ) from e
