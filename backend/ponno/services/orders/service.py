"""
Order service orchestrating the order lifecycle.

This module implements the OrderService class which owns order creation,
status transitions, agent assignment, commission calculation and role-scoped
order visibility. Every authorization and business rule check happens before
the first write, so a rejected request leaves the store untouched.
"""

import math
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ponno.core.config import get_settings
from ponno.core.exceptions import (
    AccessDeniedError,
    DistrictMismatchError,
    InsufficientStockError,
    NotFoundError,
    PermissionDeniedError,
)
from ponno.core.logging import get_logger
from ponno.database.models.order import Order
from ponno.database.models.user import User, UserRole
from ponno.services.orders.enums import OrderStatus
from ponno.services.orders.repository import OrderRepository
from ponno.services.orders.state_machine import OrderStateMachine
from ponno.services.products.repository import ProductRepository
from ponno.services.users.repository import UserRepository

logger = get_logger(__name__)

CENT = Decimal("0.01")


def calculate_commission(total_price: Decimal, rate: Decimal) -> Decimal:
    """
    Commission earned by an agent on an order.

    Args:
        total_price: Order total
        rate: Commission percentage

    Returns:
        total_price x rate / 100, rounded to cents
    """
    return (total_price * rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderService:
    """
    Service for managing the order lifecycle.

    Coordinates the order, product and user repositories and the state
    machine. The caller passed to each operation is the authenticated user
    resolved for the current request.
    """

    def __init__(
        self,
        session: AsyncSession,
        commission_rate: Optional[Decimal] = None,
    ):
        """
        Initialize order service.

        Args:
            session: Async database session shared by all repositories
            commission_rate: Platform commission percentage, defaults to the
                configured rate
        """
        self.session = session
        self.orders = OrderRepository(session)
        self.products = ProductRepository(session)
        self.users = UserRepository(session)
        self.state_machine = OrderStateMachine()
        self.commission_rate = (
            commission_rate
            if commission_rate is not None
            else get_settings().commission_rate
        )

    async def create_order(
        self,
        caller: User,
        product_id: uuid.UUID,
        quantity: Decimal,
        agent_id: Optional[uuid.UUID] = None,
        delivery_address: Optional[str] = None,
        customer_notes: Optional[str] = None,
    ) -> Order:
        """
        Book an order for a product.

        Args:
            caller: Authenticated user placing the order
            product_id: Product to order
            quantity: Quantity to order, positive
            agent_id: Optional delivery agent
            delivery_address: Optional delivery address
            customer_notes: Optional notes from the customer

        Returns:
            Created order in the booked state

        Raises:
            PermissionDeniedError: If caller is neither customer nor admin
            NotFoundError: If product or agent is missing or inactive
            InsufficientStockError: If quantity exceeds available stock
            DistrictMismatchError: If agent and product districts differ
        """
        logger.info(
            "Creating order",
            caller_id=str(caller.id),
            product_id=str(product_id),
            quantity=str(quantity),
            agent_id=str(agent_id) if agent_id else None,
        )

        if not caller.has_role(UserRole.CUSTOMER, UserRole.ADMIN):
            raise PermissionDeniedError(
                "Only customers can create orders",
                user_id=str(caller.id),
                role=caller.role.value,
            )

        product = await self.products.get_product(product_id)
        if product is None:
            raise NotFoundError(
                "Product not found or inactive",
                code="PRODUCT_NOT_FOUND",
                product_id=str(product_id),
            )

        if product.available_quantity < quantity:
            raise InsufficientStockError(
                "Insufficient quantity available",
                product_id=str(product_id),
                requested=str(quantity),
                available=str(product.available_quantity),
            )

        if agent_id is not None:
            await self._get_eligible_agent(agent_id, product.district_id)

        unit_price = product.price
        total_price = (unit_price * quantity).quantize(CENT, rounding=ROUND_HALF_UP)
        commission = (
            calculate_commission(total_price, self.commission_rate)
            if agent_id is not None
            else Decimal("0")
        )

        if not await self.products.decrement_available_quantity(product_id, quantity):
            raise InsufficientStockError(
                "Insufficient quantity available",
                product_id=str(product_id),
                requested=str(quantity),
            )

        order = await self.orders.insert_order(
            product_id=product_id,
            customer_id=caller.id,
            agent_id=agent_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            commission=commission,
            commission_rate=self.commission_rate,
            status=OrderStatus.BOOKED,
            delivery_address=delivery_address,
            customer_notes=customer_notes,
        )

        logger.info(
            "Order created",
            order_id=str(order.id),
            total_price=str(total_price),
            commission=str(commission),
        )
        return order

    async def update_order_status(
        self,
        caller: User,
        order_id: uuid.UUID,
        target_status: OrderStatus,
        agent_notes: Optional[str] = None,
    ) -> Order:
        """
        Move an order along its lifecycle.

        Args:
            caller: Authenticated user requesting the change
            order_id: Order to update
            target_status: Requested status
            agent_notes: Optional notes stored with the change

        Returns:
            Updated order

        Raises:
            NotFoundError: If order does not exist
            PermissionDeniedError: If caller is not admin, the assigned agent
                or the product's farmer
            InvalidTransitionError: If the transition is not allowed
        """
        order = await self._get_order_or_raise(order_id)

        can_update = (
            caller.is_admin
            or (caller.role == UserRole.AGENT and order.agent_id == caller.id)
            or (caller.role == UserRole.FARMER and order.product.farmer_id == caller.id)
        )
        if not can_update:
            raise PermissionDeniedError(
                "Insufficient permissions to update this order",
                user_id=str(caller.id),
                order_id=str(order_id),
            )

        patch = self.state_machine.build_transition_patch(
            order,
            target_status,
            agent_notes=agent_notes,
            user_id=caller.id,
        )

        updated = await self.orders.update_order(order_id, **patch)
        if updated is None:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND", order_id=str(order_id))
        return updated

    async def assign_agent(
        self,
        caller: User,
        order_id: uuid.UUID,
        agent_id: uuid.UUID,
    ) -> Order:
        """
        Attach a delivery agent to an order and compute the commission.

        Any previously assigned agent is replaced. The order's status is not
        checked.

        Raises:
            PermissionDeniedError: If caller is neither customer nor admin
            NotFoundError: If order or agent does not exist
            AccessDeniedError: If a customer does not own the order
            DistrictMismatchError: If agent and product districts differ
        """
        if not caller.has_role(UserRole.CUSTOMER, UserRole.ADMIN):
            raise PermissionDeniedError(
                "Only customers and admins can assign agents",
                user_id=str(caller.id),
                role=caller.role.value,
            )

        order = await self._get_order_or_raise(order_id)

        if caller.role == UserRole.CUSTOMER and order.customer_id != caller.id:
            raise AccessDeniedError(
                "You can only assign agents to your own orders",
                user_id=str(caller.id),
                order_id=str(order_id),
            )

        await self._get_eligible_agent(agent_id, order.product.district_id)

        commission = calculate_commission(order.total_price, self.commission_rate)

        logger.info(
            "Assigning agent",
            order_id=str(order_id),
            agent_id=str(agent_id),
            previous_agent_id=str(order.agent_id) if order.agent_id else None,
            status=order.status.value,
            commission=str(commission),
        )

        updated = await self.orders.update_order(
            order_id,
            agent_id=agent_id,
            commission=commission,
            commission_rate=self.commission_rate,
        )
        if updated is None:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND", order_id=str(order_id))
        return updated

    async def list_orders(
        self,
        caller: User,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[Sequence[Order], dict[str, int]]:
        """
        List the orders visible to the caller.

        Returns:
            Tuple of (orders, pagination) where pagination holds page, limit,
            total and pages

        Raises:
            PermissionDeniedError: If the caller's role has no order view
        """
        predicate = self.visibility_predicate(caller)

        orders, total = await self.orders.list_orders(
            status=status,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=(page - 1) * limit,
            limit=limit,
            **predicate,
        )

        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }
        return orders, pagination

    async def get_order(self, caller: User, order_id: uuid.UUID) -> Order:
        """
        Get a single order the caller is a party to.

        Raises:
            NotFoundError: If order does not exist
            AccessDeniedError: If caller is not admin or a party to the order
        """
        order = await self._get_order_or_raise(order_id)

        if not (caller.is_admin or order.involves(caller.id)):
            raise AccessDeniedError(
                "Access denied",
                user_id=str(caller.id),
                order_id=str(order_id),
            )
        return order

    async def get_available_agents(self, district_id: uuid.UUID) -> Sequence[User]:
        """Active agents of a district ordered by name."""
        agents, _ = await self.users.list_active_agents(district_id)
        return agents

    async def delete_order(self, caller: User, order_id: uuid.UUID) -> None:
        """
        Permanently remove an order. Admin only.

        Raises:
            PermissionDeniedError: If caller is not admin
            NotFoundError: If order does not exist
        """
        if not caller.is_admin:
            raise PermissionDeniedError(
                "Only admins can delete orders",
                user_id=str(caller.id),
            )

        if not await self.orders.delete_order(order_id):
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND", order_id=str(order_id))

        logger.warning("Order purged", order_id=str(order_id), admin_id=str(caller.id))

    @staticmethod
    def visibility_predicate(caller: User) -> dict[str, Any]:
        """
        Base filter restricting an order listing to what the caller may see.

        Returns:
            Keyword filters for OrderRepository.list_orders, empty for admins

        Raises:
            PermissionDeniedError: If the caller's role has no order view
        """
        if caller.role == UserRole.CUSTOMER:
            return {"customer_id": caller.id}
        if caller.role == UserRole.AGENT:
            return {"agent_id": caller.id}
        if caller.role == UserRole.FARMER:
            return {"farmer_id": caller.id}
        if caller.role == UserRole.ADMIN:
            return {}
        raise PermissionDeniedError(
            "Insufficient permissions to view orders",
            user_id=str(caller.id),
        )

    async def _get_order_or_raise(self, order_id: uuid.UUID) -> Order:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND", order_id=str(order_id))
        return order

    async def _get_eligible_agent(
        self,
        agent_id: uuid.UUID,
        district_id: Optional[uuid.UUID],
    ) -> User:
        """Return the agent if active and in ``district_id``."""
        agent = await self.users.get_active_agent(agent_id)
        if agent is None:
            raise NotFoundError(
                "Agent not found or inactive",
                code="AGENT_NOT_FOUND",
                agent_id=str(agent_id),
            )

        if agent.district_id != district_id:
            raise DistrictMismatchError(
                "Agent must be from the same district as the product",
                agent_id=str(agent_id),
                agent_district_id=str(agent.district_id) if agent.district_id else None,
                product_district_id=str(district_id) if district_id else None,
            )
        return agent
