"""
Order management API endpoints.

This module implements the FastAPI router for the order lifecycle: booking,
role-scoped listing, status transitions, agent assignment, agent lookup by
district and the admin purge. Business rule failures raised by OrderService
propagate as PonnoError and are rendered by the application's handlers.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from ponno.api.deps import AdminUser, CurrentUser, DatabaseSession
from ponno.core.exceptions import BusinessRuleError
from ponno.core.logging import get_logger
from ponno.schemas.common import (
    ERROR_RESPONSES,
    ApiResponse,
    Pagination,
    success_response,
)
from ponno.schemas.orders import (
    AgentSummary,
    AssignAgentRequest,
    OrderCreateRequest,
    OrderListParams,
    OrderResponse,
    OrderStatusUpdate,
)
from ponno.services.orders.service import OrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new order",
)
async def create_order(
    request: OrderCreateRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse:
    """
    Book an order for a product.

    The product price is snapshotted and stock is decremented in the same
    transaction as the insert.
    """
    order = await OrderService(db).create_order(
        current_user,
        product_id=request.product_id,
        quantity=request.quantity,
        agent_id=request.agent_id,
        delivery_address=request.delivery_address,
        customer_notes=request.customer_notes,
    )
    return success_response(
        "Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List orders visible to the caller",
)
async def list_orders(
    current_user: CurrentUser,
    db: DatabaseSession,
    params: Annotated[OrderListParams, Query()],
) -> ApiResponse:
    """
    List orders under the caller's role predicate.

    Customers see their own orders, agents the orders assigned to them,
    farmers orders for their products and admins everything.
    """
    orders, pagination = await OrderService(db).list_orders(
        current_user,
        status=params.status,
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        sort_order=params.sort_order,
    )
    return success_response(
        "Orders retrieved successfully",
        orders=[OrderResponse.model_validate(order) for order in orders],
        pagination=Pagination(**pagination),
    )


@router.get(
    "/agents/available",
    response_model=ApiResponse,
    summary="List active agents in a district",
)
async def get_available_agents(
    current_user: CurrentUser,
    db: DatabaseSession,
    district_id: Optional[UUID] = Query(None),
) -> ApiResponse:
    if district_id is None:
        raise BusinessRuleError("District ID is required", code="DISTRICT_REQUIRED")

    agents = await OrderService(db).get_available_agents(district_id)
    return success_response(
        "Available agents retrieved successfully",
        agents=[AgentSummary.model_validate(agent) for agent in agents],
    )


@router.get(
    "/{order_id}",
    response_model=ApiResponse,
    summary="Get order details",
)
async def get_order(
    order_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse:
    order = await OrderService(db).get_order(current_user, order_id)
    return success_response(
        "Order retrieved successfully",
        order=OrderResponse.model_validate(order),
    )


@router.put(
    "/{order_id}/status",
    response_model=ApiResponse,
    summary="Update order status",
)
async def update_order_status(
    order_id: UUID,
    request: OrderStatusUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse:
    """
    Move an order along its lifecycle.

    Allowed for admins, the assigned agent and the product's farmer.
    """
    order = await OrderService(db).update_order_status(
        current_user,
        order_id,
        request.status,
        agent_notes=request.agent_notes,
    )

    logger.info(
        "Order status updated",
        order_id=str(order_id),
        new_status=request.status.value,
        user_id=str(current_user.id),
    )

    return success_response(
        "Order status updated successfully",
        order=OrderResponse.model_validate(order),
    )


@router.put(
    "/{order_id}/assign-agent",
    response_model=ApiResponse,
    summary="Assign delivery agent",
)
async def assign_agent(
    order_id: UUID,
    request: AssignAgentRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse:
    order = await OrderService(db).assign_agent(
        current_user,
        order_id,
        request.agent_id,
    )
    return success_response(
        "Agent assigned successfully",
        order=OrderResponse.model_validate(order),
    )


@router.delete(
    "/{order_id}",
    response_model=ApiResponse,
    summary="Permanently delete an order (admin)",
)
async def delete_order(
    order_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse:
    await OrderService(db).delete_order(current_user, order_id)
    return success_response("Order deleted successfully")
