"""
Order management Pydantic schemas for API request/response validation.

Request schemas validate payload shape before any business logic runs;
response schemas serialize ORM orders with their product, farmer, customer and
agent summaries.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ponno.services.orders.enums import OrderStatus


class OrderCreateRequest(BaseModel):
    """Request schema for booking an order."""

    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: UUID = Field(..., description="Product to order")
    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Quantity to order",
    )
    agent_id: Optional[UUID] = Field(None, description="Optional delivery agent")
    delivery_address: Optional[str] = Field(None, max_length=500)
    customer_notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    """Request schema for moving an order along its lifecycle."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: OrderStatus = Field(..., description="Target status")
    agent_notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class AssignAgentRequest(BaseModel):
    """Request schema for attaching a delivery agent."""

    agent_id: UUID = Field(..., description="Agent to assign")


class OrderListParams(BaseModel):
    """Query parameters for order listing."""

    status: Optional[OrderStatus] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: str = Field(default="created_at")
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class UserSummary(BaseModel):
    """Public fields of an order party."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    phone: str


class AgentSummary(UserSummary):
    """Agent listing entry."""

    image_url: Optional[str] = None
    district_id: Optional[UUID] = None


class ProductSummary(BaseModel):
    """Ordered product with its farmer."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: Decimal
    unit: str
    image_url: Optional[str] = None
    category: Optional[str] = None
    district_id: UUID
    available_quantity: Decimal
    is_active: bool
    farmer: UserSummary


class OrderResponse(BaseModel):
    """Order with price snapshot, commission and parties."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    customer_id: UUID
    agent_id: Optional[UUID] = None
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    commission: Decimal
    commission_rate: Decimal
    status: OrderStatus
    delivery_address: Optional[str] = None
    customer_notes: Optional[str] = None
    agent_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    product: ProductSummary
    customer: UserSummary
    agent: Optional[UserSummary] = None
