"""District request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DistrictCreateRequest(BaseModel):
    """Request schema for creating a district."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100, description="District name")


class DistrictResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime
    updated_at: datetime


class DistrictStats(BaseModel):
    """Activity counts for a district."""

    total_users: int = 0
    total_farmers: int = 0
    total_customers: int = 0
    total_agents: int = 0
    total_products: int = 0
    total_orders: int = 0
