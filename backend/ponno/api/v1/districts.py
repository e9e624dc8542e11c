"""
District API endpoints.

Listing and lookup are public except for the agent roster; creation and
deletion are restricted to admins.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ponno.api.deps import AdminUser, CurrentUser, DatabaseSession
from ponno.schemas.common import (
    ERROR_RESPONSES,
    ApiResponse,
    Pagination,
    success_response,
)
from ponno.schemas.districts import (
    DistrictCreateRequest,
    DistrictResponse,
    DistrictStats,
)
from ponno.schemas.orders import AgentSummary
from ponno.services.districts.service import DistrictService

router = APIRouter(prefix="/districts", tags=["Districts"], responses=ERROR_RESPONSES)


@router.get("", response_model=ApiResponse, summary="List districts")
async def list_districts(db: DatabaseSession) -> ApiResponse:
    districts = await DistrictService(db).list_districts()
    return success_response(
        "Districts retrieved successfully",
        districts=[DistrictResponse.model_validate(d) for d in districts],
    )


@router.get("/{district_id}", response_model=ApiResponse, summary="Get district")
async def get_district(district_id: UUID, db: DatabaseSession) -> ApiResponse:
    """Return a district with its activity statistics."""
    district, stats = await DistrictService(db).get_district_with_stats(district_id)
    return success_response(
        "District retrieved successfully",
        district=DistrictResponse.model_validate(district),
        stats=DistrictStats(**stats),
    )


@router.get(
    "/{district_id}/agents",
    response_model=ApiResponse,
    summary="List active agents of a district",
)
async def list_district_agents(
    district_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    district, agents, pagination = await DistrictService(db).list_district_agents(
        district_id,
        page=page,
        limit=limit,
    )
    return success_response(
        "District agents retrieved successfully",
        district=DistrictResponse.model_validate(district),
        agents=[AgentSummary.model_validate(agent) for agent in agents],
        pagination=Pagination(**pagination),
    )


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create district (admin)",
)
async def create_district(
    request: DistrictCreateRequest,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse:
    district = await DistrictService(db).create_district(request.name)
    return success_response(
        "District created successfully",
        district=DistrictResponse.model_validate(district),
    )


@router.delete(
    "/{district_id}",
    response_model=ApiResponse,
    summary="Delete district (admin)",
)
async def delete_district(
    district_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse:
    await DistrictService(db).delete_district(district_id)
    return success_response("District deleted successfully")
