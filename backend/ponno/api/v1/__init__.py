"""
API v1 router aggregation.

Collects the versioned routers so the application mounts them under a single
prefix.
"""

from fastapi import APIRouter

from ponno.api.v1.districts import router as districts_router
from ponno.api.v1.orders import router as orders_router

api_router = APIRouter()
api_router.include_router(orders_router)
api_router.include_router(districts_router)

__all__ = ["api_router"]
