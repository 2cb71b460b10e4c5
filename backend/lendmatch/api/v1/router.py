"""API v1 router configuration."""

from fastapi import APIRouter

from lendmatch.api.v1.endpoints import health, lenders, matching

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    tags=["health"],
)

api_router.include_router(
    matching.router,
    prefix="/matching",
    tags=["matching"],
)

api_router.include_router(
    lenders.router,
    prefix="/lenders",
    tags=["lenders"],
)
