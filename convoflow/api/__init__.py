"""
API routes module.

FastAPI routers for all HTTP endpoints.
"""

from fastapi import APIRouter

from .routers import (
    captures_router,
    health_router,
    imports_router,
    jobs_router,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(health_router)
api_router.include_router(jobs_router)
api_router.include_router(imports_router)
api_router.include_router(captures_router)

__all__ = ["api_router"]
