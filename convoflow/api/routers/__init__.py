"""API routers."""

from .captures import router as captures_router
from .health import router as health_router
from .imports import router as imports_router
from .jobs import router as jobs_router

__all__ = [
    "captures_router",
    "health_router",
    "imports_router",
    "jobs_router",
]
