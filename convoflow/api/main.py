"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers and configures uvicorn server.

Dependencies: fastapi, convoflow.api.routers, uvicorn, python-dotenv
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from convoflow import __version__
from convoflow.api import api_router
from convoflow.api.deps.dependencies import get_service_cache
from convoflow.configs import get_settings
from convoflow.observability import configure_logging
from convoflow.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        f"{__name__}:lifespan - Application startup",
        extra={"environment": settings.environment, "version": __version__},
    )

    yield

    # Shutdown
    get_service_cache().clear()
    logger.info(f"{__name__}:lifespan - Service cache cleared")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="Convoflow API",
        description="Durable conversation ingestion and structure recompute queue",
        version=__version__,
        debug=get_settings().debug,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware (added last = runs first)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "convoflow.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
