"""FastAPI application for ClinicOS."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_os import __version__
from clinic_os.api.middleware import APIKeyMiddleware, RequestLoggingMiddleware
from clinic_os.api.responses import register_exception_handlers
from clinic_os.api.routes import appointments, auth, clinics, health, services
from clinic_os.config import get_settings
from clinic_os.core.database import dispose_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting ClinicOS API")

    yield

    logger.info("Shutting down ClinicOS API")
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ClinicOS API",
        description="Multi-tenant clinic administration: services, session booking, clinic lifecycle",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    if settings.api_key:
        app.add_middleware(APIKeyMiddleware, api_key=settings.api_key)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
    app.include_router(services.router, prefix="/api/v1")
    app.include_router(appointments.router, prefix="/api/v1")
    app.include_router(clinics.router, prefix="/api/v1")

    register_exception_handlers(app)

    return app
