"""Health check endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from clinic_os import __version__
from clinic_os.core.database import ping

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "service": "clinic-os",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check - verifies the database answers."""
    if not await ping():
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "errors": ["Database unavailable"]},
        )
    return {"status": "ready", "database": "ok"}


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - basic process health."""
    return {"status": "alive"}
