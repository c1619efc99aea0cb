"""Health check endpoints."""

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings

router = APIRouter()

SERVICE_NAME = "vehicle-rental-system"
API_VERSION = "0.1.0"


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Liveness check reporting the configured storage backend."""
    return {"status": "healthy", "service": SERVICE_NAME, "backend": settings.repository_backend}


@router.get("/")
async def root() -> dict[str, str]:
    return {"message": "Vehicle Rental System API", "version": API_VERSION}
