"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from publisher import __version__
from publisher.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    system_credential_configured: bool
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        system_credential_configured=bool(settings.vercel_token),
        timestamp=datetime.utcnow(),
    )
