# =============================================================================
# Health Check Router
# =============================================================================
# Endpoints for container health checks and readiness probes.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

from app.services.lens_service import get_lens_service

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadyResponse(BaseModel):
    """Readiness check response model."""

    status: str
    services: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint. Returns 200 if the service is running."""
    from app import __version__

    return HealthResponse(status="healthy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check() -> ReadyResponse:
    """
    Readiness check endpoint.

    Pings MongoDB; an unreachable store reports ``unavailable`` rather than
    failing the request.
    """
    mongodb = "ok" if get_lens_service().ping() else "unavailable"
    return ReadyResponse(
        status="ready" if mongodb == "ok" else "degraded",
        services={"mongodb": mongodb},
    )
