"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from samagra.config import settings
from samagra.core.firebase import is_firebase_initialized
from samagra.core.redis_client import check_redis_connection
from samagra.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of each collaborator the scheduling core depends on."""

    database: str
    redis: str
    firebase: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check.

    The store is required for every operation, so a database outage marks the
    service unhealthy. Redis only caches names and Firebase is needed for
    callers to authenticate, so their loss only degrades it.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()
    firebase_ready = is_firebase_initialized()

    if not db_healthy:
        overall = "unhealthy"
    elif redis_healthy and firebase_ready:
        overall = "healthy"
    else:
        overall = "degraded"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        firebase="initialized" if firebase_ready else "not_initialized",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
