"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from samagra.core.exceptions import ForbiddenException, UnauthorizedException
from samagra.core.firebase import verify_firebase_token
from samagra.core.redis_client import CacheManager, get_redis_client
from samagra.database import get_db
from samagra.repositories.appointment_repository import AppointmentRepository
from samagra.services.appointment_service import AppointmentService
from samagra.services.availability_service import AvailabilityService
from samagra.services.name_lookup_service import NameLookupService

logger = structlog.get_logger(__name__)

# Security
security = HTTPBearer(auto_error=False)

DOCTOR = "doctor"
PATIENT = "patient"


@dataclass(frozen=True)
class Caller:
    """Authenticated identity and its role."""

    uid: str
    role: str | None


async def get_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Caller:
    """
    Resolve the caller from a Firebase ID token.

    The role comes from the token's ``role`` custom claim, never from the
    request body.

    Raises:
        UnauthorizedException: If the token is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("No authorization token")

    try:
        decoded = await verify_firebase_token(credentials.credentials)
    except ValueError as e:
        logger.info("caller_rejected", reason=str(e))
        raise UnauthorizedException("Could not validate credentials") from None

    uid = decoded.get("uid")
    if not uid:
        raise UnauthorizedException("Could not validate credentials")

    return Caller(uid=uid, role=decoded.get("role"))


def require_role(*roles: str) -> Callable[..., Awaitable[Caller]]:
    """
    Build a dependency that admits only callers holding one of ``roles``.

    Raises:
        ForbiddenException: If the caller's role is not accepted
    """
    accepted = frozenset(roles)

    async def dependency(caller: Annotated[Caller, Depends(get_caller)]) -> Caller:
        if caller.role not in accepted:
            logger.info("caller_forbidden", uid=caller.uid, role=caller.role)
            raise ForbiddenException("Forbidden: invalid role")
        return caller

    return dependency


def get_cache_manager() -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(redis_client=get_redis_client())


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
DoctorCaller = Annotated[Caller, Depends(require_role(DOCTOR))]
PatientCaller = Annotated[Caller, Depends(require_role(PATIENT))]
AnyCaller = Annotated[Caller, Depends(require_role(DOCTOR, PATIENT))]


async def get_appointment_service(
    db: DatabaseSession,
    cache: CacheManagerDep,
) -> AppointmentService:
    """Wire the appointment service for one request."""
    repo = AppointmentRepository(db)
    return AppointmentService(
        repo=repo,
        availability=AvailabilityService(repo),
        names=NameLookupService(db, cache),
    )


AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
