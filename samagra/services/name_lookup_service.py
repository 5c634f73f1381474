"""Best-effort display name lookup for doctors and patients."""

from enum import Enum

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from samagra.config import settings
from samagra.core.redis_client import CacheManager
from samagra.core.resilience import retry_read
from samagra.models.doctors import doctors
from samagra.models.patients import patients

logger = structlog.get_logger(__name__)


class PartyKind(str, Enum):
    """Which profile collection a name comes from."""

    DOCTOR = "doctors"
    PATIENT = "patients"


PLACEHOLDER_NAMES = {
    PartyKind.DOCTOR: "Doctor",
    PartyKind.PATIENT: "Patient",
}

_TABLES = {
    PartyKind.DOCTOR: doctors,
    PartyKind.PATIENT: patients,
}


def format_display_name(first_name: str | None, last_name: str | None) -> str:
    """Join first and last name, ignoring missing parts."""
    return f"{first_name or ''} {last_name or ''}".strip()


class NameLookupService:
    """Resolve display names, never failing the caller.

    Names are cached in Redis for ``name_cache_ttl_seconds``, so a rename is
    visible in listings after at most that long.
    """

    def __init__(self, db: AsyncSession, cache: CacheManager | None = None):
        """Initialize service with database session and optional cache."""
        self.db = db
        self.cache = cache

    @staticmethod
    def _cache_key(kind: PartyKind, party_id: str) -> str:
        return f"name:{kind.value}:{party_id}"

    async def _load(self, kind: PartyKind, party_id: str) -> str | None:
        table = _TABLES[kind]
        stmt = select(table.c.first_name, table.c.last_name).where(table.c.id == party_id)

        async def run():
            result = await self.db.execute(stmt)
            return result.fetchone()

        row = await retry_read(run, f"{kind.value}_name_lookup", recover=self.db.rollback)
        if row is None:
            return None
        return format_display_name(row.first_name, row.last_name) or None

    async def exists(self, kind: PartyKind, party_id: str) -> bool:
        """Check that a profile row exists. Errors propagate."""
        table = _TABLES[kind]
        stmt = select(table.c.id).where(table.c.id == party_id)

        async def run():
            result = await self.db.execute(stmt)
            return result.first()

        return await retry_read(run, f"{kind.value}_exists", recover=self.db.rollback) is not None

    async def display_name(self, kind: PartyKind, party_id: str | None) -> str:
        """
        Get a display name, or the placeholder for the kind on any failure.

        Args:
            kind: Doctor or patient
            party_id: Profile id

        Returns:
            Display name, never raises
        """
        placeholder = PLACEHOLDER_NAMES[kind]
        if not party_id:
            return placeholder

        key = self._cache_key(kind, party_id)
        if self.cache is not None:
            cached = self.cache.get_json(key)
            if isinstance(cached, str) and cached:
                return cached

        try:
            name = await self._load(kind, party_id)
        except Exception as e:
            logger.warning(
                "name_lookup_failed",
                kind=kind.value,
                party_id=party_id,
                error=str(e),
            )
            return placeholder

        if name is None:
            return placeholder

        if self.cache is not None:
            self.cache.set_json(key, name, ttl=settings.name_cache_ttl_seconds)
        return name
