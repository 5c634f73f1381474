"""Appointment record store backed by SQLAlchemy Core."""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy import Select, and_, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from samagra.config import settings
from samagra.core.exceptions import ConflictException, DependencyFailureException
from samagra.core.resilience import bounded, retry_read
from samagra.models.appointments import appointments

logger = structlog.get_logger(__name__)

# Process-local slot locks, used when the database has no advisory locks (SQLite).
# Entries disappear once no request holds a reference to them.
_local_slot_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


def slot_lock_key(doctor_id: str, appointment_date: str) -> str:
    """Key that serializes every booking for one doctor on one date."""
    return f"slot:{doctor_id}:{appointment_date}"


def _local_slot_lock(key: str) -> asyncio.Lock:
    lock = _local_slot_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _local_slot_locks[key] = lock
    return lock


class AppointmentRepository:
    """Query and mutate appointment records.

    Reads are retried on transient failures unless a slot reservation is in
    progress. Writes are never retried and are only made durable by
    ``transaction()`` or ``reserve()``.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session
        self._reserving = False

    @property
    def _is_postgres(self) -> bool:
        return self.session.bind.dialect.name == "postgresql"

    async def _fetch_all(self, stmt: Select, operation: str) -> list[dict[str, Any]]:
        async def run() -> list[dict[str, Any]]:
            result = await self.session.execute(stmt)
            return [dict(row._mapping) for row in result.fetchall()]

        if self._reserving:
            # A rollback here would release the advisory lock, so no retries
            try:
                return await bounded(run(), operation)
            except SQLAlchemyError as e:
                logger.error("store_read_failed", operation=operation, error=str(e))
                raise DependencyFailureException(f"{operation} failed") from e

        return await retry_read(run, operation, recover=self.session.rollback)

    async def _write(self, stmt: Any, operation: str) -> Any:
        try:
            return await bounded(self.session.execute(stmt), operation)
        except SQLAlchemyError as e:
            logger.error("store_write_failed", operation=operation, error=str(e))
            raise DependencyFailureException(f"{operation} failed") from e

    async def get(self, appointment_id: str) -> dict[str, Any] | None:
        """
        Get a single appointment record.

        Args:
            appointment_id: Appointment ID

        Returns:
            Record as a dict, or None if absent
        """
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        rows = await self._fetch_all(stmt, "appointment_get")
        return rows[0] if rows else None

    async def query(
        self,
        filters: dict[str, Any],
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Query appointment records.

        Args:
            filters: Column name to value. List, tuple, set and frozenset values
                become ``IN`` predicates, everything else equality. All are ANDed.
            order_by: Optional column to order by
            descending: Order direction for ``order_by``

        Returns:
            Matching records. Ties are broken by id so repeated queries return
            the same order.
        """
        conditions = []
        for field, value in filters.items():
            column = appointments.c[field]
            if isinstance(value, list | tuple | set | frozenset):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)

        stmt = select(appointments)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        if order_by is not None:
            column = appointments.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        stmt = stmt.order_by(appointments.c.id.asc())

        return await self._fetch_all(stmt, "appointment_query")

    async def add(self, values: dict[str, Any]) -> str:
        """
        Insert a new record with a generated id.

        Args:
            values: Column values, without ``id``

        Returns:
            The new appointment id
        """
        appointment_id = str(uuid4())
        stmt = insert(appointments).values(id=appointment_id, **values)
        await self._write(stmt, "appointment_insert")
        return appointment_id

    async def update(
        self,
        appointment_id: str,
        values: dict[str, Any],
        expected_status: str | None = None,
    ) -> bool:
        """
        Update fields of one record and touch ``updated_at``.

        Args:
            appointment_id: Appointment ID
            values: Columns to change
            expected_status: If given, only update while the record still has this status

        Returns:
            True if a row was changed
        """
        conditions = [appointments.c.id == appointment_id]
        if expected_status is not None:
            conditions.append(appointments.c.status == expected_status)

        stmt = (
            update(appointments)
            .where(and_(*conditions))
            .values(**values, updated_at=func.now())
        )
        result = await self._write(stmt, "appointment_update")
        return result.rowcount == 1

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit everything written inside the block, or nothing at all."""
        try:
            yield
            await bounded(self.session.commit(), "appointment_commit")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("store_transaction_failed", error=str(e))
            raise DependencyFailureException("Could not save appointment changes") from e
        except BaseException:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def reserve(self, doctor_id: str, appointment_date: str) -> AsyncIterator[None]:
        """
        Hold the doctor/date slot lock for a check-then-write sequence.

        On PostgreSQL this takes a transaction-scoped advisory lock, released
        by the commit or rollback. Elsewhere an in-process lock is held until
        the transaction has finished.

        Raises:
            ConflictException: If the lock could not be acquired in time
        """
        key = slot_lock_key(doctor_id, appointment_date)
        timeout = settings.slot_lock_timeout_seconds

        if self._is_postgres:
            async with self.transaction():
                try:
                    async with asyncio.timeout(timeout):
                        await self.session.execute(
                            select(func.pg_advisory_xact_lock(func.hashtext(key)))
                        )
                except TimeoutError:
                    logger.warning("slot_lock_timeout", key=key)
                    raise ConflictException(
                        "Another booking for this doctor and date is in progress"
                    ) from None
                self._reserving = True
                try:
                    yield
                finally:
                    self._reserving = False
            return

        lock = _local_slot_lock(key)
        try:
            async with asyncio.timeout(timeout):
                await lock.acquire()
        except TimeoutError:
            logger.warning("slot_lock_timeout", key=key)
            raise ConflictException(
                "Another booking for this doctor and date is in progress"
            ) from None

        try:
            async with self.transaction():
                self._reserving = True
                try:
                    yield
                finally:
                    self._reserving = False
        finally:
            lock.release()
