"""Slot availability checks against a doctor's calendar."""

from typing import Any

from samagra.core.timeslots import overlaps
from samagra.repositories.appointment_repository import AppointmentRepository
from samagra.schemas.appointments import SLOT_HOLDING_STATUSES


def find_conflicts(
    commitments: list[dict[str, Any]],
    start_time: str,
    end_time: str,
    exclude_id: str | None = None,
) -> list[dict[str, Any]]:
    """Return the commitments whose time range overlaps ``start_time``-``end_time``."""
    return [
        record
        for record in commitments
        if record["id"] != exclude_id
        and overlaps(start_time, end_time, record["start_time"], record["end_time"])
    ]


class AvailabilityService:
    """Decide whether a doctor's time range is free.

    Requested, approved and blocked records all hold time. The answer is only
    authoritative when computed inside ``AppointmentRepository.reserve`` for
    the same doctor and date.
    """

    def __init__(self, repo: AppointmentRepository):
        """Initialize service with the appointment store."""
        self.repo = repo

    async def is_available(
        self,
        doctor_id: str,
        appointment_date: str,
        start_time: str,
        end_time: str,
        exclude_id: str | None = None,
    ) -> bool:
        """
        Check a time range on one date.

        Args:
            doctor_id: Doctor whose calendar is checked
            appointment_date: ``YYYY-MM-DD``
            start_time: ``HH:MM``
            end_time: ``HH:MM``
            exclude_id: Record to ignore, e.g. the appointment being rescheduled

        Returns:
            True if nothing overlaps
        """
        commitments = await self.repo.query(
            {
                "doctor_id": doctor_id,
                "appointment_date": appointment_date,
                "status": SLOT_HOLDING_STATUSES,
            }
        )
        return not find_conflicts(commitments, start_time, end_time, exclude_id)
