"""Appointment service for business logic."""

from typing import Any

import structlog

from samagra.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStatusException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from samagra.core.timeslots import add_days, is_valid_date, is_valid_time
from samagra.repositories.appointment_repository import AppointmentRepository
from samagra.schemas.appointments import (
    ACTIVE_STATUSES,
    DOCTOR_SETTABLE_STATUSES,
    HISTORY_STATUSES,
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentStatus,
    CalendarBlockCreate,
    CreatorRole,
    ParentRelation,
    RecurrenceType,
    can_transition,
)
from samagra.services.availability_service import AvailabilityService
from samagra.services.name_lookup_service import NameLookupService, PartyKind
from samagra.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

# Recurrence instances are always one calendar week apart
WEEKLY_INTERVAL_DAYS = 7

DEFAULT_BLOCK_REASON = "Doctor unavailable"

# Fields that never carry over to a derived (rescheduled or recurring) record
_LINEAGE_FIELDS = (
    "id",
    "appointment_date",
    "start_time",
    "end_time",
    "status",
    "parent_appointment_id",
    "parent_relation",
    "rescheduled_to",
    "created_by",
    "created_at",
    "updated_at",
)


def _derived_values(source: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in source.items() if key not in _LINEAGE_FIELDS}


class AppointmentService:
    """Create, transition, reschedule and repeat appointments.

    Every operation that reserves time runs its availability check and its
    writes inside ``AppointmentRepository.reserve`` for the doctor and date,
    so two requests can never both claim overlapping time.

    Doctor and patient names are copied onto the record when it is created.
    Listings resolve fresh names at read time, so the copy may be stale for a
    renamed party until it is read through a listing.
    """

    def __init__(
        self,
        repo: AppointmentRepository,
        availability: AvailabilityService,
        names: NameLookupService,
        notifier: type[NotificationService] = NotificationService,
    ):
        """Initialize service with its collaborators."""
        self.repo = repo
        self.availability = availability
        self.names = names
        self.notifier = notifier

    async def _notify(self, to: str | None, subject: str, record: dict[str, Any]) -> None:
        await self.notifier.send_appointment_notification(
            to=to,
            subject=subject,
            fields={
                "appointment_id": record.get("id"),
                "doctor_name": record.get("doctor_name"),
                "patient_name": record.get("patient_name"),
                "appointment_date": record.get("appointment_date"),
                "start_time": record.get("start_time"),
                "end_time": record.get("end_time"),
                "status": record.get("status"),
            },
        )

    async def _get_owned(self, appointment_id: str, doctor_id: str) -> dict[str, Any]:
        """
        Load an appointment the doctor owns.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If another doctor owns it
        """
        record = await self.repo.get(appointment_id)
        if record is None:
            raise NotFoundException("Appointment not found")
        if record["doctor_id"] != doctor_id:
            raise ForbiddenException("Not your appointment")
        return record

    async def _ensure_available(
        self,
        doctor_id: str,
        appointment_date: str,
        start_time: str,
        end_time: str,
        exclude_id: str | None = None,
    ) -> None:
        available = await self.availability.is_available(
            doctor_id, appointment_date, start_time, end_time, exclude_id=exclude_id
        )
        if not available:
            logger.info(
                "slot_unavailable",
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                start_time=start_time,
                end_time=end_time,
            )
            raise SlotUnavailableException()

    async def check_availability(
        self,
        doctor_id: str,
        appointment_date: str,
        start_time: str,
        end_time: str,
    ) -> bool:
        """
        Advisory availability check for a proposed slot.

        Raises:
            ValidationException: If the date or times are malformed
        """
        if not doctor_id:
            raise ValidationException("Doctor ID required")
        if not is_valid_date(appointment_date):
            raise ValidationException("Invalid date")
        if not is_valid_time(start_time) or not is_valid_time(end_time):
            raise ValidationException("Invalid time")
        if end_time <= start_time:
            raise ValidationException("End time must be after start time")
        return await self.availability.is_available(
            doctor_id, appointment_date, start_time, end_time
        )

    async def create_appointment(self, patient_id: str, data: AppointmentCreate) -> str:
        """
        Request a new appointment as a patient.

        Args:
            patient_id: ID of the patient creating the appointment
            data: Appointment creation data

        Returns:
            New appointment id

        Raises:
            NotFoundException: If the doctor does not exist
            SlotUnavailableException: If the range overlaps an existing commitment
        """
        if not await self.names.exists(PartyKind.DOCTOR, data.doctor_id):
            raise NotFoundException("Doctor not found")

        doctor_name = await self.names.display_name(PartyKind.DOCTOR, data.doctor_id)
        patient_name = await self.names.display_name(PartyKind.PATIENT, patient_id)

        values = {
            "patient_id": patient_id,
            "patient_name": patient_name,
            "doctor_id": data.doctor_id,
            "doctor_name": doctor_name,
            "appointment_date": data.appointment_date,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "status": AppointmentStatus.REQUESTED.value,
            "reason": data.reason,
            "is_recurring": data.is_recurring,
            "recurrence_type": data.recurrence_type.value,
            "parent_appointment_id": None,
            "parent_relation": None,
            "rescheduled_to": None,
            "report": None,
            "created_by": CreatorRole.PATIENT.value,
        }

        async with self.repo.reserve(data.doctor_id, data.appointment_date):
            await self._ensure_available(
                data.doctor_id, data.appointment_date, data.start_time, data.end_time
            )
            appointment_id = await self.repo.add(values)

        logger.info(
            "appointment_requested",
            appointment_id=appointment_id,
            doctor_id=data.doctor_id,
            patient_id=patient_id,
            appointment_date=data.appointment_date,
        )

        await self._notify(
            data.doctor_id, "New Appointment Request", {"id": appointment_id, **values}
        )
        return appointment_id

    async def update_status(self, doctor_id: str, appointment_id: str, status: str) -> None:
        """
        Approve, complete or cancel an appointment.

        Args:
            doctor_id: ID of the doctor making the change
            appointment_id: Appointment ID
            status: New status value

        Raises:
            InvalidStatusException: If the value or the transition is not allowed
            NotFoundException: If appointment not found
            ForbiddenException: If another doctor owns it
        """
        try:
            target = AppointmentStatus(status)
        except ValueError:
            raise InvalidStatusException() from None
        if target not in DOCTOR_SETTABLE_STATUSES:
            raise InvalidStatusException()

        record = await self._get_owned(appointment_id, doctor_id)
        current = AppointmentStatus(record["status"])
        if not can_transition(current, target):
            raise InvalidStatusException(
                f"Cannot change status from {current.value} to {target.value}"
            )

        async with self.repo.transaction():
            changed = await self.repo.update(
                appointment_id, {"status": target.value}, expected_status=current.value
            )
            if not changed:
                raise ConflictException("Appointment was modified by another request")

        logger.info(
            "appointment_status_updated",
            appointment_id=appointment_id,
            old_status=current.value,
            new_status=target.value,
        )

        await self._notify(
            record["patient_id"],
            f"Appointment {target.value.capitalize()}",
            {**record, "status": target.value},
        )

    async def attach_report(self, doctor_id: str, appointment_id: str, report: str) -> None:
        """
        Attach a clinical report and mark the appointment completed.

        A completed appointment may have its report replaced.

        Raises:
            ValidationException: If the report is empty
            InvalidStatusException: If the appointment cannot be completed
        """
        if not report or not report.strip():
            raise ValidationException("Report required")

        record = await self._get_owned(appointment_id, doctor_id)
        current = AppointmentStatus(record["status"])
        if current != AppointmentStatus.COMPLETED and not can_transition(
            current, AppointmentStatus.COMPLETED
        ):
            raise InvalidStatusException(f"Cannot add a report to a {current.value} appointment")

        async with self.repo.transaction():
            changed = await self.repo.update(
                appointment_id,
                {"report": report, "status": AppointmentStatus.COMPLETED.value},
                expected_status=current.value,
            )
            if not changed:
                raise ConflictException("Appointment was modified by another request")

        logger.info("appointment_report_attached", appointment_id=appointment_id)

    async def reschedule(
        self,
        doctor_id: str,
        appointment_id: str,
        data: AppointmentReschedule,
    ) -> str:
        """
        Move an appointment to a new slot.

        Creates a successor in ``requested`` status pointing back at the
        original, and retires the original as ``rescheduled`` pointing forward
        at the successor. Both writes commit together or not at all.

        Returns:
            Successor appointment id

        Raises:
            InvalidStatusException: If the appointment is not requested or approved
            SlotUnavailableException: If the new slot is taken
        """
        record = await self._get_owned(appointment_id, doctor_id)
        current = AppointmentStatus(record["status"])
        if not can_transition(current, AppointmentStatus.RESCHEDULED):
            raise InvalidStatusException(f"Cannot reschedule a {current.value} appointment")

        successor = {
            **_derived_values(record),
            "appointment_date": data.new_date,
            "start_time": data.new_start_time,
            "end_time": data.new_end_time,
            "status": AppointmentStatus.REQUESTED.value,
            "parent_appointment_id": appointment_id,
            "parent_relation": ParentRelation.RESCHEDULED_FROM.value,
            "rescheduled_to": None,
            "created_by": CreatorRole.DOCTOR.value,
        }

        async with self.repo.reserve(doctor_id, data.new_date):
            # The original's own time is released by this operation
            await self._ensure_available(
                doctor_id,
                data.new_date,
                data.new_start_time,
                data.new_end_time,
                exclude_id=appointment_id,
            )
            new_id = await self.repo.add(successor)
            retired = await self.repo.update(
                appointment_id,
                {"status": AppointmentStatus.RESCHEDULED.value, "rescheduled_to": new_id},
                expected_status=current.value,
            )
            if not retired:
                raise ConflictException("Appointment was modified by another request")

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            new_appointment_id=new_id,
            new_date=data.new_date,
        )

        await self._notify(
            record["patient_id"], "Appointment Rescheduled", {"id": new_id, **successor}
        )
        return new_id

    async def generate_weekly_recurrence(self, doctor_id: str, appointment_id: str) -> str:
        """
        Create next week's instance of a weekly recurring appointment.

        The new instance keeps the source's times, lands seven calendar days
        later and must fit the doctor's calendar like any other booking.

        Returns:
            New appointment id

        Raises:
            ValidationException: If the source is not weekly recurring
            SlotUnavailableException: If next week's slot is taken
        """
        source = await self._get_owned(appointment_id, doctor_id)
        if not source["is_recurring"] or source["recurrence_type"] != RecurrenceType.WEEKLY.value:
            raise ValidationException("Not weekly recurring")

        next_date = add_days(source["appointment_date"], WEEKLY_INTERVAL_DAYS)
        instance = {
            **_derived_values(source),
            "appointment_date": next_date,
            "start_time": source["start_time"],
            "end_time": source["end_time"],
            "status": AppointmentStatus.REQUESTED.value,
            "parent_appointment_id": appointment_id,
            "parent_relation": ParentRelation.RECURRENCE_OF.value,
            "rescheduled_to": None,
            "report": None,
            "created_by": CreatorRole.DOCTOR.value,
        }

        async with self.repo.reserve(doctor_id, next_date):
            await self._ensure_available(
                doctor_id, next_date, source["start_time"], source["end_time"]
            )
            new_id = await self.repo.add(instance)

        logger.info(
            "weekly_recurrence_generated",
            source_appointment_id=appointment_id,
            appointment_id=new_id,
            appointment_date=next_date,
        )

        await self._notify(
            source["patient_id"], "New Recurring Appointment", {"id": new_id, **instance}
        )
        return new_id

    async def block_calendar(self, doctor_id: str, data: CalendarBlockCreate) -> str:
        """
        Withhold a time range from patients.

        Returns:
            Block record id

        Raises:
            SlotUnavailableException: If the range overlaps an existing commitment
        """
        values = {
            "patient_id": None,
            "patient_name": None,
            "doctor_id": doctor_id,
            "doctor_name": None,
            "appointment_date": data.appointment_date,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "status": AppointmentStatus.BLOCKED.value,
            "reason": data.reason or DEFAULT_BLOCK_REASON,
            "is_recurring": False,
            "recurrence_type": RecurrenceType.NONE.value,
            "parent_appointment_id": None,
            "parent_relation": None,
            "rescheduled_to": None,
            "report": None,
            "created_by": CreatorRole.DOCTOR.value,
        }

        async with self.repo.reserve(doctor_id, data.appointment_date):
            await self._ensure_available(
                doctor_id, data.appointment_date, data.start_time, data.end_time
            )
            block_id = await self.repo.add(values)

        logger.info(
            "calendar_blocked",
            block_id=block_id,
            doctor_id=doctor_id,
            appointment_date=data.appointment_date,
        )
        return block_id

    async def _with_names(
        self,
        records: list[dict[str, Any]],
        kind: PartyKind,
    ) -> list[dict[str, Any]]:
        """Overwrite the counterpart's snapshot name with a fresh lookup."""
        if kind == PartyKind.DOCTOR:
            id_field, name_field = "doctor_id", "doctor_name"
        else:
            id_field, name_field = "patient_id", "patient_name"
        resolved: dict[str | None, str] = {}
        enriched = []
        for record in records:
            party_id = record[id_field]
            if party_id not in resolved:
                resolved[party_id] = await self.names.display_name(kind, party_id)
            enriched.append({**record, name_field: resolved[party_id]})
        return enriched

    async def list_doctor_appointments_by_date(
        self,
        doctor_id: str,
        appointment_date: str,
    ) -> list[dict[str, Any]]:
        """Upcoming (requested or approved) appointments for one date, by start time."""
        if not is_valid_date(appointment_date):
            raise ValidationException("Invalid date")

        records = await self.repo.query(
            {
                "doctor_id": doctor_id,
                "appointment_date": appointment_date,
                "status": ACTIVE_STATUSES,
            },
            order_by="start_time",
        )
        return await self._with_names(records, PartyKind.PATIENT)

    async def list_doctor_appointments_by_status(
        self,
        doctor_id: str,
        status: str,
    ) -> list[dict[str, Any]]:
        """Completed or cancelled appointments, newest date first."""
        try:
            target = AppointmentStatus(status)
        except ValueError:
            raise InvalidStatusException() from None
        if target not in HISTORY_STATUSES:
            raise InvalidStatusException()

        records = await self.repo.query(
            {"doctor_id": doctor_id, "status": target.value},
            order_by="appointment_date",
            descending=True,
        )
        return await self._with_names(records, PartyKind.PATIENT)

    async def list_patient_appointments(self, patient_id: str) -> list[dict[str, Any]]:
        """A patient's upcoming appointments, by date."""
        records = await self.repo.query(
            {"patient_id": patient_id, "status": ACTIVE_STATUSES},
            order_by="appointment_date",
        )
        return await self._with_names(records, PartyKind.DOCTOR)

    async def get_appointment(
        self,
        appointment_id: str,
        user_id: str,
        role: str,
    ) -> dict[str, Any]:
        """
        Get one appointment for either party to it.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not its doctor or patient
        """
        record = await self.repo.get(appointment_id)
        if record is None:
            raise NotFoundException("Appointment not found")

        if role == CreatorRole.DOCTOR.value:
            if record["doctor_id"] != user_id:
                raise ForbiddenException("Not your appointment")
            # Calendar blocks have no patient to name
            if record["patient_id"] is None:
                return record
            [enriched] = await self._with_names([record], PartyKind.PATIENT)
        else:
            if record["patient_id"] != user_id:
                raise ForbiddenException("Not your appointment")
            [enriched] = await self._with_names([record], PartyKind.DOCTOR)
        return enriched

    async def list_doctor_patients(self, doctor_id: str) -> list[dict[str, str]]:
        """Distinct patients from a doctor's appointments, most recent first."""
        records = await self.repo.query(
            {"doctor_id": doctor_id},
            order_by="appointment_date",
            descending=True,
        )

        seen: set[str] = set()
        patients = []
        for record in records:
            patient_id = record["patient_id"]
            if patient_id is None or patient_id in seen:
                continue
            seen.add(patient_id)
            patients.append(
                {
                    "patient_id": patient_id,
                    "patient_name": await self.names.display_name(PartyKind.PATIENT, patient_id),
                }
            )
        return patients
