"""Appointment endpoints."""

from fastapi import APIRouter, Query, status

from samagra.dependencies import AnyCaller, AppointmentServiceDep, DoctorCaller, PatientCaller
from samagra.schemas.appointments import (
    AppointmentCreate,
    AppointmentCreatedResponse,
    AppointmentDetailResponse,
    AppointmentListResponse,
    AppointmentReport,
    AppointmentReschedule,
    AppointmentRescheduledResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailabilityResponse,
    CalendarBlockCreate,
    DoctorPatient,
    DoctorPatientListResponse,
    MessageResponse,
)

router = APIRouter()


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a slot is free",
)
async def check_availability(
    caller: AnyCaller,
    service: AppointmentServiceDep,
    doctor_id: str = Query(..., min_length=1),
    appointment_date: str = Query(..., alias="date"),
    start_time: str = Query(...),
    end_time: str = Query(...),
) -> AvailabilityResponse:
    """
    Check a doctor's slot. Advisory only; booking re-checks under a lock.

    Args:
        caller: Authenticated doctor or patient
        service: Appointment service
        doctor_id: Doctor whose calendar is checked
        appointment_date: Date (YYYY-MM-DD)
        start_time: Start (HH:MM)
        end_time: End (HH:MM)

    Returns:
        Whether the slot is free
    """
    available = await service.check_availability(
        doctor_id, appointment_date, start_time, end_time
    )
    return AvailabilityResponse(
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        start_time=start_time,
        end_time=end_time,
        available=available,
    )


@router.post(
    "/",
    response_model=AppointmentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    caller: PatientCaller,
    service: AppointmentServiceDep,
) -> AppointmentCreatedResponse:
    """
    Request an appointment with a doctor for the authenticated patient.

    Args:
        data: Appointment creation data
        caller: Authenticated patient
        service: Appointment service

    Returns:
        Id of the requested appointment
    """
    appointment_id = await service.create_appointment(caller.uid, data)
    return AppointmentCreatedResponse(
        message="Appointment requested",
        appointment_id=appointment_id,
    )


@router.get(
    "/patient",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List the patient's upcoming appointments",
)
async def list_patient_appointments(
    caller: PatientCaller,
    service: AppointmentServiceDep,
) -> AppointmentListResponse:
    """List requested and approved appointments of the authenticated patient."""
    records = await service.list_patient_appointments(caller.uid)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(r) for r in records]
    )


@router.get(
    "/doctor",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List the doctor's upcoming appointments for a date",
)
async def list_doctor_appointments_by_date(
    caller: DoctorCaller,
    service: AppointmentServiceDep,
    appointment_date: str = Query(..., alias="date"),
) -> AppointmentListResponse:
    """
    List requested and approved appointments on one date, by start time.

    Args:
        caller: Authenticated doctor
        service: Appointment service
        appointment_date: Date (YYYY-MM-DD)

    Returns:
        Appointments with current patient names
    """
    records = await service.list_doctor_appointments_by_date(caller.uid, appointment_date)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(r) for r in records]
    )


@router.get(
    "/doctor/history",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List the doctor's completed or cancelled appointments",
)
async def list_doctor_appointments_by_status(
    caller: DoctorCaller,
    service: AppointmentServiceDep,
    status_filter: str = Query(..., alias="status"),
) -> AppointmentListResponse:
    """List completed or cancelled appointments, newest date first."""
    records = await service.list_doctor_appointments_by_status(caller.uid, status_filter)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(r) for r in records]
    )


@router.get(
    "/doctor/patients",
    response_model=DoctorPatientListResponse,
    status_code=status.HTTP_200_OK,
    summary="List patients the doctor has appointments with",
)
async def list_doctor_patients(
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> DoctorPatientListResponse:
    """List distinct patients from the doctor's appointments, most recent first."""
    patients = await service.list_doctor_patients(caller.uid)
    return DoctorPatientListResponse(patients=[DoctorPatient(**p) for p in patients])


@router.post(
    "/blocks",
    response_model=AppointmentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block part of the doctor's calendar",
)
async def block_calendar(
    data: CalendarBlockCreate,
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> AppointmentCreatedResponse:
    """
    Make a time range unavailable to patients.

    Args:
        data: Date and time range to block
        caller: Authenticated doctor
        service: Appointment service

    Returns:
        Id of the block record
    """
    block_id = await service.block_calendar(caller.uid, data)
    return AppointmentCreatedResponse(message="Calendar blocked", appointment_id=block_id)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: str,
    caller: AnyCaller,
    service: AppointmentServiceDep,
) -> AppointmentDetailResponse:
    """Get an appointment the caller is the doctor or patient of."""
    record = await service.get_appointment(appointment_id, caller.uid, caller.role)
    return AppointmentDetailResponse(appointment=AppointmentResponse.model_validate(record))


@router.patch(
    "/{appointment_id}/status",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> MessageResponse:
    """
    Approve, complete or cancel an appointment.

    Args:
        appointment_id: Appointment ID
        data: New status
        caller: Authenticated doctor owning the appointment
        service: Appointment service

    Returns:
        Confirmation message
    """
    await service.update_status(caller.uid, appointment_id, data.status)
    return MessageResponse(message="Status updated")


@router.post(
    "/{appointment_id}/report",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Attach a report and complete the appointment",
)
async def add_appointment_report(
    appointment_id: str,
    data: AppointmentReport,
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> MessageResponse:
    """Attach a clinical report; the appointment becomes completed."""
    await service.attach_report(caller.uid, appointment_id, data.report)
    return MessageResponse(message="Report added")


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentRescheduledResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reschedule an appointment",
)
async def reschedule_appointment(
    appointment_id: str,
    data: AppointmentReschedule,
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> AppointmentRescheduledResponse:
    """
    Move an appointment to a new slot.

    Args:
        appointment_id: Appointment ID
        data: New date and time range
        caller: Authenticated doctor owning the appointment
        service: Appointment service

    Returns:
        Id of the replacement appointment
    """
    new_id = await service.reschedule(caller.uid, appointment_id, data)
    return AppointmentRescheduledResponse(
        message="Appointment rescheduled",
        new_appointment_id=new_id,
    )


@router.post(
    "/{appointment_id}/recurrences",
    response_model=AppointmentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate next week's recurring appointment",
)
async def generate_weekly_appointment(
    appointment_id: str,
    caller: DoctorCaller,
    service: AppointmentServiceDep,
) -> AppointmentCreatedResponse:
    """Create the next weekly instance of a recurring appointment."""
    new_id = await service.generate_weekly_recurrence(caller.uid, appointment_id)
    return AppointmentCreatedResponse(
        message="Weekly appointment generated",
        appointment_id=new_id,
    )
