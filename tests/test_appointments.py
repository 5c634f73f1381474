"""Tests for appointment endpoints."""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from samagra.models import appointments, patients
from samagra.repositories.appointment_repository import AppointmentRepository

from conftest import DOCTOR_ID, OTHER_PATIENT_ID, PATIENT_ID, bearer

BASE = "/api/v1/appointments"


async def create_appointment(client: AsyncClient, headers: dict, data: dict) -> str:
    response = await client.post(f"{BASE}/", json=data, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["appointment_id"]


async def get_appointment(client: AsyncClient, headers: dict, appointment_id: str) -> dict:
    response = await client.get(f"{BASE}/{appointment_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["appointment"]


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test requesting an appointment."""
    response = await client.post(f"{BASE}/", json=sample_appointment_data, headers=patient_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["appointment_id"]

    appointment = await get_appointment(client, doctor_headers, data["appointment_id"])
    assert appointment["status"] == "requested"
    assert appointment["patient_id"] == PATIENT_ID
    assert appointment["patient_name"] == "Meera Iyer"
    assert appointment["doctor_name"] == "Asha Rao"
    assert appointment["created_by"] == "patient"
    assert appointment["parent_appointment_id"] is None


@pytest.mark.asyncio
async def test_create_notifies_doctor(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
    fcm_send,
) -> None:
    """The doctor is told about every new request."""
    await create_appointment(client, patient_headers, sample_appointment_data)

    fcm_send.assert_called_once()
    message = fcm_send.call_args.args[0]
    assert message.topic == f"user-{DOCTOR_ID}"
    assert message.notification.title == "New Appointment Request"
    assert message.data["appointment_date"] == "2024-03-25"


@pytest.mark.asyncio
async def test_create_survives_notification_failure(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
    fcm_send,
) -> None:
    """A failed push never fails the booking."""
    fcm_send.side_effect = RuntimeError("FCM unavailable")

    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    assert appointment_id
    fcm_send.assert_called_once()


@pytest.mark.asyncio
async def test_create_overlapping_slot_conflicts(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "start_time": "10:15", "end_time": "10:45"},
        headers=other_patient_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Time slot not available"
    assert response.json()["code"] == "SlotUnavailableException"


@pytest.mark.asyncio
async def test_back_to_back_slots_are_allowed(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    await create_appointment(client, patient_headers, sample_appointment_data)
    await create_appointment(
        client,
        other_patient_headers,
        {**sample_appointment_data, "start_time": "10:30", "end_time": "11:00"},
    )


@pytest.mark.asyncio
async def test_concurrent_overlapping_requests_book_once(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Two simultaneous requests for the same time: exactly one wins."""
    responses = await asyncio.gather(
        client.post(f"{BASE}/", json=sample_appointment_data, headers=patient_headers),
        client.post(
            f"{BASE}/",
            json={**sample_appointment_data, "start_time": "10:10", "end_time": "10:40"},
            headers=other_patient_headers,
        ),
    )

    assert sorted(r.status_code for r in responses) == [201, 409]


@pytest.mark.asyncio
async def test_create_with_unknown_doctor(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "doctor_id": "no-such-doctor"},
        headers=patient_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes",
    [
        {"appointment_date": "2024-02-30"},
        {"appointment_date": "25-03-2024"},
        {"start_time": "25:00"},
        {"end_time": "10:30\n"},
        {"appointment_date": "2024-03-25\n"},
        {"start_time": "11:00", "end_time": "10:00"},
        {"start_time": "10:00", "end_time": "10:00"},
        {"doctor_id": "   "},
    ],
)
async def test_create_rejects_malformed_input(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
    changes: dict,
) -> None:
    response = await client.post(
        f"{BASE}/", json={**sample_appointment_data, **changes}, headers=patient_headers
    )
    assert response.status_code == 400
    assert response.json()["code"] == "ValidationError"


@pytest.mark.asyncio
async def test_check_availability(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    await create_appointment(client, patient_headers, sample_appointment_data)

    params = {"doctor_id": DOCTOR_ID, "date": "2024-03-25"}
    taken = await client.get(
        f"{BASE}/availability",
        params={**params, "start_time": "10:20", "end_time": "11:00"},
        headers=patient_headers,
    )
    free = await client.get(
        f"{BASE}/availability",
        params={**params, "start_time": "10:30", "end_time": "11:00"},
        headers=patient_headers,
    )

    assert taken.status_code == 200
    assert taken.json()["available"] is False
    assert free.json()["available"] is True


@pytest.mark.asyncio
async def test_check_availability_rejects_bad_time(
    client: AsyncClient,
    patient_headers: dict,
) -> None:
    response = await client.get(
        f"{BASE}/availability",
        params={
            "doctor_id": DOCTOR_ID,
            "date": "2024-03-25",
            "start_time": "10:00",
            "end_time": "9:00",
        },
        headers=patient_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_approve_and_cancel(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
    fcm_send,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "approved"},
        headers=doctor_headers,
    )
    assert response.status_code == 200
    assert (await get_appointment(client, doctor_headers, appointment_id))["status"] == "approved"

    message = fcm_send.call_args.args[0]
    assert message.topic == f"user-{PATIENT_ID}"
    assert message.notification.title == "Appointment Approved"

    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "cancelled"},
        headers=doctor_headers,
    )
    assert response.status_code == 200

    # A cancelled appointment is terminal
    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "approved"},
        headers=doctor_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_slot(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)
    await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "cancelled"},
        headers=doctor_headers,
    )

    await create_appointment(client, other_patient_headers, sample_appointment_data)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["maybe", "requested", "rescheduled", "blocked"])
async def test_update_status_rejects_values(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
    status: str,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": status},
        headers=doctor_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid status"


@pytest.mark.asyncio
async def test_requested_cannot_jump_to_completed(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "completed"},
        headers=doctor_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_doctor_cannot_change_appointment(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    other_doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "approved"},
        headers=other_doctor_headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Not your appointment"

    response = await client.post(
        f"{BASE}/{appointment_id}/reschedule",
        json={"new_date": "2024-03-26", "new_start_time": "09:00", "new_end_time": "09:30"},
        headers=other_doctor_headers,
    )
    assert response.status_code == 403

    appointment = await get_appointment(client, doctor_headers, appointment_id)
    assert appointment["status"] == "requested"
    assert appointment["rescheduled_to"] is None


@pytest.mark.asyncio
async def test_missing_appointment(client: AsyncClient, doctor_headers: dict) -> None:
    response = await client.patch(
        f"{BASE}/does-not-exist/status",
        json={"status": "approved"},
        headers=doctor_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_attach_report(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    # Only an approved appointment can be completed
    response = await client.post(
        f"{BASE}/{appointment_id}/report",
        json={"report": "BP 120/80"},
        headers=doctor_headers,
    )
    assert response.status_code == 400

    await client.patch(
        f"{BASE}/{appointment_id}/status",
        json={"status": "approved"},
        headers=doctor_headers,
    )
    response = await client.post(
        f"{BASE}/{appointment_id}/report",
        json={"report": "BP 120/80"},
        headers=doctor_headers,
    )
    assert response.status_code == 200

    appointment = await get_appointment(client, doctor_headers, appointment_id)
    assert appointment["status"] == "completed"
    assert appointment["report"] == "BP 120/80"

    # A completed appointment's report can be amended
    response = await client.post(
        f"{BASE}/{appointment_id}/report",
        json={"report": "BP 118/79 on recheck"},
        headers=doctor_headers,
    )
    assert response.status_code == 200
    appointment = await get_appointment(client, doctor_headers, appointment_id)
    assert appointment["report"] == "BP 118/79 on recheck"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"report": ""}, {"report": "   "}])
async def test_attach_empty_report(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
    body: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/{appointment_id}/report", json=body, headers=doctor_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Report required"


@pytest.mark.asyncio
async def test_reschedule_links_both_records(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    original_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/{original_id}/reschedule",
        json={"new_date": "2024-03-26", "new_start_time": "11:00", "new_end_time": "11:30"},
        headers=doctor_headers,
    )
    assert response.status_code == 201
    new_id = response.json()["new_appointment_id"]
    assert new_id != original_id

    original = await get_appointment(client, doctor_headers, original_id)
    assert original["status"] == "rescheduled"
    assert original["rescheduled_to"] == new_id

    successor = await get_appointment(client, doctor_headers, new_id)
    assert successor["status"] == "requested"
    assert successor["parent_appointment_id"] == original_id
    assert successor["parent_relation"] == "rescheduled_from"
    assert successor["created_by"] == "doctor"
    assert successor["patient_id"] == PATIENT_ID
    assert successor["reason"] == sample_appointment_data["reason"]
    assert (successor["appointment_date"], successor["start_time"]) == ("2024-03-26", "11:00")

    response = await client.get(f"{BASE}/patient", headers=patient_headers)
    assert [a["id"] for a in response.json()["appointments"]] == [new_id]

    # The original's time is free again
    response = await client.get(
        f"{BASE}/availability",
        params={
            "doctor_id": DOCTOR_ID,
            "date": "2024-03-25",
            "start_time": "10:00",
            "end_time": "10:30",
        },
        headers=patient_headers,
    )
    assert response.json()["available"] is True


@pytest.mark.asyncio
async def test_reschedule_may_overlap_own_slot(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    original_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/{original_id}/reschedule",
        json={"new_date": "2024-03-25", "new_start_time": "10:15", "new_end_time": "10:45"},
        headers=doctor_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_reschedule_into_taken_slot(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    original_id = await create_appointment(client, patient_headers, sample_appointment_data)
    await create_appointment(
        client,
        other_patient_headers,
        {**sample_appointment_data, "start_time": "14:00", "end_time": "14:30"},
    )

    response = await client.post(
        f"{BASE}/{original_id}/reschedule",
        json={"new_date": "2024-03-25", "new_start_time": "14:15", "new_end_time": "14:45"},
        headers=doctor_headers,
    )
    assert response.status_code == 409

    # Nothing changed
    original = await get_appointment(client, doctor_headers, original_id)
    assert original["status"] == "requested"
    response = await client.get(f"{BASE}/patient", headers=patient_headers)
    assert [a["id"] for a in response.json()["appointments"]] == [original_id]


@pytest.mark.asyncio
async def test_trailing_newline_time_does_not_block_next_slot(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "start_time": "09:00", "end_time": "10:00\n"},
        headers=patient_headers,
    )
    assert response.status_code == 400

    await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "start_time": "09:00", "end_time": "10:00"},
    )
    await create_appointment(client, other_patient_headers, sample_appointment_data)


@pytest.mark.asyncio
async def test_failed_reschedule_leaves_no_trace(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
    db_session,
    monkeypatch,
) -> None:
    """If the original cannot be retired, the successor is not kept either."""
    original_id = await create_appointment(client, patient_headers, sample_appointment_data)

    async def update_nothing(self, appointment_id, values, expected_status=None):
        return False

    monkeypatch.setattr(AppointmentRepository, "update", update_nothing)

    response = await client.post(
        f"{BASE}/{original_id}/reschedule",
        json={"new_date": "2024-03-26", "new_start_time": "11:00", "new_end_time": "11:30"},
        headers=doctor_headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "ConflictException"

    result = await db_session.execute(
        select(appointments).where(appointments.c.doctor_id == DOCTOR_ID)
    )
    records = [dict(row._mapping) for row in result.fetchall()]
    assert len(records) == 1
    assert records[0]["id"] == original_id
    assert records[0]["status"] == "requested"
    assert records[0]["appointment_date"] == "2024-03-25"
    assert records[0]["rescheduled_to"] is None


@pytest.mark.asyncio
async def test_reschedule_rejects_terminal_appointment(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    original_id = await create_appointment(client, patient_headers, sample_appointment_data)
    await client.patch(
        f"{BASE}/{original_id}/status",
        json={"status": "cancelled"},
        headers=doctor_headers,
    )

    response = await client.post(
        f"{BASE}/{original_id}/reschedule",
        json={"new_date": "2024-03-26", "new_start_time": "09:00", "new_end_time": "09:30"},
        headers=doctor_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_generate_weekly_recurrence(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    source_id = await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "is_recurring": True, "recurrence_type": "weekly"},
    )

    response = await client.post(f"{BASE}/{source_id}/recurrences", headers=doctor_headers)
    assert response.status_code == 201
    new_id = response.json()["appointment_id"]

    instance = await get_appointment(client, doctor_headers, new_id)
    assert instance["appointment_date"] == "2024-04-01"
    assert (instance["start_time"], instance["end_time"]) == ("10:00", "10:30")
    assert instance["status"] == "requested"
    assert instance["parent_appointment_id"] == source_id
    assert instance["parent_relation"] == "recurrence_of"
    assert instance["is_recurring"] is True
    assert instance["recurrence_type"] == "weekly"

    # The source is untouched
    source = await get_appointment(client, doctor_headers, source_id)
    assert source["status"] == "requested"

    # Next week's slot is now taken by the first instance
    response = await client.post(f"{BASE}/{source_id}/recurrences", headers=doctor_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_recurrence_requires_weekly_source(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    source_id = await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(f"{BASE}/{source_id}/recurrences", headers=doctor_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Not weekly recurring"


@pytest.mark.asyncio
async def test_block_calendar(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    response = await client.post(
        f"{BASE}/blocks",
        json={"appointment_date": "2024-03-25", "start_time": "12:00", "end_time": "13:00"},
        headers=doctor_headers,
    )
    assert response.status_code == 201
    block_id = response.json()["appointment_id"]

    block = await get_appointment(client, doctor_headers, block_id)
    assert block["status"] == "blocked"
    assert block["patient_id"] is None
    assert block["reason"] == "Doctor unavailable"
    assert block["patient_name"] is None

    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "start_time": "12:30", "end_time": "13:00"},
        headers=patient_headers,
    )
    assert response.status_code == 409

    # Blocks never show up as appointments
    response = await client.get(
        f"{BASE}/doctor", params={"date": "2024-03-25"}, headers=doctor_headers
    )
    assert response.json()["appointments"] == []


@pytest.mark.asyncio
async def test_block_cannot_cover_existing_appointment(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    await create_appointment(client, patient_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/blocks",
        json={
            "appointment_date": "2024-03-25",
            "start_time": "09:00",
            "end_time": "12:00",
            "reason": "Conference",
        },
        headers=doctor_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_doctor_appointments_by_date(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
    db_session,
) -> None:
    later = await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "start_time": "15:00", "end_time": "15:30"},
    )
    earlier = await create_appointment(client, other_patient_headers, sample_appointment_data)
    await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "appointment_date": "2024-03-26"},
    )

    # Names are looked up when read, not only when booked
    await db_session.execute(
        update(patients).where(patients.c.id == PATIENT_ID).values(last_name="Iyer-Rao")
    )
    await db_session.commit()

    response = await client.get(
        f"{BASE}/doctor", params={"date": "2024-03-25"}, headers=doctor_headers
    )
    assert response.status_code == 200
    appointments = response.json()["appointments"]
    assert [a["id"] for a in appointments] == [earlier, later]
    assert appointments[0]["patient_name"] == "Arjun Das"
    assert appointments[1]["patient_name"] == "Meera Iyer-Rao"

    again = await client.get(
        f"{BASE}/doctor", params={"date": "2024-03-25"}, headers=doctor_headers
    )
    assert again.json() == response.json()


@pytest.mark.asyncio
async def test_list_doctor_appointments_rejects_bad_date(
    client: AsyncClient,
    doctor_headers: dict,
) -> None:
    response = await client.get(
        f"{BASE}/doctor", params={"date": "tomorrow"}, headers=doctor_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_doctor_history(
    client: AsyncClient,
    patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    first = await create_appointment(client, patient_headers, sample_appointment_data)
    second = await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "appointment_date": "2024-03-28"},
    )
    for appointment_id in (first, second):
        await client.patch(
            f"{BASE}/{appointment_id}/status",
            json={"status": "cancelled"},
            headers=doctor_headers,
        )

    response = await client.get(
        f"{BASE}/doctor/history", params={"status": "cancelled"}, headers=doctor_headers
    )
    assert response.status_code == 200
    assert [a["id"] for a in response.json()["appointments"]] == [second, first]

    response = await client.get(
        f"{BASE}/doctor/history", params={"status": "requested"}, headers=doctor_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_doctor_patients(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    await create_appointment(client, patient_headers, sample_appointment_data)
    await create_appointment(
        client,
        other_patient_headers,
        {**sample_appointment_data, "appointment_date": "2024-03-27"},
    )
    await create_appointment(
        client,
        patient_headers,
        {**sample_appointment_data, "appointment_date": "2024-03-20"},
    )
    await client.post(
        f"{BASE}/blocks",
        json={"appointment_date": "2024-03-29", "start_time": "09:00", "end_time": "17:00"},
        headers=doctor_headers,
    )

    response = await client.get(f"{BASE}/doctor/patients", headers=doctor_headers)
    assert response.status_code == 200
    assert response.json()["patients"] == [
        {"patient_id": OTHER_PATIENT_ID, "patient_name": "Arjun Das"},
        {"patient_id": PATIENT_ID, "patient_name": "Meera Iyer"},
    ]


@pytest.mark.asyncio
async def test_get_appointment_is_limited_to_its_parties(
    client: AsyncClient,
    patient_headers: dict,
    other_patient_headers: dict,
    other_doctor_headers: dict,
    sample_appointment_data: dict,
) -> None:
    appointment_id = await create_appointment(client, patient_headers, sample_appointment_data)

    own = await get_appointment(client, patient_headers, appointment_id)
    assert own["doctor_name"] == "Asha Rao"

    for headers in (other_patient_headers, other_doctor_headers):
        response = await client.get(f"{BASE}/{appointment_id}", headers=headers)
        assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers,expected",
    [
        ({}, 401),
        (bearer("not-a-real-token"), 401),
        (bearer("no-role-token"), 403),
        (bearer("admin-token"), 403),
        (bearer("doctor-token"), 403),
    ],
)
async def test_create_requires_patient(
    client: AsyncClient,
    sample_appointment_data: dict,
    headers: dict,
    expected: int,
) -> None:
    response = await client.post(f"{BASE}/", json=sample_appointment_data, headers=headers)
    assert response.status_code == expected


@pytest.mark.asyncio
async def test_doctor_endpoints_reject_patients(
    client: AsyncClient,
    patient_headers: dict,
) -> None:
    response = await client.post(
        f"{BASE}/blocks",
        json={"appointment_date": "2024-03-25", "start_time": "12:00", "end_time": "13:00"},
        headers=patient_headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden: invalid role"

    response = await client.get(f"{BASE}/doctor/patients", headers=patient_headers)
    assert response.status_code == 403
