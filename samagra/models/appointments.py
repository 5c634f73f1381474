"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    false,
    func,
)

# Metadata for all tables
metadata = MetaData()

# Appointments table. Calendar blocks live here too, with status 'blocked' and no patient.
appointments = Table(
    "appointments",
    metadata,
    Column("id", String(36), primary_key=True),
    # Ownership / references (identity provider uids)
    Column("patient_id", String(128), nullable=True),
    Column("doctor_id", String(128), nullable=False),
    # Snapshot fields (denormalized at creation time)
    Column("patient_name", Text, nullable=True),
    Column("doctor_name", Text, nullable=True),
    # Slot, wall-clock local to the clinic
    Column("appointment_date", String(10), nullable=False),
    Column("start_time", String(5), nullable=False),
    Column("end_time", String(5), nullable=False),
    # Status management
    Column("status", String(20), nullable=False, server_default="requested"),
    Column("reason", Text, nullable=False, server_default=""),
    # Recurrence
    Column("is_recurring", Boolean, nullable=False, server_default=false()),
    Column("recurrence_type", String(10), nullable=False, server_default="none"),
    # Lineage
    Column("parent_appointment_id", String(36), nullable=True),
    Column("parent_relation", String(20), nullable=True),
    Column("rescheduled_to", String(36), nullable=True),
    # Clinical
    Column("report", Text, nullable=True),
    Column("created_by", String(10), nullable=False),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('requested', 'approved', 'completed', 'cancelled', 'rescheduled', 'blocked')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "recurrence_type IN ('none', 'weekly')",
        name="appointments_recurrence_type_check",
    ),
    CheckConstraint(
        "parent_relation IS NULL OR parent_relation IN ('rescheduled_from', 'recurrence_of')",
        name="appointments_parent_relation_check",
    ),
    CheckConstraint(
        "(parent_appointment_id IS NULL) = (parent_relation IS NULL)",
        name="appointments_parent_pair_check",
    ),
    CheckConstraint(
        "status <> 'rescheduled' OR rescheduled_to IS NOT NULL",
        name="appointments_rescheduled_successor_check",
    ),
    CheckConstraint(
        "status <> 'blocked' OR patient_id IS NULL",
        name="appointments_blocked_no_patient_check",
    ),
    CheckConstraint("start_time < end_time", name="appointments_time_order_check"),
)

Index(
    "ix_appointments_doctor_date_status",
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.status,
)
Index("ix_appointments_patient_status", appointments.c.patient_id, appointments.c.status)
