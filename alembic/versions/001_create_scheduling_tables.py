"""Create appointments, doctors and patients tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "doctors",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("specialization", sa.String(length=200), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctors_email", "doctors", ["email"])

    op.create_table(
        "patients",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_email", "patients", ["email"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=128), nullable=True),
        sa.Column("doctor_id", sa.String(length=128), nullable=False),
        sa.Column("patient_name", sa.Text(), nullable=True),
        sa.Column("doctor_name", sa.Text(), nullable=True),
        sa.Column("appointment_date", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="requested", nullable=False),
        sa.Column("reason", sa.Text(), server_default="", nullable=False),
        sa.Column("is_recurring", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("recurrence_type", sa.String(length=10), server_default="none", nullable=False),
        sa.Column("parent_appointment_id", sa.String(length=36), nullable=True),
        sa.Column("parent_relation", sa.String(length=20), nullable=True),
        sa.Column("rescheduled_to", sa.String(length=36), nullable=True),
        sa.Column("report", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=10), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.CheckConstraint(
            "status IN ('requested', 'approved', 'completed', 'cancelled', 'rescheduled', 'blocked')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "recurrence_type IN ('none', 'weekly')",
            name="appointments_recurrence_type_check",
        ),
        sa.CheckConstraint(
            "parent_relation IS NULL OR parent_relation IN ('rescheduled_from', 'recurrence_of')",
            name="appointments_parent_relation_check",
        ),
        sa.CheckConstraint(
            "(parent_appointment_id IS NULL) = (parent_relation IS NULL)",
            name="appointments_parent_pair_check",
        ),
        sa.CheckConstraint(
            "status <> 'rescheduled' OR rescheduled_to IS NOT NULL",
            name="appointments_rescheduled_successor_check",
        ),
        sa.CheckConstraint(
            "status <> 'blocked' OR patient_id IS NULL",
            name="appointments_blocked_no_patient_check",
        ),
        sa.CheckConstraint("start_time < end_time", name="appointments_time_order_check"),
        sa.PrimaryKeyConstraint("id"),
    )

    # Availability checks filter on doctor, date and status
    op.create_index(
        "ix_appointments_doctor_date_status",
        "appointments",
        ["doctor_id", "appointment_date", "status"],
    )
    op.create_index("ix_appointments_patient_status", "appointments", ["patient_id", "status"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_appointments_patient_status", table_name="appointments")
    op.drop_index("ix_appointments_doctor_date_status", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_patients_email", table_name="patients")
    op.drop_table("patients")
    op.drop_index("ix_doctors_email", table_name="doctors")
    op.drop_table("doctors")
