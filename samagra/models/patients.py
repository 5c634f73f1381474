"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, String, Table, Text, func

from samagra.models.appointments import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("email", String(320), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
