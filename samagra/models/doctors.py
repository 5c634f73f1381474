"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, String, Table, Text, func

from samagra.models.appointments import metadata

# Profile rows are written by the profile functions; scheduling only reads names.
doctors = Table(
    "doctors",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("email", String(320), index=True),
    Column("specialization", String(200)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
