"""Database models."""

from samagra.models.appointments import appointments, metadata
from samagra.models.doctors import doctors
from samagra.models.patients import patients

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "patients",
]
