"""Pydantic models for the ambulance patient API."""

from ambulance_api.models.condition import Condition
from ambulance_api.models.patient import (
    DEFAULT_DOCTOR_ID,
    STATUS_ARCHIVED,
    STATUS_NEW,
    Patient,
    PatientInput,
)

__all__ = [
    "Condition",
    "DEFAULT_DOCTOR_ID",
    "Patient",
    "PatientInput",
    "STATUS_ARCHIVED",
    "STATUS_NEW",
]
