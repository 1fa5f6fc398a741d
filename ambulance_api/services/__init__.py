"""Service layer for the ambulance patient API."""

from ambulance_api.services.conditions import list_conditions
from ambulance_api.services.errors import PersistenceError
from ambulance_api.services.patient_store import (
    MongoPatientStore,
    PatientStore,
    identity_filter,
)
from ambulance_api.services.sequences import PATIENT_SEQUENCE, get_next_sequence

__all__ = [
    "MongoPatientStore",
    "PATIENT_SEQUENCE",
    "PatientStore",
    "PersistenceError",
    "get_next_sequence",
    "identity_filter",
    "list_conditions",
]
