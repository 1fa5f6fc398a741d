"""Patient persistence backed by MongoDB."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import pymongo
from bson import ObjectId
from pydantic import ValidationError
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ambulance_api.models import (
    DEFAULT_DOCTOR_ID,
    STATUS_ARCHIVED,
    STATUS_NEW,
    Patient,
    PatientInput,
)
from ambulance_api.services.errors import PersistenceError
from ambulance_api.services.sequences import PATIENT_SEQUENCE, get_next_sequence

logger = logging.getLogger(__name__)


class PatientStore(Protocol):
    """Operations the request handlers rely on.

    Lookups that match nothing return ``None``; store failures raise
    :class:`PersistenceError`.
    """

    def get_all_patients(self) -> list[Patient]: ...

    def get_patient_by_id(self, patient_id: str) -> Patient | None: ...

    def create_patient(self, payload: PatientInput) -> Patient: ...

    def update_patient(self, patient_id: str, payload: PatientInput) -> Patient | None: ...

    def archive_patient(self, patient_id: str) -> None: ...


def identity_filter(patient_id: str) -> dict[str, Any]:
    """Build the query matching ``patient_id``.

    Identifiers that parse as an ObjectId are looked up by ``_id``; anything
    else is matched against the application ``id`` field.
    """

    if ObjectId.is_valid(patient_id):
        return {"_id": ObjectId(patient_id)}
    return {"id": patient_id}


class MongoPatientStore:
    """Patient store using one collection for records and one for counters."""

    def __init__(
        self,
        patients: Collection,
        counters: Collection,
        *,
        timeout: float | None = None,
    ) -> None:
        self._patients = patients
        self._counters = counters
        self._timeout = timeout

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            with pymongo.timeout(self._timeout):
                yield
        except PyMongoError as exc:
            raise PersistenceError(name, str(exc)) from exc
        except ValidationError as exc:
            raise PersistenceError(name, f"undecodable patient document: {exc}") from exc

    def _resolve(self, patient_id: str) -> tuple[dict[str, Any], Patient | None]:
        query = identity_filter(patient_id)
        document = self._patients.find_one(query)
        if document is None:
            return query, None

        patient = Patient.from_document(document)
        if "_id" in query and not patient.id:
            patient.id = patient_id
        return query, patient

    def get_all_patients(self) -> list[Patient]:
        with self._operation("list patients"):
            return [Patient.from_document(doc) for doc in self._patients.find({})]

    def get_patient_by_id(self, patient_id: str) -> Patient | None:
        with self._operation("find patient"):
            _, patient = self._resolve(patient_id)
        return patient

    def create_patient(self, payload: PatientInput) -> Patient:
        with self._operation("create patient"):
            patient_id = str(get_next_sequence(self._counters, PATIENT_SEQUENCE))
            patient = Patient(
                id=patient_id,
                name=payload.name,
                condition=payload.condition,
                diagnosis_date=payload.diagnosis_date,
                treatment_start_date=payload.treatment_start_date,
                expected_completion_date=payload.expected_completion_date,
                status=payload.status or STATUS_NEW,
                doctor_id=DEFAULT_DOCTOR_ID,
            )
            self._patients.insert_one(patient.to_document())

        logger.info("patient created", extra={"patient_id": patient.id})
        return patient

    def update_patient(self, patient_id: str, payload: PatientInput) -> Patient | None:
        with self._operation("update patient"):
            query, existing = self._resolve(patient_id)
            if existing is None:
                return None

            updated = Patient(
                id=existing.id,
                name=payload.name,
                condition=payload.condition,
                diagnosis_date=payload.diagnosis_date,
                treatment_start_date=payload.treatment_start_date,
                expected_completion_date=payload.expected_completion_date,
                status=payload.status or existing.status,
                doctor_id=existing.doctor_id,
            )
            self._patients.replace_one(query, updated.to_document())

        logger.info("patient updated", extra={"patient_id": updated.id})
        return updated

    def archive_patient(self, patient_id: str) -> None:
        with self._operation("archive patient"):
            query, existing = self._resolve(patient_id)
            if existing is None:
                logger.debug("archive skipped, patient %s not found", patient_id)
                return
            self._patients.update_one(query, {"$set": {"status": STATUS_ARCHIVED}})

        logger.info("patient archived", extra={"patient_id": existing.id})
