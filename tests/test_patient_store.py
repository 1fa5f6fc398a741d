from datetime import date
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from ambulance_api.models import Patient, PatientInput
from ambulance_api.services import MongoPatientStore, PersistenceError, identity_filter


def _input(**overrides):
    values = {"name": "Jane Doe", "condition": "Flu"}
    values.update(overrides)
    return PatientInput(**values)


def test_identity_filter_uses_object_id_when_parsable():
    oid = ObjectId()
    assert identity_filter(str(oid)) == {"_id": oid}


def test_identity_filter_falls_back_to_application_id():
    assert identity_filter("42") == {"id": "42"}
    assert identity_filter("not-an-object-id") == {"id": "not-an-object-id"}


def test_create_assigns_sequence_id_and_defaults(store, database):
    patient = store.create_patient(_input(diagnosis_date=date(2024, 3, 1)))

    assert patient.id == "1"
    assert patient.status == "new"
    assert patient.doctor_id == "doctor1"

    stored = database["patients"].find_one({"id": "1"})
    assert stored["name"] == "Jane Doe"
    assert stored["doctorId"] == "doctor1"
    assert stored["diagnosisDate"] == "2024-03-01"


def test_create_keeps_caller_status(store):
    patient = store.create_patient(_input(status="in-treatment"))
    assert patient.status == "in-treatment"


def test_create_then_get_round_trips(store):
    created = store.create_patient(
        _input(
            diagnosis_date=date(2024, 3, 1),
            treatment_start_date=date(2024, 3, 2),
            expected_completion_date=date(2024, 4, 1),
        )
    )

    assert store.get_patient_by_id(created.id) == created


def test_sequential_creates_yield_distinct_ids(store, database):
    ids = [store.create_patient(_input(name=f"Patient {n}")).id for n in range(20)]

    assert len(set(ids)) == 20
    assert ids == [str(n) for n in range(1, 21)]
    assert database["counters"].find_one({"_id": "patientid"})["seq"] == 20


def test_get_unknown_patient_returns_none(store):
    assert store.get_patient_by_id("999") is None
    assert store.get_patient_by_id(str(ObjectId())) is None


def test_get_by_object_id_fills_missing_id(store, database):
    oid = database["patients"].insert_one(
        {"name": "Legacy", "condition": "Asthma", "status": "new", "doctorId": "doctor7"}
    ).inserted_id

    patient = store.get_patient_by_id(str(oid))

    assert patient.id == str(oid)
    assert patient.name == "Legacy"
    assert patient.doctor_id == "doctor7"


def test_get_by_object_id_keeps_stored_id(store, database):
    oid = database["patients"].insert_one(
        {"id": "legacy-1", "name": "Legacy", "condition": "Asthma"}
    ).inserted_id

    assert store.get_patient_by_id(str(oid)).id == "legacy-1"


def test_get_all_patients_strips_store_fields(store):
    store.create_patient(_input(name="A"))
    store.create_patient(_input(name="B"))

    patients = store.get_all_patients()

    assert [p.name for p in patients] == ["A", "B"]
    assert all(isinstance(p, Patient) for p in patients)


def test_update_with_empty_status_preserves_existing(store):
    created = store.create_patient(_input(status="in-treatment"))

    updated = store.update_patient(created.id, _input(condition="Pneumonia", status=""))

    assert updated.status == "in-treatment"
    assert updated.condition == "Pneumonia"
    assert store.get_patient_by_id(created.id).status == "in-treatment"


def test_update_with_status_overwrites(store):
    created = store.create_patient(_input())

    updated = store.update_patient(created.id, _input(status="discharged"))

    assert updated.status == "discharged"
    assert store.get_patient_by_id(created.id).status == "discharged"


def test_update_preserves_id_and_doctor(store, database):
    created = store.create_patient(_input())
    database["patients"].update_one({"id": created.id}, {"$set": {"doctorId": "doctor9"}})

    updated = store.update_patient(created.id, _input(name="Jane Smith"))

    assert updated.id == created.id
    assert updated.doctor_id == "doctor9"
    assert database["patients"].count_documents({}) == 1


def test_update_replaces_whole_document(store):
    created = store.create_patient(_input(diagnosis_date=date(2024, 3, 1)))

    updated = store.update_patient(created.id, _input())

    assert updated.diagnosis_date is None
    assert store.get_patient_by_id(created.id).diagnosis_date is None


def test_update_unknown_patient_returns_none(store, database):
    assert store.update_patient("404", _input()) is None
    assert database["patients"].count_documents({}) == 0


def test_update_by_object_id_targets_native_identifier(store, database):
    oid = database["patients"].insert_one(
        {"name": "Legacy", "condition": "Asthma", "status": "observation", "doctorId": "doctor3"}
    ).inserted_id

    updated = store.update_patient(str(oid), _input())

    assert updated.id == str(oid)
    stored = database["patients"].find_one({"_id": oid})
    assert stored["id"] == str(oid)
    assert stored["status"] == "observation"
    assert stored["doctorId"] == "doctor3"


def test_archive_is_idempotent(store):
    created = store.create_patient(_input())

    store.archive_patient(created.id)
    assert store.get_patient_by_id(created.id).status == "archived"

    store.archive_patient(created.id)
    assert store.get_patient_by_id(created.id).status == "archived"


def test_archive_only_touches_status(store):
    created = store.create_patient(_input(diagnosis_date=date(2024, 3, 1)))

    store.archive_patient(created.id)
    archived = store.get_patient_by_id(created.id)

    assert archived.model_dump(exclude={"status"}) == created.model_dump(exclude={"status"})


def test_archive_unknown_patient_is_noop(store, database):
    store.archive_patient("12345")
    store.archive_patient(str(ObjectId()))
    assert database["patients"].count_documents({}) == 0


def test_archive_by_object_id(store, database):
    oid = database["patients"].insert_one({"name": "Legacy", "condition": "Asthma"}).inserted_id

    store.archive_patient(str(oid))

    assert database["patients"].find_one({"_id": oid})["status"] == "archived"


def test_store_failures_raise_persistence_error():
    patients = MagicMock()
    patients.find_one.side_effect = ServerSelectionTimeoutError("no servers available")
    patients.find.side_effect = ServerSelectionTimeoutError("no servers available")
    store = MongoPatientStore(patients, MagicMock(), timeout=0.5)

    with pytest.raises(PersistenceError) as excinfo:
        store.get_patient_by_id("1")
    assert excinfo.value.operation == "find patient"
    assert excinfo.value.public_message == "Failed to find patient"

    with pytest.raises(PersistenceError) as excinfo:
        store.get_all_patients()
    assert excinfo.value.operation == "list patients"

    with pytest.raises(PersistenceError):
        store.update_patient("1", _input())

    with pytest.raises(PersistenceError):
        store.archive_patient("1")


def test_insert_failure_after_allocation_raises(database):
    patients = MagicMock()
    patients.insert_one.side_effect = ServerSelectionTimeoutError("primary stepped down")
    store = MongoPatientStore(patients, database["counters"])

    with pytest.raises(PersistenceError) as excinfo:
        store.create_patient(_input())

    assert excinfo.value.operation == "create patient"
    # the consumed sequence value is not handed out again
    assert database["counters"].find_one({"_id": "patientid"})["seq"] == 1


def test_undecodable_document_raises_persistence_error(store, database):
    database["patients"].insert_one({"id": "7", "name": 42, "condition": "Flu"})

    with pytest.raises(PersistenceError) as excinfo:
        store.get_patient_by_id("7")

    assert excinfo.value.operation == "find patient"
