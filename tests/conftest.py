import mongomock
import pytest

from ambulance_api.db.session import get_patient_store
from ambulance_api.main import app
from ambulance_api.services import MongoPatientStore


@pytest.fixture
def database():
    return mongomock.MongoClient()["ambulance"]


@pytest.fixture
def store(database):
    return MongoPatientStore(database["patients"], database["counters"])


@pytest.fixture
def api_store(store):
    """Route the API's patient store dependency to the in-memory database."""

    app.dependency_overrides[get_patient_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_patient_store, None)
