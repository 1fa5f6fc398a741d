from __future__ import annotations

import logging
import threading

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from ambulance_api.core.config import settings
from ambulance_api.services import MongoPatientStore, PatientStore

logger = logging.getLogger(__name__)

_client: MongoClient | None = None
_client_lock = threading.Lock()


def get_client() -> MongoClient:
    """Return the process-wide client; its connection pool is thread-safe."""

    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = MongoClient(
                    settings.resolved_mongodb_uri,
                    serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
                )
    return _client


def get_database() -> Database:
    return get_client()[settings.mongodb_database]


def patients_collection() -> Collection:
    return get_database()[settings.mongodb_collection]


def counters_collection() -> Collection:
    return get_database()[settings.mongodb_counters_collection]


def ping_database() -> None:
    """Fail fast when MongoDB is unreachable."""

    get_client().admin.command("ping")
    logger.info(
        "connected to MongoDB",
        extra={"database": settings.mongodb_database},
    )


def close_client() -> None:
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None


def get_patient_store() -> PatientStore:
    """FastAPI dependency providing the configured patient store."""

    return MongoPatientStore(
        patients_collection(),
        counters_collection(),
        timeout=settings.mongodb_timeout_seconds,
    )
