"""Named counters used to mint application identifiers."""

from __future__ import annotations

from typing import Final

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ambulance_api.services.errors import PersistenceError

PATIENT_SEQUENCE: Final[str] = "patientid"


def get_next_sequence(counters: Collection, name: str) -> int:
    """Atomically increment the ``name`` counter and return the new value.

    The counter document is created on first use, so the first value issued
    for a sequence is 1. Values are never handed out twice, even when the
    caller fails to use the one it received. The caller owns the deadline
    (see ``pymongo.timeout``).
    """

    try:
        counter = counters.find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as exc:
        raise PersistenceError(f"allocate {name} sequence", str(exc)) from exc

    return int(counter["seq"])
