from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

STATUS_NEW = "new"
STATUS_ARCHIVED = "archived"
DEFAULT_DOCTOR_ID = "doctor1"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatientInput(_CamelModel):
    """Payload accepted when creating or updating a patient."""

    name: str = ""
    condition: str = ""
    diagnosis_date: date | None = None
    treatment_start_date: date | None = None
    expected_completion_date: date | None = None
    status: str | None = None

    def missing_required_fields(self) -> bool:
        return not self.name.strip() or not self.condition.strip()


class Patient(_CamelModel):
    """Patient record as stored in the ``patients`` collection."""

    id: str = ""
    name: str = ""
    condition: str = ""
    diagnosis_date: date | None = None
    treatment_start_date: date | None = None
    expected_completion_date: date | None = None
    status: str = ""
    doctor_id: str = ""

    def to_document(self) -> dict:
        """Serialize into the camelCase document persisted in MongoDB."""

        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: dict) -> Patient:
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls.model_validate(data)
