"""Static catalog of medical conditions."""

from __future__ import annotations

from ambulance_api.models import Condition

CONDITION_CATALOG: tuple[Condition, ...] = (
    Condition(
        id="flu",
        name="Flu",
        description="Seasonal influenza with fever and fatigue",
        severity=3,
    ),
    Condition(
        id="fracture",
        name="Bone fracture",
        description="Broken bone requiring immobilisation",
        severity=6,
    ),
    Condition(
        id="hypertension",
        name="Hypertension",
        description="Persistently elevated blood pressure",
        severity=5,
    ),
    Condition(
        id="asthma",
        name="Asthma",
        description="Chronic inflammation of the airways",
        severity=4,
    ),
    Condition(
        id="stroke",
        name="Stroke",
        description="Interrupted blood supply to the brain",
        severity=10,
    ),
    Condition(id="checkup", name="Routine check-up"),
)


def list_conditions() -> list[Condition]:
    return list(CONDITION_CATALOG)
