from __future__ import annotations

from pydantic import BaseModel, Field


class Condition(BaseModel):
    """Medical condition offered in the catalog."""

    id: str
    name: str
    description: str | None = None
    severity: int | None = Field(default=None, ge=1, le=10)
