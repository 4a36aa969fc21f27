"""Resource domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from src.core.config import Constants


class ResourceType(StrEnum):
    """Kind of resource."""

    WORK = "Work"
    MATERIAL = "Material"
    COST = "Cost"


class Resource(BaseModel):
    """Resource held by the local project store."""

    id: str = Field(..., description="Resource ID")
    name: str = Field(default="", description="Display name")
    resource_type: ResourceType = Field(default=ResourceType.WORK)
    calendar_id: str | None = Field(default=None, description="Bound calendar ID (required for Work)")
    max_units: float = Field(default=1.0, ge=0.0)
    standard_rate: float = Field(default=0.0, ge=0.0)
    overtime_rate: float = Field(default=0.0, ge=0.0)
    cost_per_use: float = Field(default=0.0, ge=0.0)
    material_label: str | None = None
    email: str | None = None
    group: str | None = None
    available: bool = True

    @model_validator(mode="after")
    def _work_resources_have_calendar(self) -> "Resource":
        # Work resources always need a calendar; bind them to the default one
        if self.resource_type == ResourceType.WORK and not self.calendar_id:
            self.calendar_id = Constants.DEFAULT_CALENDAR_ID
        return self
