"""Pydantic models for the scheduling engine wire format.

Push-direction DTOs are built from domain models and dumped by alias (camelCase).
Pull-direction records validate whatever the engine echoes back; unknown fields
are ignored so engine upgrades do not break reconciliation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for engine DTOs: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# Push direction


class AssignmentSyncData(WireModel):
    resource_id: str
    units: float = Field(..., ge=0.0, le=1.0)


class SegmentSyncData(WireModel):
    start_date: datetime
    end_date: datetime


class TaskSyncData(WireModel):
    """Task as configured on the engine. Critical and slack are never sent."""

    id: str
    name: str
    start_date: datetime
    end_date: datetime
    progress: float = Field(..., ge=0.0, le=100.0)
    level: int
    summary: bool
    milestone: bool
    type: str
    predecessors: list[str]
    children: list[str]
    resource_assignments: list[AssignmentSyncData]
    notes: str = ""
    color: str | None = None
    segments: list[SegmentSyncData] | None = None


class WorkingHoursRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_hour: int = Field(..., alias="from")
    to_hour: int = Field(..., alias="to")


class CalendarSyncData(WireModel):
    id: str
    name: str
    description: str = ""
    working_days: list[bool] = Field(..., min_length=7, max_length=7)
    working_hours: list[WorkingHoursRange]
    hours_per_day: float
    template_type: str | None = None


class ResourceSyncData(WireModel):
    id: str
    name: str
    type: str
    max_units: float
    standard_rate: float
    overtime_rate: float
    cost_per_use: float
    calendar_id: str | None = None
    calendar_data: CalendarSyncData | None = None
    material_label: str | None = None
    email: str | None = None
    group: str | None = None
    available: bool = True


class ProjectUpdateRequest(WireModel):
    tasks: list[TaskSyncData]
    resources: list[ResourceSyncData]
    project_calendars: list[CalendarSyncData]
    imposed_finish_date: datetime | None = None


# Pull direction


class EngineTaskRecord(WireModel):
    """Computed task data returned by the engine after recalculation."""

    id: str
    name: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    calculated_start_date: datetime | None = None
    calculated_end_date: datetime | None = None
    early_start: datetime | None = None
    early_finish: datetime | None = None
    late_start: datetime | None = None
    late_finish: datetime | None = None
    progress: float | None = None
    critical: bool = False
    total_slack: float | None = None
    contains_critical_children: bool | None = None
    min_child_slack: float | None = None
    duration: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        # The engine echoes numeric unique IDs for tasks created locally with string IDs
        return str(value)

    @property
    def computed_start(self) -> datetime | None:
        return self.calculated_start_date or self.start_date

    @property
    def computed_finish(self) -> datetime | None:
        return self.calculated_end_date or self.end_date


class ProjectDataPayload(WireModel):
    """Project data returned by ``project.recalculate``."""

    project_id: str | None = None
    project_name: str | None = None
    tasks: list[EngineTaskRecord]

    @field_validator("project_id", mode="before")
    @classmethod
    def _coerce_project_id(cls, value: Any) -> str | None:
        return None if value is None else str(value)


class EngineResponse(BaseModel):
    """Envelope every RPC command answers with."""

    success: bool
    data: Any = None
    error: str | None = None


class ConfigurationUpdateRequest(BaseModel):
    """Narrow projection of user preferences the engine cares about."""

    display: dict[str, str]
