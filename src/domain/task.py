"""Task domain models and enums."""

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskType(StrEnum):
    """How the engine keeps work, duration and units consistent."""

    FIXED_DURATION = "FIXED_DURATION"
    FIXED_UNITS = "FIXED_UNITS"
    FIXED_WORK = "FIXED_WORK"


class ResourceAssignment(BaseModel):
    """Resource assigned to a task with a load factor (1.0 means 100%)."""

    resource_id: str = Field(..., description="Assigned resource ID")
    units: float = Field(default=1.0, ge=0.0, description="Assignment units")


class TaskSegment(BaseModel):
    """Working sub-range of a split task."""

    start_date: datetime
    end_date: datetime


# Fields written only by reconciliation, never by the user
ADVISORY_FIELDS: frozenset[str] = frozenset(
    {
        "early_start",
        "early_finish",
        "late_start",
        "late_finish",
        "critical",
        "total_slack",
        "contains_critical_children",
        "min_child_slack",
        "dependency_violation",
    }
)


class Task(BaseModel):
    """Task held by the local project store."""

    id: str = Field(..., description="Stable task ID, unique within a project")
    name: str = Field(default="", description="Task name")

    # User-chosen schedule fields
    start_date: datetime = Field(..., description="User-placed start")
    end_date: datetime = Field(..., description="User-placed finish")
    progress: float = Field(default=0.0, ge=0.0, le=1.0, description="Completion fraction")
    level: int = Field(default=0, ge=0, description="Outline depth, roots are level 0")
    parent_id: str | None = Field(default=None, description="Parent task ID (derived from outline)")
    summary: bool = Field(default=False, description="True iff the task has children")
    milestone: bool = Field(default=False, description="Zero-duration checkpoint")
    predecessors: list[str] = Field(default_factory=list, description="Finish-to-start predecessor IDs")
    children: list[str] = Field(default_factory=list, description="Direct child task IDs")
    resource_assignments: list[ResourceAssignment] = Field(default_factory=list)
    task_type: TaskType = Field(default=TaskType.FIXED_DURATION)
    notes: str = Field(default="")
    color: str | None = Field(default=None, description="Display color")
    segments: list[TaskSegment] | None = Field(default=None, description="Split ranges, ordered")

    # Advisory fields
    early_start: datetime | None = None
    early_finish: datetime | None = None
    late_start: datetime | None = None
    late_finish: datetime | None = None
    critical: bool = False
    total_slack: float | None = None
    contains_critical_children: bool | None = None
    min_child_slack: float | None = None
    dependency_violation: bool = False

    @property
    def duration(self) -> timedelta:
        """Elapsed time between the user's start and finish."""
        return self.end_date - self.start_date
