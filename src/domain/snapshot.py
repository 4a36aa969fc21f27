"""Immutable point-in-time views of the local project."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.domain.calendar import WorkCalendar
from src.domain.resource import Resource
from src.domain.task import Task


class SyncSnapshot(BaseModel):
    """Projection pushed to the engine. Built fresh for every push."""

    model_config = ConfigDict(frozen=True)

    project_id: int | str
    tasks: tuple[Task, ...] = Field(default_factory=tuple)
    resources: tuple[Resource, ...] = Field(default_factory=tuple)
    calendars: tuple[WorkCalendar, ...] = Field(default_factory=tuple)
    imposed_finish_date: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class StoreSnapshot(BaseModel):
    """What the recalculation wrapper reads from the store before a cycle."""

    model_config = ConfigDict(frozen=True)

    project_id: int | str | None = None
    tasks: tuple[Task, ...] = Field(default_factory=tuple)
    resources: tuple[Resource, ...] = Field(default_factory=tuple)
    calendars: tuple[WorkCalendar, ...] = Field(default_factory=tuple)
    is_dirty: bool = False
    imposed_finish_date: datetime | None = None
    revision: int = Field(default=0, description="Store edit counter at the time of the snapshot")
