"""Domain models and DTOs."""

from src.domain.calendar import WorkCalendar, WorkingDay, WorkingHours, default_calendar
from src.domain.preferences import (
    SCHEDULE_AFFECTING_CATEGORIES,
    CalendarPreferences,
    PreferencesCategory,
    PreferencesChangeEvent,
    UserPreferences,
)
from src.domain.resource import Resource, ResourceType
from src.domain.snapshot import StoreSnapshot, SyncSnapshot
from src.domain.task import ADVISORY_FIELDS, ResourceAssignment, Task, TaskSegment, TaskType


__all__ = [
    "ADVISORY_FIELDS",
    "SCHEDULE_AFFECTING_CATEGORIES",
    "CalendarPreferences",
    "PreferencesCategory",
    "PreferencesChangeEvent",
    "Resource",
    "ResourceAssignment",
    "ResourceType",
    "StoreSnapshot",
    "SyncSnapshot",
    "Task",
    "TaskSegment",
    "TaskType",
    "UserPreferences",
    "WorkCalendar",
    "WorkingDay",
    "WorkingHours",
    "default_calendar",
]
