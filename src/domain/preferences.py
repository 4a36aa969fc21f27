"""User preference models and change events."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.core.config import settings


class PreferencesCategory(StrEnum):
    """Preference groups; a change event always names one of these."""

    GENERAL = "general"
    DISPLAY = "display"
    EDITING = "editing"
    CALENDAR = "calendar"
    SCHEDULE = "schedule"
    CALCULATIONS = "calculations"


# Categories whose changes alter computed dates, slack or criticality
SCHEDULE_AFFECTING_CATEGORIES: frozenset[PreferencesCategory] = frozenset(
    {
        PreferencesCategory.CALENDAR,
        PreferencesCategory.SCHEDULE,
        PreferencesCategory.CALCULATIONS,
    }
)


class CalendarPreferences(BaseModel):
    """Project-wide calendar defaults used for local date arithmetic."""

    hours_per_day: float = 8.0
    hours_per_week: float = 40.0
    days_per_month: int = 20
    # Python weekday numbers (Monday = 0)
    working_weekdays: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])


class SchedulePreferences(BaseModel):
    effort_driven: bool = False
    new_tasks_start_today: bool = True


class CalculationPreferences(BaseModel):
    critical_slack_days: float = Field(default_factory=lambda: settings.critical_slack_threshold_days)
    multiple_critical_paths: bool = False


class DisplayPreferences(BaseModel):
    theme: str = "system"


class EditingPreferences(BaseModel):
    split_tasks_enabled: bool = True


class UserPreferences(BaseModel):
    """Complete preference set owned by the preferences service."""

    general: dict[str, Any] = Field(default_factory=dict)
    display: DisplayPreferences = Field(default_factory=DisplayPreferences)
    editing: EditingPreferences = Field(default_factory=EditingPreferences)
    calendar: CalendarPreferences = Field(default_factory=CalendarPreferences)
    schedule: SchedulePreferences = Field(default_factory=SchedulePreferences)
    calculations: CalculationPreferences = Field(default_factory=CalculationPreferences)


class PreferencesChangeEvent(BaseModel):
    """Notification published after a preference changed."""

    category: PreferencesCategory
    key: str
    value: Any = None
