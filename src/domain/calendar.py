"""Work calendar domain models."""

from pydantic import BaseModel, Field

from src.core.config import Constants


class WorkingHours(BaseModel):
    """Working time of a day as "HH:MM" strings, with an optional break."""

    start: str = "08:00"
    end: str = "17:00"
    break_start: str | None = "12:00"
    break_end: str | None = "13:00"


class WorkingDay(BaseModel):
    """Working flag for one weekday (0 = Sunday ... 6 = Saturday)."""

    day_of_week: int = Field(..., ge=0, le=6)
    is_working: bool
    working_hours: WorkingHours | None = None


def standard_week() -> list[WorkingDay]:
    """Monday to Friday, 08:00-17:00 with a one hour lunch break."""
    return [
        WorkingDay(
            day_of_week=day,
            is_working=1 <= day <= 5,  # noqa: PLR2004
            working_hours=WorkingHours() if 1 <= day <= 5 else None,  # noqa: PLR2004
        )
        for day in range(7)
    ]


class WorkCalendar(BaseModel):
    """Calendar definition that resources are bound to."""

    id: str = Field(..., description="Calendar ID")
    name: str = Field(..., description="Display name")
    description: str = ""
    working_days: list[WorkingDay] = Field(default_factory=standard_week)
    hours_per_day: float = Field(default=8.0, gt=0)
    is_base: bool = Field(default=False, description="Base calendars can never be deleted")
    template_type: str | None = None

    @property
    def is_custom(self) -> bool:
        return self.id.startswith(Constants.CUSTOM_CALENDAR_PREFIX)


def default_calendar() -> WorkCalendar:
    """Build the well-known default calendar."""
    return WorkCalendar(id=Constants.DEFAULT_CALENDAR_ID, name="Standard", is_base=True)
