"""Calendar deletion cascade and calendar reference checks."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.config import constants
from src.domain.calendar import WorkCalendar
from src.domain.resource import Resource


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarDeletionState:
    """Calendar list and resource bindings after a calendar deletion."""

    new_calendars: list[WorkCalendar]
    new_resources: list[Resource]


def compute_calendar_deletion_state(
    calendars: Sequence[WorkCalendar],
    resources: Sequence[Resource],
    deleted_calendar_id: str,
) -> CalendarDeletionState:
    """Remove a calendar and rebind its resources to the default calendar.

    Resources bound elsewhere are passed through by reference. The function is
    total: an unknown calendar ID leaves the calendar list as it is.

    Args:
        calendars: Current calendars
        resources: Current resources
        deleted_calendar_id: Calendar to remove

    Returns:
        CalendarDeletionState with the new calendar and resource lists
    """
    new_calendars = [calendar for calendar in calendars if calendar.id != deleted_calendar_id]
    new_resources = [
        resource.model_copy(update={"calendar_id": constants.DEFAULT_CALENDAR_ID})
        if resource.calendar_id == deleted_calendar_id
        else resource
        for resource in resources
    ]
    return CalendarDeletionState(new_calendars=new_calendars, new_resources=new_resources)


def can_delete_calendar(calendars: Sequence[WorkCalendar], calendar_id: str) -> bool:
    """Return False for the default calendar and for base calendars."""
    if calendar_id == constants.DEFAULT_CALENDAR_ID:
        return False
    calendar = next((c for c in calendars if c.id == calendar_id), None)
    return calendar is not None and not calendar.is_base


def delete_calendar(
    calendars: Sequence[WorkCalendar],
    resources: Sequence[Resource],
    calendar_id: str,
) -> CalendarDeletionState | None:
    """Guarded deletion. Returns None when the calendar is protected or unknown."""
    if not can_delete_calendar(calendars, calendar_id):
        logger.info("calendar_delete_rejected", extra={"calendar_id": calendar_id})
        return None

    state = compute_calendar_deletion_state(calendars, resources, calendar_id)
    rebound = sum(1 for old, new in zip(resources, state.new_resources, strict=True) if old is not new)
    logger.info("calendar_deleted", extra={"calendar_id": calendar_id, "rebound_resources": rebound})
    return state


def find_dangling_resources(calendars: Sequence[WorkCalendar], resources: Sequence[Resource]) -> list[str]:
    """IDs of resources whose calendar ID does not resolve to a known calendar."""
    known = {calendar.id for calendar in calendars} | {constants.DEFAULT_CALENDAR_ID}
    return [resource.id for resource in resources if resource.calendar_id and resource.calendar_id not in known]
