"""Serialized, FIFO-ordered pushes of the local project to the scheduling engine."""

import asyncio
import logging
import time
from collections.abc import Sequence
from datetime import datetime

from src.core.config import constants
from src.core.engine_client import EngineClient
from src.core.errors import classify_sync_error
from src.core.logging import span
from src.domain.calendar import WorkCalendar, WorkingHours
from src.domain.resource import Resource
from src.domain.snapshot import SyncSnapshot
from src.domain.task import Task
from src.models.wire_models import (
    AssignmentSyncData,
    CalendarSyncData,
    ProjectUpdateRequest,
    ResourceSyncData,
    SegmentSyncData,
    TaskSyncData,
    WorkingHoursRange,
)


logger = logging.getLogger(__name__)


def _hour(value: str) -> int:
    return int(value.split(":", 1)[0])


def _hour_ranges(hours: WorkingHours) -> list[WorkingHoursRange]:
    """Split a working day at its break into ``{from, to}`` hour ranges."""
    start, end = _hour(hours.start), _hour(hours.end)
    if hours.break_start and hours.break_end:
        break_start, break_end = _hour(hours.break_start), _hour(hours.break_end)
        if start < break_start <= break_end < end:
            return [
                WorkingHoursRange(from_hour=start, to_hour=break_start),
                WorkingHoursRange(from_hour=break_end, to_hour=end),
            ]
    return [WorkingHoursRange(from_hour=start, to_hour=end)]


def calendar_to_wire(calendar: WorkCalendar) -> CalendarSyncData:
    """Convert a calendar to the engine DTO (working days indexed from Sunday)."""
    flags = [False] * 7
    for day in calendar.working_days:
        flags[day.day_of_week] = day.is_working

    template = next(
        (day.working_hours for day in calendar.working_days if day.is_working and day.working_hours),
        None,
    )
    if template is not None:
        working_hours = _hour_ranges(template)
    else:
        working_hours = [WorkingHoursRange(from_hour=a, to_hour=b) for a, b in constants.DEFAULT_WORKING_HOURS]

    return CalendarSyncData(
        id=calendar.id,
        name=calendar.name,
        description=calendar.description,
        working_days=flags,
        working_hours=working_hours,
        hours_per_day=calendar.hours_per_day,
        template_type=calendar.template_type,
    )


def task_to_wire(task: Task) -> TaskSyncData:
    """Convert a task to the engine DTO. Advisory fields are never sent."""
    return TaskSyncData(
        id=task.id,
        name=task.name,
        start_date=task.start_date,
        end_date=task.end_date,
        progress=round(task.progress * constants.PROGRESS_WIRE_SCALE, 2),
        level=task.level,
        summary=task.summary,
        milestone=task.milestone,
        type=str(task.task_type),
        predecessors=list(task.predecessors),
        children=list(task.children),
        resource_assignments=[
            AssignmentSyncData(resource_id=assignment.resource_id, units=min(max(assignment.units, 0.0), 1.0))
            for assignment in task.resource_assignments
        ],
        notes=task.notes,
        color=task.color,
        segments=[SegmentSyncData(start_date=s.start_date, end_date=s.end_date) for s in task.segments]
        if task.segments
        else None,
    )


def resource_to_wire(resource: Resource, calendars_by_id: dict[str, WorkCalendar]) -> ResourceSyncData:
    """Convert a resource, embedding its calendar definition when it is a custom one."""
    calendar = calendars_by_id.get(resource.calendar_id) if resource.calendar_id else None
    calendar_data = calendar_to_wire(calendar) if calendar is not None and calendar.is_custom else None
    return ResourceSyncData(
        id=resource.id,
        name=resource.name or "Unnamed Resource",
        type=str(resource.resource_type),
        max_units=resource.max_units,
        standard_rate=resource.standard_rate,
        overtime_rate=resource.overtime_rate,
        cost_per_use=resource.cost_per_use,
        calendar_id=resource.calendar_id,
        calendar_data=calendar_data,
        material_label=resource.material_label,
        email=resource.email,
        group=resource.group,
        available=resource.available,
    )


def build_update_request(snapshot: SyncSnapshot) -> ProjectUpdateRequest:
    """Serialize a snapshot into the ``project.update`` payload."""
    calendars_by_id = {calendar.id: calendar for calendar in snapshot.calendars}
    return ProjectUpdateRequest(
        tasks=[task_to_wire(task) for task in snapshot.tasks],
        resources=[resource_to_wire(resource, calendars_by_id) for resource in snapshot.resources],
        project_calendars=[calendar_to_wire(calendar) for calendar in snapshot.calendars],
        imposed_finish_date=snapshot.imposed_finish_date,
    )


class SyncSerializer:
    """Pushes project snapshots to the engine one at a time, in submission order.

    One instance per running application; the store and the recalculation
    trigger share it so that all pushes go through the same lock.
    """

    def __init__(self, engine: EngineClient) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()
        self._push_count = 0

    @property
    def push_count(self) -> int:
        """Number of pushes that reached the engine successfully."""
        return self._push_count

    async def sync_with_engine(
        self,
        project_id: int | str | None,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        calendars: Sequence[WorkCalendar],
        imposed_finish_date: datetime | None = None,
    ) -> None:
        """Push a full project snapshot to the engine.

        Calls made while a push is in flight wait for it and run in the order
        they were made. Without an open project this returns immediately.

        Args:
            project_id: Engine project ID, or None when no project is open
            tasks: Tasks to push
            resources: Resources to push
            calendars: Project calendars to push
            imposed_finish_date: Optional project deadline

        Raises:
            EngineError: If the push fails; later pushes are not blocked
        """
        if project_id is None:
            return

        # Snapshot at call time so later edits cannot leak into a queued push
        snapshot = SyncSnapshot(
            project_id=project_id,
            tasks=tuple(tasks),
            resources=tuple(resources),
            calendars=tuple(calendars),
            imposed_finish_date=imposed_finish_date,
        )

        async with self._lock:
            with span("sync_service.sync_with_engine", project_id=str(project_id)):
                await self._push(snapshot)

    async def _push(self, snapshot: SyncSnapshot) -> None:
        started = time.perf_counter()
        logger.info(
            "engine_push_started",
            extra={"project_id": str(snapshot.project_id), "task_count": len(snapshot.tasks)},
        )
        try:
            await self._engine.update_project(snapshot.project_id, build_update_request(snapshot))
        except Exception as e:
            logger.error(
                "engine_push_failed",
                extra={
                    "project_id": str(snapshot.project_id),
                    "error": str(e),
                    "category": classify_sync_error(e).value,
                },
            )
            raise

        self._push_count += 1
        logger.info(
            "engine_push_completed",
            extra={
                "project_id": str(snapshot.project_id),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
