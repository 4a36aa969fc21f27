"""Single-writer local project store.

Every edit builds new collections and swaps them in atomically; nothing is
mutated in place. After each edit the store marks itself dirty and starts a
background push through the shared SyncSerializer.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

from src.core.config import constants, settings
from src.core.errors import classify_sync_error
from src.domain.calendar import WorkCalendar, default_calendar
from src.domain.preferences import CalendarPreferences
from src.domain.resource import Resource
from src.domain.snapshot import StoreSnapshot
from src.domain.task import ADVISORY_FIELDS, Task
from src.services import calendar_service, dependency_service, hierarchy_service, segment_service
from src.services.dependency_service import LinkResult
from src.services.preferences_service import PreferencesService
from src.services.recalculation_service import RecalculationTrigger
from src.services.sync_service import SyncSerializer


logger = logging.getLogger(__name__)

# Fields maintained by hierarchy derivation, never edited directly
STRUCTURAL_FIELDS = frozenset({"id", "level", "parent_id", "summary", "children", "predecessors", "segments"})


def normalize_progress(progress: float, *, milestone: bool) -> float:
    """Clamp progress to 0-1; milestones are either done or not started."""
    if milestone:
        return 1.0 if progress >= 0.5 else 0.0  # noqa: PLR2004
    return round(min(max(progress, 0.0), 1.0), 2)


class ProjectStore:
    """Holds tasks, resources and calendars of the open project."""

    def __init__(
        self,
        serializer: SyncSerializer,
        *,
        trigger: RecalculationTrigger | None = None,
        preferences: PreferencesService | None = None,
        auto_recalculate: bool | None = None,
    ) -> None:
        self._serializer = serializer
        self._trigger = trigger
        self._preferences = preferences
        self._auto_recalculate = (
            auto_recalculate if auto_recalculate is not None else settings.auto_recalculate_after_edit
        )

        self.project_id: int | str | None = None
        self.is_dirty = False
        self.imposed_finish_date: datetime | None = None
        self._tasks: list[Task] = []
        self._resources: list[Resource] = []
        self._calendars: list[WorkCalendar] = [default_calendar()]

        self._revision = 0
        self._background: set[asyncio.Task[None]] = set()

    # Read side

    @property
    def serializer(self) -> SyncSerializer:
        return self._serializer

    @property
    def tasks(self) -> list[Task]:
        return self._tasks

    @property
    def resources(self) -> list[Resource]:
        return self._resources

    @property
    def calendars(self) -> list[WorkCalendar]:
        return self._calendars

    def get_task(self, task_id: str) -> Task | None:
        return next((task for task in self._tasks if task.id == task_id), None)

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            project_id=self.project_id,
            tasks=tuple(self._tasks),
            resources=tuple(self._resources),
            calendars=tuple(self._calendars),
            is_dirty=self.is_dirty,
            imposed_finish_date=self.imposed_finish_date,
            revision=self._revision,
        )

    def attach_trigger(self, trigger: RecalculationTrigger) -> None:
        self._trigger = trigger

    # Whole-collection replacement

    def set_tasks(self, tasks: list[Task], *, mark_clean: bool = True) -> None:
        """Replace the task list, re-deriving hierarchy flags.

        Args:
            tasks: New task list in outline order
            mark_clean: Clear the dirty flag (the engine has this state)
        """
        self._tasks = hierarchy_service.refresh_summary_flags(list(tasks))
        if mark_clean:
            self.is_dirty = False

    def load_project(
        self,
        project_id: int | str | None,
        tasks: list[Task],
        resources: list[Resource],
        calendars: list[WorkCalendar],
        imposed_finish_date: datetime | None = None,
    ) -> None:
        """Replace the whole project, e.g. after opening a file or an engine project.

        Resources bound to unknown calendars are rebound to the default calendar.
        """
        if not any(calendar.id == constants.DEFAULT_CALENDAR_ID for calendar in calendars):
            calendars = [default_calendar(), *calendars]

        dangling = set(calendar_service.find_dangling_resources(calendars, resources))
        if dangling:
            logger.warning("Rebinding %d resources with unknown calendars", len(dangling))
            resources = [
                r.model_copy(update={"calendar_id": constants.DEFAULT_CALENDAR_ID}) if r.id in dangling else r
                for r in resources
            ]

        self.project_id = project_id
        self.imposed_finish_date = imposed_finish_date
        self._tasks = hierarchy_service.refresh_summary_flags(list(tasks))
        self._resources = list(resources)
        self._calendars = list(calendars)
        self.is_dirty = False
        self._revision += 1
        logger.info(
            "project_loaded",
            extra={
                "project_id": str(project_id),
                "task_count": len(self._tasks),
                "resource_count": len(self._resources),
                "calendar_count": len(self._calendars),
            },
        )

    # Task edits

    def add_task(self, task: Task, *, index: int | None = None) -> bool:
        """Insert a task (appended by default). Returns False for a duplicate ID."""
        if self.get_task(task.id) is not None:
            return False
        tasks = list(self._tasks)
        tasks.insert(len(tasks) if index is None else index, task)
        self._commit(tasks=hierarchy_service.refresh_summary_flags(tasks))
        return True

    def update_task(self, task_id: str, **changes: Any) -> bool:
        """Apply user edits to one task.

        Moving the start without a new finish keeps the duration; segments
        always move with the start.

        Raises:
            ValueError: If a field is unknown, advisory or structural
        """
        unknown = changes.keys() - Task.model_fields.keys()
        if unknown:
            msg = f"Unknown task fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        forbidden = (ADVISORY_FIELDS | STRUCTURAL_FIELDS) & changes.keys()
        if forbidden:
            msg = f"Fields cannot be edited directly: {', '.join(sorted(forbidden))}"
            raise ValueError(msg)

        task = self.get_task(task_id)
        if task is None:
            return False

        updated = task
        new_start = changes.pop("start_date", None)
        if new_start is not None:
            new_end = changes.pop("end_date", None)
            updated = segment_service.move_task(updated, new_start)
            if new_end is not None:
                updated = updated.model_copy(update={"end_date": new_end})

        if changes:
            updated = updated.model_copy(update=changes)

        progress = normalize_progress(updated.progress, milestone=updated.milestone)
        if progress != updated.progress:
            updated = updated.model_copy(update={"progress": progress})

        # model_copy skips validation, so re-validate the edited task once
        updated = Task.model_validate(updated.model_dump())
        self._commit(tasks=[updated if t.id == task_id else t for t in self._tasks])
        return True

    def delete_task(self, task_id: str) -> bool:
        """Delete a task with its subtree and scrub links pointing at them."""
        removed = hierarchy_service.subtree_ids(self._tasks, task_id)
        if not removed:
            return False
        tasks = self._tasks
        for removed_id in removed:
            tasks = dependency_service.remove_task(tasks, removed_id)
        self._commit(tasks=hierarchy_service.refresh_summary_flags(tasks))
        return True

    def link_tasks(self, predecessor_id: str, successor_id: str, *, skip_date_correction: bool = False) -> LinkResult:
        """Link two tasks finish-to-start; rejected links leave the store untouched."""
        result = dependency_service.link(
            self._tasks,
            predecessor_id,
            successor_id,
            self._calendar_preferences(),
            skip_date_correction=skip_date_correction,
        )
        if result.accepted and result.tasks is not self._tasks:
            self._commit(tasks=result.tasks)
        return result

    def unlink_tasks(self, task_id: str, predecessor_id: str | None = None) -> bool:
        tasks = dependency_service.unlink(self._tasks, task_id, predecessor_id)
        return self._commit_if_changed(tasks=tasks)

    def indent_task(self, task_id: str) -> bool:
        return self._commit_if_changed(tasks=hierarchy_service.indent(self._tasks, task_id))

    def outdent_task(self, task_id: str) -> bool:
        return self._commit_if_changed(tasks=hierarchy_service.outdent(self._tasks, task_id))

    def split_task(self, task_id: str, split_at: datetime, gap_days: float) -> bool:
        """Interrupt a task at ``split_at`` for ``gap_days`` days."""
        if self._preferences is not None and not self._preferences.preferences.editing.split_tasks_enabled:
            return False
        task = self.get_task(task_id)
        if task is None:
            return False
        split = segment_service.split(task, split_at, timedelta(days=gap_days))
        if split is task:
            return False
        self._commit(tasks=[split if t.id == task_id else t for t in self._tasks])
        return True

    def merge_task(self, task_id: str) -> bool:
        """Remove all interruptions of a split task."""
        task = self.get_task(task_id)
        if task is None:
            return False
        merged = segment_service.merge(task)
        if merged is task:
            return False
        self._commit(tasks=[merged if t.id == task_id else t for t in self._tasks])
        return True

    def set_imposed_finish_date(self, imposed_finish_date: datetime | None) -> None:
        self.imposed_finish_date = imposed_finish_date
        self._commit()

    # Calendars and resources

    def add_calendar(self, calendar: WorkCalendar) -> bool:
        if any(c.id == calendar.id for c in self._calendars):
            return False
        self._commit(calendars=[*self._calendars, calendar])
        return True

    def delete_calendar(self, calendar_id: str) -> bool:
        """Delete a calendar and rebind its resources. False for protected calendars."""
        state = calendar_service.delete_calendar(self._calendars, self._resources, calendar_id)
        if state is None:
            return False
        self._commit(calendars=state.new_calendars, resources=state.new_resources)
        return True

    def add_resource(self, resource: Resource) -> bool:
        """Add a resource. False for a duplicate ID or an unknown calendar."""
        if any(r.id == resource.id for r in self._resources):
            return False
        if calendar_service.find_dangling_resources(self._calendars, [resource]):
            logger.info(
                "resource_rejected_unknown_calendar",
                extra={"resource_id": resource.id, "calendar_id": resource.calendar_id},
            )
            return False
        self._commit(resources=[*self._resources, resource])
        return True

    def delete_resource(self, resource_id: str) -> bool:
        """Delete a resource and remove its assignments from every task."""
        if not any(r.id == resource_id for r in self._resources):
            return False
        tasks = [
            task.model_copy(
                update={"resource_assignments": [a for a in task.resource_assignments if a.resource_id != resource_id]}
            )
            if any(a.resource_id == resource_id for a in task.resource_assignments)
            else task
            for task in self._tasks
        ]
        self._commit(tasks=tasks, resources=[r for r in self._resources if r.id != resource_id])
        return True

    # Background pushes

    async def flush(self) -> None:
        """Wait for every background push started so far."""
        while self._background:
            await asyncio.wait(set(self._background))

    def _calendar_preferences(self) -> CalendarPreferences:
        if self._preferences is None:
            return CalendarPreferences()
        return self._preferences.preferences.calendar

    def _commit_if_changed(self, *, tasks: list[Task]) -> bool:
        if tasks is self._tasks:
            return False
        self._commit(tasks=tasks)
        return True

    def _commit(
        self,
        *,
        tasks: list[Task] | None = None,
        resources: list[Resource] | None = None,
        calendars: list[WorkCalendar] | None = None,
    ) -> None:
        if tasks is not None:
            self._tasks = tasks
        if resources is not None:
            self._resources = resources
        if calendars is not None:
            self._calendars = calendars
        self.is_dirty = True
        self._revision += 1

        self._start_push()
        if self._trigger is not None and self._auto_recalculate:
            self._trigger.request_recalculation()

    def _start_push(self) -> None:
        if self.project_id is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (synchronous use); the next recalculation pushes the dirty state
            logger.debug("No running event loop; deferring push for revision %d", self._revision)
            return

        revision = self._revision
        push = loop.create_task(
            self._serializer.sync_with_engine(
                self.project_id,
                self._tasks,
                self._resources,
                self._calendars,
                self.imposed_finish_date,
            )
        )
        self._background.add(push)
        push.add_done_callback(lambda task: self._on_push_done(task, revision))

    def _on_push_done(self, push: asyncio.Task[None], revision: int) -> None:
        self._background.discard(push)
        if push.cancelled():
            return
        error = push.exception()
        if error is not None:
            logger.error(
                "background_push_failed",
                extra={"revision": revision, "category": classify_sync_error(error).value, "error": str(error)},
            )
            return
        if revision == self._revision:
            self.is_dirty = False
