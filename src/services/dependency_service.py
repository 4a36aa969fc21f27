"""Predecessor link validation and dependency edits.

All functions are pure: they take the current task list and return a new list.
Rejected edits are returned as values (``LinkResult.accepted is False``) with
the input list untouched, never raised.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import StrEnum

from pydantic import BaseModel

from src.domain.preferences import CalendarPreferences
from src.domain.task import Task
from src.services import segment_service


logger = logging.getLogger(__name__)


class LinkRejection(StrEnum):
    """Why a predecessor link was refused."""

    SELF = "self"  # Task cannot depend on itself
    SUMMARY = "summary"  # Links only connect executable tasks
    CYCLE = "cycle"  # Successor already reachable from the predecessor
    MISSING = "missing"  # One of the IDs does not exist


@dataclass(frozen=True)
class LinkResult:
    """Outcome of a link request. Rejections carry the input list unchanged."""

    tasks: list[Task]
    accepted: bool
    reason: LinkRejection | None = None


class DateConflict(BaseModel):
    """Successor start that would violate a finish-to-start link."""

    successor_id: str
    current_start: datetime
    minimum_start: datetime


def _index(tasks: Sequence[Task]) -> dict[str, Task]:
    return {task.id: task for task in tasks}


def _reaches(by_id: dict[str, Task], start_id: str, target_id: str) -> bool:
    """Return True if target_id is reachable from start_id along predecessor edges."""
    visited: set[str] = set()
    stack = [start_id]
    while stack:
        current = stack.pop()
        if current == target_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        task = by_id.get(current)
        if task is None:
            continue
        stack.extend(pred for pred in task.predecessors if pred not in visited)
    return False


def get_predecessor_disabled_reason(
    tasks: Sequence[Task], successor_id: str, predecessor_id: str
) -> LinkRejection | None:
    """Explain why predecessor_id cannot become a predecessor of successor_id.

    Args:
        tasks: Current task list
        successor_id: Task that would gain the predecessor
        predecessor_id: Candidate predecessor

    Returns:
        The rejection reason, or None if the link is allowed
    """
    if successor_id == predecessor_id:
        return LinkRejection.SELF

    by_id = _index(tasks)
    predecessor = by_id.get(predecessor_id)
    if predecessor is None or successor_id not in by_id:
        return LinkRejection.MISSING
    if predecessor.summary:
        return LinkRejection.SUMMARY

    # Adding successor -> predecessor closes a loop if the successor is already upstream
    if _reaches(by_id, predecessor_id, successor_id):
        return LinkRejection.CYCLE
    return None


def is_valid_predecessor(tasks: Sequence[Task], successor_id: str, predecessor_id: str) -> bool:
    """Return True if linking predecessor_id before successor_id keeps the graph acyclic."""
    return get_predecessor_disabled_reason(tasks, successor_id, predecessor_id) is None


def next_working_day_start(finish: datetime, calendar_prefs: CalendarPreferences) -> datetime:
    """Midnight of the first working day strictly after ``finish``."""
    day = finish.date() + timedelta(days=1)
    working = set(calendar_prefs.working_weekdays)
    if working:
        while day.weekday() not in working:
            day += timedelta(days=1)
    return datetime.combine(day, time.min, tzinfo=finish.tzinfo)


def detect_date_conflict(
    tasks: Sequence[Task],
    successor_id: str,
    predecessor_id: str,
    calendar_prefs: CalendarPreferences | None = None,
) -> DateConflict | None:
    """Check whether the successor currently starts before the predecessor allows.

    Returns:
        DateConflict describing the earliest allowed start, or None if there is no conflict
    """
    by_id = _index(tasks)
    successor = by_id.get(successor_id)
    predecessor = by_id.get(predecessor_id)
    if successor is None or predecessor is None:
        return None

    minimum_start = next_working_day_start(predecessor.end_date, calendar_prefs or CalendarPreferences())
    if successor.start_date >= minimum_start:
        return None
    return DateConflict(
        successor_id=successor_id,
        current_start=successor.start_date,
        minimum_start=minimum_start,
    )


def link(
    tasks: list[Task],
    predecessor_id: str,
    successor_id: str,
    calendar_prefs: CalendarPreferences,
    *,
    skip_date_correction: bool = False,
) -> LinkResult:
    """Add a finish-to-start link and derive a provisional successor start.

    The successor is moved, duration preserved, to the next working day after the
    predecessor finishes when it currently starts earlier. The engine's later
    recalculation remains authoritative for computed dates.

    Args:
        tasks: Current task list
        predecessor_id: Task that must finish first
        successor_id: Task that gains the predecessor
        calendar_prefs: Working weekdays used for the provisional start
        skip_date_correction: Keep dates as they are (used while loading files)

    Returns:
        LinkResult with the new list, or the unchanged input list and a reason
    """
    reason = get_predecessor_disabled_reason(tasks, successor_id, predecessor_id)
    if reason is not None:
        logger.info(
            "link_rejected",
            extra={"predecessor_id": predecessor_id, "successor_id": successor_id, "reason": str(reason)},
        )
        return LinkResult(tasks=tasks, accepted=False, reason=reason)

    by_id = _index(tasks)
    successor = by_id[successor_id]
    if predecessor_id in successor.predecessors:
        return LinkResult(tasks=tasks, accepted=True)

    linked = successor.model_copy(update={"predecessors": [*successor.predecessors, predecessor_id]})
    if not skip_date_correction:
        conflict = detect_date_conflict(tasks, successor_id, predecessor_id, calendar_prefs)
        if conflict is not None:
            linked = segment_service.move_task(linked, conflict.minimum_start)

    new_tasks = [linked if task.id == successor_id else task for task in tasks]
    logger.info("link_accepted", extra={"predecessor_id": predecessor_id, "successor_id": successor_id})
    return LinkResult(tasks=new_tasks, accepted=True)


def unlink(tasks: list[Task], task_id: str, predecessor_id: str | None = None) -> list[Task]:
    """Remove one predecessor link, or all of them when predecessor_id is None."""
    new_tasks: list[Task] = []
    changed = False
    for task in tasks:
        if task.id != task_id or not task.predecessors:
            new_tasks.append(task)
            continue
        remaining = [] if predecessor_id is None else [p for p in task.predecessors if p != predecessor_id]
        if remaining == task.predecessors:
            new_tasks.append(task)
            continue
        new_tasks.append(task.model_copy(update={"predecessors": remaining}))
        changed = True
    return new_tasks if changed else tasks


def remove_task(tasks: list[Task], task_id: str) -> list[Task]:
    """Delete a task and scrub it from every other task's predecessor list."""
    if not any(task.id == task_id for task in tasks):
        return tasks
    return [
        task.model_copy(update={"predecessors": [p for p in task.predecessors if p != task_id]})
        if task_id in task.predecessors
        else task
        for task in tasks
        if task.id != task_id
    ]
