"""Split-task segment arithmetic."""

import logging
from datetime import datetime, timedelta

from src.domain.task import Task, TaskSegment


logger = logging.getLogger(__name__)


def shift_segments(task: Task, delta: timedelta) -> list[TaskSegment] | None:
    """Return the task's segments moved by ``delta``; None when the task is not split."""
    if task.segments is None:
        return None
    return [
        TaskSegment(start_date=segment.start_date + delta, end_date=segment.end_date + delta)
        for segment in task.segments
    ]


def move_task(task: Task, new_start: datetime) -> Task:
    """Move a task to ``new_start`` keeping its duration and segment layout."""
    delta = new_start - task.start_date
    if not delta:
        return task
    return task.model_copy(
        update={
            "start_date": new_start,
            "end_date": task.end_date + delta,
            "segments": shift_segments(task, delta),
        }
    )


def split(task: Task, split_at: datetime, gap: timedelta) -> Task:
    """Split a task at ``split_at`` and insert a non-working ``gap``.

    Work after the split point moves right by ``gap``, so the task finish moves
    by the same amount. Splitting outside the task, or with a non-positive gap,
    returns the task unchanged.

    Args:
        task: Task to split (milestones and summaries are never split)
        split_at: Instant inside one of the task's working ranges
        gap: Length of the interruption

    Returns:
        The split task, or the input task when the split is not possible
    """
    if task.milestone or task.summary or gap <= timedelta(0):
        return task

    segments = task.segments or [TaskSegment(start_date=task.start_date, end_date=task.end_date)]
    new_segments: list[TaskSegment] = []
    did_split = False
    for segment in segments:
        if did_split:
            new_segments.append(
                TaskSegment(start_date=segment.start_date + gap, end_date=segment.end_date + gap)
            )
        elif segment.start_date < split_at < segment.end_date:
            new_segments.append(TaskSegment(start_date=segment.start_date, end_date=split_at))
            new_segments.append(TaskSegment(start_date=split_at + gap, end_date=segment.end_date + gap))
            did_split = True
        else:
            new_segments.append(segment)

    if not did_split:
        logger.debug("Split point %s outside working ranges of task %s", split_at, task.id)
        return task

    return task.model_copy(update={"segments": new_segments, "end_date": new_segments[-1].end_date})


def merge(task: Task) -> Task:
    """Remove every interruption, keeping the start and the total working time."""
    if not task.segments:
        return task
    worked = sum((segment.end_date - segment.start_date for segment in task.segments), timedelta(0))
    return task.model_copy(update={"segments": None, "end_date": task.start_date + worked})
