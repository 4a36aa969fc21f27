"""Merge engine CPM results into local tasks without touching user dates.

The engine is authoritative for computed (advisory) fields only. A task's own
start and finish are the user's placement and always pass through unchanged;
when they contradict the computed early start, the task is flagged with
``dependency_violation`` instead of being moved.
"""

import logging
import re
from collections.abc import Callable, Sequence
from datetime import date, datetime
from typing import Protocol

from src.core.config import constants
from src.core.engine_client import EngineClient
from src.core.logging import span
from src.domain.snapshot import StoreSnapshot
from src.domain.task import Task
from src.models.wire_models import EngineTaskRecord
from src.services.hierarchy_service import refresh_summary_flags
from src.services.sync_service import SyncSerializer


logger = logging.getLogger(__name__)


KeyNormalizer = Callable[[str], Sequence[str]]

# "12", "012", "12.0" share the canonical key "12"; prefixed IDs keep their prefix
_NUMERIC_ID = re.compile(r"^(\d+)(?:\.0+)?$")


def default_lookup_keys(raw_id: str) -> list[str]:
    """Return every key a task ID may be matched by, most specific first.

    The engine may echo IDs in another textual form than the one stored
    locally (numeric unique IDs, padded or decimal numbers). Both sides of
    the match are expanded with this function, so any shared key links them.

    Args:
        raw_id: Task ID as stored locally or echoed by the engine

    Returns:
        Ordered, duplicate-free list of lookup keys
    """
    keys = [raw_id]
    stripped = raw_id.strip()
    for candidate in (stripped, stripped.casefold()):
        if candidate not in keys:
            keys.append(candidate)

    match = _NUMERIC_ID.match(stripped)
    if match:
        canonical = str(int(match.group(1)))
        if canonical not in keys:
            keys.append(canonical)
    return keys


def _build_lookup(
    engine_tasks: Sequence[EngineTaskRecord], key_normalizer: KeyNormalizer
) -> dict[str, EngineTaskRecord]:
    lookup: dict[str, EngineTaskRecord] = {}
    for record in engine_tasks:
        for key in key_normalizer(record.id):
            lookup.setdefault(key, record)
    return lookup


def _match(task: Task, lookup: dict[str, EngineTaskRecord], key_normalizer: KeyNormalizer) -> EngineTaskRecord | None:
    for key in key_normalizer(task.id):
        record = lookup.get(key)
        if record is not None:
            return record
    return None


def _calendar_day(value: datetime, reference: datetime) -> date:
    """Truncate ``value`` to a calendar day in the reference instant's timezone."""
    if value.tzinfo is not None and reference.tzinfo is not None:
        value = value.astimezone(reference.tzinfo)
    return value.date()


def _merge_record(task: Task, record: EngineTaskRecord) -> Task:
    computed_start = record.computed_start
    computed_finish = record.computed_finish
    early_start = record.early_start or computed_start
    early_finish = record.early_finish or computed_finish
    late_start = record.late_start or computed_start
    late_finish = record.late_finish or computed_finish

    violation = early_start is not None and task.start_date.date() < _calendar_day(early_start, task.start_date)

    return task.model_copy(
        update={
            "early_start": early_start,
            "early_finish": early_finish,
            "late_start": late_start,
            "late_finish": late_finish,
            "critical": record.critical,
            "total_slack": record.total_slack,
            "contains_critical_children": record.contains_critical_children,
            "min_child_slack": record.min_child_slack,
            "dependency_violation": violation,
        }
    )


def apply_cpm_results(
    current_tasks: Sequence[Task],
    engine_tasks: Sequence[EngineTaskRecord],
    *,
    key_normalizer: KeyNormalizer = default_lookup_keys,
) -> list[Task]:
    """Attach engine-computed scheduling data to the local tasks.

    Args:
        current_tasks: Local tasks in outline order
        engine_tasks: Task records returned by ``project.recalculate``
        key_normalizer: Expands an ID into the keys it may be matched by

    Returns:
        New task list; unmatched tasks are the same objects as in the input
    """
    lookup = _build_lookup(engine_tasks, key_normalizer)
    merged: list[Task] = []
    unmatched: list[str] = []
    for task in current_tasks:
        record = _match(task, lookup, key_normalizer)
        if record is None:
            merged.append(task)
            unmatched.append(task.id)
        else:
            merged.append(_merge_record(task, record))

    if unmatched:
        logger.debug(
            "cpm_results_unmatched",
            extra={"count": len(unmatched), "task_ids": unmatched[: constants.MAX_LOGGED_IDS]},
        )
    return merged


class TaskCommitter(Protocol):
    """Store callback that replaces the task list."""

    def __call__(self, tasks: list[Task], *, mark_clean: bool = True) -> None: ...


async def recalculate_critical_path_and_set(
    get_snapshot: Callable[[], StoreSnapshot],
    set_tasks: TaskCommitter,
    *,
    engine: EngineClient,
    serializer: SyncSerializer,
    key_normalizer: KeyNormalizer = default_lookup_keys,
) -> bool:
    """Run one sync, compute and reconcile cycle and commit the result.

    Pushes first when the store has unpushed edits. Nothing is committed until
    the merge succeeded, so any failure leaves the local model as it was.
    Results are merged into the store's state as it is when the engine
    answers; if it was edited meanwhile, the store stays dirty.

    Args:
        get_snapshot: Returns the current store snapshot
        set_tasks: Commits the reconciled task list
        engine: Engine client used for ``project.recalculate``
        serializer: Serializer used for the preliminary push
        key_normalizer: Expands task IDs for matching engine records

    Returns:
        True if a result was committed, False when there was nothing to do

    Raises:
        EngineError: Push or recalculation failed
        InvalidEngineResponseError: The engine answered without a valid task list
    """
    snapshot = get_snapshot()
    if snapshot.project_id is None:
        return False

    with span("reconciliation_service.recalculate_critical_path_and_set", project_id=str(snapshot.project_id)):
        if snapshot.is_dirty:
            await serializer.sync_with_engine(
                snapshot.project_id,
                snapshot.tasks,
                snapshot.resources,
                snapshot.calendars,
                snapshot.imposed_finish_date,
            )

        payload = await engine.recalculate_project(snapshot.project_id)
        critical_ids = [record.id for record in payload.tasks if record.critical]
        logger.info(
            "cpm_response_received",
            extra={
                "project_id": str(snapshot.project_id),
                "task_count": len(payload.tasks),
                "critical_count": len(critical_ids),
                "critical_task_ids": critical_ids[: constants.MAX_LOGGED_IDS],
            },
        )

        current = get_snapshot()
        if current.project_id != snapshot.project_id:
            logger.warning(
                "cpm_results_discarded",
                extra={"project_id": str(snapshot.project_id), "current_project_id": str(current.project_id)},
            )
            return False

        if not payload.tasks and current.tasks:
            # Engine lost the project; keep the local model as it is
            logger.warning(
                "cpm_response_empty",
                extra={"project_id": str(snapshot.project_id), "local_task_count": len(current.tasks)},
            )
            return False

        merged = refresh_summary_flags(
            apply_cpm_results(list(current.tasks), payload.tasks, key_normalizer=key_normalizer)
        )
        # Edits made during the cycle were not part of the push
        set_tasks(merged, mark_clean=current.revision == snapshot.revision)

        logger.info(
            "cpm_results_committed",
            extra={
                "project_id": str(snapshot.project_id),
                "task_count": len(merged),
                "critical_count": sum(1 for task in merged if task.critical),
                "violation_count": sum(1 for task in merged if task.dependency_violation),
            },
        )
        return True
