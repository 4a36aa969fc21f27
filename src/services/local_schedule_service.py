"""Degraded local schedule computation used when the engine is unavailable.

This is a best-effort approximation of the engine's CPM pass: finish-to-start
links with zero lag, elapsed (calendar) time, no resource leveling. It writes
the same advisory fields the reconciler writes and never moves user dates.
"""

import logging
from datetime import datetime, timedelta

import networkx as nx

from src.core.logging import span
from src.domain.task import Task


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400
SLACK_TOLERANCE_DAYS = 1e-6


def build_dependency_graph(tasks: list[Task]) -> nx.DiGraph:
    """Build the predecessor -> successor graph of executable (non-summary) tasks."""
    graph = nx.DiGraph()
    executable = {task.id for task in tasks if not task.summary}
    graph.add_nodes_from(executable)
    for task in tasks:
        if task.id not in executable:
            continue
        for predecessor_id in task.predecessors:
            if predecessor_id in executable:
                graph.add_edge(predecessor_id, task.id)
    return graph


def _days(delta: timedelta) -> float:
    return round(delta.total_seconds() / SECONDS_PER_DAY, 4)


def local_recalculate(tasks: list[Task], critical_slack_days: float = 0.0) -> list[Task]:
    """Approximate early/late dates, slack and criticality without the engine.

    Tasks without predecessors are anchored at their own start. A task is
    critical when its total slack is at or below ``critical_slack_days``.
    Summary rows get rolled-up values from their descendants.

    Args:
        tasks: Local tasks in outline order
        critical_slack_days: Slack threshold for criticality, in days

    Returns:
        New task list with advisory fields refreshed (the input list if the
        dependency graph is cyclic and nothing can be computed)
    """
    with span("local_schedule_service.local_recalculate", task_count=len(tasks)):
        if not tasks:
            return tasks

        by_id = {task.id: task for task in tasks}
        graph = build_dependency_graph(tasks)
        try:
            order = list(nx.topological_sort(graph))
        except nx.NetworkXUnfeasible:
            logger.warning("local_recalculate_cyclic_graph", extra={"task_count": len(tasks)})
            return tasks

        early_start: dict[str, datetime] = {}
        early_finish: dict[str, datetime] = {}
        for task_id in order:
            task = by_id[task_id]
            finishes = [early_finish[p] for p in graph.predecessors(task_id)]
            early_start[task_id] = max(finishes) if finishes else task.start_date
            early_finish[task_id] = early_start[task_id] + max(task.duration, timedelta(0))

        project_finish = max(early_finish.values()) if early_finish else None
        late_start: dict[str, datetime] = {}
        late_finish: dict[str, datetime] = {}
        for task_id in reversed(order):
            task = by_id[task_id]
            starts = [late_start[s] for s in graph.successors(task_id)]
            late_finish[task_id] = min(starts) if starts else project_finish
            late_start[task_id] = late_finish[task_id] - max(task.duration, timedelta(0))

        computed: dict[str, Task] = {}
        for task_id in order:
            task = by_id[task_id]
            slack = _days(late_start[task_id] - early_start[task_id])
            computed[task_id] = task.model_copy(
                update={
                    "early_start": early_start[task_id],
                    "early_finish": early_finish[task_id],
                    "late_start": late_start[task_id],
                    "late_finish": late_finish[task_id],
                    "total_slack": slack,
                    "critical": slack <= critical_slack_days + SLACK_TOLERANCE_DAYS,
                    "dependency_violation": task.start_date.date() < early_start[task_id].date(),
                }
            )

        # Children follow their parent in outline order, so walk backwards to roll up
        for task in reversed(tasks):
            if not task.summary:
                continue
            rolled = [computed[child_id] for child_id in task.children if child_id in computed]
            if not rolled:
                computed[task.id] = task
                continue
            min_slack = min((c.total_slack for c in rolled if c.total_slack is not None), default=None)
            contains_critical = any(c.critical or bool(c.contains_critical_children) for c in rolled)
            computed[task.id] = task.model_copy(
                update={
                    "early_start": min((c.early_start for c in rolled if c.early_start is not None), default=None),
                    "early_finish": max((c.early_finish for c in rolled if c.early_finish is not None), default=None),
                    "late_start": min((c.late_start for c in rolled if c.late_start is not None), default=None),
                    "late_finish": max((c.late_finish for c in rolled if c.late_finish is not None), default=None),
                    "total_slack": min_slack,
                    "min_child_slack": min_slack,
                    "contains_critical_children": contains_critical,
                    "critical": contains_critical,
                    "dependency_violation": False,
                }
            )

        critical_count = sum(1 for task in computed.values() if task.critical and not task.summary)
        logger.info(
            "local_recalculate_completed",
            extra={"task_count": len(tasks), "critical_count": critical_count},
        )
        return [computed.get(task.id, task) for task in tasks]
