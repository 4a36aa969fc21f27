"""Outline hierarchy edits: indent, outdent and summary flag derivation.

The task list is kept in outline order. A task's parent is the nearest
preceding task exactly one level shallower; roots are level 0.
"""

import logging

from src.core.logging import span
from src.domain.task import Task


logger = logging.getLogger(__name__)


def _subtree_end(tasks: list[Task], index: int) -> int:
    """Return the index just past the contiguous subtree rooted at ``index``."""
    level = tasks[index].level
    end = index + 1
    while end < len(tasks) and tasks[end].level > level:
        end += 1
    return end


def subtree_ids(tasks: list[Task], task_id: str) -> list[str]:
    """IDs of a task and all of its descendants, in outline order."""
    index = next((i for i, task in enumerate(tasks) if task.id == task_id), None)
    if index is None:
        return []
    return [task.id for task in tasks[index : _subtree_end(tasks, index)]]


def _normalized_levels(tasks: list[Task]) -> list[int]:
    # A row can be at most one level deeper than the row above it
    levels: list[int] = []
    for task in tasks:
        ceiling = levels[-1] + 1 if levels else 0
        levels.append(max(0, min(task.level, ceiling)))
    return levels


def refresh_summary_flags(tasks: list[Task]) -> list[Task]:
    """Re-derive level, parent_id, children and summary from outline order.

    Tasks whose derived fields already match are kept by reference. A task that
    becomes a summary for the first time drops its resource assignments, since
    summary work is rolled up from its children.

    Args:
        tasks: Task list in outline order

    Returns:
        Consistent task list (the input list itself if nothing changed)
    """
    levels = _normalized_levels(tasks)
    parents: list[str | None] = []
    children: dict[str, list[str]] = {task.id: [] for task in tasks}
    ancestry: list[str] = []  # ancestry[n] is the latest task seen at level n

    for task, level in zip(tasks, levels, strict=True):
        del ancestry[level:]
        parent_id = ancestry[level - 1] if level > 0 else None
        parents.append(parent_id)
        if parent_id is not None:
            children[parent_id].append(task.id)
        ancestry.append(task.id)

    result: list[Task] = []
    changed = False
    for task, level, parent_id in zip(tasks, levels, parents, strict=True):
        task_children = children[task.id]
        summary = bool(task_children)
        update: dict[str, object] = {}
        if task.level != level:
            update["level"] = level
        if task.parent_id != parent_id:
            update["parent_id"] = parent_id
        if task.children != task_children:
            update["children"] = task_children
        if task.summary != summary:
            update["summary"] = summary
            if summary and task.resource_assignments:
                update["resource_assignments"] = []
        if update:
            result.append(task.model_copy(update=update))
            changed = True
        else:
            result.append(task)

    return result if changed else tasks


def indent(tasks: list[Task], task_id: str) -> list[Task]:
    """Make a task (and its subtree) a child of its preceding sibling.

    Indenting the first row, or a row already deeper than the row above it,
    returns the input unchanged.
    """
    with span("hierarchy_service.indent", task_id=task_id):
        index = next((i for i, task in enumerate(tasks) if task.id == task_id), None)
        if index is None or index == 0:
            return tasks
        if tasks[index].level > tasks[index - 1].level:
            return tasks

        end = _subtree_end(tasks, index)
        moved = [task.model_copy(update={"level": task.level + 1}) for task in tasks[index:end]]
        logger.info("task_indented", extra={"task_id": task_id, "subtree_size": len(moved)})
        return refresh_summary_flags([*tasks[:index], *moved, *tasks[end:]])


def outdent(tasks: list[Task], task_id: str) -> list[Task]:
    """Move a task (and its subtree) one level up.

    Following siblings of the task become its children. Outdenting a root row
    returns the input unchanged.
    """
    with span("hierarchy_service.outdent", task_id=task_id):
        index = next((i for i, task in enumerate(tasks) if task.id == task_id), None)
        if index is None or tasks[index].level == 0:
            return tasks

        end = _subtree_end(tasks, index)
        moved = [task.model_copy(update={"level": task.level - 1}) for task in tasks[index:end]]
        logger.info("task_outdented", extra={"task_id": task_id, "subtree_size": len(moved)})
        return refresh_summary_flags([*tasks[:index], *moved, *tasks[end:]])
