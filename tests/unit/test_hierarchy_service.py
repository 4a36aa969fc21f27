"""Unit tests for hierarchy_service module."""

import pytest

from src.domain.task import ResourceAssignment, Task
from src.services import hierarchy_service
from tests.unit.factories import make_task


def outline(*rows: tuple[str, int]) -> list[Task]:
    """Build a consistent outline from (id, level) rows."""
    return hierarchy_service.refresh_summary_flags([make_task(task_id, level=level) for task_id, level in rows])


def levels(tasks: list[Task]) -> dict[str, int]:
    return {task.id: task.level for task in tasks}


@pytest.mark.unit
class TestRefreshSummaryFlags:
    """Tests for refresh_summary_flags function."""

    def test_derives_parent_children_and_summary(self):
        tasks = outline(("P", 0), ("C1", 1), ("C2", 1), ("G", 2), ("R", 0))
        by_id = {task.id: task for task in tasks}

        assert by_id["P"].summary is True
        assert by_id["P"].children == ["C1", "C2"]
        assert by_id["C2"].children == ["G"]
        assert by_id["G"].parent_id == "C2"
        assert by_id["C1"].summary is False
        assert by_id["R"].parent_id is None

    def test_level_is_one_more_than_parent(self):
        tasks = outline(("P", 0), ("C", 1), ("G", 2), ("C2", 1))
        by_id = {task.id: task for task in tasks}

        for task in tasks:
            if task.parent_id is not None:
                assert task.level == by_id[task.parent_id].level + 1
            else:
                assert task.level == 0

    def test_normalizes_level_gaps(self):
        """A row can never be more than one level below the row above it."""
        tasks = hierarchy_service.refresh_summary_flags([make_task("A", level=0), make_task("B", level=3)])

        assert levels(tasks) == {"A": 0, "B": 1}
        assert tasks[1].parent_id == "A"

    def test_consistent_list_is_returned_as_is(self):
        tasks = outline(("P", 0), ("C", 1))

        assert hierarchy_service.refresh_summary_flags(tasks) is tasks

    def test_stale_summary_flag_is_cleared(self):
        tasks = [make_task("A", summary=True, children=["X"]), make_task("B")]

        result = hierarchy_service.refresh_summary_flags(tasks)

        assert result[0].summary is False
        assert result[0].children == []
        assert result[1] is tasks[1]


@pytest.mark.unit
class TestIndent:
    """Tests for indent function."""

    def test_indent_first_row_is_noop(self):
        tasks = outline(("A", 0), ("B", 0))

        assert hierarchy_service.indent(tasks, "A") is tasks

    def test_indent_unknown_task_is_noop(self):
        tasks = outline(("A", 0), ("B", 0))

        assert hierarchy_service.indent(tasks, "Z") is tasks

    def test_indent_makes_previous_sibling_a_summary(self):
        tasks = outline(("A", 0), ("B", 0))

        result = hierarchy_service.indent(tasks, "B")

        assert result[0].summary is True
        assert result[0].children == ["B"]
        assert result[1].level == 1
        assert result[1].parent_id == "A"

    def test_indent_already_deeper_row_is_noop(self):
        tasks = outline(("A", 0), ("B", 1))

        assert hierarchy_service.indent(tasks, "B") is tasks

    def test_indent_moves_subtree(self):
        tasks = outline(("A", 0), ("B", 0), ("B1", 1), ("B2", 1), ("C", 0))

        result = hierarchy_service.indent(tasks, "B")

        assert levels(result) == {"A": 0, "B": 1, "B1": 2, "B2": 2, "C": 0}
        assert result[2].parent_id == "B"

    def test_indent_under_sibling_with_children(self):
        """B goes under A, after A's existing child."""
        tasks = outline(("A", 0), ("A1", 1), ("B", 0))

        result = hierarchy_service.indent(tasks, "B")

        assert result[0].children == ["A1", "B"]
        assert result[2].parent_id == "A"

    def test_new_summary_loses_resource_assignments(self):
        tasks = outline(("A", 0), ("B", 0))
        tasks = [
            tasks[0].model_copy(update={"resource_assignments": [ResourceAssignment(resource_id="R1")]}),
            tasks[1],
        ]

        result = hierarchy_service.indent(tasks, "B")

        assert result[0].summary is True
        assert result[0].resource_assignments == []

    def test_untouched_tasks_keep_identity(self):
        tasks = outline(("A", 0), ("B", 0), ("C", 0), ("D", 0))

        result = hierarchy_service.indent(tasks, "C")

        assert result[0] is tasks[0]
        assert result[3] is tasks[3]


@pytest.mark.unit
class TestOutdent:
    """Tests for outdent function."""

    def test_outdent_root_is_noop(self):
        tasks = outline(("A", 0), ("B", 0))

        assert hierarchy_service.outdent(tasks, "A") is tasks

    def test_outdent_last_child_clears_parent_summary(self):
        tasks = outline(("A", 0), ("B", 1))

        result = hierarchy_service.outdent(tasks, "B")

        assert result[0].summary is False
        assert result[0].children == []
        assert result[1].level == 0
        assert result[1].parent_id is None

    def test_outdent_moves_subtree(self):
        tasks = outline(("A", 0), ("B", 1), ("B1", 2))

        result = hierarchy_service.outdent(tasks, "B")

        assert levels(result) == {"A": 0, "B": 0, "B1": 1}
        assert result[2].parent_id == "B"

    def test_outdent_adopts_following_siblings(self):
        tasks = outline(("A", 0), ("B", 1), ("C", 1))

        result = hierarchy_service.outdent(tasks, "B")
        by_id = {task.id: task for task in result}

        assert by_id["B"].level == 0
        assert by_id["C"].parent_id == "B"
        assert by_id["B"].summary is True
        assert by_id["A"].summary is False

    def test_indent_then_outdent_restores_levels(self):
        tasks = outline(("A", 0), ("B", 0), ("C", 0))

        result = hierarchy_service.outdent(hierarchy_service.indent(tasks, "C"), "C")

        assert levels(result) == levels(tasks)
        assert all(task.summary is False for task in result)


@pytest.mark.unit
class TestSubtreeIds:
    """Tests for subtree_ids function."""

    def test_subtree_ids(self):
        tasks = outline(("A", 0), ("B", 1), ("C", 2), ("D", 1), ("E", 0))

        assert hierarchy_service.subtree_ids(tasks, "B") == ["B", "C"]
        assert hierarchy_service.subtree_ids(tasks, "A") == ["A", "B", "C", "D"]
        assert hierarchy_service.subtree_ids(tasks, "Z") == []
