"""Unit tests for dependency_service module."""

import itertools

import networkx as nx
import pytest

from src.domain.preferences import CalendarPreferences
from src.domain.task import TaskSegment
from src.services import dependency_service
from src.services.dependency_service import LinkRejection
from src.services.local_schedule_service import build_dependency_graph
from tests.unit.factories import day, make_task


@pytest.fixture
def calendar_prefs() -> CalendarPreferences:
    return CalendarPreferences()


@pytest.mark.unit
class TestIsValidPredecessor:
    """Tests for is_valid_predecessor and the rejection reasons."""

    def test_rejects_self_link(self, simple_chain):
        assert dependency_service.is_valid_predecessor(simple_chain, "A", "A") is False
        assert dependency_service.get_predecessor_disabled_reason(simple_chain, "A", "A") == LinkRejection.SELF

    def test_rejects_direct_cycle(self, simple_chain):
        """A cannot depend on B when B already depends on A."""
        assert dependency_service.is_valid_predecessor(simple_chain, "A", "B") is False
        assert dependency_service.get_predecessor_disabled_reason(simple_chain, "A", "B") == LinkRejection.CYCLE

    def test_rejects_transitive_cycle(self):
        tasks = [
            make_task("A"),
            make_task("B", predecessors=["A"]),
            make_task("C", predecessors=["B"]),
        ]

        assert dependency_service.is_valid_predecessor(tasks, "A", "C") is False

    def test_accepts_independent_link(self):
        tasks = [make_task("A"), make_task("B"), make_task("C", predecessors=["A"])]

        assert dependency_service.is_valid_predecessor(tasks, "C", "B") is True

    def test_rejects_summary_predecessor(self):
        tasks = [make_task("S", summary=True, children=["X"]), make_task("X", level=1), make_task("Y")]

        assert dependency_service.get_predecessor_disabled_reason(tasks, "Y", "S") == LinkRejection.SUMMARY

    def test_rejects_unknown_ids(self, simple_chain):
        assert dependency_service.get_predecessor_disabled_reason(simple_chain, "B", "Z") == LinkRejection.MISSING
        assert dependency_service.get_predecessor_disabled_reason(simple_chain, "Z", "A") == LinkRejection.MISSING

    def test_terminates_on_already_cyclic_data(self):
        """A malformed loop elsewhere in the graph must not hang the traversal."""
        tasks = [
            make_task("A", predecessors=["B"]),
            make_task("B", predecessors=["A"]),
            make_task("C"),
            make_task("D"),
        ]

        assert dependency_service.is_valid_predecessor(tasks, "D", "A") is True
        assert dependency_service.is_valid_predecessor(tasks, "A", "C") is True


@pytest.mark.unit
class TestLink:
    """Tests for link function."""

    def test_rejected_link_leaves_tasks_unchanged(self, simple_chain, calendar_prefs):
        result = dependency_service.link(simple_chain, "B", "A", calendar_prefs)

        assert result.accepted is False
        assert result.reason == LinkRejection.CYCLE
        assert result.tasks is simple_chain

    def test_accepted_link_appends_predecessor(self, calendar_prefs):
        tasks = [make_task("A", 1, 1), make_task("B", 3, 4)]

        result = dependency_service.link(tasks, "A", "B", calendar_prefs)

        assert result.accepted is True
        assert result.tasks[1].predecessors == ["A"]
        assert result.tasks[0] is tasks[0]
        assert tasks[1].predecessors == []

    def test_link_moves_successor_to_next_working_day(self, calendar_prefs):
        """B starts during A, so it is moved to Thursday midnight with its duration kept."""
        tasks = [make_task("A", 1, 3), make_task("B", 2, 5)]
        original_duration = tasks[1].duration

        result = dependency_service.link(tasks, "A", "B", calendar_prefs)
        successor = result.tasks[1]

        assert successor.start_date == day(4, 0)
        assert successor.duration == original_duration

    def test_link_skips_weekend(self, calendar_prefs):
        """A finishes on Friday 5 January; the next working day is Monday 8 January."""
        tasks = [make_task("A", 1, 5), make_task("B", 3, 3)]

        result = dependency_service.link(tasks, "A", "B", calendar_prefs)

        assert result.tasks[1].start_date == day(8, 0)

    def test_link_keeps_valid_successor_dates(self, calendar_prefs):
        tasks = [make_task("A", 1, 2), make_task("B", 4, 5)]

        result = dependency_service.link(tasks, "A", "B", calendar_prefs)

        assert result.tasks[1].start_date == tasks[1].start_date
        assert result.tasks[1].end_date == tasks[1].end_date

    def test_skip_date_correction_keeps_dates(self, calendar_prefs):
        tasks = [make_task("A", 1, 3), make_task("B", 2, 5)]

        result = dependency_service.link(tasks, "A", "B", calendar_prefs, skip_date_correction=True)

        assert result.accepted is True
        assert result.tasks[1].start_date == day(2)
        assert result.tasks[1].predecessors == ["A"]

    def test_duplicate_link_is_accepted_without_changes(self, simple_chain, calendar_prefs):
        result = dependency_service.link(simple_chain, "A", "B", calendar_prefs)

        assert result.accepted is True
        assert result.tasks is simple_chain
        assert result.tasks[1].predecessors == ["A"]

    def test_link_shifts_segments_with_start(self, calendar_prefs):
        segments = [
            TaskSegment(start_date=day(2), end_date=day(2, 17)),
            TaskSegment(start_date=day(4), end_date=day(5, 17)),
        ]
        tasks = [make_task("A", 1, 3), make_task("B", 2, 5, segments=segments)]

        result = dependency_service.link(tasks, "A", "B", calendar_prefs)
        moved = result.tasks[1]
        delta = moved.start_date - tasks[1].start_date

        assert moved.segments is not None
        assert [s.start_date for s in moved.segments] == [s.start_date + delta for s in segments]
        assert moved.segments[0].start_date == moved.start_date

    def test_no_sequence_of_links_creates_a_cycle(self, calendar_prefs):
        """Attempt every ordered pair; the accepted graph must stay acyclic."""
        tasks = [make_task(task_id) for task_id in "ABCDE"]

        for predecessor_id, successor_id in itertools.permutations("ABCDE", 2):
            tasks = dependency_service.link(
                tasks, predecessor_id, successor_id, calendar_prefs, skip_date_correction=True
            ).tasks

        graph = build_dependency_graph(tasks)
        assert nx.is_directed_acyclic_graph(graph)
        assert graph.number_of_edges() == 10  # Every pair ends up ordered one way


@pytest.mark.unit
class TestDetectDateConflict:
    """Tests for detect_date_conflict function."""

    def test_reports_conflict(self, simple_chain):
        conflict = dependency_service.detect_date_conflict(simple_chain, "B", "A")

        assert conflict is not None
        assert conflict.current_start == day(2)
        assert conflict.minimum_start == day(4, 0)

    def test_no_conflict_when_successor_starts_later(self):
        tasks = [make_task("A", 1, 1), make_task("B", 2, 2)]

        assert dependency_service.detect_date_conflict(tasks, "B", "A") is None

    def test_unknown_task_has_no_conflict(self, simple_chain):
        assert dependency_service.detect_date_conflict(simple_chain, "B", "Z") is None


@pytest.mark.unit
class TestUnlinkAndRemove:
    """Tests for unlink and remove_task functions."""

    def test_unlink_single_predecessor(self):
        tasks = [make_task("A"), make_task("B"), make_task("C", predecessors=["A", "B"])]

        result = dependency_service.unlink(tasks, "C", "A")

        assert result[2].predecessors == ["B"]

    def test_unlink_all_predecessors(self):
        tasks = [make_task("A"), make_task("B"), make_task("C", predecessors=["A", "B"])]

        result = dependency_service.unlink(tasks, "C")

        assert result[2].predecessors == []

    def test_unlink_missing_link_returns_same_list(self, simple_chain):
        assert dependency_service.unlink(simple_chain, "B", "Z") is simple_chain

    def test_remove_task_scrubs_references(self):
        tasks = [make_task("A"), make_task("B", predecessors=["A"]), make_task("C")]

        result = dependency_service.remove_task(tasks, "A")

        assert [t.id for t in result] == ["B", "C"]
        assert result[0].predecessors == []
        assert result[1] is tasks[2]
