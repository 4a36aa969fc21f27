"""Pytest configuration and shared fixtures."""

import pytest

from src.domain.task import Task
from tests.unit.factories import make_task


@pytest.fixture
def simple_chain() -> list[Task]:
    """A (days 1-3) -> B (days 2-5): B starts before A allows."""
    return [
        make_task("A", 1, 3),
        make_task("B", 2, 5, predecessors=["A"]),
    ]
