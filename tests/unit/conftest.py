"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Iterator

import pytest

from src.services.preferences_service import PreferencesService
from src.services.project_store import ProjectStore
from src.services.recalculation_service import RecalculationTrigger
from src.services.sync_service import SyncSerializer
from tests.unit.mocks import FakeEngine


@pytest.fixture
def engine() -> FakeEngine:
    """Provides a fresh FakeEngine for each test."""
    return FakeEngine()


@pytest.fixture
def serializer(engine: FakeEngine) -> SyncSerializer:
    return SyncSerializer(engine)  # type: ignore[arg-type]


@pytest.fixture
def preferences() -> PreferencesService:
    return PreferencesService()


@pytest.fixture
def store(serializer: SyncSerializer, preferences: PreferencesService) -> ProjectStore:
    """Store with no project open and auto-recalculation off."""
    return ProjectStore(serializer, preferences=preferences, auto_recalculate=False)


@pytest.fixture
def trigger(
    store: ProjectStore, engine: FakeEngine, preferences: PreferencesService
) -> Iterator[RecalculationTrigger]:
    """Attached trigger with no debounce delay, wired back into the store."""
    recalculation_trigger = RecalculationTrigger(
        store,
        engine,  # type: ignore[arg-type]
        preferences,
        debounce_seconds=0,
    )
    store.attach_trigger(recalculation_trigger)
    recalculation_trigger.attach()
    yield recalculation_trigger
    recalculation_trigger.detach()
