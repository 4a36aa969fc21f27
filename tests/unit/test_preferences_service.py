"""Unit tests for preferences_service module."""

import pytest
from pydantic import ValidationError

from src.domain.preferences import PreferencesCategory, PreferencesChangeEvent, UserPreferences
from src.services.preferences_service import PreferencesService


@pytest.fixture
def events(preferences: PreferencesService) -> list[PreferencesChangeEvent]:
    received: list[PreferencesChangeEvent] = []
    preferences.subscribe(received.append)
    return received


@pytest.mark.unit
class TestUpdate:
    """Tests for PreferencesService.update."""

    def test_update_changes_value_and_notifies(self, preferences, events):
        preferences.update(PreferencesCategory.CALCULATIONS, "critical_slack_days", 2)

        assert preferences.preferences.calculations.critical_slack_days == 2.0
        assert events == [
            PreferencesChangeEvent(category=PreferencesCategory.CALCULATIONS, key="critical_slack_days", value=2)
        ]

    def test_update_accepts_category_string(self, preferences, events):
        preferences.update("display", "theme", "dark")

        assert preferences.preferences.display.theme == "dark"
        assert events[0].category == PreferencesCategory.DISPLAY

    def test_update_general_free_form_key(self, preferences):
        preferences.update(PreferencesCategory.GENERAL, "language", "de")

        assert preferences.preferences.general == {"language": "de"}

    def test_unknown_key_raises(self, preferences, events):
        with pytest.raises(ValueError, match="Unknown preference calendar.nope"):
            preferences.update(PreferencesCategory.CALENDAR, "nope", 1)

        assert events == []

    def test_invalid_value_raises_and_keeps_state(self, preferences):
        with pytest.raises(ValidationError):
            preferences.update(PreferencesCategory.CALENDAR, "hours_per_day", "many")

        assert preferences.preferences.calendar.hours_per_day == 8.0

    def test_previous_preferences_object_is_not_mutated(self, preferences):
        before = preferences.preferences

        preferences.update(PreferencesCategory.SCHEDULE, "effort_driven", True)

        assert before.schedule.effort_driven is False
        assert preferences.preferences.schedule.effort_driven is True


@pytest.mark.unit
class TestBulkReplacement:
    """Tests for load, import_preferences and reset."""

    def test_load_emits_bookkeeping_event(self, preferences, events):
        preferences.load(UserPreferences())

        assert [(e.category, e.key) for e in events] == [(PreferencesCategory.GENERAL, "load")]

    def test_import_validates_document(self, preferences, events):
        preferences.import_preferences({"display": {"theme": "light"}})

        assert preferences.preferences.display.theme == "light"
        assert events[-1].key == "import"

    def test_reset_restores_defaults(self, preferences, events):
        preferences.update(PreferencesCategory.DISPLAY, "theme", "dark")

        preferences.reset()

        assert preferences.preferences == UserPreferences()
        assert events[-1].key == "reset"


@pytest.mark.unit
class TestSubscriptions:
    """Tests for subscribe and listener isolation."""

    def test_unsubscribe_stops_notifications(self, preferences):
        received: list[PreferencesChangeEvent] = []
        unsubscribe = preferences.subscribe(received.append)

        unsubscribe()
        preferences.update(PreferencesCategory.DISPLAY, "theme", "dark")

        assert received == []

    def test_failing_listener_does_not_block_others(self, preferences):
        received: list[PreferencesChangeEvent] = []

        def broken(event: PreferencesChangeEvent) -> None:
            raise RuntimeError("listener bug")

        preferences.subscribe(broken)
        preferences.subscribe(received.append)

        preferences.update(PreferencesCategory.DISPLAY, "theme", "dark")

        assert len(received) == 1
        assert preferences.preferences.display.theme == "dark"


@pytest.mark.unit
class TestEngineConfiguration:
    """Tests for engine_configuration projection."""

    @pytest.mark.parametrize("theme", ["dark", "light", "system"])
    def test_known_themes_pass_through(self, preferences, theme):
        preferences.update(PreferencesCategory.DISPLAY, "theme", theme)

        assert preferences.engine_configuration() == {"display": {"theme": theme}}

    def test_unknown_theme_falls_back_to_system(self, preferences):
        preferences.update(PreferencesCategory.DISPLAY, "theme", "solarized")

        assert preferences.engine_configuration() == {"display": {"theme": "system"}}
