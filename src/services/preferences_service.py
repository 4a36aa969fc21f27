"""User preferences ownership and change notification."""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from src.domain.preferences import PreferencesCategory, PreferencesChangeEvent, UserPreferences


logger = logging.getLogger(__name__)


PreferencesListener = Callable[[PreferencesChangeEvent], None]

ENGINE_THEMES = frozenset({"dark", "light", "system"})


class PreferencesService:
    """Holds the current UserPreferences and notifies subscribers of changes.

    Wholesale replacements (load, import, reset) are published with the
    bookkeeping keys ``load``, ``import`` and ``reset`` so that observers can
    tell them apart from incremental edits.
    """

    def __init__(self, preferences: UserPreferences | None = None) -> None:
        self._preferences = preferences or UserPreferences()
        self._listeners: list[PreferencesListener] = []

    @property
    def preferences(self) -> UserPreferences:
        return self._preferences

    def subscribe(self, listener: PreferencesListener) -> Callable[[], None]:
        """Register a listener and return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, category: PreferencesCategory | str, key: str, value: Any) -> None:
        """Change one preference and notify subscribers.

        Args:
            category: Preference group
            key: Field name within the group
            value: New value (validated against the group's model)

        Raises:
            ValueError: If the category or key is unknown, or the value is invalid
        """
        category = PreferencesCategory(category)
        section = getattr(self._preferences, category.value)

        if isinstance(section, BaseModel):
            if key not in type(section).model_fields:
                msg = f"Unknown preference {category.value}.{key}"
                raise ValueError(msg)
            new_section = type(section).model_validate({**section.model_dump(), key: value})
        else:
            new_section = {**section, key: value}

        self._preferences = self._preferences.model_copy(update={category.value: new_section})
        self._emit(PreferencesChangeEvent(category=category, key=key, value=value))

    def load(self, preferences: UserPreferences) -> None:
        """Replace all preferences, e.g. from persisted user settings."""
        self._preferences = preferences
        self._emit(PreferencesChangeEvent(category=PreferencesCategory.GENERAL, key="load"))

    def import_preferences(self, data: dict[str, Any]) -> None:
        """Replace all preferences from an exported document.

        Raises:
            pydantic.ValidationError: If the document does not describe valid preferences
        """
        self._preferences = UserPreferences.model_validate(data)
        self._emit(PreferencesChangeEvent(category=PreferencesCategory.GENERAL, key="import"))

    def reset(self) -> None:
        self._preferences = UserPreferences()
        self._emit(PreferencesChangeEvent(category=PreferencesCategory.GENERAL, key="reset"))

    def engine_configuration(self) -> dict[str, Any]:
        """Narrow projection of preferences the engine consumes."""
        theme = self._preferences.display.theme
        return {"display": {"theme": theme if theme in ENGINE_THEMES else "system"}}

    def _emit(self, event: PreferencesChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # Don't fail the edit if an observer fails - just log it
                logger.exception("Preferences listener failed for %s.%s", event.category, event.key)
