"""planbridge - keeps a local project schedule in step with an external scheduling engine."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from src.core.config import settings
from src.core.engine_client import EngineClient
from src.core.logging import configure_logfire, instrument_httpx
from src.services.preferences_service import PreferencesService
from src.services.project_store import ProjectStore
from src.services.recalculation_service import RecalculationTrigger
from src.services.sync_service import SyncSerializer


logger = logging.getLogger(__name__)


@dataclass
class Planbridge:
    """The wired services of one running application."""

    engine: EngineClient
    serializer: SyncSerializer
    store: ProjectStore
    preferences: PreferencesService
    trigger: RecalculationTrigger


def create_planbridge(
    engine: EngineClient | None = None,
    preferences: PreferencesService | None = None,
) -> Planbridge:
    """Wire the store, serializer, preferences and recalculation trigger together.

    One serializer is shared by every push of the application, so pushes from
    edits and from recalculation cycles are ordered by the same lock.
    """
    engine = engine or EngineClient()
    preferences = preferences or PreferencesService()
    serializer = SyncSerializer(engine)
    store = ProjectStore(serializer, preferences=preferences)
    trigger = RecalculationTrigger(store, engine, preferences)
    store.attach_trigger(trigger)
    return Planbridge(engine=engine, serializer=serializer, store=store, preferences=preferences, trigger=trigger)


@asynccontextmanager
async def lifespan(
    engine: EngineClient | None = None,
    *,
    configure_observability: bool = True,
) -> AsyncIterator[Planbridge]:
    """Run planbridge for the duration of the block.

    On exit the debounce timer is dropped, background pushes are awaited and
    the engine client is closed (only when it was created here).
    """
    if configure_observability:
        configure_logfire()
        instrument_httpx()

    owns_engine = engine is None
    app = create_planbridge(engine)
    app.trigger.attach()
    logger.info("planbridge_started", extra={"engine_base_url": settings.engine_base_url})
    try:
        yield app
    finally:
        app.trigger.detach()
        await app.store.flush()
        if owns_engine:
            await app.engine.close()
        logger.info("planbridge_stopped")
