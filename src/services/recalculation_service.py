"""Debounced, single-flight recalculation driven by preference changes.

Preference edits arrive in bursts (slider drags, form submits). The trigger
coalesces each burst into one action after a quiet period: it always pushes
the engine-facing configuration, and runs a sync, compute and reconcile cycle
when the burst touched a schedule-affecting category. When the engine fails,
the cycle degrades to a local approximation instead of leaving the schedule
stale, and the failure is logged rather than raised.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from src.core.config import constants, settings
from src.core.engine_client import EngineClient
from src.core.errors import ErrorReport, build_error_report
from src.core.logging import span
from src.domain.preferences import SCHEDULE_AFFECTING_CATEGORIES, PreferencesCategory, PreferencesChangeEvent
from src.domain.task import Task
from src.services import reconciliation_service
from src.services.local_schedule_service import local_recalculate
from src.services.preferences_service import PreferencesService


if TYPE_CHECKING:
    from src.services.project_store import ProjectStore


logger = logging.getLogger(__name__)


LocalFallback = Callable[[list[Task], float], list[Task]]


class RecalculationTrigger:
    """State machine owning the debounce timer and the single-flight flag."""

    def __init__(
        self,
        store: "ProjectStore",
        engine: EngineClient,
        preferences: PreferencesService,
        *,
        debounce_seconds: float | None = None,
        fallback: LocalFallback = local_recalculate,
    ) -> None:
        """Initialize the trigger.

        Args:
            store: Local project store the cycle reads from and commits to
            engine: Engine client for configuration pushes and recalculation
            preferences: Preference service to observe
            debounce_seconds: Quiet period before acting (defaults to settings)
            fallback: Local recomputation used when the engine cycle fails
        """
        self._store = store
        self._engine = engine
        self._preferences = preferences
        self._debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else settings.recalc_debounce_seconds
        )
        self._fallback = fallback
        self._unsubscribe: Callable[[], None] | None = None

        self.is_recalculating = False
        self.pending: asyncio.Task[None] | None = None
        self.last_event: PreferencesChangeEvent | None = None
        self.last_error: ErrorReport | None = None

        self._burst_categories: set[PreferencesCategory] = set()
        self._recalculation_requested = False

    def attach(self) -> None:
        """Start observing preference changes."""
        if self._unsubscribe is None:
            self._unsubscribe = self._preferences.subscribe(self.schedule)

    def detach(self) -> None:
        """Stop observing preference changes and drop any pending timer."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_pending()
        self._burst_categories.clear()
        self._recalculation_requested = False

    def schedule(self, event: PreferencesChangeEvent) -> None:
        """Handle one preference change event.

        Bookkeeping events (load, import, reset) replace preferences wholesale
        and are ignored. Any other event restarts the debounce timer.
        """
        if event.key in constants.BOOKKEEPING_EVENT_KEYS:
            logger.debug("Ignoring bookkeeping preferences event %s", event.key)
            return

        self.last_event = event
        self._burst_categories.add(event.category)
        self._restart_timer()

    def request_recalculation(self) -> None:
        """Ask for a debounced recalculation cycle (used after structural edits)."""
        self._recalculation_requested = True
        self._restart_timer()

    async def wait_idle(self) -> None:
        """Wait until no debounce timer is pending."""
        while self.pending is not None:
            await asyncio.wait({self.pending})

    async def recalculate_now(self) -> bool:
        """Run a cycle immediately, e.g. on explicit user request."""
        return await self.run()

    async def run(self) -> bool:
        """Run one sync, compute and reconcile cycle.

        A call made while a cycle is in flight is dropped. Engine failures are
        logged and answered with the local fallback; this method never raises
        for them.

        Returns:
            True if a result (engine or degraded) was committed, False if the
            call was dropped or there was nothing to compute
        """
        if self.is_recalculating:
            logger.debug("Recalculation already in flight; dropping request")
            return False

        self.is_recalculating = True
        try:
            snapshot = self._store.snapshot()
            if snapshot.project_id is None or not snapshot.tasks:
                return False

            with span("recalculation_service.run", project_id=str(snapshot.project_id)):
                try:
                    committed = await reconciliation_service.recalculate_critical_path_and_set(
                        self._store.snapshot,
                        self._store.set_tasks,
                        engine=self._engine,
                        serializer=self._store.serializer,
                    )
                except Exception as e:
                    self.last_error = build_error_report(e)
                    logger.error(
                        "recalculation_failed",
                        extra={
                            "project_id": str(snapshot.project_id),
                            "category": self.last_error.category.value,
                            "severity": self.last_error.severity.value,
                            "error": self.last_error.message,
                        },
                    )
                    return self._run_fallback()

                self.last_error = None
                return committed
        finally:
            self.is_recalculating = False

    def _run_fallback(self) -> bool:
        tasks = list(self._store.snapshot().tasks)
        threshold = self._preferences.preferences.calculations.critical_slack_days
        try:
            degraded = self._fallback(tasks, threshold)
        except Exception:
            logger.exception("Local fallback recalculation failed")
            return False

        self._store.set_tasks(degraded, mark_clean=False)
        logger.warning("recalculation_degraded", extra={"task_count": len(degraded)})
        return True

    def _restart_timer(self) -> None:
        self._cancel_pending()
        self.pending = asyncio.get_running_loop().create_task(self._fire_after_delay())

    def _cancel_pending(self) -> None:
        if self.pending is not None and not self.pending.done():
            self.pending.cancel()
        self.pending = None

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self._debounce_seconds)

        # From here on the work belongs to this burst; later events start a new timer
        self.pending = None
        categories = set(self._burst_categories)
        requested = self._recalculation_requested
        self._burst_categories.clear()
        self._recalculation_requested = False

        if categories:
            await self._push_configuration()

        if requested or categories & SCHEDULE_AFFECTING_CATEGORIES:
            await self.run()

    async def _push_configuration(self) -> None:
        try:
            await self._engine.update_configuration(self._preferences.engine_configuration())
        except Exception as e:
            report = build_error_report(e)
            logger.warning(
                "configuration_push_failed",
                extra={"category": report.category.value, "error": report.message},
            )
