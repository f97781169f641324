"""Health data fetcher: range queries against the store, published to the view-model.

Each query runs on a worker thread. Results are awaited back on the event
loop, which owns the view-model, so all writes happen there. Queries are
independent: a failed kind is logged and leaves its field untouched.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Optional

from . import aggregator
from .formatting import days_before, local_date, start_of_local_day
from .models import Failure, MetricKind, QueryResult, Success
from .store import HealthStore, QueryFailedError
from .viewmodel import DashboardViewModel

logger = logging.getLogger(__name__)

HISTORY_DAYS = 30


class HealthDataFetcher:

    def __init__(
        self,
        store: HealthStore,
        view_model: DashboardViewModel,
        tz: Optional[tzinfo] = None,
    ):
        self.store = store
        self.view_model = view_model
        self.tz = tz

    def _now(self) -> datetime:
        return datetime.now(self.tz) if self.tz else datetime.now().astimezone()

    async def fetch_range(self, kind: MetricKind, start: datetime, end: datetime) -> QueryResult:
        """Query one kind over [start, end). Never raises; failures are returned."""
        try:
            samples = await asyncio.to_thread(self.store.query_samples, kind, start, end)
        except QueryFailedError as e:
            return Failure(kind, e)
        except Exception as e:
            return Failure(kind, QueryFailedError(kind, str(e)))
        return Success(kind, tuple(samples))

    # ------------------------------------------------------------------
    # Today
    # ------------------------------------------------------------------

    async def refresh_today(self, now: Optional[datetime] = None):
        """Fetch all four kinds for [start of local day, now)."""
        now = now or self._now()
        start = start_of_local_day(now, self.tz)
        day = local_date(now, self.tz)
        generation = self.view_model.next_generation("today")

        async def run(kind: MetricKind):
            result = await self.fetch_range(kind, start, now)
            self._apply_today(generation, day, result)

        await asyncio.gather(*(run(kind) for kind in MetricKind))

    def _apply_today(self, generation: int, day, result: QueryResult):
        if generation != self.view_model.generation("today"):
            logger.debug(f"Discarding stale {result.kind.value} result from generation {generation}")
            return
        if not result.ok:
            logger.warning(f"Failed to fetch {result.kind.value}: {result.error}")
            return

        samples = result.samples
        match result.kind:
            case MetricKind.STEPS:
                if samples:
                    self.view_model.update_today(day, step_count=aggregator.sum_steps(samples))
            case MetricKind.ACTIVE_ENERGY:
                if samples:
                    self.view_model.update_today(day, active_energy_kcal=aggregator.sum_energy(samples))
            case MetricKind.SLEEP:
                self.view_model.update_today(
                    day, sleep_hours=aggregator.sleep_hours_for_day(samples, day, self.tz),
                )
            case MetricKind.HEART_RATE:
                average = aggregator.average_heart_rate(samples)
                if average is not None:
                    self.view_model.update_today(day, average_heart_rate_bpm=average)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def refresh_history(self, now: Optional[datetime] = None, days: int = HISTORY_DAYS):
        """Fetch all four kinds for [now - days, now) and publish per-day history."""
        now = now or self._now()
        start = days_before(now, days)
        generation = self.view_model.next_generation("history")

        results = await asyncio.gather(
            *(self.fetch_range(kind, start, now) for kind in MetricKind)
        )
        if generation != self.view_model.generation("history"):
            logger.debug(f"Discarding stale history from generation {generation}")
            return

        samples_by_kind = {}
        for result in results:
            if result.ok:
                samples_by_kind[result.kind] = result.samples
            else:
                logger.warning(f"Failed to fetch {result.kind.value} history: {result.error}")

        if not samples_by_kind:
            return
        self.view_model.set_history(aggregator.build_history(samples_by_kind, self.tz))
