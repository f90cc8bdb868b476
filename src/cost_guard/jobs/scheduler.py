"""
Cost sampling scheduler.

Drives the ingestion cycle: a one-time history backfill at startup, then a
fixed-interval loop that samples today's costs and immediately runs anomaly
detection. The loop is a single asyncio task; it shares nothing with request
handlers except the store.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from ..detection.anomaly import AnomalyDetector
from ..errors import MissingCostSampleError
from ..sampling.base import CostSampler
from ..storage.base import CostStore
from ..storage.models import DEFAULT_CURRENCY, Alert

logger = logging.getLogger(__name__)

MIN_BACKFILL_DAYS = 1
MAX_BACKFILL_DAYS = 365


class SchedulerState(Enum):
    """Lifecycle of the background sampling task."""

    IDLE = "idle"
    BACKFILLING = "backfilling"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class BackfillResult:
    """Outcome of a backfill run."""

    days: int
    start_date: date
    end_date: date
    alerts: list[Alert] = field(default_factory=list)
    detection_error: str | None = None


def validate_backfill_days(days: int) -> int:
    """Reject backfill depths outside 1..365."""
    if not MIN_BACKFILL_DAYS <= days <= MAX_BACKFILL_DAYS:
        raise ValueError(f"days must be {MIN_BACKFILL_DAYS}..{MAX_BACKFILL_DAYS}")
    return days


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class CostScheduler:
    """Backfill once, then sample and evaluate on a fixed interval."""

    def __init__(
        self,
        sampler: CostSampler,
        cost_store: CostStore,
        detector: AnomalyDetector,
        interval_seconds: float = 30.0,
        backfill_days: int = 14,
        backfill_seed: int = 42,
        currency: str = DEFAULT_CURRENCY,
        today: Callable[[], date] = utc_today,
        live_seed: Callable[[], int] = time.time_ns,
    ):
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.sampler = sampler
        self.cost_store = cost_store
        self.detector = detector
        self.interval_seconds = interval_seconds
        self.backfill_days = validate_backfill_days(backfill_days)
        self.backfill_seed = backfill_seed
        self.currency = currency
        self._today = today
        self._live_seed = live_seed
        self._task: asyncio.Task | None = None
        self.state = SchedulerState.IDLE
        self.cycles_completed = 0
        self.cycles_failed = 0
        self.last_error: str | None = None

    def seed_for(self, day: date) -> int:
        """Deterministic backfill seed for ``day``."""
        return self.backfill_seed + day.toordinal()

    async def backfill(self, days: int, today: date | None = None) -> BackfillResult:
        """
        Sample and store the ``days`` days ending today, oldest first, then
        evaluate the most recent day only.

        Raises:
            ValueError: If days is outside 1..365
            StoreUnavailableError: If the store fails while writing
        """
        validate_backfill_days(days)
        end_date = today or self._today()
        start_date = end_date - timedelta(days=days - 1)
        logger.info(f"🚀 Backfilling {days} days: {start_date} to {end_date}")

        for offset in range(days):
            day = start_date + timedelta(days=offset)
            amounts = await self.sampler.sample_day(day, self.seed_for(day))
            await self.cost_store.upsert_many(day, amounts, self.currency)

        result = BackfillResult(days=days, start_date=start_date, end_date=end_date)
        try:
            result.alerts = await self.detector.evaluate(end_date)
        except MissingCostSampleError as e:
            logger.error(f"❌ Detection skipped after backfill: {e}")
            result.detection_error = str(e)

        logger.info(
            f"✅ Backfill complete: {days} days stored, {len(result.alerts)} alert(s) for {end_date}"
        )
        return result

    async def run_cycle(self, today: date | None = None) -> list[Alert]:
        """Sample today with a fresh time-derived seed, store it and run detection."""
        day = today or self._today()
        amounts = await self.sampler.sample_day(day, self._live_seed())
        await self.cost_store.upsert_many(day, amounts, self.currency)
        alerts = await self.detector.evaluate(day)
        logger.info(f"Cycle for {day}: stored {len(amounts)} services, {len(alerts)} alert(s)")
        return alerts

    async def run_forever(self):
        """Startup backfill followed by the steady-state loop, until cancelled."""
        try:
            self.state = SchedulerState.BACKFILLING
            try:
                await self.backfill(self.backfill_days)
            except Exception as e:
                self.last_error = str(e)
                logger.error(f"❌ Backfill error: {e}")

            self.state = SchedulerState.RUNNING
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    await self.run_cycle()
                    self.cycles_completed += 1
                except Exception as e:
                    self.cycles_failed += 1
                    self.last_error = str(e)
                    logger.error(f"❌ Scheduler error: {e}")
        finally:
            self.state = SchedulerState.STOPPED

    def start(self) -> asyncio.Task:
        """Launch the background task on the running loop."""
        if self._task is not None and not self._task.done():
            return self._task
        logger.info(f"Starting scheduler (interval={self.interval_seconds}s)")
        self._task = asyncio.create_task(self.run_forever(), name="cost-scheduler")
        return self._task

    async def stop(self):
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
