"""
Anomaly detection for daily service costs.

Rule: a service's cost for a day is a spike when its trailing-window average
is positive and the day's amount is strictly greater than
``SPIKE_MULTIPLIER`` times that average. Days with no prior history are
never flagged.
"""

import logging
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from ..errors import CostRecordNotFoundError, MissingCostSampleError
from ..storage.base import AlertStore, CostStore
from ..storage.models import Alert, AlertType

logger = logging.getLogger(__name__)

# Detector tuning. Read when a detector is built, so tests can patch them.
TRAILING_WINDOW_DAYS = 7
SPIKE_MULTIPLIER = Decimal("1.5")


def is_spike(today: Decimal, average: Decimal, multiplier: Decimal | None = None) -> bool:
    """Return True when ``today`` exceeds ``multiplier`` times a non-zero baseline."""
    if multiplier is None:
        multiplier = SPIKE_MULTIPLIER
    return average > 0 and today > multiplier * average


def format_spike_message(service: str, today: Decimal, average: Decimal, window_days: int) -> str:
    """Human-readable alert text carrying the observed amount and the baseline."""
    return f"{service} cost spike: today={today:.2f}, {window_days}d_avg={average:.2f}"


class AnomalyDetector:
    """Stateless read-then-decide spike detector over a cost store."""

    def __init__(
        self,
        cost_store: CostStore,
        alert_store: AlertStore,
        services: Sequence[str],
        window_days: int | None = None,
        spike_multiplier: Decimal | float | None = None,
    ):
        self.cost_store = cost_store
        self.alert_store = alert_store
        self.services = list(services)
        self.window_days = TRAILING_WINDOW_DAYS if window_days is None else int(window_days)
        self.spike_multiplier = Decimal(
            str(SPIKE_MULTIPLIER if spike_multiplier is None else spike_multiplier)
        )

        if self.window_days < 1:
            raise ValueError("window_days must be >= 1")
        if self.spike_multiplier <= 0:
            raise ValueError("spike_multiplier must be > 0")

    async def evaluate(self, day: date) -> list[Alert]:
        """
        Evaluate every tracked service for ``day`` and append an alert per spike.

        Args:
            day: Day whose stored amounts are compared against the trailing window

        Returns:
            Alerts raised by this evaluation (empty if none)

        Raises:
            MissingCostSampleError: If a tracked service has no record for ``day``
            StoreUnavailableError: If the store fails
        """
        raised = []
        for service in self.services:
            try:
                today = await self.cost_store.get(day, service)
            except CostRecordNotFoundError as e:
                raise MissingCostSampleError(day, service) from e

            average = await self.cost_store.trailing_average(service, day, self.window_days)

            if not is_spike(today, average, self.spike_multiplier):
                logger.debug(
                    f"{service} {day.isoformat()}: today={today:.2f}, "
                    f"{self.window_days}d_avg={average:.2f} within threshold"
                )
                continue

            message = format_spike_message(service, today, average, self.window_days)
            alert = await self.alert_store.append(day, service, AlertType.ANOMALY, message)
            logger.warning(f"ALERT: {message}")
            raised.append(alert)

        return raised
