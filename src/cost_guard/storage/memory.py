"""
In-process store implementations.

Used for demos (``--store memory``) and tests. Every method body runs
without awaiting, so each call is atomic with respect to the event loop.
"""

import itertools
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from ..errors import CostRecordNotFoundError
from .base import NO_HISTORY, AlertStore, CostStore
from .models import Alert, AlertType, CostRecord


class InMemoryCostStore(CostStore):
    """Dictionary-backed cost store keyed by (date, service)."""

    def __init__(self):
        self._records: dict[tuple[date, str], CostRecord] = {}

    async def _upsert(self, day: date, service: str, amount: Decimal, currency: str) -> None:
        existing = self._records.get((day, service))
        created_at = existing.created_at if existing else datetime.now(timezone.utc)
        self._records[(day, service)] = CostRecord(
            date=day, service=service, amount=amount, currency=currency, created_at=created_at
        )

    async def get(self, day: date, service: str) -> Decimal:
        record = self._records.get((day, service))
        if record is None:
            raise CostRecordNotFoundError(day, service)
        return record.amount

    async def trailing_average(self, service: str, day: date, window_days: int) -> Decimal:
        window_start = day - timedelta(days=window_days)
        amounts = [
            record.amount
            for (record_day, record_service), record in self._records.items()
            if record_service == service and window_start <= record_day < day
        ]
        if not amounts:
            return NO_HISTORY
        return sum(amounts, Decimal("0")) / len(amounts)

    async def query_range(self, start: date, end: date) -> list[CostRecord]:
        records = [r for r in self._records.values() if start <= r.date <= end]
        return sorted(records, key=lambda r: (r.date, r.service))

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAlertStore(AlertStore):
    """List-backed append-only alert log."""

    def __init__(self):
        self._alerts: list[Alert] = []
        self._ids = itertools.count(1)

    async def append(
        self, day: date, service: str, alert_type: AlertType, message: str
    ) -> Alert:
        alert = Alert(
            id=next(self._ids),
            date=day,
            service=service,
            type=alert_type,
            message=message,
            created_at=datetime.now(timezone.utc),
        )
        self._alerts.append(alert)
        return alert

    async def query_range(self, start: date, end: date) -> list[Alert]:
        alerts = [a for a in self._alerts if start <= a.date <= end]
        return sorted(alerts, key=lambda a: (a.created_at, a.id), reverse=True)

    def __len__(self) -> int:
        return len(self._alerts)
