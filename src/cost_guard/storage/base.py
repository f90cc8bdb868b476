"""
Abstract store contracts for cost records and alerts.

Defines the interface that every storage backend must follow. Each call is
an individually atomic operation; callers never hold a lock or transaction
across calls.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date
from decimal import Decimal

from .models import DEFAULT_CURRENCY, Alert, AlertType, CostRecord, normalize_amount, normalize_currency

NO_HISTORY = Decimal("0")


class CostStore(ABC):
    """Keyed storage for (date, service) -> amount."""

    async def upsert(
        self, day: date, service: str, amount: Decimal, currency: str = DEFAULT_CURRENCY
    ) -> None:
        """
        Insert a cost record or replace the amount/currency of the existing one.

        Repeating the call with the same key leaves exactly one record holding
        the last written amount.

        Raises:
            ValueError: If amount is negative or currency is malformed
            StoreUnavailableError: If the store cannot be reached
        """
        if not service or not service.strip():
            raise ValueError("Service name cannot be empty")
        await self._upsert(day, service.strip(), normalize_amount(amount), normalize_currency(currency))

    async def upsert_many(
        self, day: date, amounts: Mapping[str, Decimal], currency: str = DEFAULT_CURRENCY
    ) -> int:
        """Upsert one sampled day, one atomic write per service. Returns the number written."""
        for service, amount in amounts.items():
            await self.upsert(day, service, amount, currency)
        return len(amounts)

    @abstractmethod
    async def _upsert(self, day: date, service: str, amount: Decimal, currency: str) -> None:
        """Backend-specific write of an already normalized record."""
        pass

    @abstractmethod
    async def get(self, day: date, service: str) -> Decimal:
        """
        Point lookup of one day's amount for a service.

        Raises:
            CostRecordNotFoundError: If no record exists for the key
        """
        pass

    @abstractmethod
    async def trailing_average(self, service: str, day: date, window_days: int) -> Decimal:
        """
        Mean amount over existing records with ``day - window_days <= date < day``.

        Days without a record are left out of the mean rather than counted as
        zero. Returns ``NO_HISTORY`` (zero) when no record qualifies.
        """
        pass

    @abstractmethod
    async def query_range(self, start: date, end: date) -> list[CostRecord]:
        """Records with start <= date <= end, ordered by date then service."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Cheap connectivity check used by the readiness probe."""
        pass


class AlertStore(ABC):
    """Append-only log of raised alerts."""

    @abstractmethod
    async def append(
        self, day: date, service: str, alert_type: AlertType, message: str
    ) -> Alert:
        """Append an alert; the store assigns id and creation timestamp."""
        pass

    @abstractmethod
    async def query_range(self, start: date, end: date) -> list[Alert]:
        """Alerts with start <= date <= end, most recently created first."""
        pass
