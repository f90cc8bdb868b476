"""
Data models for the storage layer.

Daily cost records keyed by (date, service) and the append-only alert log.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

DEFAULT_CURRENCY = "USD"
CENT = Decimal("0.01")


class AlertType(str, Enum):
    """Classification tags for raised alerts."""

    ANOMALY = "ANOMALY"


def normalize_currency(value: str) -> str:
    """Validate and normalize an ISO 4217 currency code."""
    if not value or not value.strip():
        raise ValueError("Currency must be specified")
    normalized = value.upper().strip()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValueError(f"Invalid currency code: {value}")
    return normalized


def normalize_amount(value: Any) -> Decimal:
    """Coerce a cost amount to a non-negative Decimal rounded to cents."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"Cost amount {value} is not a finite number")
    if amount < 0:
        raise ValueError(f"Cost amount {value} cannot be negative")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class CostRecord(BaseModel):
    """One service's cost for one calendar day."""

    date: date
    service: str
    amount: Decimal
    currency: str = DEFAULT_CURRENCY
    created_at: datetime | None = None

    @field_validator("service")
    @classmethod
    def validate_service(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Service name cannot be empty")
        return stripped

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        return normalize_amount(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return normalize_currency(v)

    @property
    def key(self) -> tuple:
        """Identity key of the record."""
        return (self.date, self.service)


class Alert(BaseModel):
    """Immutable record of a detected anomaly.

    Alerts are appended by the anomaly detector and never modified; the
    store assigns ``id`` and ``created_at``.
    """

    model_config = {"frozen": True}

    id: int
    date: date
    service: str
    type: AlertType
    message: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert alert to dictionary for serialization."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "service": self.service,
            "type": self.type.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }
