"""
API data models for the cost guard service.

Contains Pydantic models used across the API layer.
"""

from datetime import date, datetime

from pydantic import BaseModel

from ..storage.models import Alert, CostRecord


class CostRecordResponse(BaseModel):
    date: date
    service: str
    amount: float
    currency: str

    @classmethod
    def from_record(cls, record: CostRecord) -> "CostRecordResponse":
        return cls(
            date=record.date,
            service=record.service,
            amount=float(record.amount),
            currency=record.currency,
        )


class AlertResponse(BaseModel):
    id: int
    date: date
    service: str
    type: str
    message: str
    created_at: datetime

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertResponse":
        return cls(**alert.to_dict())


class BackfillResponse(BaseModel):
    ok: bool
    days: int
    alerts: int = 0
    detection_error: str | None = None


class HealthCheck(BaseModel):
    status: str
    timestamp: datetime
    version: str
    scheduler: str | None = None
