"""Cost record and alert storage backends."""

from .base import NO_HISTORY, AlertStore, CostStore
from .memory import InMemoryAlertStore, InMemoryCostStore
from .models import DEFAULT_CURRENCY, Alert, AlertType, CostRecord
from .postgres import PostgresAlertStore, PostgresCostStore, create_pool, initialize_schema

__all__ = [
    "NO_HISTORY",
    "DEFAULT_CURRENCY",
    "Alert",
    "AlertType",
    "AlertStore",
    "CostRecord",
    "CostStore",
    "InMemoryAlertStore",
    "InMemoryCostStore",
    "PostgresAlertStore",
    "PostgresCostStore",
    "create_pool",
    "initialize_schema",
]
