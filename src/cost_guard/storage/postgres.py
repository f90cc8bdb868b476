"""
PostgreSQL store implementations on top of an asyncpg connection pool.

The pool is the only shared mutable resource; the scheduler task and any
number of request handlers acquire connections from it concurrently.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path

import asyncpg

from ..errors import CostRecordNotFoundError, StoreUnavailableError
from .base import NO_HISTORY, AlertStore, CostStore
from .models import Alert, AlertType, CostRecord

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

UPSERT_COST_SQL = """
    INSERT INTO daily_costs (date, service, amount, currency)
    VALUES ($1, $2, $3, $4)
    ON CONFLICT (date, service) DO UPDATE
    SET amount = EXCLUDED.amount, currency = EXCLUDED.currency
"""

GET_COST_SQL = "SELECT amount FROM daily_costs WHERE date = $1 AND service = $2"

TRAILING_AVERAGE_SQL = """
    SELECT COALESCE(AVG(amount), 0)
    FROM daily_costs
    WHERE service = $1
      AND date < $2::date
      AND date >= $2::date - $3::integer
"""

QUERY_COSTS_SQL = """
    SELECT date, service, amount, currency, created_at
    FROM daily_costs
    WHERE date BETWEEN $1 AND $2
    ORDER BY date ASC, service ASC
"""

INSERT_ALERT_SQL = """
    INSERT INTO alerts (date, service, type, message)
    VALUES ($1, $2, $3, $4)
    RETURNING id, date, service, type, message, created_at
"""

QUERY_ALERTS_SQL = """
    SELECT id, date, service, type, message, created_at
    FROM alerts
    WHERE date BETWEEN $1 AND $2
    ORDER BY created_at DESC, id DESC
"""

# Failures that mean the store itself is unavailable, as opposed to a miss.
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


async def create_pool(database_url: str, min_size: int = 2, max_size: int = 10) -> asyncpg.Pool:
    """Open the shared connection pool."""
    logger.info("Connecting to database...")
    try:
        return await asyncpg.create_pool(database_url, min_size=min_size, max_size=max_size)
    except DRIVER_ERRORS as e:
        raise StoreUnavailableError(f"Could not connect to database: {e}", "connect") from e


async def initialize_schema(pool) -> None:
    """Create the daily_costs and alerts tables if they don't exist."""
    async with _connection(pool, "initialize_schema") as conn:
        await conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
    logger.info("✅ Database schema ready")


@asynccontextmanager
async def _connection(pool, operation: str):
    """Acquire a pooled connection, translating driver failures into StoreUnavailableError."""
    if pool is None:
        raise StoreUnavailableError("Database pool not initialized", operation)
    try:
        async with pool.acquire() as conn:
            yield conn
    except DRIVER_ERRORS as e:
        logger.error(f"❌ Database error during {operation}: {e}")
        raise StoreUnavailableError(f"{operation} failed: {e}", operation) from e


class PostgresCostStore(CostStore):
    """daily_costs table access."""

    def __init__(self, pool):
        self.pool = pool

    async def _upsert(self, day: date, service: str, amount: Decimal, currency: str) -> None:
        async with _connection(self.pool, "upsert") as conn:
            await conn.execute(UPSERT_COST_SQL, day, service, amount, currency)

    async def get(self, day: date, service: str) -> Decimal:
        async with _connection(self.pool, "get") as conn:
            row = await conn.fetchrow(GET_COST_SQL, day, service)
        if row is None:
            raise CostRecordNotFoundError(day, service)
        return Decimal(str(row["amount"]))

    async def trailing_average(self, service: str, day: date, window_days: int) -> Decimal:
        async with _connection(self.pool, "trailing_average") as conn:
            value = await conn.fetchval(TRAILING_AVERAGE_SQL, service, day, window_days)
        if value is None:
            return NO_HISTORY
        return Decimal(str(value))

    async def query_range(self, start: date, end: date) -> list[CostRecord]:
        async with _connection(self.pool, "query_costs") as conn:
            rows = await conn.fetch(QUERY_COSTS_SQL, start, end)
        return [
            CostRecord(
                date=row["date"],
                service=row["service"],
                amount=row["amount"],
                currency=row["currency"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def ping(self) -> bool:
        async with _connection(self.pool, "ping") as conn:
            return await conn.fetchval("SELECT 1") == 1


class PostgresAlertStore(AlertStore):
    """alerts table access."""

    def __init__(self, pool):
        self.pool = pool

    async def append(
        self, day: date, service: str, alert_type: AlertType, message: str
    ) -> Alert:
        async with _connection(self.pool, "append_alert") as conn:
            row = await conn.fetchrow(INSERT_ALERT_SQL, day, service, alert_type.value, message)
        return _row_to_alert(row)

    async def query_range(self, start: date, end: date) -> list[Alert]:
        async with _connection(self.pool, "query_alerts") as conn:
            rows = await conn.fetch(QUERY_ALERTS_SQL, start, end)
        return [_row_to_alert(row) for row in rows]


def _row_to_alert(row) -> Alert:
    return Alert(
        id=row["id"],
        date=row["date"],
        service=row["service"],
        type=row["type"],
        message=row["message"],
        created_at=row["created_at"],
    )
