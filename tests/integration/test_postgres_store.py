"""
Integration tests for the PostgreSQL stores against a mocked asyncpg pool.

Pins the SQL and parameter contract and the translation of driver failures
into StoreUnavailableError.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import asyncpg
import pytest

from cost_guard.errors import CostRecordNotFoundError, StoreUnavailableError
from cost_guard.storage import postgres
from cost_guard.storage.models import AlertType
from cost_guard.storage.postgres import PostgresAlertStore, PostgresCostStore, initialize_schema

DAY = date(2024, 3, 8)
CREATED = datetime(2024, 3, 8, 9, 30, tzinfo=timezone.utc)


@pytest.mark.integration
class TestPostgresCostStore:
    """Test cases for PostgresCostStore."""

    @pytest.mark.asyncio
    async def test_upsert_normalizes_then_executes(self, mock_db_pool):
        """Test amounts are rounded and currency upper-cased before the write."""
        store = PostgresCostStore(mock_db_pool)

        await store.upsert(DAY, " compute ", Decimal("3.456"), "usd")

        mock_db_pool.conn.execute.assert_awaited_once_with(
            postgres.UPSERT_COST_SQL, DAY, "compute", Decimal("3.46"), "USD"
        )

    def test_upsert_sql_is_on_conflict_update(self):
        sql = " ".join(postgres.UPSERT_COST_SQL.split())
        assert "ON CONFLICT (date, service) DO UPDATE" in sql
        assert "SET amount = EXCLUDED.amount, currency = EXCLUDED.currency" in sql

    @pytest.mark.asyncio
    async def test_upsert_negative_amount_never_reaches_database(self, mock_db_pool):
        store = PostgresCostStore(mock_db_pool)

        with pytest.raises(ValueError):
            await store.upsert(DAY, "compute", Decimal("-1"))

        mock_db_pool.conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_returns_amount(self, mock_db_pool):
        mock_db_pool.conn.fetchrow.return_value = {"amount": Decimal("4.20")}
        store = PostgresCostStore(mock_db_pool)

        assert await store.get(DAY, "db") == Decimal("4.20")
        mock_db_pool.conn.fetchrow.assert_awaited_once_with(postgres.GET_COST_SQL, DAY, "db")

    @pytest.mark.asyncio
    async def test_get_missing_row(self, mock_db_pool):
        store = PostgresCostStore(mock_db_pool)

        with pytest.raises(CostRecordNotFoundError):
            await store.get(DAY, "db")

    @pytest.mark.asyncio
    async def test_trailing_average_query(self, mock_db_pool):
        """Test the window bounds are passed as day and length."""
        mock_db_pool.conn.fetchval.return_value = Decimal("3.0000000000000000")
        store = PostgresCostStore(mock_db_pool)

        assert await store.trailing_average("compute", DAY, 7) == Decimal("3")
        mock_db_pool.conn.fetchval.assert_awaited_once_with(
            postgres.TRAILING_AVERAGE_SQL, "compute", DAY, 7
        )

    def test_trailing_average_sql_excludes_reference_day(self):
        sql = " ".join(postgres.TRAILING_AVERAGE_SQL.split())
        assert "date < $2::date" in sql
        assert "date >= $2::date - $3::integer" in sql
        assert "COALESCE(AVG(amount), 0)" in sql

    @pytest.mark.asyncio
    async def test_trailing_average_null_is_no_history(self, mock_db_pool):
        mock_db_pool.conn.fetchval.return_value = None
        store = PostgresCostStore(mock_db_pool)

        assert await store.trailing_average("compute", DAY, 7) == Decimal("0")

    @pytest.mark.asyncio
    async def test_query_range_maps_rows(self, mock_db_pool):
        mock_db_pool.conn.fetch.return_value = [
            {
                "date": DAY,
                "service": "compute",
                "amount": Decimal("3.10"),
                "currency": "USD",
                "created_at": CREATED,
            }
        ]
        store = PostgresCostStore(mock_db_pool)

        records = await store.query_range(DAY, DAY)

        assert len(records) == 1
        assert records[0].key == (DAY, "compute")
        assert records[0].amount == Decimal("3.10")
        assert "ORDER BY date ASC, service ASC" in postgres.QUERY_COSTS_SQL

    @pytest.mark.asyncio
    async def test_ping(self, mock_db_pool):
        store = PostgresCostStore(mock_db_pool)
        assert await store.ping() is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [asyncpg.InterfaceError("pool is closing"), OSError("connection refused")],
    )
    async def test_driver_errors_become_store_unavailable(self, mock_db_pool, error):
        """Test driver and socket failures surface as StoreUnavailableError."""
        mock_db_pool.conn.execute.side_effect = error
        store = PostgresCostStore(mock_db_pool)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.upsert(DAY, "compute", Decimal("1"))

        assert exc_info.value.operation == "upsert"
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_uninitialized_pool(self):
        store = PostgresCostStore(None)

        with pytest.raises(StoreUnavailableError, match="not initialized"):
            await store.get(DAY, "compute")


@pytest.mark.integration
class TestPostgresAlertStore:
    """Test cases for PostgresAlertStore."""

    @pytest.mark.asyncio
    async def test_append_returns_stored_alert(self, mock_db_pool):
        mock_db_pool.conn.fetchrow.return_value = {
            "id": 11,
            "date": DAY,
            "service": "db",
            "type": "ANOMALY",
            "message": "db cost spike: today=3.00, 7d_avg=1.50",
            "created_at": CREATED,
        }
        store = PostgresAlertStore(mock_db_pool)

        alert = await store.append(DAY, "db", AlertType.ANOMALY, "db cost spike: today=3.00, 7d_avg=1.50")

        assert alert.id == 11
        assert alert.type is AlertType.ANOMALY
        mock_db_pool.conn.fetchrow.assert_awaited_once_with(
            postgres.INSERT_ALERT_SQL, DAY, "db", "ANOMALY", "db cost spike: today=3.00, 7d_avg=1.50"
        )

    @pytest.mark.asyncio
    async def test_query_range_newest_first(self, mock_db_pool):
        mock_db_pool.conn.fetch.return_value = [
            {
                "id": 2,
                "date": DAY,
                "service": "compute",
                "type": "ANOMALY",
                "message": "b",
                "created_at": CREATED,
            },
            {
                "id": 1,
                "date": DAY,
                "service": "db",
                "type": "ANOMALY",
                "message": "a",
                "created_at": CREATED,
            },
        ]
        store = PostgresAlertStore(mock_db_pool)

        alerts = await store.query_range(DAY, DAY)

        assert [a.id for a in alerts] == [2, 1]
        assert "ORDER BY created_at DESC, id DESC" in postgres.QUERY_ALERTS_SQL


@pytest.mark.integration
class TestSchema:
    """Test schema bootstrap."""

    @pytest.mark.asyncio
    async def test_initialize_schema_executes_sql_file(self, mock_db_pool):
        await initialize_schema(mock_db_pool)

        executed = mock_db_pool.conn.execute.await_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS daily_costs" in executed
        assert "CREATE TABLE IF NOT EXISTS alerts" in executed

    @pytest.mark.asyncio
    async def test_create_pool_failure(self, monkeypatch):
        monkeypatch.setattr(
            postgres.asyncpg, "create_pool", AsyncMock(side_effect=OSError("no route to host"))
        )

        with pytest.raises(StoreUnavailableError, match="Could not connect"):
            await postgres.create_pool("postgres://nowhere/db")
