"""
Pytest configuration and shared fixtures for cost guard tests.

This module provides common fixtures and configurations used across
all test modules in the cost guard system.
"""

from unittest.mock import AsyncMock

import pytest

from cost_guard.config import settings as settings_module
from cost_guard.config.settings import CostGuardConfig, build_settings
from cost_guard.detection.anomaly import AnomalyDetector
from cost_guard.jobs.scheduler import CostScheduler
from cost_guard.storage.memory import InMemoryAlertStore, InMemoryCostStore
from factories import TEST_DAY, TEST_SERVICES, FixedCostSampler


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as exercising the HTTP API")
    config.addinivalue_line("markers", "cli: mark test as exercising the command line")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# Database fixtures
@pytest.fixture
def mock_db_pool():
    """Mock asyncpg connection pool for testing."""
    mock_pool = AsyncMock()
    mock_conn = AsyncMock()

    # Set up connection methods
    mock_conn.fetch.return_value = []
    mock_conn.fetchrow.return_value = None
    mock_conn.fetchval.return_value = 1
    mock_conn.execute.return_value = "INSERT 0 1"

    class MockConnectionContextManager:
        def __init__(self, connection):
            self.conn = connection

        async def __aenter__(self):
            return self.conn

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            return None

    # Create a callable that returns async context manager
    def mock_acquire():
        return MockConnectionContextManager(mock_conn)

    mock_pool.acquire = mock_acquire
    mock_pool.conn = mock_conn

    return mock_pool


# Store fixtures
@pytest.fixture
def cost_store() -> InMemoryCostStore:
    return InMemoryCostStore()


@pytest.fixture
def alert_store() -> InMemoryAlertStore:
    return InMemoryAlertStore()


@pytest.fixture
def detector(cost_store, alert_store) -> AnomalyDetector:
    return AnomalyDetector(cost_store, alert_store, TEST_SERVICES)


@pytest.fixture
def fixed_sampler() -> FixedCostSampler:
    return FixedCostSampler(TEST_SERVICES)


@pytest.fixture
def scheduler(fixed_sampler, cost_store, detector) -> CostScheduler:
    return CostScheduler(
        fixed_sampler,
        cost_store,
        detector,
        interval_seconds=0.01,
        backfill_days=7,
        today=lambda: TEST_DAY,
        live_seed=lambda: 1234,
    )


# Configuration fixtures
@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    """Keep the lazily created global configuration from leaking between tests."""
    monkeypatch.setattr(settings_module, "_config", None)


@pytest.fixture
def test_settings():
    """Dynaconf settings that ignore the repository config files."""
    settings = build_settings([])
    settings.set("store.backend", "memory")
    settings.set("scheduler.enabled", False)
    settings.set("scheduler.interval_seconds", 30)
    settings.set("backfill.days", 14)
    settings.set("backfill.seed", 42)
    settings.set("services.tracked", list(TEST_SERVICES))
    settings.set("sampler.name", "simulated")
    return settings


@pytest.fixture
def test_config(test_settings) -> CostGuardConfig:
    """CostGuardConfig backed by in-memory settings."""
    return CostGuardConfig(test_settings)
