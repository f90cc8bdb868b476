"""
Component wiring shared by the API server and the CLI.

Builds the stores, sampler, detector and scheduler from a CostGuardConfig
and tears them down again in reverse order.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from .config.settings import CostGuardConfig
from .detection.anomaly import AnomalyDetector
from .errors import ConfigurationError
from .jobs.scheduler import CostScheduler
from .sampling import CostSampler, SamplerFactory
from .storage import (
    AlertStore,
    CostStore,
    InMemoryAlertStore,
    InMemoryCostStore,
    PostgresAlertStore,
    PostgresCostStore,
    create_pool,
    initialize_schema,
)

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Live components for one process."""

    config: CostGuardConfig
    cost_store: CostStore
    alert_store: AlertStore
    sampler: CostSampler
    detector: AnomalyDetector
    scheduler: CostScheduler
    pool: Optional[Any] = None


def build_components(config: CostGuardConfig, cost_store: CostStore, alert_store: AlertStore, pool=None) -> Runtime:
    """Assemble sampler, detector and scheduler around already-open stores."""
    sampler = SamplerFactory.create_sampler(config.sampler_name, config)
    detector = AnomalyDetector(
        cost_store,
        alert_store,
        sampler.services,
        window_days=config.window_days,
        spike_multiplier=config.spike_multiplier,
    )
    scheduler = CostScheduler(
        sampler,
        cost_store,
        detector,
        interval_seconds=config.interval_seconds,
        backfill_days=config.backfill_days,
        backfill_seed=config.backfill_seed,
        currency=config.currency,
    )
    return Runtime(
        config=config,
        cost_store=cost_store,
        alert_store=alert_store,
        sampler=sampler,
        detector=detector,
        scheduler=scheduler,
        pool=pool,
    )


@asynccontextmanager
async def open_runtime(config: CostGuardConfig, backend: Optional[str] = None) -> AsyncIterator[Runtime]:
    """
    Open the configured store and yield a wired Runtime.

    Args:
        config: Loaded configuration
        backend: Overrides ``store.backend`` when given

    Raises:
        ConfigurationError: If the backend or sampler is unknown
        StoreUnavailableError: If the database cannot be reached
    """
    backend = (backend or config.store_backend).lower()
    pool = None

    if backend == "memory":
        cost_store: CostStore = InMemoryCostStore()
        alert_store: AlertStore = InMemoryAlertStore()
        logger.info("Using in-memory store")
    elif backend == "postgres":
        pool = await create_pool(config.database_url, config.pool_min_size, config.pool_max_size)
        cost_store = PostgresCostStore(pool)
        alert_store = PostgresAlertStore(pool)
    else:
        raise ConfigurationError(f"Unknown store backend: {backend}")

    runtime = None
    try:
        if pool is not None:
            await initialize_schema(pool)
        try:
            runtime = build_components(config, cost_store, alert_store, pool)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        yield runtime
    finally:
        if runtime is not None:
            await runtime.scheduler.stop()
        if pool is not None:
            await pool.close()
            logger.info("Database connection pool closed")
