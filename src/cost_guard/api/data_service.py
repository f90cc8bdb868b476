#!/usr/bin/env python3
"""
Cost Guard Service - FastAPI Backend
Serves stored daily costs and alerts, and runs the sampling scheduler
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..config.settings import get_config
from ..errors import StoreError
from ..jobs.scheduler import validate_backfill_days
from ..runtime import open_runtime
from .models import AlertResponse, BackfillResponse, CostRecordResponse, HealthCheck

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Global components
config = None
cost_store = None
alert_store = None
scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    global config, cost_store, alert_store, scheduler

    # Startup
    logger.info("Starting Cost Guard Service...")
    config = get_config()

    async with open_runtime(config) as runtime:
        cost_store = runtime.cost_store
        alert_store = runtime.alert_store
        scheduler = runtime.scheduler

        if config.scheduler_enabled:
            scheduler.start()
        else:
            logger.info("Scheduler disabled by configuration")

        logger.info("✅ Cost Guard Service started successfully")
        yield

        # Shutdown
        logger.info("Shutting down Cost Guard Service...")

    cost_store = None
    alert_store = None
    scheduler = None


# FastAPI app
app = FastAPI(
    title="Cost Guard Service",
    version=__version__,
    description="Daily cloud cost sampling with spike alerts",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def parse_date_range(start: str | None, end: str | None) -> tuple[date, date]:
    """Parse the from/to query pair, rejecting missing or malformed dates with 400."""
    if not start or not end:
        raise HTTPException(status_code=400, detail="missing from/to query params")
    try:
        return date.fromisoformat(start), date.fromisoformat(end)
    except ValueError:
        raise HTTPException(status_code=400, detail="from/to must be YYYY-MM-DD dates")


def require_store(store):
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return store


# Health endpoints
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    """Plain liveness probe"""
    return "ok"


@app.get("/api/health/ready", response_model=HealthCheck)
async def health_ready():
    """Readiness probe"""
    try:
        if cost_store is None or not await cost_store.ping():
            raise StoreError("Store did not answer")

        state = scheduler.state.value if scheduler is not None else None
        return HealthCheck(
            status="ready", timestamp=datetime.now(), version=__version__, scheduler=state
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")


@app.get("/api/health/live", response_model=HealthCheck)
async def health_live():
    """Liveness probe"""
    return HealthCheck(status="alive", timestamp=datetime.now(), version=__version__)


@app.get("/costs", response_model=list[CostRecordResponse])
async def get_costs(
    start: str | None = Query(None, alias="from"),
    end: str | None = Query(None, alias="to"),
):
    """Get daily cost records in an inclusive date range"""
    start_date, end_date = parse_date_range(start, end)
    store = require_store(cost_store)
    try:
        records = await store.query_range(start_date, end_date)
    except StoreError as e:
        logger.error(f"Error getting costs: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving cost data")

    return [CostRecordResponse.from_record(r) for r in records]


@app.get("/alerts", response_model=list[AlertResponse])
async def get_alerts(
    start: str | None = Query(None, alias="from"),
    end: str | None = Query(None, alias="to"),
):
    """Get alerts in an inclusive date range, newest first"""
    start_date, end_date = parse_date_range(start, end)
    store = require_store(alert_store)
    try:
        alerts = await store.query_range(start_date, end_date)
    except StoreError as e:
        logger.error(f"Error getting alerts: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving alerts")

    return [AlertResponse.from_alert(a) for a in alerts]


@app.post("/simulate/backfill", response_model=BackfillResponse)
async def simulate_backfill(days: str | None = Query(None)):
    """Seed history synchronously and evaluate today"""
    try:
        depth = 30 if days is None else int(days)
        validate_backfill_days(depth)
    except ValueError:
        raise HTTPException(status_code=400, detail="days must be 1..365")

    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")

    try:
        result = await scheduler.backfill(depth)
    except StoreError as e:
        logger.error(f"Error during backfill: {e}")
        raise HTTPException(status_code=500, detail="Backfill failed")

    return BackfillResponse(
        ok=True,
        days=result.days,
        alerts=len(result.alerts),
        detection_error=result.detection_error,
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Cost Guard Service",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/api/health/ready",
            "costs": "/costs?from=YYYY-MM-DD&to=YYYY-MM-DD",
            "alerts": "/alerts?from=YYYY-MM-DD&to=YYYY-MM-DD",
            "backfill": "/simulate/backfill?days=30",
            "docs": "/docs",
        },
    }


if __name__ == "__main__":
    uvicorn.run("cost_guard.api.data_service:app", host="0.0.0.0", port=8080, log_level="info")
