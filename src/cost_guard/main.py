"""
Main CLI interface for cloud cost guard.

Provides commands to run the API server with its background scheduler, apply
the database schema, backfill history, evaluate a day for spikes, and inspect
stored costs and alerts.
"""

import asyncio
import json
import logging
import sys
from datetime import date, timedelta

import click

from .config.settings import get_config, load_config
from .errors import CostGuardError
from .jobs.scheduler import utc_today
from .runtime import open_runtime
from .sampling import SamplerFactory
from .storage.models import Alert

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity settings."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)

    # Driver and server loggers are noisy at debug level
    for logger_name in ["asyncpg", "uvicorn.access", "httpx"]:
        logging.getLogger(logger_name).setLevel(logging.INFO if verbose else logging.WARNING)


def _as_date(value, default: date | None = None) -> date:
    return value.date() if value is not None else (default or utc_today())


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _require_persistent_store(config):
    """Exit unless the configured store outlives this process."""
    if config.store_backend == "memory":
        _fail(
            "the memory store is discarded when this command exits; "
            "use --store postgres, or run serve to keep an in-memory store alive"
        )


def _echo_alerts(alerts: list[Alert]):
    if not alerts:
        click.echo("No alerts.")
        return
    for alert in alerts:
        click.echo(f"[{alert.type.value}] {alert.date.isoformat()} {alert.service}: {alert.message}")


@click.group()
@click.option("--config", "-c", help="Path to configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging and debug output")
@click.option(
    "--store",
    type=click.Choice(["postgres", "memory"]),
    help="Storage backend override (default: store.backend from config)",
)
@click.pass_context
def cli(ctx, config, verbose, store):
    """Cloud Cost Guard - Sample daily service costs and alert on spikes."""
    setup_logging(verbose)

    # Ensure context object exists
    ctx.ensure_object(dict)

    # Store common options
    ctx.obj["config_file"] = config
    ctx.obj["verbose"] = verbose

    # Load configuration
    try:
        cfg = load_config(config) if config else get_config()
        cfg.override_from_cli({"store": store})
        ctx.obj["config"] = cfg
    except CostGuardError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--host", help="Bind address (default: api.host)")
@click.option("--port", type=int, help="Port to listen on (default: api.port)")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API; the scheduler runs inside the application lifespan."""
    import uvicorn

    from .api.data_service import app

    config = ctx.obj["config"]
    try:
        config.override_from_cli({"host": host, "port": port})
    except CostGuardError as e:
        _fail(str(e))

    click.echo(f"🚀 Starting Cost Guard API on {config.api_host}:{config.api_port}")
    uvicorn.run(app, host=config.api_host, port=config.api_port, log_level="info")


@cli.command("init-db")
@click.pass_context
def init_db(ctx):
    """Create the daily_costs and alerts tables."""
    config = ctx.obj["config"]

    async def _init():
        async with open_runtime(config, backend="postgres"):
            pass

    try:
        asyncio.run(_init())
    except CostGuardError as e:
        _fail(str(e))
    click.echo("✅ Database schema ready")


@cli.command()
@click.option("--days", "-d", type=int, help="Days of history to seed (default: backfill.days)")
@click.pass_context
def backfill(ctx, days):
    """Seed deterministic history ending today, then evaluate today."""
    config = ctx.obj["config"]
    _require_persistent_store(config)
    days = days if days is not None else config.backfill_days

    async def _backfill():
        async with open_runtime(config) as runtime:
            return await runtime.scheduler.backfill(days)

    try:
        result = asyncio.run(_backfill())
    except (CostGuardError, ValueError) as e:
        _fail(str(e))

    click.echo(
        f"✅ Backfilled {result.days} days ({result.start_date.isoformat()} to {result.end_date.isoformat()})"
    )
    if result.detection_error:
        click.echo(f"❌ Detection skipped: {result.detection_error}", err=True)
    _echo_alerts(result.alerts)


@cli.command()
@click.option("--date", "day", type=DATE_TYPE, help="Date to evaluate (default: today)")
@click.pass_context
def detect(ctx, day):
    """Evaluate one stored day for cost spikes and record any alerts."""
    config = ctx.obj["config"]
    _require_persistent_store(config)
    target = _as_date(day)

    async def _detect():
        async with open_runtime(config) as runtime:
            return await runtime.detector.evaluate(target)

    try:
        alerts = asyncio.run(_detect())
    except CostGuardError as e:
        _fail(str(e))

    click.echo(f"Evaluated {target.isoformat()}: {len(alerts)} alert(s)")
    _echo_alerts(alerts)


@cli.command()
@click.option("--date", "day", type=DATE_TYPE, help="Date to sample (default: today)")
@click.option("--seed", type=int, help="Random seed (default: the backfill seed for the date)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def sample(ctx, day, seed, output_format):
    """Print one simulated day without storing it."""
    config = ctx.obj["config"]
    target = _as_date(day)
    if seed is None:
        seed = config.backfill_seed + target.toordinal()

    try:
        sampler = SamplerFactory.create_sampler(config.sampler_name, config)
    except (CostGuardError, ValueError) as e:
        _fail(str(e))

    amounts = asyncio.run(sampler.sample_day(target, seed))

    if output_format == "json":
        payload = {
            "date": target.isoformat(),
            "seed": seed,
            "currency": config.currency,
            "amounts": {service: float(amount) for service, amount in amounts.items()},
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(f"{target.isoformat()} (seed {seed})")
    click.echo(f"{'Service':<12} {'Amount':>10}")
    click.echo("-" * 23)
    for service, amount in amounts.items():
        click.echo(f"{service:<12} {amount:>10.2f}")
    click.echo(f"{'Total':<12} {sum(amounts.values()):>10.2f} {config.currency}")


@cli.command()
@click.option("--start", type=DATE_TYPE, help="First date (default: 7 days ago)")
@click.option("--end", type=DATE_TYPE, help="Last date (default: today)")
@click.pass_context
def costs(ctx, start, end):
    """List stored daily costs in a date range."""
    config = ctx.obj["config"]
    _require_persistent_store(config)
    end_date = _as_date(end)
    start_date = _as_date(start, end_date - timedelta(days=7))

    async def _query():
        async with open_runtime(config) as runtime:
            return await runtime.cost_store.query_range(start_date, end_date)

    try:
        records = asyncio.run(_query())
    except CostGuardError as e:
        _fail(str(e))

    if not records:
        click.echo("No cost records.")
        return
    for record in records:
        click.echo(
            f"{record.date.isoformat()}  {record.service:<12} {record.amount:>10.2f} {record.currency}"
        )


@cli.command()
@click.option("--start", type=DATE_TYPE, help="First date (default: 7 days ago)")
@click.option("--end", type=DATE_TYPE, help="Last date (default: today)")
@click.pass_context
def alerts(ctx, start, end):
    """List recorded alerts in a date range, newest first."""
    config = ctx.obj["config"]
    _require_persistent_store(config)
    end_date = _as_date(end)
    start_date = _as_date(start, end_date - timedelta(days=7))

    async def _query():
        async with open_runtime(config) as runtime:
            return await runtime.alert_store.query_range(start_date, end_date)

    try:
        found = asyncio.run(_query())
    except CostGuardError as e:
        _fail(str(e))

    _echo_alerts(found)


if __name__ == "__main__":
    cli()
