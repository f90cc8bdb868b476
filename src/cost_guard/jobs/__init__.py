"""Background jobs."""

from .scheduler import BackfillResult, CostScheduler, SchedulerState, validate_backfill_days

__all__ = ["BackfillResult", "CostScheduler", "SchedulerState", "validate_backfill_days"]
