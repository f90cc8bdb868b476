"""Exception hierarchy shared by the store, detector, scheduler and API layers."""

from datetime import date


class CostGuardError(Exception):
    """Base exception for cost guard errors."""

    pass


class ConfigurationError(CostGuardError):
    """Configuration-related errors."""

    pass


class StoreError(CostGuardError):
    """Base exception for storage errors."""

    pass


class StoreUnavailableError(StoreError):
    """The backing store could not be reached or failed during I/O."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class CostRecordNotFoundError(StoreError):
    """No cost record exists for the requested (date, service) key."""

    def __init__(self, day: date, service: str):
        super().__init__(f"No cost record for service '{service}' on {day.isoformat()}")
        self.day = day
        self.service = service


class MissingCostSampleError(CostGuardError):
    """Detection was asked to evaluate a day that has not been sampled."""

    def __init__(self, day: date, service: str):
        super().__init__(
            f"Cannot evaluate {day.isoformat()}: no cost sample for service '{service}'"
        )
        self.day = day
        self.service = service
