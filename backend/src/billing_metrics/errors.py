"""Exceptions raised by the billing metrics engine."""


class InvalidPeriodError(ValueError):
    """Period key is not a valid ``YYYY-MM`` calendar month."""


class SnapshotNotFoundError(LookupError):
    """No metrics snapshot exists for the requested period."""

    def __init__(self, period: str):
        super().__init__(f"Metrics snapshot not found for period {period}")
        self.period = period


class SnapshotExistsError(ValueError):
    """A metrics snapshot already exists for the period."""

    def __init__(self, period: str):
        super().__init__(f"Metrics snapshot already exists for period {period}")
        self.period = period


class MaintenanceError(RuntimeError):
    """One or more daily maintenance steps failed."""

    def __init__(self, failed_steps: dict[str, str]):
        steps = ", ".join(sorted(failed_steps))
        super().__init__(f"Daily billing maintenance failed in step(s): {steps}")
        self.failed_steps = failed_steps
