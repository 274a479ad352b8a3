from datetime import datetime


class SlaError(Exception):
    """Base class for SLA engine errors."""


class SlaConfigurationError(SlaError):
    """Contract configuration is missing or inconsistent; no tracking can be built."""


class UnreachableDeadlineError(SlaError):
    """No covered time was found inside the lookahead window."""

    def __init__(self, start: datetime, budget_minutes: int, lookahead_days: int):
        self.start = start
        self.budget_minutes = budget_minutes
        self.lookahead_days = lookahead_days
        super().__init__(
            f"Cannot place {budget_minutes} business minutes after {start.isoformat()} "
            f"within {lookahead_days} days"
        )


class PauseSequenceError(SlaError):
    """Pause/resume events arrived out of order."""
