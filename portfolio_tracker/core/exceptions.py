"""
Application-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from portfolio_tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("health must be one of green, yellow, red",
                          details={"health": "purple"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Project", "TimeEntry").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a unique constraint. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with this {field} already exists"
        super().__init__(msg)


# ── Report computation ───────────────────────────────────────────────────────


class ReportComputationError(Exception):
    """Base class for failures while building a report document.

    The HTTP layer shows a generic "failed to generate report" message; the
    subclass and ``__cause__`` carry the root cause for logging.
    """

    def __init__(self, message: str, report: str | None = None) -> None:
        self.report = report
        super().__init__(message)


class ReportInputUnavailableError(ReportComputationError):
    """A data-store read failed or returned nothing for a required input."""


class AggregationFaultError(ReportComputationError):
    """Aggregation over already-loaded inputs raised unexpectedly."""


class NarrativeGenerationError(ReportComputationError):
    """The external narrative provider failed or is not configured."""
