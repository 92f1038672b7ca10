"""Error taxonomy shared by the planning services and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict


class PlanningError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = 500
    public_message = "Request failed."

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.extra: Dict[str, Any] = extra

    def as_payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class QuotaExceeded(PlanningError):
    status_code = 429
    public_message = "Monthly token limit exceeded"

    def __init__(self, *, limit: int, current: int, remaining: int, message: str | None = None) -> None:
        super().__init__(message, limit=limit, current=current, remaining=remaining)
        self.limit = limit
        self.current = current
        self.remaining = remaining


class NotFound(PlanningError):
    status_code = 404
    public_message = "Resource not found."


class ValidationError(PlanningError):
    status_code = 400
    public_message = "Invalid request."


class GenerationFailure(PlanningError):
    """The generative model errored, timed out or returned unusable output.

    The public message stays generic; the underlying cause is chained and logged.
    """

    status_code = 502
    public_message = "Generation failed. Try again shortly."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(self.public_message)
        self.detail = detail


class StorageFailure(PlanningError):
    status_code = 500
    public_message = "Storage is unavailable."


__all__ = [
    "GenerationFailure",
    "NotFound",
    "PlanningError",
    "QuotaExceeded",
    "StorageFailure",
    "ValidationError",
]
