"""Per-user monthly token quota backed by plan and usage records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .db.session import session_scope
from .errors import QuotaExceeded, StorageFailure
from .repositories.usage import UsageRepository, period_start_for, usage_records
from .telemetry import QUOTA_REJECTED, USAGE_RECORD_FAILED, emit_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    remaining: int
    limit: int
    current: int


@dataclass(frozen=True)
class UsageSummary:
    plan_name: str
    tokens_used: int
    monthly_limit: int
    remaining: int
    period_start: date


@dataclass(frozen=True)
class UsageRecordOutcome:
    recorded: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class _Snapshot:
    plan_name: str
    limit: int
    current: int
    period_start: date


class QuotaLedger:
    """Checks run before a generative call; recording runs after it.

    A failed check blocks the request. A failed recording is logged and
    reported through ``UsageRecordOutcome`` but never fails the request.
    """

    def __init__(
        self,
        *,
        default_plan_name: str = "free",
        default_plan_limit: int = 100_000,
        repository: UsageRepository = usage_records,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._default_plan_name = default_plan_name
        self._default_plan_limit = default_plan_limit
        self._repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def check_limit(self, user_id: str, estimated_tokens: int) -> QuotaCheck:
        with session_scope(commit=False) as session:
            snapshot = self._snapshot(session, user_id)
        projected = snapshot.current + max(estimated_tokens, 0)
        allowed = snapshot.limit > 0 and projected <= snapshot.limit
        return QuotaCheck(
            allowed=allowed,
            remaining=max(0, snapshot.limit - projected),
            limit=snapshot.limit,
            current=snapshot.current,
        )

    def ensure_allowed(self, user_id: str, estimated_tokens: int, *, operation: str = "generation") -> QuotaCheck:
        """Raise ``QuotaExceeded`` unless ``estimated_tokens`` fit in the user's remaining quota."""
        try:
            check = self.check_limit(user_id, estimated_tokens)
        except StorageFailure as exc:
            logger.error("Quota check failed for %s; rejecting %s: %s", user_id, operation, exc)
            emit_event(
                QUOTA_REJECTED,
                user_id=user_id,
                operation=operation,
                estimated_tokens=estimated_tokens,
                reason="check_failed",
            )
            raise QuotaExceeded(
                limit=0,
                current=0,
                remaining=0,
                message="Unable to verify usage quota. Try again shortly.",
            ) from exc

        if not check.allowed:
            logger.info(
                "Quota exceeded for %s (%s): current=%s estimated=%s limit=%s",
                user_id,
                operation,
                check.current,
                estimated_tokens,
                check.limit,
            )
            emit_event(
                QUOTA_REJECTED,
                user_id=user_id,
                operation=operation,
                estimated_tokens=estimated_tokens,
                limit=check.limit,
                current=check.current,
                reason="limit_exceeded",
            )
            raise QuotaExceeded(limit=check.limit, current=check.current, remaining=check.remaining)
        return check

    def record_usage(self, user_id: str, tokens: int, *, operation: str = "generation") -> UsageRecordOutcome:
        if tokens <= 0:
            logger.warning("Skipping usage record for %s: non-positive token count %s", user_id, tokens)
            return UsageRecordOutcome(recorded=False, error="non_positive_amount")

        period_start = period_start_for(self._clock())
        try:
            with session_scope() as session:
                self._repository.get_or_create_record(
                    session,
                    user_id,
                    plan_name=self._default_plan_name,
                    plan_limit=self._default_plan_limit,
                    period_start=period_start,
                )
                updated = self._repository.increment(session, user_id, tokens, period_start)
            if not updated:
                raise RuntimeError(f"usage record for {user_id} disappeared during update")
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to record %s tokens for %s (%s): %s", tokens, user_id, operation, exc)
            emit_event(
                USAGE_RECORD_FAILED,
                user_id=user_id,
                operation=operation,
                tokens=tokens,
                error=str(exc),
            )
            return UsageRecordOutcome(recorded=False, error=str(exc))

        logger.debug("Recorded %s tokens for %s (%s)", tokens, user_id, operation)
        return UsageRecordOutcome(recorded=True)

    def get_usage(self, user_id: str) -> UsageSummary:
        with session_scope(commit=False) as session:
            snapshot = self._snapshot(session, user_id)
        return UsageSummary(
            plan_name=snapshot.plan_name,
            tokens_used=snapshot.current,
            monthly_limit=snapshot.limit,
            remaining=max(0, snapshot.limit - snapshot.current),
            period_start=snapshot.period_start,
        )

    def _snapshot(self, session: Session, user_id: str) -> _Snapshot:
        """Read the user's standing, applying a month rollover as a view only."""
        current_period = period_start_for(self._clock())
        record = self._repository.get_record(session, user_id)
        if record is None:
            plan = self._repository.get_plan(session, self._default_plan_name)
            limit = plan.monthly_token_limit if plan else self._default_plan_limit
            return _Snapshot(self._default_plan_name, limit, 0, current_period)

        current = record.tokens_used_this_period
        period_start = record.period_start
        if period_start < current_period:
            current = 0
            period_start = current_period
        return _Snapshot(record.plan.name, record.plan.monthly_token_limit, current, period_start)


__all__ = ["QuotaCheck", "QuotaLedger", "UsageRecordOutcome", "UsageSummary"]
