"""Plans and per-user usage records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import PlanModel, UsageRecordModel

logger = logging.getLogger(__name__)


def period_start_for(moment: Optional[datetime] = None) -> date:
    """First day of the calendar month (UTC) containing ``moment``."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return date(moment.year, moment.month, 1)


class UsageRepository:
    def get_record(self, session: Session, user_id: str) -> UsageRecordModel | None:
        return session.get(UsageRecordModel, user_id)

    def get_plan(self, session: Session, name: str) -> PlanModel | None:
        stmt = select(PlanModel).where(PlanModel.name == name)
        return session.execute(stmt).scalar_one_or_none()

    def ensure_plan(self, session: Session, name: str, monthly_token_limit: int) -> PlanModel:
        """Return the named plan, seeding it with ``monthly_token_limit`` when absent."""
        plan = self.get_plan(session, name)
        if plan is not None:
            return plan
        plan = PlanModel(name=name, monthly_token_limit=monthly_token_limit)
        session.add(plan)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            plan = self.get_plan(session, name)
            if plan is None:
                raise
        else:
            logger.info("Seeded plan %s with a monthly limit of %s tokens", name, monthly_token_limit)
        return plan

    def get_or_create_record(
        self,
        session: Session,
        user_id: str,
        *,
        plan_name: str,
        plan_limit: int,
        period_start: date,
    ) -> UsageRecordModel:
        """Enrol the user on ``plan_name`` when no record exists yet.

        Like the other find-or-create helpers this expects a session with no
        unrelated pending work.
        """
        record = self.get_record(session, user_id)
        if record is not None:
            return record
        plan = self.ensure_plan(session, plan_name, plan_limit)
        record = UsageRecordModel(
            user_id=user_id,
            plan_id=plan.id,
            tokens_used_this_period=0,
            period_start=period_start,
        )
        session.add(record)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            record = self.get_record(session, user_id)
            if record is None:
                raise
        return record

    def increment(self, session: Session, user_id: str, amount: int, period_start: date) -> bool:
        """Add ``amount`` in one statement, resetting the counter when a new period began."""
        stale = UsageRecordModel.period_start < period_start
        result = session.execute(
            update(UsageRecordModel)
            .where(UsageRecordModel.user_id == user_id)
            .values(
                tokens_used_this_period=case(
                    (stale, amount),
                    else_=UsageRecordModel.tokens_used_this_period + amount,
                ),
                period_start=case((stale, period_start), else_=UsageRecordModel.period_start),
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def set_plan(self, session: Session, user_id: str, plan: PlanModel) -> None:
        session.execute(
            update(UsageRecordModel)
            .where(UsageRecordModel.user_id == user_id)
            .values(plan_id=plan.id)
            .execution_options(synchronize_session=False)
        )


usage_records = UsageRepository()

__all__ = ["UsageRepository", "period_start_for", "usage_records"]
