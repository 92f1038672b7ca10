from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List

import pytest
from sqlalchemy.exc import OperationalError

from skillpath.db.models import PlanModel, UsageRecordModel
from skillpath.db.session import session_scope
from skillpath.errors import QuotaExceeded
from skillpath.quota import QuotaLedger
from skillpath.repositories.usage import UsageRepository, period_start_for, usage_records
from skillpath.telemetry import QUOTA_REJECTED, USAGE_RECORD_FAILED, TelemetryEvent, register_listener

MARCH = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _ledger(limit: int = 100, plan: str = "tiny", **kwargs) -> QuotaLedger:
    return QuotaLedger(default_plan_name=plan, default_plan_limit=limit, clock=lambda: MARCH, **kwargs)


def _seed_usage(user_id: str, used: int, *, limit: int = 100, period_start: date = date(2026, 3, 1)) -> None:
    with session_scope() as session:
        usage_records.get_or_create_record(
            session, user_id, plan_name="tiny", plan_limit=limit, period_start=period_start
        )
        usage_records.increment(session, user_id, used, period_start)


def _events(name: str) -> List[TelemetryEvent]:
    events: List[TelemetryEvent] = []
    register_listener(events.append, events=[name])
    return events


def test_period_start_is_first_of_utc_month() -> None:
    assert period_start_for(datetime(2026, 1, 31, 23, 30, tzinfo=timezone.utc)) == date(2026, 1, 1)


def test_boundary_one_token_below_limit(database) -> None:
    _seed_usage("user-1", 99)
    ledger = _ledger()

    denied = ledger.check_limit("user-1", 2)
    assert denied.allowed is False
    assert denied.current == 99
    assert denied.limit == 100
    assert denied.remaining == 0

    allowed = ledger.check_limit("user-1", 1)
    assert allowed.allowed is True
    assert allowed.remaining == 0


def test_ensure_allowed_raises_with_quota_details(database) -> None:
    _seed_usage("user-1", 99)
    events = _events(QUOTA_REJECTED)

    with pytest.raises(QuotaExceeded) as excinfo:
        _ledger().ensure_allowed("user-1", 5, operation="skill_graph")

    error = excinfo.value
    assert error.status_code == 429
    assert (error.limit, error.current, error.remaining) == (100, 99, 0)
    assert error.as_payload()["limit"] == 100
    assert events and events[0].payload["reason"] == "limit_exceeded"


def test_zero_limit_plan_denies_everything(database) -> None:
    _seed_usage("user-1", 0, limit=0)
    ledger = _ledger(limit=0)
    assert ledger.check_limit("user-1", 0).allowed is False
    assert ledger.check_limit("user-1", 1).allowed is False


def test_check_limit_is_a_pure_read(database) -> None:
    ledger = _ledger()
    check = ledger.check_limit("newcomer", 10)

    assert check.allowed is True
    assert check.current == 0
    with session_scope() as session:
        assert session.get(UsageRecordModel, "newcomer") is None


def test_record_usage_enrols_user_on_default_plan(database) -> None:
    ledger = _ledger(limit=250, plan="free")

    outcome = ledger.record_usage("user-2", 40)

    assert outcome.recorded is True
    summary = ledger.get_usage("user-2")
    assert summary.plan_name == "free"
    assert summary.tokens_used == 40
    assert summary.monthly_limit == 250
    assert summary.remaining == 210

    ledger.record_usage("user-2", 15)
    assert ledger.get_usage("user-2").tokens_used == 55
    with session_scope() as session:
        plans = session.query(PlanModel).filter_by(name="free").all()
    assert len(plans) == 1


def test_record_usage_skips_non_positive_amounts(database) -> None:
    ledger = _ledger()
    outcome = ledger.record_usage("user-3", 0)
    assert outcome.recorded is False
    assert outcome.error == "non_positive_amount"
    with session_scope() as session:
        assert session.get(UsageRecordModel, "user-3") is None


def test_rollover_is_a_view_until_usage_is_recorded(database) -> None:
    _seed_usage("user-4", 80, period_start=date(2026, 2, 1))
    ledger = _ledger()

    check = ledger.check_limit("user-4", 30)
    assert check.allowed is True
    assert check.current == 0
    with session_scope() as session:
        record = session.get(UsageRecordModel, "user-4")
        assert record.tokens_used_this_period == 80
        assert record.period_start == date(2026, 2, 1)

    assert ledger.record_usage("user-4", 10).recorded is True
    with session_scope() as session:
        record = session.get(UsageRecordModel, "user-4")
        assert record.tokens_used_this_period == 10
        assert record.period_start == date(2026, 3, 1)


def test_recording_failure_is_reported_not_raised(database, monkeypatch) -> None:
    events = _events(USAGE_RECORD_FAILED)

    def broken_increment(*_args, **_kwargs):
        raise OperationalError("UPDATE usage_records", {}, Exception("disk full"))

    repository = UsageRepository()
    monkeypatch.setattr(repository, "increment", broken_increment)
    ledger = _ledger(repository=repository)

    outcome = ledger.record_usage("user-5", 25)

    assert outcome.recorded is False
    assert outcome.error
    assert events and events[0].payload["tokens"] == 25


def test_check_failure_blocks_the_request(database, monkeypatch) -> None:
    def broken_read(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    repository = UsageRepository()
    monkeypatch.setattr(repository, "get_record", broken_read)
    ledger = _ledger(repository=repository)

    with pytest.raises(QuotaExceeded) as excinfo:
        ledger.ensure_allowed("user-6", 1)
    assert excinfo.value.limit == 0
