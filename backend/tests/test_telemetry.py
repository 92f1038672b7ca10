from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import text

from skillpath import telemetry
from skillpath.db.session import session_scope
from skillpath.errors import StorageFailure


@pytest.fixture(autouse=True)
def _reset_listeners():
    telemetry.clear_listeners()
    yield
    telemetry.clear_listeners()


def test_emit_event_logs_json_with_serialised_dates(caplog) -> None:
    scanned = datetime(2026, 10, 1, tzinfo=timezone.utc)

    with caplog.at_level(logging.INFO, logger="skillpath.telemetry"):
        event = telemetry.emit_event(
            telemetry.COURSE_SCAN, skill_id="s-1", scanned_at=scanned, period_start=date(2026, 10, 1)
        )

    assert event.payload["scanned_at"] == scanned.isoformat()
    line = next(record.getMessage() for record in caplog.records if record.name == "skillpath.telemetry")
    logged = json.loads(line.removeprefix("TELEMETRY "))
    assert logged["event"] == "course_scan"
    assert logged["period_start"] == "2026-10-01"
    assert logged["at"] == event.emitted_at.isoformat()


def test_listeners_can_subscribe_to_selected_events() -> None:
    everything = []
    rejections = []
    telemetry.register_listener(everything.append)
    telemetry.register_listener(rejections.append, events=[telemetry.QUOTA_REJECTED])

    telemetry.emit_event(telemetry.SKILL_GRAPH_CACHE, hit=True)
    telemetry.emit_event(telemetry.QUOTA_REJECTED, reason="limit_exceeded")

    assert [event.name for event in everything] == ["skill_graph_cache", "quota_rejected"]
    assert [event.payload["reason"] for event in rejections] == ["limit_exceeded"]


def test_capture_events_unsubscribes_on_exit() -> None:
    with telemetry.capture_events(telemetry.USAGE_RECORD_FAILED) as captured:
        telemetry.emit_event(telemetry.USAGE_RECORD_FAILED, tokens=10)
        telemetry.emit_event(telemetry.COURSE_SCAN, skill_id="s-2")
    telemetry.emit_event(telemetry.USAGE_RECORD_FAILED, tokens=20)

    assert [event.payload["tokens"] for event in captured] == [10]


def test_failing_listener_does_not_block_others(caplog) -> None:
    received = []

    def broken(_event) -> None:
        raise RuntimeError("listener down")

    telemetry.register_listener(broken)
    telemetry.register_listener(received.append)

    telemetry.emit_event(telemetry.QUOTA_REJECTED, reason="limit_exceeded")

    assert [event.name for event in received] == ["quota_rejected"]
    assert "Telemetry listener failed" in caplog.text


def test_session_scope_maps_driver_errors_to_storage_failure(database) -> None:
    with pytest.raises(StorageFailure) as excinfo:
        with session_scope() as session:
            session.execute(text("SELECT * FROM missing_table"))
    assert excinfo.value.status_code == 500
    assert excinfo.value.as_payload() == {"error": StorageFailure.public_message}


def test_configure_logging_applies_overrides(monkeypatch) -> None:
    from skillpath.logging_config import configure_logging, parse_logger_levels

    assert parse_logger_levels("skillpath.quota=debug, broken, httpx=LOUD,=INFO") == {"skillpath.quota": "DEBUG"}

    monkeypatch.setenv("SKILLPATH_LOG_LEVEL", "INFO")
    monkeypatch.setenv("SKILLPATH_LOG_LEVELS", "skillpath.quota=DEBUG,sqlalchemy.engine=INFO")
    applied = configure_logging()

    assert applied["openai.agents"] == "WARNING"
    assert applied["sqlalchemy.engine"] == "INFO"
    assert logging.getLogger("skillpath.quota").level == logging.DEBUG

    for name in applied:
        logging.getLogger(name).setLevel(logging.NOTSET)
