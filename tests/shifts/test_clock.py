from __future__ import annotations

from datetime import timedelta

from src.shift_tracker.shift_tracker.shifts.clock import final_worked_ms, format_hms, session_elapsed, worked_elapsed
from src.shift_tracker.shift_tracker.shifts.model import ShiftRecord


def test_worked_time_subtracts_completed_pauses(fixed_now):
    reading = worked_elapsed(fixed_now, fixed_now + timedelta(hours=2), 30 * 60 * 1000, False, None)

    assert reading.raw_ms == 2 * 60 * 60 * 1000
    assert reading.worked_ms == 90 * 60 * 1000
    assert reading.worked_hours == 1.5
    assert reading.clamped is False


def test_worked_time_freezes_while_paused(fixed_now):
    paused_at = fixed_now + timedelta(minutes=10)

    early = worked_elapsed(fixed_now, fixed_now + timedelta(minutes=20), 0, True, paused_at)
    late = worked_elapsed(fixed_now, fixed_now + timedelta(minutes=50), 0, True, paused_at)

    assert early.worked_ms == late.worked_ms == 10 * 60 * 1000


def test_clock_skew_is_clamped_to_zero(fixed_now, caplog):
    reading = worked_elapsed(fixed_now, fixed_now - timedelta(minutes=5), 0, False, None)

    assert reading.worked_ms == 0
    assert reading.clamped is True
    assert "clamped" in caplog.text


def test_pauses_longer_than_session_never_go_negative(fixed_now):
    reading = worked_elapsed(fixed_now, fixed_now + timedelta(minutes=5), 10 * 60 * 1000, False, None)

    assert reading.worked_ms == 0
    assert reading.clamped is True


def test_closed_session_ignores_now(fixed_now):
    record = ShiftRecord(
        id="r1",
        worker_id="w1",
        location_name="Site",
        start_time=fixed_now,
        end_time=fixed_now + timedelta(hours=8),
        total_paused_ms=60 * 60 * 1000,
    )

    assert session_elapsed(record, fixed_now + timedelta(days=3)).worked_ms == 7 * 60 * 60 * 1000
    assert final_worked_ms(record) == 7 * 60 * 60 * 1000


def test_open_session_has_no_final_duration(fixed_now):
    record = ShiftRecord(id="r1", worker_id="w1", location_name="Site", start_time=fixed_now)

    assert final_worked_ms(record) == 0


def test_format_hms():
    assert format_hms(0) == "00:00:00"
    assert format_hms(3_723_000) == "01:02:03"
    assert format_hms(-5) == "00:00:00"
    assert format_hms(30 * 60 * 60 * 1000) == "30:00:00"
