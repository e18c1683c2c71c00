from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from src.shift_tracker.shift_tracker.core.exceptions import (
    ActiveSessionConflict,
    AuthorizationError,
    EvidenceUploadError,
    InvalidState,
    InvariantViolation,
    NotFound,
    ValidationError,
)
from src.shift_tracker.shift_tracker.safety.checklist import get_schema
from src.shift_tracker.shift_tracker.shifts.memory_store import InMemoryShiftRecordStore
from src.shift_tracker.shift_tracker.shifts.model import EvidenceFile, GeoPoint
from src.shift_tracker.shift_tracker.shifts.service import SessionManager, SessionPolicy


class FakeEvidenceStore:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.uploads: list[str] = []

    def upload(self, data: bytes, name_hint: str) -> str:
        if self.fail:
            raise EvidenceUploadError("bucket unavailable")
        self.uploads.append(name_hint)
        return f"mem://{name_hint}"


PHOTO = EvidenceFile(data=b"jpeg-bytes", filename="site.jpg")


def _manager(store=None, evidence=None, **policy):
    return SessionManager(
        store if store is not None else InMemoryShiftRecordStore(),
        evidence if evidence is not None else FakeEvidenceStore(),
        policy=SessionPolicy(**policy),
    )


def test_start_shift_creates_open_record(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store)

    record = mgr.start_shift("w1", " Dublin Port ", "1 Quay St", {"helmet": True}, now=fixed_now)

    assert record.id
    assert record.location_name == "Dublin Port"
    assert record.start_time == fixed_now
    assert record.end_time is None
    assert record.total_paused_ms == 0
    assert record.is_paused is False
    assert record.date == "2026-01-31"
    assert record.safety_checklist["helmet"] is True
    assert record.safety_checklist["gloves"] is False
    assert set(record.safety_checklist) == set(get_schema().keys)
    assert mgr.get_active_session("w1").id == record.id


def test_start_shift_uses_local_calendar_date():
    mgr = _manager(local_timezone="Europe/Dublin")

    # 23:30 UTC is already the next day in Irish summer time.
    record = mgr.start_shift("w1", "Site", "", None, now=datetime(2026, 7, 1, 23, 30, tzinfo=timezone.utc))

    assert record.date == "2026-07-02"


def test_start_shift_requires_location_name(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store)

    with pytest.raises(ValidationError):
        mgr.start_shift("w1", "   ", "addr", None, now=fixed_now)
    assert len(store) == 0


def test_start_shift_rejects_unknown_checklist_item(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store)

    with pytest.raises(ValidationError):
        mgr.start_shift("w1", "Site", "", {"jetpack": True}, now=fixed_now)
    assert len(store) == 0


def test_second_start_is_rejected_while_a_shift_is_open(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store)
    mgr.start_shift("w1", "Site A", "", None, now=fixed_now)

    with pytest.raises(ActiveSessionConflict):
        mgr.start_shift("w1", "Site B", "", None, now=fixed_now + timedelta(minutes=5))

    assert len(store.query(worker_id="w1")) == 1


def test_other_workers_can_start_independently(fixed_now):
    mgr = _manager()

    mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.start_shift("w2", "Site", "", None, now=fixed_now)

    assert mgr.get_active_session("w1").worker_id == "w1"
    assert mgr.get_active_session("w2").worker_id == "w2"


def test_worker_can_start_again_after_finishing(fixed_now):
    mgr = _manager()
    first = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.end_shift(first.id, now=fixed_now + timedelta(hours=1))

    second = mgr.start_shift("w1", "Site", "", None, now=fixed_now + timedelta(hours=2))

    assert second.id != first.id
    assert mgr.get_active_session("w1").id == second.id


def test_concurrent_starts_leave_exactly_one_open_record(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store)
    barrier = threading.Barrier(8)
    started, conflicts = [], []

    def attempt(i: int) -> None:
        barrier.wait()
        try:
            started.append(mgr.start_shift("w1", f"Site {i}", "", None, now=fixed_now))
        except ActiveSessionConflict:
            conflicts.append(i)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(started) == 1
    assert len(conflicts) == 7
    assert len(store.query(worker_id="w1", open_only=True)) == 1


class LosingRaceStore(InMemoryShiftRecordStore):
    """Another start claims the worker's slot between the pre-check and the insert."""

    def create(self, document):
        raise ActiveSessionConflict("An active shift already exists for this worker")


def test_start_lost_to_a_concurrent_start_logs_the_unreferenced_photo(fixed_now, caplog):
    evidence = FakeEvidenceStore()
    mgr = _manager(LosingRaceStore(), evidence)

    with caplog.at_level("WARNING"), pytest.raises(ActiveSessionConflict):
        mgr.start_shift("w1", "Site", "", None, PHOTO, now=fixed_now)

    assert len(evidence.uploads) == 1
    assert "mem://" in caplog.text
    assert "unreferenced" in caplog.text


def test_start_lost_without_photo_logs_nothing(fixed_now, caplog):
    with caplog.at_level("WARNING"), pytest.raises(ActiveSessionConflict):
        _manager(LosingRaceStore()).start_shift("w1", "Site", "", None, now=fixed_now)

    assert "unreferenced" not in caplog.text


def test_pause_resume_accounting(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)

    paused = mgr.toggle_pause(record, now=fixed_now + timedelta(hours=1, minutes=30))
    assert paused.is_paused is True
    assert paused.paused_at == fixed_now + timedelta(hours=1, minutes=30)

    resumed = mgr.toggle_pause(paused, now=fixed_now + timedelta(hours=1, minutes=45))
    assert resumed.is_paused is False
    assert resumed.paused_at is None
    assert resumed.total_paused_ms == 15 * 60 * 1000

    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=3, minutes=30))
    closed = mgr.get_session(record.id)

    assert closed.end_time == fixed_now + timedelta(hours=3, minutes=30)
    assert mgr.elapsed(closed).worked_ms == (3 * 60 + 15) * 60 * 1000


def test_end_while_paused_folds_open_pause_into_total(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.toggle_pause(record, now=fixed_now + timedelta(minutes=30))

    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1, minutes=30))
    closed = mgr.get_session(record.id)

    assert closed.is_paused is False
    assert closed.paused_at is None
    assert closed.total_paused_ms == 60 * 60 * 1000
    assert mgr.elapsed(closed).worked_ms == 30 * 60 * 1000


def test_elapsed_excludes_current_pause(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    paused = mgr.toggle_pause(record, now=fixed_now + timedelta(minutes=40))

    reading = mgr.elapsed(paused, now=fixed_now + timedelta(hours=1))

    assert reading.worked_ms == 40 * 60 * 1000
    assert reading.paused_ms == 20 * 60 * 1000


def test_pause_on_finished_shift_is_invalid(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1))

    with pytest.raises(InvalidState):
        mgr.toggle_pause(record, now=fixed_now + timedelta(hours=2))


def test_end_unknown_or_finished_shift_is_not_found(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1))

    with pytest.raises(NotFound):
        mgr.end_shift(record.id, now=fixed_now + timedelta(hours=2))
    with pytest.raises(NotFound):
        mgr.end_shift("missing", now=fixed_now)


def test_finished_end_time_never_changes(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1))

    with pytest.raises(NotFound):
        mgr.end_shift(record.id, now=fixed_now + timedelta(hours=5))

    assert mgr.get_session(record.id).end_time == fixed_now + timedelta(hours=1)


def test_end_before_start_is_clamped_to_start(fixed_now, caplog):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)

    mgr.end_shift(record.id, now=fixed_now - timedelta(minutes=10))
    closed = mgr.get_session(record.id)

    assert closed.end_time == closed.start_time
    assert mgr.elapsed(closed).worked_ms == 0
    assert "precedes start" in caplog.text


def test_end_records_location_notes_and_photo(fixed_now):
    evidence = FakeEvidenceStore()
    mgr = _manager(evidence=evidence)
    record = mgr.start_shift("w1", "Site", "", None, PHOTO, location=GeoPoint(53.35, -6.26), now=fixed_now)

    mgr.end_shift(record.id, PHOTO, location=GeoPoint(53.36, -6.27), notes=" left early ", now=fixed_now + timedelta(hours=2))
    closed = mgr.get_session(record.id)

    assert evidence.uploads == ["start_site.jpg", "end_site.jpg"]
    assert closed.start_photo_ref == "mem://start_site.jpg"
    assert closed.end_photo_ref == "mem://end_site.jpg"
    assert closed.start_location == GeoPoint(53.35, -6.26)
    assert closed.end_location == GeoPoint(53.36, -6.27)
    assert closed.notes == "left early"


def test_failed_start_upload_leaves_no_record(fixed_now):
    store = InMemoryShiftRecordStore()
    mgr = _manager(store, FakeEvidenceStore(fail=True))

    with pytest.raises(EvidenceUploadError):
        mgr.start_shift("w1", "Site", "", None, PHOTO, now=fixed_now)

    assert len(store) == 0
    assert mgr.get_active_session("w1") is None


def test_failed_end_upload_still_closes_the_shift(fixed_now, caplog):
    evidence = FakeEvidenceStore()
    mgr = _manager(evidence=evidence)
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    evidence.fail = True

    mgr.end_shift(record.id, PHOTO, now=fixed_now + timedelta(hours=1))
    closed = mgr.get_session(record.id)

    assert closed.end_time is not None
    assert closed.end_photo_ref is None
    assert "upload failed" in caplog.text


def test_required_end_photo_missing_is_rejected(fixed_now):
    mgr = _manager(require_end_evidence=True)
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)

    with pytest.raises(ValidationError):
        mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1))

    assert mgr.get_session(record.id).is_open


def test_required_end_photo_upload_failure_blocks_close(fixed_now):
    evidence = FakeEvidenceStore()
    mgr = _manager(evidence=evidence, require_end_evidence=True)
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    evidence.fail = True

    with pytest.raises(EvidenceUploadError):
        mgr.end_shift(record.id, PHOTO, now=fixed_now + timedelta(hours=1))

    assert mgr.get_session(record.id).is_open


def test_update_checklist_toggles_one_item(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)

    updated = mgr.update_checklist(record, "harness", True, acting_worker_id="w1")

    assert updated.safety_checklist["harness"] is True
    assert mgr.get_session(record.id).safety_checklist["harness"] is True


def test_update_checklist_rules(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)

    with pytest.raises(ValidationError):
        mgr.update_checklist(record, "jetpack", True)
    with pytest.raises(ValidationError):
        mgr.update_checklist(record, "helmet", "yes")
    with pytest.raises(AuthorizationError):
        mgr.update_checklist(record, "helmet", True, acting_worker_id="w2")

    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1))
    with pytest.raises(InvalidState):
        mgr.update_checklist(record, "helmet", True)


def test_two_open_records_for_one_worker_is_reported_not_resolved(fixed_now, caplog):
    store = InMemoryShiftRecordStore()
    start = "2026-01-31T08:30:00.000Z"
    store.load(
        [
            {"id": "a", "worker_id": "w1", "location_name": "X", "date": "2026-01-31", "start_time": start, "end_time": None},
            {"id": "b", "worker_id": "w1", "location_name": "Y", "date": "2026-01-31", "start_time": start, "end_time": None},
        ]
    )
    mgr = _manager(store)

    with pytest.raises(InvariantViolation) as exc:
        mgr.get_active_session("w1")

    assert "a, b" in str(exc.value)
    assert "2 open shifts" in caplog.text
    assert len(store.query(worker_id="w1", open_only=True)) == 2


def test_two_pauses_accumulate_exactly(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site", "", None, now=fixed_now)
    d1, d2 = timedelta(minutes=7, milliseconds=250), timedelta(minutes=22)

    record = mgr.toggle_pause(record, now=fixed_now + timedelta(minutes=30))
    record = mgr.toggle_pause(record, now=fixed_now + timedelta(minutes=30) + d1)
    record = mgr.toggle_pause(record, now=fixed_now + timedelta(hours=2))
    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=2) + d2)
    closed = mgr.get_session(record.id)

    expected_paused = (d1 + d2) // timedelta(milliseconds=1)
    assert closed.total_paused_ms == expected_paused
    wall = (closed.end_time - closed.start_time) // timedelta(milliseconds=1)
    assert mgr.elapsed(closed).worked_ms == wall - expected_paused


def test_fifteen_minute_break_then_an_hour_of_work(fixed_now):
    mgr = _manager()
    record = mgr.start_shift("w1", "Site1", "", None, now=fixed_now)
    record = mgr.toggle_pause(record, now=fixed_now)
    record = mgr.toggle_pause(record, now=fixed_now + timedelta(minutes=15))
    mgr.end_shift(record.id, now=fixed_now + timedelta(hours=1, minutes=15))

    assert mgr.elapsed(mgr.get_session(record.id)).worked_hours == 1.0
