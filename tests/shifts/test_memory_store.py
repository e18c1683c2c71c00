from __future__ import annotations

import threading

import pytest

from src.shift_tracker.shift_tracker.core.exceptions import ActiveSessionConflict
from src.shift_tracker.shift_tracker.shifts.memory_store import InMemoryShiftRecordStore


def _doc(worker_id="w1", day="2026-01-31", end_time=None, **extra):
    return {
        "worker_id": worker_id,
        "location_name": "Site",
        "date": day,
        "start_time": f"{day}T08:00:00.000Z",
        "end_time": end_time,
        **extra,
    }


def test_create_assigns_id_and_returns_copies():
    store = InMemoryShiftRecordStore()
    record_id = store.create(_doc(safety_checklist={"helmet": True}))

    doc = store.get(record_id)
    doc["safety_checklist"]["helmet"] = False

    assert store.get(record_id)["id"] == record_id
    assert store.get(record_id)["safety_checklist"]["helmet"] is True


def test_only_one_open_document_per_worker():
    store = InMemoryShiftRecordStore()
    store.create(_doc())

    with pytest.raises(ActiveSessionConflict):
        store.create(_doc())

    store.create(_doc(worker_id="w2"))
    store.create(_doc(end_time="2026-01-31T09:00:00.000Z"))
    assert len(store) == 3


def test_closing_frees_the_open_slot():
    store = InMemoryShiftRecordStore()
    record_id = store.create(_doc())

    assert store.update(record_id, {"end_time": "2026-01-31T09:00:00.000Z"}, only_if_open=True)
    assert not store.update(record_id, {"end_time": "2026-01-31T10:00:00.000Z"}, only_if_open=True)
    assert store.get(record_id)["end_time"] == "2026-01-31T09:00:00.000Z"

    store.create(_doc())


def test_update_unknown_record():
    assert InMemoryShiftRecordStore().update("nope", {"notes": "x"}) is False


def test_query_filters():
    store = InMemoryShiftRecordStore()
    store.create(_doc(day="2026-01-30", end_time="2026-01-30T09:00:00.000Z"))
    store.create(_doc(day="2026-01-31"))
    store.create(_doc(worker_id="w2", day="2026-02-01"))
    store.load([{"id": "bad", "worker_id": "w3", "start_time": "2026-01-31T08:00:00.000Z", "end_time": "x"}])

    assert len(store.query()) == 4
    assert len(store.query(worker_id="w1")) == 2
    assert len(store.query(worker_id="w1", open_only=True)) == 1
    assert [d["date"] for d in store.query(date_from="2026-01-31", date_to="2026-01-31")] == ["2026-01-31"]


def test_delete_releases_slot():
    store = InMemoryShiftRecordStore()
    record_id = store.create(_doc())

    assert store.delete(record_id)
    assert not store.delete(record_id)
    store.create(_doc())


def test_query_while_another_thread_updates():
    store = InMemoryShiftRecordStore()
    store.load([{**_doc(worker_id=f"w{i}"), "id": f"r{i}"} for i in range(50)])
    errors = []
    stop = threading.Event()

    def read_loop():
        while not stop.is_set():
            try:
                store.query()
            except RuntimeError as e:
                errors.append(e)
                return

    reader = threading.Thread(target=read_loop)
    reader.start()
    try:
        for n in range(5000):
            store.update(f"r{n % 50}", {f"k{n}": n})
    finally:
        stop.set()
        reader.join()

    assert errors == []
    assert len(store.query()) == 50
