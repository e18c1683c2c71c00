from __future__ import annotations

import json
import uuid
from contextlib import contextmanager
from typing import Any, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..common.datetime_utils import ensure_utc, parse_iso, to_iso
from ..core.exceptions import ActiveSessionConflict, RecordStoreError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import ShiftRecordStore

_COLUMNS = """
    id, worker_id, location_name, address, work_date, start_time, end_time,
    safety_checklist, checklist_version, start_lat, start_lng, end_lat, end_lng,
    start_photo_ref, end_photo_ref, total_paused_ms, is_paused, paused_at, notes
"""

_PLAIN_FIELDS = {
    "worker_id",
    "location_name",
    "address",
    "checklist_version",
    "start_photo_ref",
    "end_photo_ref",
    "total_paused_ms",
    "notes",
}
_TIMESTAMP_FIELDS = {"start_time", "end_time", "paused_at"}


def _db_datetime(value: Optional[str]):
    # DATETIME columns hold naive UTC.
    parsed = parse_iso(value)
    return parsed.replace(tzinfo=None) if parsed else None


def _row_iso(value) -> Optional[str]:
    return to_iso(ensure_utc(value)) if value is not None else None


def _geo(lat, lng) -> Optional[dict]:
    if lat is None or lng is None:
        return None
    return {"lat": float(lat), "lng": float(lng)}


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    cols: dict[str, Any] = {}
    for key, value in fields.items():
        if key in _PLAIN_FIELDS:
            cols[key] = value
        elif key in _TIMESTAMP_FIELDS:
            cols[key] = _db_datetime(value)
        elif key == "date":
            cols["work_date"] = value
        elif key == "is_paused":
            cols["is_paused"] = 1 if value else 0
        elif key == "safety_checklist":
            cols["safety_checklist"] = json.dumps(value or {})
        elif key in ("start_location", "end_location"):
            prefix = key.split("_")[0]
            cols[f"{prefix}_lat"] = value["lat"] if value else None
            cols[f"{prefix}_lng"] = value["lng"] if value else None
        elif key != "id":
            raise RecordStoreError(f"Unknown shift record field: {key}")
    return cols


def _to_document(r: dict[str, Any]) -> dict[str, Any]:
    try:
        checklist = json.loads(r["safety_checklist"]) if r.get("safety_checklist") else {}
    except ValueError:
        checklist = {}
    return {
        "id": r["id"],
        "worker_id": r["worker_id"],
        "location_name": r["location_name"],
        "address": r.get("address") or "",
        "date": r.get("work_date"),
        "start_time": _row_iso(r["start_time"]),
        "end_time": _row_iso(r.get("end_time")),
        "safety_checklist": checklist,
        "checklist_version": int(r.get("checklist_version") or 3),
        "start_location": _geo(r.get("start_lat"), r.get("start_lng")),
        "end_location": _geo(r.get("end_lat"), r.get("end_lng")),
        "start_photo_ref": r.get("start_photo_ref"),
        "end_photo_ref": r.get("end_photo_ref"),
        "total_paused_ms": int(r.get("total_paused_ms") or 0),
        "is_paused": bool(r.get("is_paused")),
        "paused_at": _row_iso(r.get("paused_at")),
        "notes": r.get("notes"),
    }


@contextmanager
def _translate_errors():
    try:
        yield
    except mysql.connector.IntegrityError as e:
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise ActiveSessionConflict("An active shift already exists for this worker") from e
        raise RecordStoreError(str(e)) from e
    except mysql.connector.Error as e:
        raise RecordStoreError(str(e)) from e


class MySQLShiftRecordStore(ShiftRecordStore):
    """MySQL-backed record store.

    ``open_shift_sessions`` (worker_id PRIMARY KEY) is written in the same
    transaction as the record, so a second open session fails with a
    duplicate-key error.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, record_id: str) -> Optional[dict[str, Any]]:
        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM shift_records WHERE id=%s", (record_id,))
            r = fetchone(cur)
            return _to_document(r) if r else None

    def query(
        self,
        *,
        worker_id: Optional[str] = None,
        open_only: bool = False,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> Sequence[dict[str, Any]]:
        clauses = ["1=1"]
        params: list[object] = []

        if worker_id is not None:
            clauses.append("worker_id=%s")
            params.append(worker_id)
        if open_only:
            clauses.append("end_time IS NULL")
        if date_from is not None:
            clauses.append("work_date >= %s")
            params.append(date_from)
        if date_to is not None:
            clauses.append("work_date <= %s")
            params.append(date_to)

        where = " AND ".join(clauses)

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM shift_records WHERE {where}", tuple(params))
            return [_to_document(r) for r in fetchall(cur)]

    def create(self, document: dict[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        cols = _to_columns(document)
        cols["id"] = record_id
        names = ", ".join(cols)
        placeholders = ", ".join(["%s"] * len(cols))

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"INSERT INTO shift_records ({names}) VALUES ({placeholders})", tuple(cols.values()))
            if document.get("end_time") is None:
                cur.execute(
                    "INSERT INTO open_shift_sessions (worker_id, record_id) VALUES (%s, %s)",
                    (document["worker_id"], record_id),
                )
        return record_id

    def update(self, record_id: str, fields: dict[str, Any], *, only_if_open: bool = False) -> bool:
        cols = _to_columns(fields)
        if not cols:
            return self.get(record_id) is not None

        assignments = ", ".join(f"{name}=%s" for name in cols)
        sql = f"UPDATE shift_records SET {assignments} WHERE id=%s"
        if only_if_open:
            sql += " AND end_time IS NULL"

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (*cols.values(), record_id))
            matched = cur.rowcount > 0
            if matched and fields.get("end_time") is not None:
                cur.execute("DELETE FROM open_shift_sessions WHERE record_id=%s", (record_id,))
            return matched

    def delete(self, record_id: str) -> bool:
        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM shift_records WHERE id=%s", (record_id,))
            return cur.rowcount > 0
