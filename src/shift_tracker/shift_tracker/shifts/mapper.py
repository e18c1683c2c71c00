"""Conversion between ShiftRecord and record-store documents.

Documents are plain dicts with ISO-8601 UTC timestamp strings. This module is
the only place that parses or formats timestamps at the store boundary.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso, to_iso
from ..core.exceptions import RecordStoreError
from .model import GeoPoint, ShiftRecord

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ("start_time", "end_time", "paused_at")
GEO_FIELDS = ("start_location", "end_location")


def _geo_from_doc(value: Any) -> Optional[GeoPoint]:
    if not isinstance(value, Mapping):
        return None
    try:
        return GeoPoint(lat=float(value["lat"]), lng=float(value["lng"]))
    except (KeyError, TypeError, ValueError):
        return None


def _checklist_from_doc(value: Any) -> dict[str, bool]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): v is True for k, v in value.items()}


def to_document(record: ShiftRecord) -> dict[str, Any]:
    """Serialize a record. The store assigns ``id`` on create, so it is left out."""
    return {
        "worker_id": record.worker_id,
        "location_name": record.location_name,
        "address": record.address,
        "date": record.date,
        "start_time": to_iso(record.start_time),
        "end_time": to_iso(record.end_time),
        "safety_checklist": dict(record.safety_checklist),
        "checklist_version": record.checklist_version,
        "start_location": record.start_location.to_dict() if record.start_location else None,
        "end_location": record.end_location.to_dict() if record.end_location else None,
        "start_photo_ref": record.start_photo_ref,
        "end_photo_ref": record.end_photo_ref,
        "total_paused_ms": record.total_paused_ms,
        "is_paused": record.is_paused,
        "paused_at": to_iso(record.paused_at),
        "notes": record.notes,
    }


def from_document(doc: Mapping[str, Any]) -> ShiftRecord:
    """Deserialize a stored document.

    Reporting must not break on one bad row, so optional parts are read
    defensively. A document without id, worker or start time is unusable.
    """
    try:
        start_time = parse_iso(doc["start_time"])
        if start_time is None:
            raise ValueError("start_time is empty")
        return ShiftRecord(
            id=str(doc["id"]),
            worker_id=str(doc["worker_id"]),
            location_name=str(doc.get("location_name") or ""),
            address=str(doc.get("address") or ""),
            date=doc.get("date") or None,
            start_time=start_time,
            end_time=parse_iso(doc.get("end_time")),
            safety_checklist=_checklist_from_doc(doc.get("safety_checklist")),
            checklist_version=int(doc.get("checklist_version") or 3),
            start_location=_geo_from_doc(doc.get("start_location")),
            end_location=_geo_from_doc(doc.get("end_location")),
            start_photo_ref=doc.get("start_photo_ref") or None,
            end_photo_ref=doc.get("end_photo_ref") or None,
            total_paused_ms=int(doc.get("total_paused_ms") or 0),
            is_paused=doc.get("is_paused") is True,
            paused_at=parse_iso(doc.get("paused_at")),
            notes=doc.get("notes") or None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RecordStoreError(f"Malformed shift record {doc.get('id')!r}: {e}") from e


def from_documents(docs) -> list[ShiftRecord]:
    """Deserialize many documents, skipping (and logging) unusable ones."""
    records: list[ShiftRecord] = []
    for doc in docs:
        try:
            records.append(from_document(doc))
        except RecordStoreError as e:
            logger.warning("skipping shift record: %s", e)
    return records


def fields_to_document(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Serialize a partial update."""
    out: dict[str, Any] = {}
    for key, value in fields.items():
        if key in TIMESTAMP_FIELDS:
            out[key] = to_iso(value)
        elif key in GEO_FIELDS:
            out[key] = value.to_dict() if value is not None else None
        elif key == "safety_checklist":
            out[key] = dict(value)
        else:
            out[key] = value
    return out
