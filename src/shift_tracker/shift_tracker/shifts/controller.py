from __future__ import annotations

import json
from typing import Any, Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import to_iso
from ..common.validators import require_coordinate
from ..container import Container
from ..core.exceptions import AuthorizationError, ValidationError
from ..identity.model import Worker
from ..identity.session_provider import current_worker, login_required
from .clock import format_hms
from .mapper import to_document
from .model import EvidenceFile, GeoPoint, ShiftRecord


def record_json(record: ShiftRecord) -> dict[str, Any]:
    return {"id": record.id, **to_document(record), "status": record.status.value}


def register(app: Flask, container: Container) -> None:
    sessions = container.session_manager

    def _payload() -> dict[str, Any]:
        if request.is_json:
            return request.get_json(silent=True) or {}
        return request.form.to_dict()

    def _checklist(payload: dict[str, Any]) -> Optional[dict]:
        raw = payload.get("checklist")
        if raw in (None, ""):
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                raise ValidationError("Safety checklist must be a JSON object")
        if not isinstance(raw, dict):
            raise ValidationError("Safety checklist must be a JSON object")
        return raw

    def _location(payload: dict[str, Any]) -> Optional[GeoPoint]:
        lat, lng = payload.get("lat"), payload.get("lng")
        if lat in (None, "") and lng in (None, ""):
            return None
        return GeoPoint(
            lat=require_coordinate(lat, "Latitude", limit=90),
            lng=require_coordinate(lng, "Longitude", limit=180),
        )

    def _photo() -> Optional[EvidenceFile]:
        upload = request.files.get("photo")
        if upload is None or not upload.filename:
            return None
        return EvidenceFile(data=upload.read(), filename=upload.filename)

    def _owned_session(worker: Worker, session_id: str, *, allow_admin: bool = False) -> ShiftRecord:
        record = sessions.get_session(session_id)
        if record.worker_id != worker.worker_id and not (allow_admin and worker.is_admin):
            raise AuthorizationError("This shift belongs to another worker")
        return record

    @app.route("/api/shifts/active", methods=["GET"], endpoint="active_shift")
    @login_required
    def active_shift():
        worker = current_worker()
        record = sessions.get_active_session(worker.worker_id)
        return jsonify({"success": True, "shift": record_json(record) if record else None}), 200

    @app.route("/api/shifts", methods=["POST"], endpoint="start_shift")
    @login_required
    def start_shift():
        worker = current_worker()
        payload = _payload()
        record = sessions.start_shift(
            worker.worker_id,
            payload.get("location_name") or "",
            payload.get("address") or "",
            _checklist(payload),
            _photo(),
            location=_location(payload),
            notes=payload.get("notes"),
        )
        return jsonify({"success": True, "message": "Shift started", "shift": record_json(record)}), 201

    @app.route("/api/shifts/<session_id>/pause", methods=["POST"], endpoint="toggle_pause")
    @login_required
    def toggle_pause(session_id: str):
        record = _owned_session(current_worker(), session_id)
        updated = sessions.toggle_pause(record)
        message = "Shift paused" if updated.is_paused else "Shift resumed"
        return jsonify({"success": True, "message": message, "shift": record_json(updated)}), 200

    @app.route("/api/shifts/<session_id>/checklist", methods=["PATCH"], endpoint="update_checklist")
    @login_required
    def update_checklist(session_id: str):
        worker = current_worker()
        record = _owned_session(worker, session_id)
        payload = request.get_json(silent=True) or {}
        key = payload.get("key")
        if not key:
            raise ValidationError("Checklist key is required")
        updated = sessions.update_checklist(record, str(key), payload.get("value"), acting_worker_id=worker.worker_id)
        return jsonify({"success": True, "shift": record_json(updated)}), 200

    @app.route("/api/shifts/<session_id>/end", methods=["POST"], endpoint="end_shift")
    @login_required
    def end_shift(session_id: str):
        record = _owned_session(current_worker(), session_id)
        payload = _payload()
        sessions.end_shift(record.id, _photo(), location=_location(payload), notes=payload.get("notes"))
        return jsonify({"success": True, "message": "Shift finished", "shift": record_json(sessions.get_session(record.id))}), 200

    @app.route("/api/shifts/<session_id>/elapsed", methods=["GET"], endpoint="shift_elapsed")
    @login_required
    def shift_elapsed(session_id: str):
        record = _owned_session(current_worker(), session_id, allow_admin=True)
        reading = sessions.elapsed(record)
        return jsonify(
            {
                "success": True,
                "id": record.id,
                "status": record.status.value,
                "worked_ms": reading.worked_ms,
                "paused_ms": reading.paused_ms,
                "worked": format_hms(reading.worked_ms),
                "start_time": to_iso(record.start_time),
            }
        ), 200
