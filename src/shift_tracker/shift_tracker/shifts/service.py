from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Mapping, Optional

from ..common.datetime_utils import ensure_utc, local_date, ms_between, utc_now
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_LOCAL_TIMEZONE
from ..core.exceptions import (
    ActiveSessionConflict,
    AuthorizationError,
    EvidenceUploadError,
    InvalidState,
    InvariantViolation,
    NotFound,
    ValidationError,
)
from ..evidence.store import EvidenceStore
from ..safety.checklist import ChecklistSchema, get_schema
from .clock import ElapsedReading, session_elapsed
from .mapper import fields_to_document, from_document, to_document
from .model import EvidenceFile, GeoPoint, ShiftRecord
from .repository import ShiftRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionPolicy:
    """Tunable lifecycle rules.

    ``require_end_evidence``: when set, check-out needs a photo and a failed
    upload blocks the close. When unset, end evidence is best-effort.
    """

    require_end_evidence: bool = False
    local_timezone: str = DEFAULT_LOCAL_TIMEZONE


class SessionManager:
    """Use case: all state transitions of a worker's shift session.

    NotStarted -> Open -> (Paused <-> Open)* -> Closed
    """

    def __init__(
        self,
        store: ShiftRecordStore,
        evidence: Optional[EvidenceStore] = None,
        *,
        policy: Optional[SessionPolicy] = None,
        checklist_schema: Optional[ChecklistSchema] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._evidence = evidence
        self._policy = policy or SessionPolicy()
        self._schema = checklist_schema or get_schema()
        self._clock = clock

    @property
    def policy(self) -> SessionPolicy:
        return self._policy

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self._clock()

    def _load(self, session_id: str) -> ShiftRecord:
        doc = self._store.get(session_id)
        if doc is None:
            raise NotFound(f"Shift {session_id} not found")
        return from_document(doc)

    def _upload(self, evidence: EvidenceFile, *, prefix: str) -> str:
        if self._evidence is None:
            raise EvidenceUploadError("No evidence store configured")
        return self._evidence.upload(evidence.data, f"{prefix}_{evidence.filename}")

    def get_session(self, session_id: str) -> ShiftRecord:
        return self._load(session_id)

    def get_active_session(self, worker_id: str) -> Optional[ShiftRecord]:
        docs = self._store.query(worker_id=worker_id, open_only=True)
        if len(docs) > 1:
            ids = sorted(str(d.get("id")) for d in docs)
            logger.error("worker %s has %d open shifts: %s", worker_id, len(docs), ids)
            raise InvariantViolation(f"Worker {worker_id} has {len(docs)} open shifts: {', '.join(ids)}")
        return from_document(docs[0]) if docs else None

    def start_shift(
        self,
        worker_id: str,
        location_name: str,
        address: str,
        checklist: Optional[Mapping[str, object]],
        evidence: Optional[EvidenceFile] = None,
        *,
        location: Optional[GeoPoint] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ShiftRecord:
        worker_id = require_non_empty(worker_id, "Worker")
        location_name = require_non_empty(location_name, "Site location")
        safety_checklist = self._schema.normalize(checklist)

        if self.get_active_session(worker_id) is not None:
            raise ActiveSessionConflict("You already have an active shift")

        now = self._now(now)

        # Upload first: a failed upload must not leave a record behind.
        photo_ref = self._upload(evidence, prefix="start") if evidence is not None else None

        record = ShiftRecord(
            id="",
            worker_id=worker_id,
            location_name=location_name,
            address=(address or "").strip(),
            date=local_date(now, self._policy.local_timezone),
            start_time=now,
            safety_checklist=safety_checklist,
            checklist_version=self._schema.version,
            start_location=location,
            start_photo_ref=photo_ref,
            total_paused_ms=0,
            is_paused=False,
            notes=optional_text(notes),
        )
        try:
            record_id = self._store.create(to_document(record))
        except ActiveSessionConflict:
            if photo_ref:
                logger.warning("shift start for %s lost to a concurrent start; evidence %s is unreferenced", worker_id, photo_ref)
            raise

        logger.info("shift %s started by %s at %s", record_id, worker_id, location_name)
        return replace(record, id=record_id)

    def toggle_pause(self, session: ShiftRecord, *, now: Optional[datetime] = None) -> ShiftRecord:
        current = self._load(session.id)
        if not current.is_open:
            raise InvalidState("Cannot pause a finished shift")

        now = self._now(now)
        if current.is_paused:
            pause_ms = ms_between(current.paused_at, now) if current.paused_at else 0
            if pause_ms < 0:
                logger.warning("shift %s resumed before its pause started; counting 0ms", current.id)
                pause_ms = 0
            fields = {"is_paused": False, "paused_at": None, "total_paused_ms": current.total_paused_ms + pause_ms}
        else:
            fields = {"is_paused": True, "paused_at": now}

        if not self._store.update(current.id, fields_to_document(fields), only_if_open=True):
            raise InvalidState("Cannot pause a finished shift")

        logger.info("shift %s %s", current.id, "paused" if fields["is_paused"] else "resumed")
        return replace(current, **fields)

    def end_shift(
        self,
        session_id: str,
        evidence: Optional[EvidenceFile] = None,
        *,
        location: Optional[GeoPoint] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        doc = self._store.get(session_id)
        if doc is None or doc.get("end_time") is not None:
            raise NotFound(f"No active shift {session_id}")
        current = from_document(doc)

        if self._policy.require_end_evidence and evidence is None:
            raise ValidationError("A check-out photo is required to finish the shift")

        end_time = self._now(now)
        if end_time < current.start_time:
            logger.warning(
                "shift %s: end %s precedes start %s, closing at start time",
                current.id,
                end_time.isoformat(),
                current.start_time.isoformat(),
            )
            end_time = current.start_time

        total_paused_ms = current.total_paused_ms
        if current.is_paused and current.paused_at is not None:
            total_paused_ms += max(ms_between(current.paused_at, end_time), 0)

        photo_ref = None
        if evidence is not None:
            try:
                photo_ref = self._upload(evidence, prefix="end")
            except EvidenceUploadError as e:
                if self._policy.require_end_evidence:
                    raise
                logger.warning("shift %s: end evidence upload failed, closing without photo: %s", current.id, e)

        fields: dict[str, object] = {
            "end_time": end_time,
            "is_paused": False,
            "paused_at": None,
            "total_paused_ms": total_paused_ms,
        }
        if photo_ref:
            fields["end_photo_ref"] = photo_ref
        if location is not None:
            fields["end_location"] = location
        if optional_text(notes):
            fields["notes"] = optional_text(notes)

        if not self._store.update(current.id, fields_to_document(fields), only_if_open=True):
            raise NotFound(f"No active shift {session_id}")

        logger.info("shift %s ended by %s", current.id, current.worker_id)

    def update_checklist(
        self,
        session: ShiftRecord,
        key: str,
        value: bool,
        *,
        acting_worker_id: Optional[str] = None,
    ) -> ShiftRecord:
        current = self._load(session.id)
        if not current.is_open:
            raise InvalidState("The safety checklist is locked once the shift has finished")
        if acting_worker_id is not None and acting_worker_id != current.worker_id:
            raise AuthorizationError("Only the shift owner can change its checklist")

        get_schema(current.checklist_version).require_key(key)
        if not isinstance(value, bool):
            raise ValidationError(f"Safety checklist item {key} must be true or false")

        checklist = {**current.safety_checklist, key: value}
        if not self._store.update(current.id, fields_to_document({"safety_checklist": checklist}), only_if_open=True):
            raise InvalidState("The safety checklist is locked once the shift has finished")
        return replace(current, safety_checklist=checklist)

    def elapsed(self, session: ShiftRecord, *, now: Optional[datetime] = None) -> ElapsedReading:
        return session_elapsed(session, self._now(now))
