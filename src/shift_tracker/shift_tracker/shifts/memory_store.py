from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Iterable, Optional, Sequence

from ..core.exceptions import ActiveSessionConflict
from .repository import ShiftRecordStore


class InMemoryShiftRecordStore(ShiftRecordStore):
    """Thread-safe in-memory document store.

    Keeps a ``worker_id -> record_id`` slot per open session, checked and
    filled under the same lock as the insert.
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._open_by_worker: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(record_id)
            return copy.deepcopy(doc) if doc is not None else None

    def query(
        self,
        *,
        worker_id: Optional[str] = None,
        open_only: bool = False,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> Sequence[dict[str, Any]]:
        out = []
        with self._lock:
            for doc in self._docs.values():
                if worker_id is not None and doc.get("worker_id") != worker_id:
                    continue
                if open_only and doc.get("end_time") is not None:
                    continue
                day = doc.get("date")
                if date_from is not None and (not day or day < date_from):
                    continue
                if date_to is not None and (not day or day > date_to):
                    continue
                out.append(copy.deepcopy(doc))
        return out

    def create(self, document: dict[str, Any]) -> str:
        worker_id = document["worker_id"]
        is_open = document.get("end_time") is None

        with self._lock:
            if is_open and worker_id in self._open_by_worker:
                raise ActiveSessionConflict("An active shift already exists for this worker")
            record_id = uuid.uuid4().hex
            self._docs[record_id] = {**copy.deepcopy(document), "id": record_id}
            if is_open:
                self._open_by_worker[worker_id] = record_id
            return record_id

    def update(self, record_id: str, fields: dict[str, Any], *, only_if_open: bool = False) -> bool:
        with self._lock:
            doc = self._docs.get(record_id)
            if doc is None:
                return False
            if only_if_open and doc.get("end_time") is not None:
                return False

            doc.update(copy.deepcopy(fields))
            doc["id"] = record_id
            if doc.get("end_time") is not None and self._open_by_worker.get(doc["worker_id"]) == record_id:
                del self._open_by_worker[doc["worker_id"]]
            return True

    def delete(self, record_id: str) -> bool:
        with self._lock:
            doc = self._docs.pop(record_id, None)
            if doc is None:
                return False
            if self._open_by_worker.get(doc["worker_id"]) == record_id:
                del self._open_by_worker[doc["worker_id"]]
            return True

    def load(self, documents: Iterable[dict[str, Any]]) -> None:
        """Bulk import documents as-is (ids kept, no open-slot check)."""
        with self._lock:
            for document in documents:
                record_id = str(document.get("id") or uuid.uuid4().hex)
                self._docs[record_id] = {**copy.deepcopy(document), "id": record_id}
                if document.get("end_time") is None:
                    self._open_by_worker.setdefault(document["worker_id"], record_id)

    def clear(self) -> None:
        with self._lock:
            self._docs.clear()
            self._open_by_worker.clear()

    def __len__(self) -> int:
        return len(self._docs)
