from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence


class ShiftRecordStore(Protocol):
    """Record store port for shift documents.

    Documents are dicts with ISO-8601 UTC timestamp strings (see mapper.py).
    Filtering is equality/range only; callers sort in-process.

    The store owns the one-open-session-per-worker rule: ``create`` of an open
    document must raise ``ActiveSessionConflict`` when the worker already holds
    an open one, atomically with the write. Setting ``end_time`` through
    ``update`` releases the worker's slot.
    """

    def get(self, record_id: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    def query(
        self,
        *,
        worker_id: Optional[str] = None,
        open_only: bool = False,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> Sequence[dict[str, Any]]:
        raise NotImplementedError

    def create(self, document: dict[str, Any]) -> str:
        """Persist a new document and return its assigned id."""

        raise NotImplementedError

    def update(self, record_id: str, fields: dict[str, Any], *, only_if_open: bool = False) -> bool:
        """Apply a partial update. Returns False if nothing matched."""

        raise NotImplementedError

    def delete(self, record_id: str) -> bool:
        """Administrative flows only."""

        raise NotImplementedError
