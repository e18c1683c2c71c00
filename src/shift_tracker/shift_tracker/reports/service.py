from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import ALL_WORKERS, DEFAULT_CHART_DAYS, DEFAULT_LOCAL_TIMEZONE
from ..core.exceptions import AuthorizationError
from ..identity.context import WorkerDirectory
from ..identity.model import Worker
from ..shifts.mapper import from_documents
from ..shifts.model import ShiftRecord
from ..shifts.repository import ShiftRecordStore
from .aggregator import (
    DayHours,
    ReportRow,
    build_report_rows,
    filter_by_worker,
    hours_by_day,
    hours_by_worker,
    sort_for_display,
    total_worked_hours,
    unique_location_count,
)


@dataclass(frozen=True)
class ReportData:
    rows: list[ReportRow]
    summary: list[dict]
    total_hours: float
    unique_locations: int
    hours_by_day: list[DayHours]
    record_count: int


def _hhmm(hours: float) -> str:
    minutes = int(round(hours * 60))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class AttendanceReportService:
    """Use case: attendance views for the signed-in worker or an admin."""

    def __init__(
        self,
        store: ShiftRecordStore,
        *,
        directory: Optional[WorkerDirectory] = None,
        chart_window: int = DEFAULT_CHART_DAYS,
        local_timezone: str = DEFAULT_LOCAL_TIMEZONE,
    ):
        self._store = store
        self._directory = directory
        self._chart_window = int(chart_window)
        self._tz = local_timezone

    def resolve_scope(self, viewer: Worker, worker_filter: Optional[str] = None) -> str:
        """Admins may see everyone; field workers only ever see themselves."""
        if viewer.is_admin:
            return worker_filter or ALL_WORKERS
        if worker_filter in (None, "", viewer.worker_id):
            return viewer.worker_id
        raise AuthorizationError("You can only view your own attendance")

    def list_records(
        self,
        *,
        viewer: Worker,
        worker_filter: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[ShiftRecord]:
        scope = self.resolve_scope(viewer, worker_filter)
        docs = self._store.query(
            worker_id=None if scope == ALL_WORKERS else scope,
            date_from=date_from,
            date_to=date_to,
        )
        return sort_for_display(filter_by_worker(from_documents(docs), scope))

    def _names(self, records: list[ShiftRecord]) -> dict[str, str]:
        if self._directory is None:
            return {}
        names = {}
        for worker_id in {r.worker_id for r in records}:
            name = self._directory.display_name(worker_id)
            if name:
                names[worker_id] = name
        return names

    def build_report(
        self,
        *,
        viewer: Worker,
        worker_filter: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> ReportData:
        records = self.list_records(viewer=viewer, worker_filter=worker_filter, date_from=date_from, date_to=date_to)
        names = self._names(records)

        summary = [
            {
                "worker_id": w.worker_id,
                "worker": names.get(w.worker_id, w.worker_id),
                "hours": round(w.hours, 4),
                "total_hours": _hhmm(w.hours),
                "closed_shifts": w.closed_shifts,
                "open_shifts": w.open_shifts,
            }
            for w in hours_by_worker(records)
        ]

        return ReportData(
            rows=build_report_rows(records, worker_names=names, tz_name=self._tz),
            summary=summary,
            total_hours=total_worked_hours(records),
            unique_locations=unique_location_count(records),
            hours_by_day=hours_by_day(records, window=self._chart_window),
            record_count=len(records),
        )
