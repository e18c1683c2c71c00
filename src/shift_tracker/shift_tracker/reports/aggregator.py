"""Attendance aggregation over shift records.

All functions are pure: inputs are never mutated and a malformed record
(no checklist, no date) degrades the output instead of raising. Store order is
never trusted; anything ordered is re-sorted here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import local_clock
from ..core.constants import ALL_WORKERS, DEFAULT_CHART_DAYS, DEFAULT_LOCAL_TIMEZONE, MS_PER_HOUR
from ..safety.checklist import label_for
from ..shifts.clock import final_worked_ms
from ..shifts.model import GeoPoint, ShiftRecord


@dataclass(frozen=True)
class DayHours:
    day: str
    hours: float


@dataclass(frozen=True)
class WorkerHours:
    worker_id: str
    hours: float
    closed_shifts: int
    open_shifts: int


@dataclass(frozen=True)
class ComplianceSummary:
    checked_count: int
    checked_labels: tuple[str, ...]


@dataclass(frozen=True)
class ReportRow:
    """One export row per shift record, ready for a CSV/PDF renderer."""

    date: str
    worker: str
    location: str
    shift_window: str
    safety_summary: str
    start_coords: str
    end_coords: str
    status: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


REPORT_COLUMNS = tuple(ReportRow.__dataclass_fields__)


def _closed(records: Iterable[ShiftRecord]) -> list[ShiftRecord]:
    return [r for r in records if r.end_time is not None]


def total_worked_hours(records: Iterable[ShiftRecord]) -> float:
    """Open sessions contribute nothing (they are excluded, not estimated)."""
    total_ms = sum(final_worked_ms(r) for r in _closed(records))
    return total_ms / MS_PER_HOUR


def hours_by_day(records: Iterable[ShiftRecord], *, window: Optional[int] = DEFAULT_CHART_DAYS) -> list[DayHours]:
    """Worked hours per stored ``date`` (not the start timestamp's day).

    Ascending by day, keeping only the most recent ``window`` days.
    """
    totals: dict[str, int] = {}
    for r in _closed(records):
        if not r.date:
            continue
        totals[r.date] = totals.get(r.date, 0) + final_worked_ms(r)

    days = sorted(totals)
    if window is not None and window > 0:
        days = days[-window:]
    return [DayHours(day=day, hours=totals[day] / MS_PER_HOUR) for day in days]


def hours_by_worker(records: Iterable[ShiftRecord]) -> list[WorkerHours]:
    totals: dict[str, list[int]] = {}
    for r in records:
        bucket = totals.setdefault(r.worker_id, [0, 0, 0])
        if r.end_time is None:
            bucket[2] += 1
        else:
            bucket[0] += final_worked_ms(r)
            bucket[1] += 1

    out = [
        WorkerHours(worker_id=worker_id, hours=ms / MS_PER_HOUR, closed_shifts=closed, open_shifts=open_)
        for worker_id, (ms, closed, open_) in totals.items()
    ]
    out.sort(key=lambda w: w.worker_id)
    out.sort(key=lambda w: w.hours, reverse=True)
    return out


def unique_location_count(records: Iterable[ShiftRecord]) -> int:
    return len({r.location_name for r in records})


def safety_compliance_summary(record: ShiftRecord) -> ComplianceSummary:
    checklist = record.safety_checklist if isinstance(record.safety_checklist, Mapping) else {}
    labels = tuple(label_for(key) for key, checked in checklist.items() if checked is True)
    return ComplianceSummary(checked_count=len(labels), checked_labels=labels)


def filter_by_worker(records: Iterable[ShiftRecord], worker_id: str) -> list[ShiftRecord]:
    """``ALL_WORKERS`` means no filtering; the caller has already authorized it."""
    if worker_id == ALL_WORKERS:
        return list(records)
    return [r for r in records if r.worker_id == worker_id]


def sort_for_display(records: Iterable[ShiftRecord]) -> list[ShiftRecord]:
    """Newest first; equal start times ordered by id (both sorts are stable)."""
    by_id = sorted(records, key=lambda r: r.id)
    return sorted(by_id, key=lambda r: r.start_time, reverse=True)


def _coords(point: Optional[GeoPoint]) -> str:
    if point is None:
        return "-"
    return f"{point.lat:.5f}, {point.lng:.5f}"


def _status(record: ShiftRecord) -> str:
    if record.end_time is not None:
        return "Finalized"
    return "Paused" if record.is_paused else "On Duty"


def _safety_summary(record: ShiftRecord) -> str:
    summary = safety_compliance_summary(record)
    total = len(record.safety_checklist or {})
    if not summary.checked_count:
        return f"0/{total}"
    return f"{summary.checked_count}/{total}: {', '.join(summary.checked_labels)}"


def build_report_rows(
    records: Sequence[ShiftRecord],
    *,
    worker_names: Optional[Mapping[str, str]] = None,
    tz_name: str = DEFAULT_LOCAL_TIMEZONE,
) -> list[ReportRow]:
    """Flat export rows in display order."""
    names = worker_names or {}
    rows = []
    for r in sort_for_display(records):
        start = local_clock(r.start_time, tz_name)
        end = local_clock(r.end_time, tz_name) if r.end_time else "..."
        rows.append(
            ReportRow(
                date=r.date or "-",
                worker=names.get(r.worker_id, r.worker_id),
                location=r.location_name,
                shift_window=f"{start} - {end}",
                safety_summary=_safety_summary(r),
                start_coords=_coords(r.start_location),
                end_coords=_coords(r.end_location),
                status=_status(r),
            )
        )
    return rows
