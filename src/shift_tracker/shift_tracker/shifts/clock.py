"""Worked-time computation for shift sessions.

Worked time is wall-clock time since the start minus all paused time. The
numeric duration (milliseconds) is the contract; ``format_hms`` is display only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import ms_between
from ..core.constants import MS_PER_HOUR
from .model import ShiftRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElapsedReading:
    worked_ms: int
    raw_ms: int
    paused_ms: int
    clamped: bool = False

    @property
    def worked_hours(self) -> float:
        return self.worked_ms / MS_PER_HOUR


def worked_elapsed(
    start_time: datetime,
    now: datetime,
    total_paused_ms: int,
    is_paused: bool,
    paused_at: Optional[datetime],
) -> ElapsedReading:
    raw_ms = ms_between(start_time, now)
    current_pause_ms = ms_between(paused_at, now) if is_paused and paused_at is not None else 0
    paused_ms = int(total_paused_ms or 0) + max(current_pause_ms, 0)
    worked_ms = raw_ms - paused_ms

    if raw_ms < 0 or current_pause_ms < 0 or worked_ms < 0:
        logger.warning(
            "negative elapsed time clamped to zero (raw=%sms paused=%sms start=%s now=%s)",
            raw_ms,
            paused_ms,
            start_time.isoformat(),
            now.isoformat(),
        )
        return ElapsedReading(worked_ms=max(worked_ms, 0), raw_ms=max(raw_ms, 0), paused_ms=paused_ms, clamped=True)

    return ElapsedReading(worked_ms=worked_ms, raw_ms=raw_ms, paused_ms=paused_ms)


def session_elapsed(record: ShiftRecord, now: datetime) -> ElapsedReading:
    """Live reading for an open session, final reading for a closed one."""
    if record.end_time is not None:
        return worked_elapsed(record.start_time, record.end_time, record.total_paused_ms, False, None)
    return worked_elapsed(record.start_time, now, record.total_paused_ms, record.is_paused, record.paused_at)


def final_worked_ms(record: ShiftRecord) -> int:
    """Worked duration of a closed session; open sessions count as zero."""
    if record.end_time is None:
        return 0
    return worked_elapsed(record.start_time, record.end_time, record.total_paused_ms, False, None).worked_ms


def format_hms(ms: int) -> str:
    seconds = max(int(ms), 0) // 1000
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"
