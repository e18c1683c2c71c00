from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import utc_now
from ..core.constants import DEFAULT_TICK_SECONDS
from .clock import ElapsedReading, session_elapsed
from .model import ShiftRecord

logger = logging.getLogger(__name__)


class ElapsedTicker:
    """Recompute a session's elapsed time periodically on a daemon thread.

    Stopping is the only cleanup: no state is written anywhere.
    """

    def __init__(
        self,
        record: ShiftRecord,
        on_tick: Callable[[ElapsedReading], None],
        *,
        interval: float = DEFAULT_TICK_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._record = record
        self._on_tick = on_tick
        self._interval = float(interval)
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def update(self, record: ShiftRecord) -> None:
        """Swap in a newer snapshot (e.g. after pause/resume)."""
        self._record = record

    def start(self) -> "ElapsedTicker":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"elapsed-{self._record.id}", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._interval + 1)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            record = self._record
            try:
                self._on_tick(session_elapsed(record, self._clock()))
            except Exception:
                logger.exception("elapsed tick callback failed for %s; stopping", record.id)
                break
            if record.end_time is not None:
                break
            self._stop.wait(self._interval)

    def __enter__(self) -> "ElapsedTicker":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
