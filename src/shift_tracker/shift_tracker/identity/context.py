from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Protocol

from ..core.exceptions import AuthenticationError
from .model import Worker

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[Worker]], None]


class IdentityProvider(Protocol):
    """Identity/profile port. Authentication itself happens elsewhere."""

    def current_worker(self) -> Optional[Worker]:
        raise NotImplementedError


class StaticIdentityProvider:
    """Provider returning whatever worker was last assigned (scripts, tests)."""

    def __init__(self, worker: Optional[Worker] = None):
        self.worker = worker

    def current_worker(self) -> Optional[Worker]:
        return self.worker


class CurrentWorkerContext:
    """Observable holder for the signed-in worker.

    Callers refresh explicitly after sign-in/sign-out or a profile change;
    subscribers are told only when the worker actually changes.
    """

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._current: Optional[Worker] = None
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[Worker]:
        return self._current

    def require_worker(self) -> Worker:
        if self._current is None:
            raise AuthenticationError("Sign in to continue")
        return self._current

    def refresh(self) -> Optional[Worker]:
        worker = self._provider.current_worker()
        self._set(worker)
        return worker

    def clear(self) -> None:
        self._set(None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set(self, worker: Optional[Worker]) -> None:
        with self._lock:
            if worker == self._current:
                return
            self._current = worker
            listeners = list(self._listeners)

        logger.info("current worker changed to %s", worker.worker_id if worker else None)
        for listener in listeners:
            listener(worker)


class WorkerDirectory(Protocol):
    """Read-only lookup of worker display names for reports."""

    def display_name(self, worker_id: str) -> Optional[str]:
        raise NotImplementedError


class StaticWorkerDirectory:
    def __init__(self, workers: Iterable[Worker] = ()):
        self._workers = {w.worker_id: w for w in workers}

    def add(self, worker: Worker) -> None:
        self._workers[worker.worker_id] = worker

    def display_name(self, worker_id: str) -> Optional[str]:
        worker = self._workers.get(worker_id)
        return worker.display_name if worker else None
