from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import g, session

from ..core.enums import Role
from .context import CurrentWorkerContext, IdentityProvider
from .model import Worker


class FlaskSessionIdentityProvider(IdentityProvider):
    """Reads the worker that ``POST /api/session`` (or an external sign-in) stored in the Flask session."""

    def current_worker(self) -> Optional[Worker]:
        worker_id = session.get("worker_id")
        if not worker_id:
            return None
        try:
            role = Role(session.get("role", Role.FIELD_WORKER.value))
        except ValueError:
            return None
        return Worker(worker_id=str(worker_id), display_name=session.get("name") or str(worker_id), role=role)


def current_worker_context() -> CurrentWorkerContext:
    """Per-request worker context, refreshed from the session once."""
    if "worker_context" not in g:
        ctx = CurrentWorkerContext(FlaskSessionIdentityProvider())
        ctx.refresh()
        g.worker_context = ctx
    return g.worker_context


def current_worker() -> Worker:
    return current_worker_context().require_worker()


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_worker()
        return view(*args, **kwargs)

    return wrapper
