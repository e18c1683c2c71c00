from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .model import Worker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerAccount:
    worker: Worker
    password_hash: str
    is_active: bool = True


class WorkerAccounts:
    """Sign-in accounts keyed by worker id.

    Deployments with their own identity provider can leave this empty and
    write ``worker_id``/``role``/``name`` into the Flask session themselves.
    """

    def __init__(self, accounts: Iterable[WorkerAccount] = ()):
        self._accounts: dict[str, WorkerAccount] = {a.worker.worker_id: a for a in accounts}

    def add(self, worker: Worker, password: str) -> WorkerAccount:
        if not password:
            raise ValidationError("Password is required")
        account = WorkerAccount(worker=worker, password_hash=generate_password_hash(password))
        self._accounts[worker.worker_id] = account
        return account

    def workers(self) -> list[Worker]:
        return [a.worker for a in self._accounts.values()]

    def authenticate(self, worker_id: str, password: str) -> Worker:
        account = self._accounts.get((worker_id or "").strip())
        if account is None or not account.is_active:
            raise AuthenticationError("Wrong worker id or password")

        try:
            ok = check_password_hash(account.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hash
            ok = False

        if not ok:
            raise AuthenticationError("Wrong worker id or password")
        return account.worker

    def __len__(self) -> int:
        return len(self._accounts)


def account_from_dict(row: dict) -> WorkerAccount:
    try:
        worker_id = require_non_empty(str(row["worker_id"]), "Worker id")
        role = Role(row.get("role", Role.FIELD_WORKER.value))
        worker = Worker(
            worker_id=worker_id,
            display_name=row.get("name") or worker_id,
            role=role,
            email=row.get("email"),
            phone=row.get("phone"),
        )
        return WorkerAccount(
            worker=worker,
            password_hash=str(row["password_hash"]),
            is_active=row.get("is_active", True) is not False,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Bad worker account {row!r}: {e}") from e


def load_accounts(path: Optional[str | Path]) -> WorkerAccounts:
    """Read a JSON list of accounts; no path means nobody can sign in here."""
    if not path:
        return WorkerAccounts()
    path = Path(path)
    if not path.exists():
        logger.warning("worker accounts file %s not found; sign-in is disabled", path)
        return WorkerAccounts()

    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ValidationError(f"{path} must hold a JSON list of accounts")
    accounts = WorkerAccounts(account_from_dict(row) for row in rows)
    logger.info("loaded %d worker accounts from %s", len(accounts), path)
    return accounts
