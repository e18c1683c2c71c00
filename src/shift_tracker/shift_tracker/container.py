from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core.constants import DEFAULT_CHART_DAYS, DEFAULT_LOCAL_TIMEZONE
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .evidence.store import EvidenceStore, LocalEvidenceStore
from .identity.accounts import WorkerAccounts, load_accounts
from .identity.context import StaticWorkerDirectory
from .reports.service import AttendanceReportService
from .safety.checklist import CURRENT_CHECKLIST_VERSION, get_schema
from .shifts.memory_store import InMemoryShiftRecordStore
from .shifts.mysql_shift_repository import MySQLShiftRecordStore
from .shifts.repository import ShiftRecordStore
from .shifts.service import SessionManager, SessionPolicy


@dataclass(frozen=True)
class Container:
    shift_store: ShiftRecordStore
    evidence_store: EvidenceStore
    evidence_dir: Path
    directory: StaticWorkerDirectory
    accounts: WorkerAccounts

    session_manager: SessionManager
    report_service: AttendanceReportService


def build_store(store_backend: str, db_config: Optional[dict] = None) -> ShiftRecordStore:
    if store_backend == "memory":
        return InMemoryShiftRecordStore()
    if store_backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config or {}))
        return MySQLShiftRecordStore(conn)
    raise ValidationError(f"Unknown STORE_BACKEND: {store_backend}")


def build_container(
    *,
    store_backend: str = "memory",
    db_config: Optional[dict] = None,
    evidence_dir: str | Path = "instance/evidence",
    evidence_base_url: str = "/evidence",
    require_end_evidence: bool = False,
    local_timezone: str = DEFAULT_LOCAL_TIMEZONE,
    chart_window_days: int = DEFAULT_CHART_DAYS,
    checklist_version: int = CURRENT_CHECKLIST_VERSION,
    accounts: Optional[WorkerAccounts] = None,
) -> Container:
    shift_store = build_store(store_backend, db_config)
    evidence_dir = Path(evidence_dir)
    evidence_store = LocalEvidenceStore(evidence_dir, base_url=evidence_base_url)
    accounts = accounts if accounts is not None else WorkerAccounts()
    directory = StaticWorkerDirectory(accounts.workers())

    session_manager = SessionManager(
        shift_store,
        evidence_store,
        policy=SessionPolicy(require_end_evidence=require_end_evidence, local_timezone=local_timezone),
        checklist_schema=get_schema(checklist_version),
    )
    report_service = AttendanceReportService(
        shift_store,
        directory=directory,
        chart_window=chart_window_days,
        local_timezone=local_timezone,
    )

    return Container(
        shift_store=shift_store,
        evidence_store=evidence_store,
        evidence_dir=evidence_dir,
        directory=directory,
        accounts=accounts,
        session_manager=session_manager,
        report_service=report_service,
    )


def container_from_settings(settings) -> Container:
    return build_container(
        store_backend=str(getattr(settings, "STORE_BACKEND", "memory")),
        db_config=getattr(settings, "DB_CONFIG", None),
        evidence_dir=getattr(settings, "EVIDENCE_DIR", "instance/evidence"),
        evidence_base_url=getattr(settings, "EVIDENCE_BASE_URL", "/evidence"),
        require_end_evidence=bool(getattr(settings, "REQUIRE_END_EVIDENCE", False)),
        local_timezone=getattr(settings, "LOCAL_TIMEZONE", DEFAULT_LOCAL_TIMEZONE),
        chart_window_days=int(getattr(settings, "CHART_WINDOW_DAYS", DEFAULT_CHART_DAYS)),
        checklist_version=int(getattr(settings, "CHECKLIST_VERSION", CURRENT_CHECKLIST_VERSION)),
        accounts=load_accounts(getattr(settings, "WORKER_ACCOUNTS_FILE", None)),
    )
