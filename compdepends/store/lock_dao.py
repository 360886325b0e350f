"""Loading applications and the per-application run lock.

Exactly one live daemon instance is allowed per application.  The holder
renews ``comp_proc_lock.heartbeat`` every poll cycle; a competing process
may take the lock over only once the heartbeat is older than
``stale_seconds``.  Lock loss is reported as LockBusyError and is fatal to
the daemon (an external supervisor restarts it).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from compdepends.core.config import settings
from compdepends.core.exceptions import LockBusyError, NoSuchObjectError
from compdepends.core.models import (
    CompProcLockRecord,
    ComputationRecord,
    LoadingApplication,
    LoadingAppProperty,
)
from compdepends.core.utils.logging_config import get_logger
from compdepends.store.base import as_utc

logger = get_logger("store.lock_dao")


@dataclass
class CompAppInfo:
    app_id: int
    app_name: str
    comment: str = ""
    office_id: str = ""
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class CompProcLock:
    app_id: int
    pid: int
    hostname: str
    heartbeat: datetime
    status: str = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoadingAppDAO:
    """Application lookup and run-lock management.

    Args:
        session: Caller-owned session.
        stale_seconds: Heartbeat age after which another holder's lock may
            be taken over (defaults to ``settings.lock_stale_seconds``).
    """

    def __init__(self, session: Session, stale_seconds: Optional[int] = None) -> None:
        self.session = session
        self.stale_seconds = (
            settings.lock_stale_seconds if stale_seconds is None else stale_seconds
        )

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------
    def get_computation_app(self, app: int | str) -> CompAppInfo:
        """Look up an application by id or name.

        Raises:
            NoSuchObjectError: If no such application exists.
        """
        if isinstance(app, int):
            rec = self.session.get(LoadingApplication, app)
        else:
            rec = self.session.scalar(
                select(LoadingApplication).where(
                    LoadingApplication.loading_application_name == app
                )
            )
        if rec is None:
            raise NoSuchObjectError(f"No loading application '{app}'")
        props = {
            p.prop_name: p.prop_value
            for p in self.session.scalars(
                select(LoadingAppProperty).where(
                    LoadingAppProperty.loading_application_id == rec.loading_application_id
                )
            )
        }
        return CompAppInfo(
            app_id=rec.loading_application_id,
            app_name=rec.loading_application_name,
            comment=rec.cmmnt or "",
            office_id=rec.office_id or "",
            properties=props,
        )

    def create_computation_app(
        self, name: str, comment: str = "", office_id: str = ""
    ) -> CompAppInfo:
        rec = LoadingApplication(
            loading_application_name=name, cmmnt=comment, office_id=office_id or None
        )
        self.session.add(rec)
        self.session.flush()
        return CompAppInfo(rec.loading_application_id, name, comment, office_id)

    def list_computation_names(
        self, app_id: Optional[int] = None, enabled_only: bool = True
    ) -> list[str]:
        """Names of computations for *app_id* (all applications if ``None``)."""
        stmt = select(ComputationRecord.computation_name).order_by(
            ComputationRecord.computation_name
        )
        if app_id is not None:
            stmt = stmt.where(ComputationRecord.loading_application_id == app_id)
        if enabled_only:
            stmt = stmt.where(ComputationRecord.enabled.is_(True))
        return list(self.session.scalars(stmt))

    # ------------------------------------------------------------------
    # Run lock
    # ------------------------------------------------------------------
    def obtain_comp_proc_lock(
        self, app_info: CompAppInfo, pid: int, hostname: str
    ) -> CompProcLock:
        """Acquire the run-lock for *app_info*.

        Raises:
            LockBusyError: If another process holds a lock whose heartbeat
                is newer than ``stale_seconds``.
        """
        now = _utcnow()
        rec = self.session.get(CompProcLockRecord, app_info.app_id)
        if rec is not None:
            same_holder = rec.pid == pid and rec.hostname == hostname
            age = now - as_utc(rec.heartbeat)
            if not same_holder and age < timedelta(seconds=self.stale_seconds):
                raise LockBusyError(
                    f"Lock for app '{app_info.app_name}' is held by pid={rec.pid} "
                    f"on {rec.hostname} (heartbeat {age.total_seconds():.0f}s ago)"
                )
            if not same_holder:
                logger.info(
                    "stale_lock_taken_over",
                    app=app_info.app_name,
                    previous_pid=rec.pid,
                    previous_host=rec.hostname,
                )
            rec.pid = pid
            rec.hostname = hostname
            rec.heartbeat = now
            rec.cur_status = "Starting"
        else:
            self.session.add(
                CompProcLockRecord(
                    loading_application_id=app_info.app_id,
                    pid=pid,
                    hostname=hostname,
                    heartbeat=now,
                    cur_status="Starting",
                )
            )
        self.session.flush()
        logger.info("lock_obtained", app=app_info.app_name, pid=pid, host=hostname)
        return CompProcLock(app_info.app_id, pid, hostname, now, "Starting")

    def check_comp_proc_lock(self, lock: CompProcLock) -> None:
        """Renew the heartbeat and status of a held lock.

        Raises:
            LockBusyError: If the lock row was deleted or taken by another
                process.
        """
        rec = self.session.get(CompProcLockRecord, lock.app_id)
        if rec is None:
            raise LockBusyError(f"Lock for app id={lock.app_id} was removed")
        if rec.pid != lock.pid or rec.hostname != lock.hostname:
            raise LockBusyError(
                f"Lock for app id={lock.app_id} now held by pid={rec.pid} on {rec.hostname}"
            )
        now = _utcnow()
        rec.heartbeat = now
        rec.cur_status = lock.status[:64]
        lock.heartbeat = now
        self.session.flush()

    def release_comp_proc_lock(self, lock: CompProcLock) -> None:
        """Delete the lock row if we still hold it."""
        self.session.execute(
            delete(CompProcLockRecord).where(
                CompProcLockRecord.loading_application_id == lock.app_id,
                CompProcLockRecord.pid == lock.pid,
                CompProcLockRecord.hostname == lock.hostname,
            )
        )
        logger.info("lock_released", app_id=lock.app_id, pid=lock.pid)

    def get_lock(self, app_id: int) -> Optional[CompProcLock]:
        rec = self.session.get(CompProcLockRecord, app_id)
        if rec is None:
            return None
        return CompProcLock(
            rec.loading_application_id,
            rec.pid,
            rec.hostname,
            as_utc(rec.heartbeat),
            rec.cur_status or "",
        )
