"""Computation dependency updater daemon.

Single-threaded poll loop::

    connect -> lock renew -> [one-time full eval]
    -> [cache refresh after (re)connect | periodic full eval]
    -> next notification -> process | idle sleep -> loop

Exit codes: 0 on a requested shutdown (SIGINT/SIGTERM, or regression-test
idle timeout), 1 when the run lock is lost or the application is unknown.
"""

from __future__ import annotations

import os
import signal
import socket
import time
from pathlib import Path
from typing import Any, Optional

import structlog

from compdepends.core.config import settings
from compdepends.core.exceptions import DbIoError, LockBusyError, NoSuchObjectError
from compdepends.core.utils.logging_config import get_logger
from compdepends.depends.processor import NotificationProcessor
from compdepends.store.base import TsdbStore
from compdepends.store.lock_dao import CompAppInfo, CompProcLock, LoadingAppDAO
from compdepends.store.notify_dao import NotifyDAO

logger = get_logger("daemon.updater")

EXIT_OK = 0
EXIT_FATAL = 1


class CompDependsUpdater:
    """Poll the notification queue and keep ``cp_comp_depends`` current.

    Args:
        store: Store facade (built from settings if omitted).
        app_name: Loading application whose run lock this daemon holds.
        office_id: Office identifier bound into every log line.
        full_eval_on_startup: Run one full evaluation before the first
            notification.
        regression_test: Exit once the queue has been idle for
            ``settings.regression_idle_seconds``.
        group_dump_dir: Directory for TSID/group diagnostic dumps.
    """

    def __init__(
        self,
        store: Optional[TsdbStore] = None,
        app_name: Optional[str] = None,
        office_id: Optional[str] = None,
        full_eval_on_startup: bool = False,
        regression_test: bool = False,
        group_dump_dir: Optional[str] = None,
    ) -> None:
        self.store = store if store is not None else TsdbStore()
        self.app_name = app_name or settings.app_name
        self.office_id = office_id if office_id is not None else settings.office_id
        self.full_eval_on_startup = full_eval_on_startup
        self.regression_test = regression_test
        self.group_dump_dir = self._prepare_dump_dir(group_dump_dir or settings.group_dump_dir)

        self.pid = os.getpid()
        self.hostname = socket.gethostname() or "unknown"
        self.app_info: Optional[CompAppInfo] = None
        self.lock: Optional[CompProcLock] = None
        self.processor = NotificationProcessor(self.store, group_dump_dir=self.group_dump_dir)

        self._shutdown = False
        self._full_eval_done = False
        self._last_refresh: Optional[float] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def shutdown(self, *_args: Any) -> None:
        """Request a clean exit after the current iteration."""
        logger.info("shutdown_requested", app=self.app_name)
        self._shutdown = True

    def initialize(self) -> None:
        """Resolve the application record.

        Raises:
            NoSuchObjectError: If the application does not exist.
            DbIoError: If the store cannot be read.
        """
        with self.store.transaction() as session:
            self.app_info = LoadingAppDAO(session).get_computation_app(self.app_name)
        structlog.contextvars.bind_contextvars(
            app=self.app_info.app_name, app_id=self.app_info.app_id
        )
        if self.office_id:
            structlog.contextvars.bind_contextvars(office=self.office_id)

    def run(self) -> int:
        """Run the poll loop until shutdown; return the process exit code."""
        try:
            self.initialize()
        except (NoSuchObjectError, DbIoError) as exc:
            logger.critical("initialization_failed", app=self.app_name, error=str(exc))
            return EXIT_FATAL

        logger.info(
            "updater_starting",
            pid=self.pid,
            host=self.hostname,
            full_eval=self.full_eval_on_startup,
            regression_test=self.regression_test,
        )
        previous = {
            sig: signal.signal(sig, self.shutdown) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        exit_code = EXIT_OK
        try:
            exit_code = self._loop()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            self._release_lock()
            self.store.close()
            structlog.contextvars.clear_contextvars()
        logger.info("updater_stopped", exit_code=exit_code, status=self.processor.status)
        return exit_code

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------
    def _loop(self) -> int:
        idle_since = time.monotonic()
        while not self._shutdown:
            if not self.store.is_connected():
                logger.warning(
                    "store_disconnected_retrying",
                    backoff=settings.reconnect_backoff_seconds,
                )
                self._reset_connection()
                time.sleep(settings.reconnect_backoff_seconds)
                continue

            action = ""
            try:
                action = "checking lock"
                self._check_lock()

                if self.full_eval_on_startup and not self._full_eval_done:
                    action = "full evaluation"
                    logger.info("startup_full_eval")
                    self._full_eval_done = self.processor.full_eval()
                    self._last_refresh = time.monotonic()

                now = time.monotonic()
                if self._last_refresh is None or self.processor.stale:
                    action = "refreshing caches"
                    self.processor.refresh_caches()
                    self._last_refresh = now
                elif now - self._last_refresh > settings.cache_refresh_seconds:
                    # Self-heal against missed or failed notifications.
                    action = "periodic full evaluation"
                    logger.info("periodic_full_eval", interval=settings.cache_refresh_seconds)
                    self.processor.full_eval()
                    self._last_refresh = now

                action = "reading notifications"
                with self.store.transaction() as session:
                    notify = NotifyDAO(session).next_notify()

                if notify is not None:
                    self.processor.process(notify)
                    idle_since = time.monotonic()
                    continue

                if (
                    self.regression_test
                    and time.monotonic() - idle_since >= settings.regression_idle_seconds
                ):
                    logger.info("regression_test_idle_exit", idle=settings.regression_idle_seconds)
                    break
                time.sleep(settings.idle_sleep_seconds)
            except LockBusyError as exc:
                logger.critical("lock_lost_exiting", error=str(exc))
                self.lock = None
                return EXIT_FATAL
            except DbIoError as exc:
                logger.warning("store_error", action=action, error=str(exc))
                self._reset_connection()
        return EXIT_OK

    def _check_lock(self) -> None:
        with self.store.transaction() as session:
            dao = LoadingAppDAO(session)
            if self.lock is None:
                self.lock = dao.obtain_comp_proc_lock(self.app_info, self.pid, self.hostname)
            else:
                self.lock.status = self.processor.status
                dao.check_comp_proc_lock(self.lock)

    def _reset_connection(self) -> None:
        """Drop pooled connections; the next iteration re-locks and refreshes."""
        self.store.close()
        self.lock = None
        self._last_refresh = None

    def _release_lock(self) -> None:
        if self.lock is None:
            return
        try:
            with self.store.transaction() as session:
                LoadingAppDAO(session).release_comp_proc_lock(self.lock)
        except DbIoError as exc:
            logger.warning("lock_release_failed", error=str(exc))
        self.lock = None

    @staticmethod
    def _prepare_dump_dir(path: Optional[str]) -> Optional[Path]:
        if not path:
            return None
        dump_dir = Path(os.path.expandvars(os.path.expanduser(path)))
        try:
            dump_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("dump_dir_unavailable", path=str(dump_dir), error=str(exc))
            return None
        return dump_dir
