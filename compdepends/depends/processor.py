"""Notification processor.

Consumes one change notification at a time and brings the caches and the
``cp_comp_depends`` table up to date with it.  Dispatch is by event class
through ``_handlers``; every event variant must have an entry.

State machine::

    IDLE -> PROCESSING -> IDLE
    IDLE -> FULL_EVAL  -> IDLE
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from compdepends.cache.computation_cache import ComputationCache, expand_computation_inputs
from compdepends.cache.tsid_cache import TsIdCache
from compdepends.core.config import settings
from compdepends.core.enums import MissingAction, ProcessorState
from compdepends.core.exceptions import NoSuchObjectError, TsdbError
from compdepends.core.utils.logging_config import get_logger
from compdepends.depends.reconciler import DependencyReconciler
from compdepends.depends.writer import CompDependsWriter
from compdepends.groups.expansion import TsGroupCache
from compdepends.store.base import TsdbStore
from compdepends.store.computation_dao import ComputationDAO
from compdepends.store.group_dao import GroupDAO
from compdepends.store.lock_dao import LoadingAppDAO
from compdepends.store.timeseries_dao import TimeSeriesDAO
from compdepends.tsdb.computation import DbComputation
from compdepends.tsdb.notify import (
    CompModified,
    CpCompDependsRecord,
    CpDependsNotify,
    FullEval,
    GroupModified,
    TsCreated,
    TsDeleted,
    TsModified,
)
from compdepends.tsdb.tsid import TimeSeriesIdentifier

logger = get_logger("depends.processor")


class NotificationProcessor:
    """Apply change notifications to the caches and the edge table.

    Args:
        store: Store facade.
        key_is_sdi: Back-end flavour (defaults to ``settings.tsid_key_is_sdi``).
        group_dump_dir: Optional directory for TSID and group dumps.
    """

    def __init__(
        self,
        store: TsdbStore,
        key_is_sdi: Optional[bool] = None,
        group_dump_dir: Optional[Path] = None,
    ) -> None:
        self.store = store
        self.key_is_sdi = settings.tsid_key_is_sdi if key_is_sdi is None else key_is_sdi
        self.group_dump_dir = group_dump_dir

        self.tsid_cache = TsIdCache()
        self.group_cache = TsGroupCache(self.tsid_cache, dump_dir=group_dump_dir)
        self.comp_cache = ComputationCache()
        self.reconciler = DependencyReconciler(
            self.tsid_cache, self.group_cache, key_is_sdi=self.key_is_sdi
        )
        self.writer = CompDependsWriter(store)

        self.state = ProcessorState.IDLE
        self.done = 0
        self.errs = 0
        # Set when the caches may disagree with the store; cleared by a refresh.
        self.stale = True
        self._prev: Optional[CpDependsNotify] = None
        self._handlers: dict[type[CpDependsNotify], Callable[[CpDependsNotify], None]] = {
            TsCreated: self._ts_created,
            TsDeleted: self._ts_deleted,
            TsModified: self._ts_modified,
            CompModified: self._comp_modified,
            GroupModified: self._group_modified,
            FullEval: self._full_eval,
        }

    @property
    def status(self) -> str:
        return f"Done={self.done}, Errs={self.errs}"

    # ------------------------------------------------------------------
    # Cache refresh
    # ------------------------------------------------------------------
    def refresh_caches(self) -> None:
        """Reload TSIDs, groups, computations and edges in one unit of work."""
        with self.store.transaction() as session:
            self.tsid_cache.reload(TimeSeriesDAO(session))

            group_dao = GroupDAO(session)
            self.group_cache.clear()
            for group_id in group_dao.list_group_ids():
                group = group_dao.get_group_by_id(group_id)
                if group is not None:
                    self.group_cache.add(group)
            self.group_cache.eval_all()

            self.comp_cache.refresh(
                ComputationDAO(session), LoadingAppDAO(session), self.tsid_cache
            )
            self.writer.reload_cache(session)

        self.stale = False
        if self.group_dump_dir is not None:
            self.tsid_cache.dump(self.group_dump_dir / "tsids.txt")
        logger.info(
            "caches_refreshed",
            tsids=len(self.tsid_cache),
            groups=len(self.group_cache),
            computations=len(self.comp_cache),
            edges=len(self.writer.cache),
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def is_duplicate(self, notify: CpDependsNotify) -> bool:
        """True if *notify* equals the previously processed notification."""
        return self._prev is not None and notify == self._prev

    def process(self, notify: CpDependsNotify) -> bool:
        """Handle one notification.

        Only an applied notification becomes the duplicate reference; a
        failed one may be redelivered.

        Returns:
            True if the notification was applied, False if it was a
            duplicate or its handler failed.

        Raises:
            TypeError: If no handler is registered for the event class.
        """
        if self.is_duplicate(notify):
            logger.info("duplicate_notify_ignored", notify=str(notify))
            return False

        handler = self._handlers.get(type(notify))
        if handler is None:
            raise TypeError(f"No handler for notification type {type(notify).__name__}")

        logger.info("processing_notify", kind=type(notify).__name__, key=notify.key)
        if not self._apply(notify, handler):
            return False
        self._prev = notify
        self.done += 1
        return True

    def _apply(
        self, notify: CpDependsNotify, handler: Callable[[CpDependsNotify], None]
    ) -> bool:
        self.state = (
            ProcessorState.FULL_EVAL if isinstance(notify, FullEval) else ProcessorState.PROCESSING
        )
        try:
            handler(notify)
        except TsdbError as exc:
            self.errs += 1
            logger.error(
                "notify_failed",
                kind=type(notify).__name__,
                key=notify.key,
                error=str(exc),
            )
            self._resync()
            return False
        finally:
            self.state = ProcessorState.IDLE
        return True

    def _resync(self) -> None:
        """Reload the caches after a failed unit; flag them stale if that fails too."""
        self.stale = True
        try:
            self.refresh_caches()
        except TsdbError as exc:
            logger.warning("cache_resync_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Time-series events
    # ------------------------------------------------------------------
    def _ts_created(self, notify: CpDependsNotify) -> None:
        ts_key = notify.key
        try:
            with self.store.transaction() as session:
                tsid = self.tsid_cache.resolve(ts_key, TimeSeriesDAO(session))
        except NoSuchObjectError:
            logger.warning("ts_created_not_found", ts_key=ts_key)
            self._ts_deleted(TsDeleted(key=ts_key, loaded_at=notify.loaded_at))
            return

        affected_groups = self.group_cache.check_group_membership(tsid)
        touched = self._dependents_of(tsid, affected_groups)
        if not touched:
            logger.info("ts_created_no_dependents", ts=str(tsid))
            return

        edges: set[CpCompDependsRecord] = set()
        for comp in touched:
            edges |= self.reconciler.eval_computation(comp)
        self.writer.replace_for_computations([c.comp_id for c in touched], edges)
        logger.info(
            "ts_created",
            ts=str(tsid),
            groups=sorted(affected_groups),
            computations=[c.comp_id for c in touched],
        )

    def _dependents_of(
        self, tsid: TimeSeriesIdentifier, affected_groups: set[int]
    ) -> list[DbComputation]:
        """Enabled computations whose inputs include *tsid* or an affected group."""
        touched = {c.comp_id: c for c in self.comp_cache.for_groups(affected_groups)}
        for comp in self.comp_cache:
            if comp.comp_id not in touched and self.reconciler.matches_new_tsid(comp, tsid):
                touched[comp.comp_id] = comp
        return [touched[cid] for cid in sorted(touched)]

    def _ts_deleted(self, notify: CpDependsNotify) -> None:
        ts_key = notify.key
        removed = self.tsid_cache.get_by_key(ts_key)
        explicit_groups = [g for g in self.group_cache.groups() if g.is_explicit_member(ts_key)]
        bound = self._bound_inputs(ts_key, removed)
        disabled = [(comp, roles) for comp, roles, disable in bound if disable]

        def persist(session: Session) -> None:
            group_dao = GroupDAO(session)
            for group in explicit_groups:
                group_dao.delete_member_ts(group.group_id, ts_key)
            comp_dao = ComputationDAO(session)
            for comp, roles in disabled:
                comp_dao.disable_computation(comp.comp_id, roles)

        self.writer.delete_for_ts(ts_key, [c.comp_id for c, _ in disabled], also=persist)

        # Committed; bring the caches in line.
        self.tsid_cache.remove(ts_key)
        self.group_cache.remove_tsid(ts_key)
        for comp, roles, disable in bound:
            for role in roles:
                comp.get_parm(role).site_datatype_id = None
            if disable:
                comp.enabled = False
                self.comp_cache.remove(comp.comp_id)
                logger.warning("computation_disabled_input_deleted", comp=str(comp), ts_key=ts_key)
        logger.info(
            "ts_deleted",
            ts_key=ts_key,
            explicit_groups=[g.group_id for g in explicit_groups],
            disabled=[c.comp_id for c, _ in disabled],
        )

    def _bound_inputs(
        self, ts_key: int, removed: Optional[TimeSeriesIdentifier]
    ) -> list[tuple[DbComputation, list[str], bool]]:
        """Single-TSID computations with inputs bound to *ts_key*.

        Each entry is ``(computation, bound roles, must disable)``.  An input
        whose missing action is IGNORE is unbound but leaves the computation
        enabled.  Nothing is modified here.
        """
        found: list[tuple[DbComputation, list[str], bool]] = []
        for comp in self.comp_cache:
            if self.group_cache.get(comp.group_id) is not None:
                continue
            if self.key_is_sdi:
                roles = [p.role_name for p in comp.input_parms() if p.site_datatype_id == ts_key]
            elif removed is not None:
                roles = [
                    p.role_name
                    for p in comp.input_parms()
                    if removed.matches_parm(p, key_is_sdi=False)
                ]
            else:
                roles = []
            if not roles:
                continue
            disable = any(comp.missing_action(r) != MissingAction.IGNORE for r in roles)
            found.append((comp, roles, disable))
        return found

    def _ts_modified(self, notify: CpDependsNotify) -> None:
        self._ts_deleted(TsDeleted(key=notify.key, loaded_at=notify.loaded_at))
        self._ts_created(TsCreated(key=notify.key, loaded_at=notify.loaded_at))

    # ------------------------------------------------------------------
    # Computation and group events
    # ------------------------------------------------------------------
    def _comp_modified(self, notify: CpDependsNotify) -> None:
        comp_id = notify.key
        comp: Optional[DbComputation]
        try:
            with self.store.transaction() as session:
                comp = ComputationDAO(session).get_computation_by_id(comp_id)
            expand_computation_inputs(comp, self.tsid_cache)
        except NoSuchObjectError:
            logger.info("computation_gone_assuming_deleted", comp_id=comp_id)
            comp = None

        if self.comp_cache.remove(comp_id) is not None:
            logger.debug("computation_cache_entry_dropped", comp_id=comp_id)

        if comp is not None and comp.enabled:
            self.comp_cache.add(comp)
            self.writer.replace_for_computations(
                [comp_id], self.reconciler.eval_computation(comp)
            )
        else:
            self.writer.replace_for_computations([comp_id], ())
            logger.info("computation_depends_removed", comp_id=comp_id)

    def _group_modified(self, notify: CpDependsNotify) -> None:
        group_id = notify.key
        with self.store.transaction() as session:
            group = GroupDAO(session).get_group_by_id(group_id)

        if group is not None:
            self.group_cache.add(group)
            self.group_cache.expand(group)
        else:
            logger.info("group_gone_assuming_deleted", group_id=group_id)
            self.group_cache.remove_by_id(group_id)

        affected = self.group_cache.evaluate_parents(group_id)
        comps = self.comp_cache.for_groups(affected)
        if not comps:
            logger.info("group_modified_no_computations", group_id=group_id, affected=sorted(affected))
            return

        disabled = [c for c in comps if self.group_cache.get(c.group_id) is None]
        disabled_ids = {c.comp_id for c in disabled}

        edges: set[CpCompDependsRecord] = set()
        for comp in comps:
            if comp.comp_id not in disabled_ids:
                edges |= self.reconciler.eval_computation(comp)

        def persist(session: Session) -> None:
            comp_dao = ComputationDAO(session)
            for comp in disabled:
                comp_dao.disable_computation(comp.comp_id, clear_group=True)

        self.writer.replace_for_computations(
            [c.comp_id for c in comps], edges, also=persist if disabled else None
        )
        for comp in disabled:
            comp.enabled = False
            comp.group_id = None
            self.comp_cache.remove(comp.comp_id)
            logger.warning("computation_disabled_group_deleted", comp=str(comp), group_id=group_id)
        logger.info(
            "group_modified",
            group_id=group_id,
            affected=sorted(affected),
            computations=[c.comp_id for c in comps],
        )

    # ------------------------------------------------------------------
    # Full evaluation
    # ------------------------------------------------------------------
    def _full_eval(self, notify: CpDependsNotify) -> None:
        self.refresh_caches()
        desired: set[CpCompDependsRecord] = set()
        for comp in self.comp_cache:
            desired |= self.reconciler.eval_computation(comp)
        result = self.writer.apply_full_eval(desired)
        logger.info(
            "full_eval_done",
            computations=len(self.comp_cache),
            edges=len(desired),
            deleted=result.deleted,
            inserted=result.inserted,
        )

    def full_eval(self) -> bool:
        """Run a full evaluation outside the notification queue.

        Used for the startup and periodic self-healing runs.  It is not a
        notification, so it neither counts toward ``done`` nor suppresses
        a queued full-evaluation request.
        """
        return self._apply(FullEval(), self._full_eval)

