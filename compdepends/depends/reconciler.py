"""Dependency reconciler.

Computes the set of ``(ts_key, comp_id)`` edges a computation implies,
given the current TSID and group caches.  Evaluation is pure with respect
to the caches: nothing here touches the store.

Two resolution paths:

- Single-TSID computations bind each input parm to one series, either
  directly by key (stores whose TSID key is the site-datatype id) or by
  looking the parm's unique string up in the TSID cache.
- Group computations transform every member of the group's expanded list
  by each input parm and look the result up in the TSID cache.
"""

from __future__ import annotations

from typing import Optional

from compdepends.cache.tsid_cache import TsIdCache
from compdepends.core.config import settings
from compdepends.core.exceptions import BadPatternError
from compdepends.core.utils.logging_config import get_logger
from compdepends.groups.expansion import TsGroupCache
from compdepends.tsdb.computation import DbCompParm, DbComputation
from compdepends.tsdb.group import TsGroup
from compdepends.tsdb.interval import validate_interval
from compdepends.tsdb.notify import CpCompDependsRecord
from compdepends.tsdb.tsid import (
    TimeSeriesIdentifier,
    transform_unique_string,
    tsid_from_parm,
)

logger = get_logger("depends.reconciler")


class DependencyReconciler:
    """Evaluate computations into dependency edges.

    Args:
        tsid_cache: Every known TSID.
        group_cache: Group definitions with current expansions.
        key_is_sdi: True when the TSID key is the parm's site-datatype id
            (defaults to ``settings.tsid_key_is_sdi``).
    """

    def __init__(
        self,
        tsid_cache: TsIdCache,
        group_cache: TsGroupCache,
        key_is_sdi: Optional[bool] = None,
    ) -> None:
        self.tsid_cache = tsid_cache
        self.group_cache = group_cache
        self.key_is_sdi = settings.tsid_key_is_sdi if key_is_sdi is None else key_is_sdi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def eval_computation(self, comp: DbComputation) -> set[CpCompDependsRecord]:
        """Return every edge implied by *comp*'s input parameters.

        A computation bound to a group that is not cached is evaluated as a
        single-TSID computation.  Parms with an unparsable interval are
        logged and skipped.
        """
        group = self._group_for(comp)
        if group is None:
            edges = self._eval_single(comp)
        else:
            edges = self._eval_group(comp, group)
        logger.debug(
            "computation_evaluated",
            comp=str(comp),
            group_id=group.group_id if group is not None else None,
            edges=len(edges),
        )
        return edges

    def matches_new_tsid(self, comp: DbComputation, tsid: TimeSeriesIdentifier) -> bool:
        """True if *tsid* is an input of *comp*.

        Used on time-series creation so only affected computations are
        re-evaluated.
        """
        group = self._group_for(comp)
        if group is None:
            return any(tsid.matches_parm(p, self.key_is_sdi) for p in comp.input_parms())

        wanted = tsid.unique_string.upper()
        parms = self._valid_inputs(comp)
        for member in group.expanded:
            for parm in parms:
                if transform_unique_string(member, parm).unique_string.upper() == wanted:
                    return True
        return False

    # ------------------------------------------------------------------
    # Resolution paths
    # ------------------------------------------------------------------
    def _group_for(self, comp: DbComputation) -> Optional[TsGroup]:
        if not comp.is_group_comp:
            return None
        group = self.group_cache.get(comp.group_id)
        if group is None:
            logger.info("computation_group_not_cached", comp=str(comp), group_id=comp.group_id)
        return group

    def _eval_single(self, comp: DbComputation) -> set[CpCompDependsRecord]:
        edges: set[CpCompDependsRecord] = set()
        for parm in comp.input_parms():
            ts_key = self._resolve_parm(comp, parm)
            if ts_key is not None:
                edges.add(CpCompDependsRecord(ts_key, comp.comp_id))
        return edges

    def _resolve_parm(self, comp: DbComputation, parm: DbCompParm) -> Optional[int]:
        if self.key_is_sdi:
            return parm.site_datatype_id
        try:
            wanted = tsid_from_parm(parm)
        except BadPatternError as exc:
            self._warn_bad_parm(comp, parm, exc)
            return None
        if wanted is None:
            return None
        tsid = self.tsid_cache.get_by_unique_name(wanted.unique_string)
        if tsid is None:
            logger.debug("parm_ts_not_cached", comp=str(comp), ts=wanted.unique_string)
            return None
        return tsid.key

    def _eval_group(self, comp: DbComputation, group: TsGroup) -> set[CpCompDependsRecord]:
        edges: set[CpCompDependsRecord] = set()
        parms = self._valid_inputs(comp)
        for member in group.expanded:
            for parm in parms:
                wanted = transform_unique_string(member, parm)
                tsid = self.tsid_cache.get_by_unique_name(wanted.unique_string)
                if tsid is not None and tsid.key is not None:
                    edges.add(CpCompDependsRecord(tsid.key, comp.comp_id))
        return edges

    def _valid_inputs(self, comp: DbComputation) -> list[DbCompParm]:
        """Input parms whose pattern can be applied; bad ones are logged once."""
        parms = []
        for parm in comp.input_parms():
            try:
                validate_interval(parm.interval)
            except BadPatternError as exc:
                self._warn_bad_parm(comp, parm, exc)
                continue
            parms.append(parm)
        return parms

    @staticmethod
    def _warn_bad_parm(comp: DbComputation, parm: DbCompParm, exc: BadPatternError) -> None:
        logger.warning(
            "bad_parm_pattern_skipped",
            comp=str(comp),
            error=str(exc),
            **parm.describe(),
        )
