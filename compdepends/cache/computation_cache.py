"""Cache of enabled computations.

Only enabled computations are held; a computation that becomes disabled is
removed.  The daemon processes computations for every application, so the
refresh lists enabled names without an application filter.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from compdepends.cache.object_cache import DbObjectCache
from compdepends.cache.tsid_cache import TsIdCache
from compdepends.core.exceptions import NoSuchObjectError
from compdepends.core.utils.logging_config import get_logger
from compdepends.store.computation_dao import ComputationDAO
from compdepends.store.lock_dao import LoadingAppDAO
from compdepends.tsdb.computation import DbComputation

logger = get_logger("cache.computation")


def expand_computation_inputs(comp: DbComputation, tsid_cache: TsIdCache) -> None:
    """Fill in pattern fields of inputs bound to an explicit TSID.

    Input parms that carry a ``site_datatype_id`` but no site get their
    identity parts copied from the cached TSID.  Pattern-only parms (group
    computations) are left untouched.
    """
    for parm in comp.input_parms():
        if parm.site or parm.site_datatype_id is None:
            continue
        tsid = tsid_cache.get_by_key(parm.site_datatype_id)
        if tsid is None:
            logger.debug(
                "input_parm_not_expanded",
                comp=comp.name,
                role=parm.role_name,
                sdi=parm.site_datatype_id,
            )
            continue
        parm.site = tsid.site
        parm.data_type = parm.data_type or tsid.data_type
        parm.param_type = parm.param_type or tsid.param_type
        parm.interval = parm.interval or tsid.interval
        parm.duration = parm.duration or tsid.duration
        parm.version = parm.version or tsid.version


class ComputationCache:
    def __init__(self, max_age: Optional[float] = None) -> None:
        self._cache: DbObjectCache[DbComputation] = DbObjectCache(max_age=max_age)

    def refresh(
        self,
        comp_dao: ComputationDAO,
        app_dao: LoadingAppDAO,
        tsid_cache: TsIdCache,
    ) -> int:
        """Reload every enabled computation from the store.

        A computation that cannot be read is logged and skipped.
        """
        self._cache.clear()
        for name in app_dao.list_computation_names(app_id=None, enabled_only=True):
            try:
                comp = comp_dao.get_computation_by_name(name)
            except NoSuchObjectError as exc:
                logger.warning("computation_unreadable", name=name, error=str(exc))
                continue
            expand_computation_inputs(comp, tsid_cache)
            self._cache.put(comp)
        logger.info("computation_cache_refreshed", count=len(self._cache))
        return len(self._cache)

    def add(self, comp: DbComputation) -> None:
        if comp.enabled:
            self._cache.put(comp)

    def remove(self, comp_id: int) -> Optional[DbComputation]:
        return self._cache.remove(comp_id)

    def get(self, comp_id: int) -> Optional[DbComputation]:
        return self._cache.get_by_key(comp_id)

    def for_groups(self, group_ids: Iterable[int]) -> list[DbComputation]:
        """Cached computations bound to any of *group_ids*."""
        wanted = set(group_ids)
        return [c for c in self if c.group_id is not None and c.group_id in wanted]

    def clear(self) -> None:
        self._cache.clear()

    def __iter__(self) -> Iterator[DbComputation]:
        return iter(sorted(self._cache, key=lambda c: c.comp_id))

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, comp_id: object) -> bool:
        return comp_id in self._cache
