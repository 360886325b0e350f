"""Edge writer: the two write paths into ``cp_comp_depends``.

Incremental
    Delete every edge of the touched computations, insert their new edges.
Full evaluation
    Stage the desired set in the scratchpad, diff it against the persisted
    set in process, apply the minimal delete/insert and clear the
    scratchpad.

Each path runs as one store transaction.  The local ``DependsCache`` is
updated only after that transaction commits, so a failed unit leaves both
the table and the cache as they were.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from compdepends.core.utils.logging_config import get_logger
from compdepends.store.base import TsdbStore
from compdepends.store.comp_depends_dao import CompDependsDAO
from compdepends.tsdb.notify import CpCompDependsRecord

logger = get_logger("depends.writer")

# Extra work to run inside the same transaction as an edge write.
UnitHook = Callable[[Session], None]


@dataclass(frozen=True)
class DiffResult:
    """Rows removed and added by a full evaluation."""

    deleted: int = 0
    inserted: int = 0


class DependsCache:
    """In-memory mirror of ``cp_comp_depends``."""

    def __init__(self, edges: Iterable[CpCompDependsRecord] = ()) -> None:
        self._edges: set[CpCompDependsRecord] = set(edges)

    def load(self, edges: Iterable[CpCompDependsRecord]) -> None:
        self._edges = set(edges)

    def for_computations(self, comp_ids: Iterable[int]) -> set[CpCompDependsRecord]:
        wanted = set(comp_ids)
        return {e for e in self._edges if e.comp_id in wanted}

    def for_ts(self, ts_key: int) -> set[CpCompDependsRecord]:
        return {e for e in self._edges if e.ts_key == ts_key}

    def replace_computations(
        self, comp_ids: Iterable[int], edges: Iterable[CpCompDependsRecord]
    ) -> None:
        wanted = set(comp_ids)
        self._edges = {e for e in self._edges if e.comp_id not in wanted}
        self._edges.update(edges)

    def remove_ts(self, ts_key: int) -> None:
        self._edges = {e for e in self._edges if e.ts_key != ts_key}

    def snapshot(self) -> set[CpCompDependsRecord]:
        return set(self._edges)

    def __iter__(self) -> Iterator[CpCompDependsRecord]:
        return iter(sorted(self._edges))

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, edge: object) -> bool:
        return edge in self._edges


class CompDependsWriter:
    """Apply edge changes to the store and keep ``cache`` in step.

    Args:
        store: Store facade providing transactions.
        cache: Edge mirror to maintain (a new empty one if omitted).
    """

    def __init__(self, store: TsdbStore, cache: Optional[DependsCache] = None) -> None:
        self.store = store
        self.cache = cache if cache is not None else DependsCache()

    def reload_cache(self, session: Optional[Session] = None) -> int:
        """Reload the edge mirror from the table."""
        if session is not None:
            self.cache.load(CompDependsDAO(session).list_edges())
        else:
            with self.store.transaction() as s:
                self.cache.load(CompDependsDAO(s).list_edges())
        logger.info("depends_cache_reloaded", count=len(self.cache))
        return len(self.cache)

    # ------------------------------------------------------------------
    # Incremental path
    # ------------------------------------------------------------------
    def replace_for_computations(
        self,
        comp_ids: Iterable[int],
        edges: Iterable[CpCompDependsRecord],
        also: Optional[UnitHook] = None,
    ) -> int:
        """Replace every edge of *comp_ids* with *edges* in one transaction.

        Args:
            comp_ids: Computations whose edges are rewritten.  Passing a
                computation with no new edges removes all of its edges.
            edges: The complete new edge set for those computations.
            also: Optional extra work run inside the same transaction.

        Returns:
            Number of edges inserted.
        """
        ids = sorted(set(comp_ids))
        new_edges = set(edges)
        stray = {e for e in new_edges if e.comp_id not in ids}
        if stray:
            raise ValueError(f"Edges for computations outside {ids}: {sorted(stray)}")

        with self.store.transaction() as session:
            dao = CompDependsDAO(session)
            deleted = dao.delete_for_computations(ids)
            inserted = dao.insert_edges(new_edges)
            if also is not None:
                also(session)
        self.cache.replace_computations(ids, new_edges)
        logger.info(
            "depends_replaced",
            comp_ids=ids,
            deleted=deleted,
            inserted=inserted,
        )
        return inserted

    def delete_for_ts(
        self,
        ts_key: int,
        comp_ids: Iterable[int] = (),
        also: Optional[UnitHook] = None,
    ) -> int:
        """Drop every edge naming *ts_key*, plus every edge of *comp_ids*.

        Returns:
            Number of rows deleted.
        """
        ids = sorted(set(comp_ids))
        with self.store.transaction() as session:
            dao = CompDependsDAO(session)
            deleted = dao.delete_for_ts(ts_key)
            deleted += dao.delete_for_computations(ids)
            if also is not None:
                also(session)
        self.cache.remove_ts(ts_key)
        if ids:
            self.cache.replace_computations(ids, ())
        logger.info("depends_deleted_for_ts", ts_key=ts_key, comp_ids=ids, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Full-evaluation path
    # ------------------------------------------------------------------
    def apply_full_eval(self, desired: Iterable[CpCompDependsRecord]) -> DiffResult:
        """Make the table equal *desired* with the minimal set of changes."""
        desired_set = set(desired)
        with self.store.transaction() as session:
            dao = CompDependsDAO(session)
            dao.clear_scratchpad()
            dao.fill_scratchpad(desired_set)
            staged = dao.list_scratchpad()
            persisted = dao.list_edges()

            to_delete = persisted - staged
            to_insert = staged - persisted
            dao.delete_edges(to_delete)
            dao.insert_edges(to_insert)
            dao.clear_scratchpad()
        self.cache.load(desired_set)

        result = DiffResult(deleted=len(to_delete), inserted=len(to_insert))
        logger.info(
            "full_eval_applied",
            desired=len(desired_set),
            deleted=result.deleted,
            inserted=result.inserted,
        )
        return result
