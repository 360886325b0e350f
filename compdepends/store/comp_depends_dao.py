"""Edge table access: ``cp_comp_depends`` and its scratchpad."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from compdepends.core.models import CpCompDepends, CpCompDependsScratchpad
from compdepends.tsdb.notify import CpCompDependsRecord


def _rows(edges: Iterable[CpCompDependsRecord]) -> list[dict]:
    return [{"ts_id": e.ts_key, "computation_id": e.comp_id} for e in sorted(edges)]


class CompDependsDAO:
    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # cp_comp_depends
    # ------------------------------------------------------------------
    def list_edges(self) -> set[CpCompDependsRecord]:
        return {
            CpCompDependsRecord(ts_id, comp_id)
            for ts_id, comp_id in self.session.execute(
                select(CpCompDepends.ts_id, CpCompDepends.computation_id)
            )
        }

    def insert_edges(self, edges: Iterable[CpCompDependsRecord]) -> int:
        rows = _rows(edges)
        if rows:
            self.session.execute(insert(CpCompDepends), rows)
        return len(rows)

    def delete_edges(self, edges: Iterable[CpCompDependsRecord]) -> int:
        count = 0
        for edge in edges:
            self.session.execute(
                delete(CpCompDepends).where(
                    CpCompDepends.ts_id == edge.ts_key,
                    CpCompDepends.computation_id == edge.comp_id,
                )
            )
            count += 1
        return count

    def delete_for_computations(self, comp_ids: Iterable[int]) -> int:
        ids = list(comp_ids)
        if not ids:
            return 0
        result = self.session.execute(
            delete(CpCompDepends).where(CpCompDepends.computation_id.in_(ids))
        )
        return result.rowcount

    def delete_for_ts(self, ts_key: int) -> int:
        result = self.session.execute(delete(CpCompDepends).where(CpCompDepends.ts_id == ts_key))
        return result.rowcount

    # ------------------------------------------------------------------
    # cp_comp_depends_scratchpad
    # ------------------------------------------------------------------
    def clear_scratchpad(self) -> None:
        self.session.execute(delete(CpCompDependsScratchpad))

    def fill_scratchpad(self, edges: Iterable[CpCompDependsRecord]) -> int:
        rows = _rows(edges)
        if rows:
            self.session.execute(insert(CpCompDependsScratchpad), rows)
        return len(rows)

    def list_scratchpad(self) -> set[CpCompDependsRecord]:
        return {
            CpCompDependsRecord(ts_id, comp_id)
            for ts_id, comp_id in self.session.execute(
                select(CpCompDependsScratchpad.ts_id, CpCompDependsScratchpad.computation_id)
            )
        }
