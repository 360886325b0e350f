"""Computation directory backed by ``comp``, ``comp_ts_parm`` and ``comp_property``."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from compdepends.core.exceptions import NoSuchObjectError
from compdepends.core.models import CompPropertyRecord, CompTsParmRecord, ComputationRecord
from compdepends.tsdb.computation import DbCompParm, DbComputation


class ComputationDAO:
    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_computation_by_id(self, comp_id: int) -> DbComputation:
        """Read a computation with its parameters and properties.

        Raises:
            NoSuchObjectError: If the computation does not exist.
        """
        rec = self.session.get(ComputationRecord, comp_id)
        if rec is None:
            raise NoSuchObjectError(f"No computation with id={comp_id}")
        return self._load(rec)

    def get_computation_by_name(self, name: str) -> DbComputation:
        rec = self.session.scalar(
            select(ComputationRecord).where(ComputationRecord.computation_name == name)
        )
        if rec is None:
            raise NoSuchObjectError(f"No computation named '{name}'")
        return self._load(rec)

    def _load(self, rec: ComputationRecord) -> DbComputation:
        parm_rows = self.session.scalars(
            select(CompTsParmRecord)
            .where(CompTsParmRecord.computation_id == rec.computation_id)
            .order_by(CompTsParmRecord.parm_index, CompTsParmRecord.algo_role_name)
        )
        parms = [
            DbCompParm(
                role_name=p.algo_role_name,
                parm_type=p.parm_type,
                site_datatype_id=p.site_datatype_id,
                site=p.site_name or "",
                data_type=p.data_type or "",
                param_type=p.param_type or "",
                interval=p.interval or "",
                duration=p.duration or "",
                version=p.version or "",
                table_selector=p.table_selector or "",
                model_id=p.model_id,
            )
            for p in parm_rows
        ]
        props = {
            p.prop_name: p.prop_value
            for p in self.session.scalars(
                select(CompPropertyRecord).where(
                    CompPropertyRecord.computation_id == rec.computation_id
                )
            )
        }
        return DbComputation(
            comp_id=rec.computation_id,
            name=rec.computation_name,
            enabled=bool(rec.enabled),
            app_id=rec.loading_application_id,
            group_id=rec.group_id,
            parms=parms,
            properties=props,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def write_computation(self, comp: DbComputation) -> DbComputation:
        """Insert or update *comp*, replacing its parameters and properties.

        A computation with ``comp_id=None`` is inserted and returned with
        its assigned id.
        """
        rec = self.session.get(ComputationRecord, comp.comp_id) if comp.comp_id is not None else None
        if rec is None:
            rec = ComputationRecord(computation_name=comp.name)
            if comp.comp_id is not None:
                rec.computation_id = comp.comp_id
            self.session.add(rec)
        rec.computation_name = comp.name
        rec.enabled = comp.enabled
        rec.loading_application_id = comp.app_id
        rec.group_id = comp.group_id
        self.session.flush()
        comp.comp_id = rec.computation_id

        self.session.execute(
            delete(CompTsParmRecord).where(CompTsParmRecord.computation_id == comp.comp_id)
        )
        self.session.execute(
            delete(CompPropertyRecord).where(CompPropertyRecord.computation_id == comp.comp_id)
        )
        parm_rows = [
            {
                "computation_id": comp.comp_id,
                "algo_role_name": parm.role_name,
                "parm_index": idx,
                "parm_type": parm.parm_type,
                "site_datatype_id": parm.site_datatype_id,
                "site_name": parm.site or None,
                "data_type": parm.data_type or None,
                "param_type": parm.param_type or None,
                "interval": parm.interval or None,
                "duration": parm.duration or None,
                "version": parm.version or None,
                "table_selector": parm.table_selector or None,
                "model_id": parm.model_id,
            }
            for idx, parm in enumerate(comp.parms)
        ]
        if parm_rows:
            self.session.execute(insert(CompTsParmRecord), parm_rows)
        prop_rows = [
            {"computation_id": comp.comp_id, "prop_name": name, "prop_value": value}
            for name, value in comp.properties.items()
        ]
        if prop_rows:
            self.session.execute(insert(CompPropertyRecord), prop_rows)
        return comp

    def delete_computation(self, comp_id: int) -> None:
        self.session.execute(
            delete(CompTsParmRecord).where(CompTsParmRecord.computation_id == comp_id)
        )
        self.session.execute(
            delete(CompPropertyRecord).where(CompPropertyRecord.computation_id == comp_id)
        )
        self.session.execute(
            delete(ComputationRecord).where(ComputationRecord.computation_id == comp_id)
        )

    def disable_computation(
        self,
        comp_id: int,
        unbind_roles: Iterable[str] = (),
        clear_group: bool = False,
    ) -> None:
        """Clear the enabled flag without rewriting the stored definition.

        Each role in *unbind_roles* loses its ``site_datatype_id``; with
        *clear_group* the group binding is dropped too.
        """
        values: dict = {"enabled": False}
        if clear_group:
            values["group_id"] = None
        self.session.execute(
            update(ComputationRecord)
            .where(ComputationRecord.computation_id == comp_id)
            .values(**values)
        )
        roles = sorted(set(unbind_roles))
        if roles:
            self.session.execute(
                update(CompTsParmRecord)
                .where(
                    CompTsParmRecord.computation_id == comp_id,
                    CompTsParmRecord.algo_role_name.in_(roles),
                )
                .values(site_datatype_id=None)
            )
