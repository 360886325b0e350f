"""Time-series group directory.

Reads a group's explicit members, pattern criteria and sub-group
references; persists membership changes.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from compdepends.core.enums import GroupCriteria, SubgroupCombine
from compdepends.core.models import (
    TsGroupCriteriaRecord,
    TsGroupMemberGroup,
    TsGroupMemberTs,
    TsGroupRecord,
    TsIdRecord,
)
from compdepends.core.utils.logging_config import get_logger
from compdepends.store.timeseries_dao import _to_tsid
from compdepends.tsdb.group import SubgroupRef, TsGroup

logger = get_logger("store.group_dao")


class GroupDAO:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_group_ids(self) -> list[int]:
        return list(
            self.session.scalars(select(TsGroupRecord.group_id).order_by(TsGroupRecord.group_id))
        )

    def get_group_by_id(self, group_id: int) -> Optional[TsGroup]:
        """Read a group definition; ``None`` if it no longer exists."""
        rec = self.session.get(TsGroupRecord, group_id)
        if rec is None:
            return None

        members = [
            _to_tsid(ts)
            for ts in self.session.scalars(
                select(TsIdRecord)
                .join(TsGroupMemberTs, TsGroupMemberTs.data_id == TsIdRecord.ts_code)
                .where(TsGroupMemberTs.group_id == group_id)
                .order_by(TsIdRecord.ts_code)
            )
        ]

        criteria: dict[GroupCriteria, list[str]] = {}
        for row in self.session.scalars(
            select(TsGroupCriteriaRecord).where(TsGroupCriteriaRecord.group_id == group_id)
        ):
            try:
                crit = GroupCriteria(row.criteria_type.upper())
            except ValueError:
                logger.warning(
                    "unknown_group_criteria",
                    group_id=group_id,
                    criteria_type=row.criteria_type,
                )
                continue
            criteria.setdefault(crit, []).append(row.criteria_value)

        subgroups: list[SubgroupRef] = []
        for row in self.session.scalars(
            select(TsGroupMemberGroup)
            .where(TsGroupMemberGroup.parent_group_id == group_id)
            .order_by(TsGroupMemberGroup.child_group_id)
        ):
            try:
                combine = SubgroupCombine(row.include_group.upper())
            except ValueError:
                combine = SubgroupCombine.INCLUDE
            subgroups.append(SubgroupRef(row.child_group_id, combine))

        return TsGroup(
            group_id=rec.group_id,
            name=rec.group_name,
            members=members,
            criteria=criteria,
            subgroups=subgroups,
            description=rec.group_description,
        )

    def write_group(self, group: TsGroup) -> TsGroup:
        """Insert or replace a group definition; returns it with its id."""
        rec = self.session.get(TsGroupRecord, group.group_id) if group.group_id is not None else None
        if rec is None:
            rec = TsGroupRecord(group_name=group.name)
            if group.group_id is not None:
                rec.group_id = group.group_id
            self.session.add(rec)
        rec.group_name = group.name
        rec.group_description = group.description
        self.session.flush()
        group.group_id = rec.group_id

        for model, col in (
            (TsGroupMemberTs, TsGroupMemberTs.group_id),
            (TsGroupCriteriaRecord, TsGroupCriteriaRecord.group_id),
            (TsGroupMemberGroup, TsGroupMemberGroup.parent_group_id),
        ):
            self.session.execute(delete(model).where(col == group.group_id))

        if group.members:
            self.session.execute(
                insert(TsGroupMemberTs),
                [{"group_id": group.group_id, "data_id": m.key} for m in group.members],
            )
        crit_rows = [
            {"group_id": group.group_id, "criteria_type": crit.value, "criteria_value": v}
            for crit, values in group.criteria.items()
            for v in values
        ]
        if crit_rows:
            self.session.execute(insert(TsGroupCriteriaRecord), crit_rows)
        if group.subgroups:
            self.session.execute(
                insert(TsGroupMemberGroup),
                [
                    {
                        "parent_group_id": group.group_id,
                        "child_group_id": ref.group_id,
                        "include_group": ref.combine.value,
                    }
                    for ref in group.subgroups
                ],
            )
        return group

    def delete_group(self, group_id: int) -> None:
        for model, col in (
            (TsGroupMemberTs, TsGroupMemberTs.group_id),
            (TsGroupCriteriaRecord, TsGroupCriteriaRecord.group_id),
            (TsGroupMemberGroup, TsGroupMemberGroup.parent_group_id),
            (TsGroupRecord, TsGroupRecord.group_id),
        ):
            self.session.execute(delete(model).where(col == group_id))

    def delete_member_ts(self, group_id: int, ts_key: int) -> int:
        """Remove an explicit time-series member row."""
        result = self.session.execute(
            delete(TsGroupMemberTs).where(
                TsGroupMemberTs.group_id == group_id,
                TsGroupMemberTs.data_id == ts_key,
            )
        )
        return result.rowcount
