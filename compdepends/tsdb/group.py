"""Time-series group definitions.

A group's membership is the union of its explicit members and every known
TSID its pattern criteria select, then combined with sub-groups by
include (union), exclude (difference) and intersect.  The expanded list is
derived state maintained by ``compdepends.groups.expansion``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from compdepends.core.enums import GroupCriteria, SubgroupCombine
from compdepends.tsdb.tsid import TimeSeriesIdentifier

_CRITERIA_FIELDS = {
    GroupCriteria.SITE: "site",
    GroupCriteria.DATA_TYPE: "data_type",
    GroupCriteria.PARAM_TYPE: "param_type",
    GroupCriteria.INTERVAL: "interval",
    GroupCriteria.DURATION: "duration",
    GroupCriteria.VERSION: "version",
}


@dataclass(frozen=True)
class SubgroupRef:
    group_id: int
    combine: SubgroupCombine = SubgroupCombine.INCLUDE


@dataclass
class TsGroup:
    group_id: int
    name: str
    members: list[TimeSeriesIdentifier] = field(default_factory=list)
    criteria: dict[GroupCriteria, list[str]] = field(default_factory=dict)
    subgroups: list[SubgroupRef] = field(default_factory=list)
    description: Optional[str] = None
    expanded: list[TimeSeriesIdentifier] = field(default_factory=list, compare=False)

    @property
    def key(self) -> int:
        return self.group_id

    @property
    def unique_name(self) -> str:
        return self.name

    @property
    def has_criteria(self) -> bool:
        return any(values for values in self.criteria.values())

    def refers_to(self, group_id: int) -> bool:
        """True if *group_id* is a direct sub-group of this group."""
        return any(ref.group_id == group_id for ref in self.subgroups)

    def matches_criteria(self, tsid: TimeSeriesIdentifier) -> bool:
        """True if every non-empty criteria list contains the TSID's part.

        A group without criteria selects nothing by pattern.
        """
        if not self.has_criteria:
            return False
        for crit, values in self.criteria.items():
            if not values:
                continue
            part = tsid.part(_CRITERIA_FIELDS[crit]).lower()
            if part not in {v.lower() for v in values}:
                return False
        return True

    def is_explicit_member(self, ts_key: int) -> bool:
        return any(m.key == ts_key for m in self.members)

    def remove_member(self, ts_key: int) -> bool:
        """Drop an explicit member; return True if it was present."""
        before = len(self.members)
        self.members = [m for m in self.members if m.key != ts_key]
        return len(self.members) != before

    def remove_expanded(self, ts_key: int) -> bool:
        """Drop a TSID from the expanded list; return True if it was present."""
        before = len(self.expanded)
        self.expanded = [m for m in self.expanded if m.key != ts_key]
        return len(self.expanded) != before

    def expanded_keys(self) -> set[int]:
        return {m.key for m in self.expanded if m.key is not None}

    def __str__(self) -> str:
        return f"{self.group_id}:{self.name}"
