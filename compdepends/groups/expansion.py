"""Group expansion engine.

Expands group definitions into flat, de-duplicated TSID lists and keeps
the expansions current as groups and time series change.

Expansion of a group is a depth-first walk over its sub-group graph:

    base      = explicit members + every cached TSID the criteria select
    expanded  = (base | includes...) - excludes... & intersects...

Two guards keep the walk finite and correct:

- ``path``: ids of the groups on the current DFS path, passed by value.
  A sub-group already on the path closes a cycle; it is logged and its
  combine step is skipped (it contributes nothing).
- ``memo``: completed expansions for this top-level call.  A sub-group
  reachable along several paths (a diamond, not a cycle) is expanded once
  and its full result reused on every path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from compdepends.cache.tsid_cache import TsIdCache
from compdepends.core.enums import SubgroupCombine
from compdepends.core.utils.logging_config import get_logger
from compdepends.tsdb.group import SubgroupRef, TsGroup
from compdepends.tsdb.tsid import TimeSeriesIdentifier

logger = get_logger("groups.expansion")

_Members = dict[int, TimeSeriesIdentifier]


class TsGroupCache:
    """In-memory cache of group definitions and their expanded lists.

    Args:
        tsid_cache: Source of every known TSID for criteria matching.
        dump_dir: Optional directory receiving a text dump of each group's
            expansion (diagnostics only; never read back).
    """

    def __init__(self, tsid_cache: TsIdCache, dump_dir: Optional[Path] = None) -> None:
        self.tsid_cache = tsid_cache
        self.dump_dir = dump_dir
        self._groups: dict[int, TsGroup] = {}

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------
    def add(self, group: TsGroup) -> None:
        """Add or replace a group definition (not expanded)."""
        self._groups[group.group_id] = group

    def remove_by_id(self, group_id: int) -> Optional[TsGroup]:
        return self._groups.pop(group_id, None)

    def get(self, group_id: Optional[int]) -> Optional[TsGroup]:
        if group_id is None:
            return None
        return self._groups.get(group_id)

    def groups(self) -> list[TsGroup]:
        return [self._groups[gid] for gid in sorted(self._groups)]

    def clear(self) -> None:
        self._groups.clear()

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._groups

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------
    def expand(self, group: TsGroup) -> list[TimeSeriesIdentifier]:
        """Recompute and store *group*'s expanded list."""
        members = self._expand(group, frozenset(), {})
        group.expanded = list(members.values())
        logger.debug("group_expanded", group=str(group), size=len(group.expanded))
        self._dump(group)
        return group.expanded

    def eval_all(self) -> None:
        """Expand every cached group."""
        for group in self.groups():
            self.expand(group)

    def _expand(
        self, group: TsGroup, path: frozenset[int], memo: dict[int, _Members]
    ) -> _Members:
        if group.group_id in memo:
            return memo[group.group_id]
        path = path | {group.group_id}

        result: _Members = {}
        for member in group.members:
            if member.key is None:
                continue
            result[member.key] = self.tsid_cache.get_by_key(member.key) or member
        if group.has_criteria:
            for tsid in self.tsid_cache:
                if tsid.key not in result and group.matches_criteria(tsid):
                    result[tsid.key] = tsid

        for ref in group.subgroups:
            if ref.combine != SubgroupCombine.INCLUDE:
                continue
            sub = self._sub_expansion(group, ref, path, memo)
            if sub is not None:
                for key, tsid in sub.items():
                    result.setdefault(key, tsid)

        for ref in group.subgroups:
            if ref.combine != SubgroupCombine.EXCLUDE:
                continue
            sub = self._sub_expansion(group, ref, path, memo)
            if sub is not None:
                for key in sub:
                    result.pop(key, None)

        for ref in group.subgroups:
            if ref.combine != SubgroupCombine.INTERSECT:
                continue
            sub = self._sub_expansion(group, ref, path, memo)
            if sub is not None:
                result = {key: tsid for key, tsid in result.items() if key in sub}

        memo[group.group_id] = result
        return result

    def _sub_expansion(
        self,
        parent: TsGroup,
        ref: SubgroupRef,
        path: frozenset[int],
        memo: dict[int, _Members],
    ) -> Optional[_Members]:
        """Expansion of a sub-group, or None if it is on the path or unknown."""
        if ref.group_id in path:
            logger.warning(
                "group_cycle_detected",
                group=str(parent),
                subgroup_id=ref.group_id,
                combine=ref.combine.name,
                path=sorted(path),
            )
            return None
        sub = self._groups.get(ref.group_id)
        if sub is None:
            logger.warning(
                "subgroup_not_in_cache",
                group=str(parent),
                subgroup_id=ref.group_id,
            )
            return None
        return self._expand(sub, path, memo)

    # ------------------------------------------------------------------
    # Change propagation
    # ------------------------------------------------------------------
    def evaluate_parents(self, group_id: int) -> set[int]:
        """Re-expand every group that transitively references *group_id*.

        Returns:
            The affected group ids: *group_id* itself plus every direct or
            transitive parent (include, exclude or intersect).
        """
        affected = {group_id}
        queue = [group_id]
        while queue:
            child_id = queue.pop(0)
            for parent in self.groups():
                if parent.group_id not in affected and parent.refers_to(child_id):
                    affected.add(parent.group_id)
                    queue.append(parent.group_id)

        for gid in sorted(affected - {group_id}):
            self.expand(self._groups[gid])
        if len(affected) > 1:
            logger.info(
                "parent_groups_reevaluated",
                group_id=group_id,
                parents=sorted(affected - {group_id}),
            )
        return affected

    def check_group_membership(self, tsid: TimeSeriesIdentifier) -> set[int]:
        """Fold a newly created TSID into every group that could include it.

        Returns:
            Ids of every group whose expansion may have changed.
        """
        changed = [
            g
            for g in self.groups()
            if g.matches_criteria(tsid) or (tsid.key is not None and g.is_explicit_member(tsid.key))
        ]
        affected: set[int] = set()
        for group in changed:
            self.expand(group)
            affected |= self.evaluate_parents(group.group_id)
        return affected

    def remove_tsid(self, ts_key: int) -> list[TsGroup]:
        """Remove a deleted TSID from every expanded list.

        Returns:
            Groups for which the TSID was an explicit member; the member is
            removed from their definition and the caller must delete the
            persisted membership row.
        """
        explicit: list[TsGroup] = []
        for group in self.groups():
            group.remove_expanded(ts_key)
            if group.remove_member(ts_key):
                explicit.append(group)
        return explicit

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def _dump(self, group: TsGroup) -> None:
        if self.dump_dir is None:
            return
        path = self.dump_dir / f"group-{group.group_id}.txt"
        try:
            with path.open("w", encoding="utf-8") as f:
                f.write(f"# {group.name} ({len(group.expanded)} members)\n")
                for tsid in group.expanded:
                    f.write(f"{tsid}\n")
        except OSError as exc:
            logger.warning("group_dump_failed", path=str(path), error=str(exc))
