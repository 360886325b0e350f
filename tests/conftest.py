"""Root pytest configuration and shared fixtures.

Provides common test fixtures used across all test modules:
- store: in-memory SQLite TsdbStore with the full schema created
- seed: StoreSeeder writing time series, computations, groups and
  notifications into that store
- make_tsid / make_parm: small builders for in-memory domain objects
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import pytest

from compdepends.core.enums import GroupCriteria
from compdepends.store import (
    CompAppInfo,
    CompDependsDAO,
    ComputationDAO,
    GroupDAO,
    LoadingAppDAO,
    NotifyDAO,
    TimeSeriesDAO,
    TsdbStore,
)
from compdepends.tsdb import (
    CpCompDependsRecord,
    CpDependsNotify,
    DbCompParm,
    DbComputation,
    SubgroupRef,
    TimeSeriesIdentifier,
    TsGroup,
)


class StoreSeeder:
    """Write fixture objects into a TsdbStore, one transaction each."""

    def __init__(self, store: TsdbStore) -> None:
        self.store = store

    def tsid(self, unique: str, key: Optional[int] = None) -> TimeSeriesIdentifier:
        with self.store.transaction() as session:
            return TimeSeriesDAO(session).create_tsid(
                TimeSeriesIdentifier.from_unique_string(unique, key=key)
            )

    def app(self, name: str = "compdepends") -> CompAppInfo:
        with self.store.transaction() as session:
            return LoadingAppDAO(session).create_computation_app(name)

    def computation(
        self,
        name: str,
        parms: Iterable[DbCompParm],
        group_id: Optional[int] = None,
        enabled: bool = True,
        properties: Optional[dict[str, str]] = None,
        app_id: Optional[int] = None,
    ) -> DbComputation:
        comp = DbComputation(
            comp_id=None,
            name=name,
            enabled=enabled,
            app_id=app_id,
            group_id=group_id,
            parms=list(parms),
            properties=dict(properties or {}),
        )
        with self.store.transaction() as session:
            return ComputationDAO(session).write_computation(comp)

    def group(
        self,
        name: str,
        members: Iterable[TimeSeriesIdentifier] = (),
        criteria: Optional[dict[GroupCriteria, list[str]]] = None,
        subgroups: Iterable[SubgroupRef] = (),
    ) -> TsGroup:
        group = TsGroup(
            group_id=None,
            name=name,
            members=list(members),
            criteria=dict(criteria or {}),
            subgroups=list(subgroups),
        )
        with self.store.transaction() as session:
            return GroupDAO(session).write_group(group)

    def notify(self, *notifies: CpDependsNotify) -> None:
        with self.store.transaction() as session:
            dao = NotifyDAO(session)
            for n in notifies:
                dao.enqueue(n)

    def edges(self) -> set[CpCompDependsRecord]:
        with self.store.transaction() as session:
            return CompDependsDAO(session).list_edges()

    def insert_edges(self, edges: Iterable[CpCompDependsRecord]) -> None:
        with self.store.transaction() as session:
            CompDependsDAO(session).insert_edges(edges)

    def load_computation(self, comp_id: int) -> DbComputation:
        with self.store.transaction() as session:
            return ComputationDAO(session).get_computation_by_id(comp_id)

    def load_group(self, group_id: int) -> Optional[TsGroup]:
        with self.store.transaction() as session:
            return GroupDAO(session).get_group_by_id(group_id)


@pytest.fixture
def store() -> Any:
    """In-memory store with every table created."""
    s = TsdbStore("sqlite://")
    s.create_schema()
    yield s
    s.close()


@pytest.fixture
def seed(store: TsdbStore) -> StoreSeeder:
    return StoreSeeder(store)


@pytest.fixture
def make_tsid() -> Any:
    """Return a builder: ``make_tsid("SiteA.Stage", key=1)``."""

    def _make(unique: str, key: Optional[int] = None) -> TimeSeriesIdentifier:
        return TimeSeriesIdentifier.from_unique_string(unique, key=key)

    return _make


@pytest.fixture
def make_parm() -> Any:
    """Return a builder for input parms: ``make_parm("in", data_type="Stage")``."""

    def _make(role: str = "input", parm_type: str = "i", **fields: Any) -> DbCompParm:
        return DbCompParm(role_name=role, parm_type=parm_type, **fields)

    return _make
