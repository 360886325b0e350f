"""Tests for the time-series, computation, group and notification DAOs."""

from datetime import datetime, timezone

import pytest

from compdepends.core.enums import GroupCriteria, SubgroupCombine
from compdepends.core.exceptions import NoSuchObjectError
from compdepends.core.models import CpDependsNotifyRecord
from compdepends.store import ComputationDAO, GroupDAO, NotifyDAO, TimeSeriesDAO
from compdepends.tsdb import (
    CompModified,
    DbCompParm,
    FullEval,
    GroupModified,
    SubgroupRef,
    TsCreated,
)


class TestTimeSeriesDAO:
    def test_create_and_read(self, store, seed):
        tsid = seed.tsid("SiteA.Stage.Inst.1Hour.0.raw")
        with store.transaction() as session:
            dao = TimeSeriesDAO(session)
            loaded = dao.get_tsid(tsid.key)
            by_name = dao.get_tsid_by_unique_name("sitea.stage.inst.1hour.0.raw")
        assert loaded.unique_string == "SiteA.Stage.Inst.1Hour.0.raw"
        assert by_name == loaded

    def test_explicit_key_kept(self, seed):
        assert seed.tsid("SiteA.Stage", key=500).key == 500

    def test_missing_key_raises(self, store):
        with store.transaction() as session:
            with pytest.raises(NoSuchObjectError):
                TimeSeriesDAO(session).get_tsid(404)

    def test_list_and_delete(self, store, seed):
        a = seed.tsid("SiteA.Stage")
        b = seed.tsid("SiteB.Stage")
        with store.transaction() as session:
            assert TimeSeriesDAO(session).delete_tsid(a.key) == 1
        with store.transaction() as session:
            assert [t.key for t in TimeSeriesDAO(session).list_tsids()] == [b.key]


class TestComputationDAO:
    def test_round_trip(self, seed):
        comp = seed.computation(
            "Rating",
            [
                DbCompParm("stage", site_datatype_id=7, interval="1Hour"),
                DbCompParm("flow", parm_type="o", data_type="Flow"),
            ],
            group_id=3,
            properties={"stage_MISSING": "PREV"},
        )
        loaded = seed.load_computation(comp.comp_id)

        assert loaded.name == "Rating"
        assert loaded.group_id == 3
        assert [p.role_name for p in loaded.parms] == ["stage", "flow"]
        assert loaded.get_parm("stage").site_datatype_id == 7
        assert loaded.get_parm("flow").is_output
        assert loaded.properties == {"stage_MISSING": "PREV"}

    def test_rewrite_replaces_parms(self, store, seed):
        comp = seed.computation("C", [DbCompParm("a"), DbCompParm("b")])
        comp.parms = [DbCompParm("c")]
        with store.transaction() as session:
            ComputationDAO(session).write_computation(comp)
        assert [p.role_name for p in seed.load_computation(comp.comp_id).parms] == ["c"]

    def test_disable_touches_only_flag_and_bindings(self, store, seed):
        comp = seed.computation(
            "C",
            [
                DbCompParm("a", site_datatype_id=7, interval="1Hour"),
                DbCompParm("b", site_datatype_id=8),
            ],
            group_id=3,
            properties={"a_MISSING": "FAIL"},
        )
        with store.transaction() as session:
            ComputationDAO(session).disable_computation(comp.comp_id, ["a"], clear_group=True)

        loaded = seed.load_computation(comp.comp_id)
        assert loaded.enabled is False
        assert loaded.group_id is None
        assert loaded.get_parm("a").site_datatype_id is None
        assert loaded.get_parm("a").interval == "1Hour"
        assert loaded.get_parm("b").site_datatype_id == 8
        assert loaded.properties == {"a_MISSING": "FAIL"}

    def test_lookup_by_name_and_delete(self, store, seed):
        comp = seed.computation("Named", [DbCompParm("in")])
        with store.transaction() as session:
            dao = ComputationDAO(session)
            assert dao.get_computation_by_name("Named").comp_id == comp.comp_id
            dao.delete_computation(comp.comp_id)
        with store.transaction() as session:
            with pytest.raises(NoSuchObjectError):
                ComputationDAO(session).get_computation_by_id(comp.comp_id)


class TestGroupDAO:
    def test_round_trip(self, store, seed):
        a = seed.tsid("SiteA.Stage")
        sub = seed.group("Sub")
        grp = seed.group(
            "Basin",
            members=[a],
            criteria={GroupCriteria.SITE: ["SiteA", "SiteB"]},
            subgroups=[SubgroupRef(sub.group_id, SubgroupCombine.EXCLUDE)],
        )
        loaded = seed.load_group(grp.group_id)

        assert loaded.name == "Basin"
        assert [m.key for m in loaded.members] == [a.key]
        assert sorted(loaded.criteria[GroupCriteria.SITE]) == ["SiteA", "SiteB"]
        assert loaded.subgroups == [SubgroupRef(sub.group_id, SubgroupCombine.EXCLUDE)]

        with store.transaction() as session:
            assert GroupDAO(session).list_group_ids() == [sub.group_id, grp.group_id]

    def test_delete_group_and_member(self, store, seed):
        a = seed.tsid("SiteA.Stage")
        grp = seed.group("G", members=[a])
        with store.transaction() as session:
            assert GroupDAO(session).delete_member_ts(grp.group_id, a.key) == 1
        assert seed.load_group(grp.group_id).members == []

        with store.transaction() as session:
            GroupDAO(session).delete_group(grp.group_id)
        assert seed.load_group(grp.group_id) is None


class TestNotifyDAO:
    def test_pops_oldest_first(self, store, seed):
        seed.notify(TsCreated(key=5), FullEval(), CompModified(key=3))
        with store.transaction() as session:
            dao = NotifyDAO(session)
            assert dao.pending_count() == 3
            first = dao.next_notify()
            second = dao.next_notify()
            third = dao.next_notify()
            assert dao.next_notify() is None

        assert first == TsCreated(key=5)
        assert isinstance(second, FullEval) and second.key is None
        assert third == CompModified(key=3)

    def test_rows_deleted_when_read(self, store, seed):
        seed.notify(GroupModified(key=1))
        with store.transaction() as session:
            NotifyDAO(session).next_notify()
        with store.transaction() as session:
            assert NotifyDAO(session).pending_count() == 0

    def test_unknown_event_type_discarded(self, store, seed):
        with store.transaction() as session:
            session.add(
                CpDependsNotifyRecord(
                    event_type="X", key=1, date_time_loaded=datetime.now(timezone.utc)
                )
            )
        seed.notify(GroupModified(key=2))

        with store.transaction() as session:
            assert NotifyDAO(session).next_notify() == GroupModified(key=2)
