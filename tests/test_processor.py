"""Tests for notification processing against an in-memory store.

Each test seeds the store, refreshes the processor's caches and then feeds
notifications directly to ``NotificationProcessor.process``.
"""

from dataclasses import dataclass
from unittest.mock import patch

import pytest

from compdepends.core.enums import GroupCriteria, ProcessorState
from compdepends.core.exceptions import DbIoError
from compdepends.depends.processor import NotificationProcessor
from compdepends.store import ComputationDAO, GroupDAO
from compdepends.tsdb import (
    CompModified,
    CpDependsNotify,
    DbCompParm,
    FullEval,
    GroupModified,
    SubgroupRef,
    TsCreated,
    TsDeleted,
    TsModified,
)
from compdepends.tsdb.notify import CpCompDependsRecord as Edge


@pytest.fixture
def processor(store):
    return NotificationProcessor(store, key_is_sdi=True)


def _ready(processor):
    processor.refresh_caches()
    return processor


def _update_group(store, group):
    with store.transaction() as session:
        GroupDAO(session).write_group(group)


def _update_comp(store, comp):
    with store.transaction() as session:
        ComputationDAO(session).write_computation(comp)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
class TestDispatch:
    def test_duplicate_suppressed(self, processor, seed):
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=1)])
        _ready(processor)

        assert processor.process(CompModified(key=comp.comp_id)) is True
        assert processor.process(CompModified(key=comp.comp_id)) is False
        assert processor.done == 1
        assert processor.status == "Done=1, Errs=0"

    def test_same_key_different_kind_not_duplicate(self, processor, seed):
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=1)])
        _ready(processor)
        processor.process(CompModified(key=comp.comp_id))
        assert processor.process(GroupModified(key=comp.comp_id)) is True

    def test_unhandled_class_raises(self, processor):
        @dataclass(frozen=True)
        class Bogus(CpDependsNotify):
            pass

        with pytest.raises(TypeError):
            processor.process(Bogus(key=1))

    def test_store_error_counted(self, processor, seed):
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=1)])
        _ready(processor)
        with patch.object(
            processor.writer, "replace_for_computations", side_effect=DbIoError("down")
        ):
            assert processor.process(CompModified(key=comp.comp_id)) is False
        assert processor.status == "Done=0, Errs=1"
        assert processor.state == ProcessorState.IDLE

    def test_failed_notification_not_treated_as_duplicate(self, processor, seed):
        a = seed.tsid("SiteA.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=a.key)])
        _ready(processor)
        with patch.object(
            processor.writer, "replace_for_computations", side_effect=DbIoError("down")
        ):
            processor.process(CompModified(key=comp.comp_id))

        assert processor.process(CompModified(key=comp.comp_id)) is True
        assert seed.edges() == {Edge(a.key, comp.comp_id)}


# ---------------------------------------------------------------------------
# Full evaluation
# ---------------------------------------------------------------------------
class TestFullEval:
    def test_builds_edges_and_is_idempotent(self, processor, seed, store):
        a = seed.tsid("SiteA.Stage")
        b = seed.tsid("SiteB.Stage")
        grp = seed.group("G", members=[a, b])
        single = seed.computation("Single", [DbCompParm("in", site_datatype_id=a.key)])
        grouped = seed.computation("Grouped", [DbCompParm("in")], group_id=grp.group_id)
        seed.computation("Off", [DbCompParm("in", site_datatype_id=b.key)], enabled=False)
        seed.insert_edges([Edge(99, single.comp_id)])

        assert processor.process(FullEval()) is True
        expected = {
            Edge(a.key, single.comp_id),
            Edge(a.key, grouped.comp_id),
            Edge(b.key, grouped.comp_id),
        }
        assert seed.edges() == expected

        processor.process(CompModified(key=12345))
        with patch.object(
            processor.writer, "apply_full_eval", wraps=processor.writer.apply_full_eval
        ) as spy:
            processor.process(FullEval())
        assert spy.call_args.args[0] == expected
        assert seed.edges() == expected
        assert processor.done == 3

    def test_direct_run_does_not_suppress_queued_request(self, processor, seed):
        seed.computation("C", [DbCompParm("in", site_datatype_id=1)])

        assert processor.full_eval() is True
        assert processor.done == 0
        assert processor.process(FullEval()) is True
        assert processor.done == 1

    def test_failure_refreshes_caches(self, processor, seed):
        seed.computation("C", [DbCompParm("in", site_datatype_id=1)])
        _ready(processor)
        processor.stale = True
        with patch.object(processor.writer, "apply_full_eval", side_effect=DbIoError("down")):
            assert processor.full_eval() is False
        assert processor.errs == 1
        assert processor.stale is False


# ---------------------------------------------------------------------------
# Time-series events
# ---------------------------------------------------------------------------
class TestTsDeleted:
    def test_delete_propagates_and_disables(self, processor, seed, store):
        x = seed.tsid("SiteX.Stage")
        y = seed.tsid("SiteY.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=x.key)])
        other = seed.computation("Other", [DbCompParm("in", site_datatype_id=y.key)])
        _ready(processor).process(FullEval())

        processor.process(TsDeleted(key=x.key))

        assert all(e.ts_key != x.key for e in seed.edges())
        assert seed.edges() == {Edge(y.key, other.comp_id)}
        stored = seed.load_computation(comp.comp_id)
        assert stored.enabled is False
        assert stored.get_parm("in").site_datatype_id is None
        assert comp.comp_id not in processor.comp_cache
        assert x.key not in processor.tsid_cache

    def test_failed_delete_rolls_back_and_can_be_redelivered(self, processor, seed):
        x = seed.tsid("SiteX.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=x.key)])
        _ready(processor).process(FullEval())

        with patch.object(
            ComputationDAO, "disable_computation", side_effect=DbIoError("down")
        ):
            assert processor.process(TsDeleted(key=x.key)) is False

        assert processor.status == "Done=1, Errs=1"
        assert seed.edges() == {Edge(x.key, comp.comp_id)}
        assert seed.load_computation(comp.comp_id).enabled is True
        cached = processor.comp_cache.get(comp.comp_id)
        assert cached.enabled is True
        assert cached.get_parm("in").site_datatype_id == x.key
        assert x.key in processor.tsid_cache

        assert processor.process(TsDeleted(key=x.key)) is True
        assert seed.edges() == set()
        assert seed.load_computation(comp.comp_id).enabled is False
        assert comp.comp_id not in processor.comp_cache

    def test_disable_keeps_stored_definition(self, processor, seed):
        x = seed.tsid("SiteX.Stage")
        comp = seed.computation(
            "C",
            [DbCompParm("in", site_datatype_id=x.key), DbCompParm("out", parm_type="o")],
            properties={"note": "kept"},
        )
        _ready(processor)
        assert processor.comp_cache.get(comp.comp_id).get_parm("in").site == "SiteX"

        processor.process(TsDeleted(key=x.key))

        stored = seed.load_computation(comp.comp_id)
        parm = stored.get_parm("in")
        assert parm.site_datatype_id is None
        assert parm.site == ""
        assert parm.data_type == ""
        assert stored.get_parm("out") is not None
        assert stored.properties == {"note": "kept"}

    def test_ignore_missing_keeps_computation(self, processor, seed):
        x = seed.tsid("SiteX.Stage")
        y = seed.tsid("SiteY.Stage")
        comp = seed.computation(
            "Tolerant",
            [
                DbCompParm("in1", site_datatype_id=x.key),
                DbCompParm("in2", site_datatype_id=y.key),
            ],
            properties={"in1_MISSING": "ignore"},
        )
        _ready(processor).process(FullEval())

        processor.process(TsDeleted(key=x.key))

        assert seed.edges() == {Edge(y.key, comp.comp_id)}
        assert seed.load_computation(comp.comp_id).enabled is True
        assert comp.comp_id in processor.comp_cache

    def test_explicit_group_member_row_removed(self, processor, seed):
        x = seed.tsid("SiteX.Stage")
        y = seed.tsid("SiteY.Stage")
        grp = seed.group("G", members=[x, y])
        _ready(processor)

        processor.process(TsDeleted(key=x.key))

        assert [m.key for m in seed.load_group(grp.group_id).members] == [y.key]
        assert processor.group_cache.get(grp.group_id).expanded_keys() == {y.key}


class TestTsCreated:
    def test_new_series_joins_criteria_group(self, processor, seed):
        a = seed.tsid("SiteA.Stage")
        grp = seed.group("ByCrit", criteria={GroupCriteria.SITE: ["SiteA"]})
        comp = seed.computation("C", [DbCompParm("in")], group_id=grp.group_id)
        _ready(processor).process(FullEval())
        assert seed.edges() == {Edge(a.key, comp.comp_id)}

        b = seed.tsid("SiteA.Flow")
        processor.process(TsCreated(key=b.key))

        assert seed.edges() == {Edge(a.key, comp.comp_id), Edge(b.key, comp.comp_id)}
        assert b.key in processor.group_cache.get(grp.group_id).expanded_keys()

    def test_new_series_bound_by_key(self, processor, seed):
        comp = seed.computation("Waiting", [DbCompParm("in", site_datatype_id=42)])
        _ready(processor)

        seed.tsid("SiteN.Stage", key=42)
        processor.process(TsCreated(key=42))

        assert seed.edges() == {Edge(42, comp.comp_id)}

    def test_unrelated_series_writes_nothing(self, processor, seed):
        seed.computation("C", [DbCompParm("in", site_datatype_id=1)])
        _ready(processor)
        seed.tsid("Lonely.Stage", key=7)
        with patch.object(processor.writer, "replace_for_computations") as write:
            processor.process(TsCreated(key=7))
        write.assert_not_called()

    def test_missing_series_treated_as_deleted(self, processor, seed):
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=5)])
        seed.insert_edges([Edge(77, comp.comp_id)])
        _ready(processor)

        assert processor.process(TsCreated(key=77)) is True
        assert seed.edges() == set()

    def test_modified_is_delete_then_create(self, processor, seed):
        a = seed.tsid("SiteA.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=a.key)], properties={"in_MISSING": "IGNORE"})
        _ready(processor).process(FullEval())

        processor.process(TsModified(key=a.key))

        assert a.key in processor.tsid_cache
        assert seed.load_computation(comp.comp_id).enabled is True


# ---------------------------------------------------------------------------
# Computation and group events
# ---------------------------------------------------------------------------
class TestCompModified:
    def test_new_computation_evaluated(self, processor, seed):
        a = seed.tsid("SiteA.Stage")
        _ready(processor)
        comp = seed.computation("Late", [DbCompParm("in", site_datatype_id=a.key)])

        processor.process(CompModified(key=comp.comp_id))

        assert seed.edges() == {Edge(a.key, comp.comp_id)}
        assert comp.comp_id in processor.comp_cache

    def test_disabled_computation_loses_edges(self, processor, seed, store):
        a = seed.tsid("SiteA.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=a.key)])
        _ready(processor).process(FullEval())

        comp.enabled = False
        _update_comp(store, comp)
        processor.process(CompModified(key=comp.comp_id))

        assert seed.edges() == set()
        assert comp.comp_id not in processor.comp_cache

    def test_deleted_computation_loses_edges(self, processor, seed, store):
        a = seed.tsid("SiteA.Stage")
        comp = seed.computation("C", [DbCompParm("in", site_datatype_id=a.key)])
        _ready(processor).process(FullEval())

        with store.transaction() as session:
            ComputationDAO(session).delete_computation(comp.comp_id)
        assert processor.process(CompModified(key=comp.comp_id)) is True

        assert seed.edges() == set()


class TestGroupModified:
    def test_parent_reevaluated_when_subgroup_changes(self, processor, seed, store):
        a = seed.tsid("SiteA.Stage")
        b = seed.tsid("SiteB.Stage")
        sub = seed.group("Sub", members=[a])
        parent = seed.group("Parent", subgroups=[SubgroupRef(sub.group_id)])
        comp = seed.computation("C", [DbCompParm("in")], group_id=parent.group_id)
        _ready(processor).process(FullEval())
        assert seed.edges() == {Edge(a.key, comp.comp_id)}

        sub.members = [a, b]
        _update_group(store, sub)
        processor.process(GroupModified(key=sub.group_id))

        assert processor.group_cache.get(parent.group_id).expanded_keys() == {a.key, b.key}
        assert seed.edges() == {Edge(a.key, comp.comp_id), Edge(b.key, comp.comp_id)}

    def test_deleted_group_disables_bound_computations(self, processor, seed, store):
        a = seed.tsid("SiteA.Stage")
        grp = seed.group("Doomed", members=[a])
        comp = seed.computation("C", [DbCompParm("in")], group_id=grp.group_id)
        keep = seed.computation("Keep", [DbCompParm("in", site_datatype_id=a.key)])
        _ready(processor).process(FullEval())

        with store.transaction() as session:
            GroupDAO(session).delete_group(grp.group_id)
        processor.process(GroupModified(key=grp.group_id))

        stored = seed.load_computation(comp.comp_id)
        assert stored.enabled is False
        assert stored.group_id is None
        assert seed.edges() == {Edge(a.key, keep.comp_id)}
        assert grp.group_id not in processor.group_cache
