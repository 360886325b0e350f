"""Tests for the incremental and full-evaluation edge write paths."""

import pytest

from compdepends.core.exceptions import DbIoError
from compdepends.depends.writer import CompDependsWriter, DependsCache, DiffResult
from compdepends.store import CompDependsDAO
from compdepends.tsdb.notify import CpCompDependsRecord as Edge


class TestDependsCache:
    def test_replace_computations(self):
        cache = DependsCache([Edge(1, 10), Edge(2, 10), Edge(1, 20)])
        cache.replace_computations([10], [Edge(3, 10)])
        assert cache.snapshot() == {Edge(3, 10), Edge(1, 20)}

    def test_remove_ts(self):
        cache = DependsCache([Edge(1, 10), Edge(2, 10), Edge(1, 20)])
        cache.remove_ts(1)
        assert list(cache) == [Edge(2, 10)]

    def test_selectors(self):
        cache = DependsCache([Edge(1, 10), Edge(2, 10), Edge(1, 20)])
        assert cache.for_ts(1) == {Edge(1, 10), Edge(1, 20)}
        assert cache.for_computations([20]) == {Edge(1, 20)}


class TestIncremental:
    def test_replace_only_touches_named_computations(self, store, seed):
        seed.insert_edges([Edge(1, 10), Edge(2, 10), Edge(1, 20)])
        writer = CompDependsWriter(store)
        writer.reload_cache()

        inserted = writer.replace_for_computations([10], [Edge(3, 10)])

        assert inserted == 1
        assert seed.edges() == {Edge(3, 10), Edge(1, 20)}
        assert writer.cache.snapshot() == seed.edges()

    def test_empty_edge_set_clears_computation(self, store, seed):
        seed.insert_edges([Edge(1, 10), Edge(1, 20)])
        writer = CompDependsWriter(store)
        writer.replace_for_computations([10], [])
        assert seed.edges() == {Edge(1, 20)}

    def test_edges_for_other_computations_rejected(self, store):
        writer = CompDependsWriter(store)
        with pytest.raises(ValueError):
            writer.replace_for_computations([10], [Edge(1, 11)])

    def test_failure_rolls_back_whole_unit(self, store, seed):
        seed.insert_edges([Edge(1, 10), Edge(1, 20)])
        writer = CompDependsWriter(store)
        writer.reload_cache()

        def boom(session):
            CompDependsDAO(session).insert_edges([Edge(1, 20)])  # duplicate key

        with pytest.raises(DbIoError):
            writer.replace_for_computations([10], [Edge(2, 10)], also=boom)

        assert seed.edges() == {Edge(1, 10), Edge(1, 20)}
        assert writer.cache.snapshot() == {Edge(1, 10), Edge(1, 20)}

    def test_delete_for_ts(self, store, seed):
        seed.insert_edges([Edge(1, 10), Edge(2, 10), Edge(1, 20), Edge(3, 30)])
        writer = CompDependsWriter(store)
        writer.reload_cache()

        writer.delete_for_ts(1, comp_ids=[10])

        assert seed.edges() == {Edge(3, 30)}
        assert writer.cache.snapshot() == {Edge(3, 30)}


class TestFullEval:
    def test_minimal_diff(self, store, seed):
        seed.insert_edges([Edge(1, 10), Edge(2, 10)])
        writer = CompDependsWriter(store)

        result = writer.apply_full_eval({Edge(2, 10), Edge(3, 10)})

        assert result == DiffResult(deleted=1, inserted=1)
        assert seed.edges() == {Edge(2, 10), Edge(3, 10)}

    def test_second_run_is_a_no_op(self, store, seed):
        seed.insert_edges([Edge(1, 10)])
        writer = CompDependsWriter(store)
        desired = {Edge(1, 10), Edge(5, 50)}

        writer.apply_full_eval(desired)
        assert writer.apply_full_eval(desired) == DiffResult(0, 0)

    def test_scratchpad_cleared(self, store):
        writer = CompDependsWriter(store)
        writer.apply_full_eval({Edge(1, 10)})
        with store.transaction() as session:
            assert CompDependsDAO(session).list_scratchpad() == set()
