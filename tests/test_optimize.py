"""Tests for the optimization pipeline (ordering, counts, partial failure)."""
import pytest

from kcurator.cache import SearchCache
from kcurator.errors import OptimizationError
from kcurator.optimize import STEPS, Optimizer
from kcurator.search import SearchCoordinator

from conftest import LONG, FakeClock, RecordingStore, StubAnalyzer, make

GOOD = "kubernetes pod autoscaling with custom metrics adapters and sensible limits"
BAD = "postgres vacuum tuning thresholds for write heavy tables in production"


@pytest.fixture
def store():
    return RecordingStore([
        make(LONG, score=8),
        make(LONG + " Really.", score=6),
        make(BAD, score=1),
        make(GOOD, score=9),
    ])


def _optimizer(store, analyzer=None):
    clock = FakeClock()
    search = SearchCoordinator(store, SearchCache(clock=clock))
    search.search("docker", 10)
    return Optimizer(store, analyzer or StubAnalyzer(default=7), search, clock=clock), search


class TestOptimizer:
    def test_full_run_counts(self, store):
        opt, search = _optimizer(store)
        report = opt.run()
        assert report.completed is True
        assert [s.name for s in report.steps] == list(STEPS)
        assert report.count("remove_duplicates") == 1
        assert report.count("archive_low_quality") == 1
        assert report.count("recalculate_scores") == 2
        assert report.count("clear_cache") == 1
        assert search.cache.size == 0

    def test_duplicate_keeper_is_highest_relevance(self, store):
        opt, _ = _optimizer(store)
        opt.run()
        contents = {a.content for a in store.all()}
        assert LONG in contents
        assert LONG + " Really." not in contents

    def test_low_quality_is_archived_not_deleted(self, store):
        opt, _ = _optimizer(store)
        opt.run()
        assert len(store.archived_ids) == 1
        assert BAD not in {a.content for a in store.all()}

    def test_steps_run_in_order(self, store):
        opt, _ = _optimizer(store)
        opt.run()
        kinds = [c[0] for c in store.calls if c[0] != "query"]
        first = {k: kinds.index(k) for k in ("delete", "archive", "update_relevance", "rebuild_indexes")}
        assert first["delete"] < first["archive"] < first["update_relevance"] < first["rebuild_indexes"]

    def test_unchanged_score_is_not_written(self, store):
        opt, _ = _optimizer(store, StubAnalyzer(scores={LONG: 8}, default=9))
        report = opt.run()
        assert report.count("recalculate_scores") == 0
        assert store.calls_to("update_relevance") == []

    def test_analyzer_failure_skips_artifact(self, store):
        opt, _ = _optimizer(store, StubAnalyzer(default=7, fail_for={GOOD}))
        report = opt.run()
        assert report.completed is True
        assert report.count("recalculate_scores") == 1
        good = [a for a in store.all() if a.content == GOOD][0]
        assert good.relevance_score == 9

    def test_report_dict(self, store):
        opt, _ = _optimizer(store)
        d = opt.run().to_dict()
        assert d["completed"] is True
        assert d["duplicates_removed"] == 1
        assert d["duration_ms"] == 0
        assert len(d["steps"]) == len(STEPS)


class TestPartialFailure:
    def test_failing_step_halts_and_keeps_earlier_work(self, store):
        opt, search = _optimizer(store)
        store.fail_on = {"rebuild_indexes"}
        with pytest.raises(OptimizationError) as ei:
            opt.run()

        report = ei.value.report
        assert report.completed is False
        assert [s.name for s in report.steps] == list(STEPS[:4])
        assert [s.ok for s in report.steps] == [True, True, True, False]
        assert "rebuild_indexes unavailable" in report.steps[-1].error
        # earlier steps stay committed, later ones never ran
        assert len(store.archived_ids) == 1
        assert search.cache.size == 1

    def test_first_step_failure(self, store):
        opt, _ = _optimizer(store)
        store.fail_on = {"delete"}
        with pytest.raises(OptimizationError) as ei:
            opt.run()
        assert [s.name for s in ei.value.report.steps] == ["remove_duplicates"]
        assert store.calls_to("archive") == []
