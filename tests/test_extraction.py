"""Tests for extraction from conversation history."""
from kcurator.extraction import ExtractionCoordinator

from conftest import RecordingStore, StubAnalyzer


def _history(*contents):
    return [{"role": "user" if i % 2 == 0 else "assistant", "content": c, "timestamp": f"t{i}"}
            for i, c in enumerate(contents)]


class TestExtraction:
    def test_threshold(self):
        store = RecordingStore()
        analyzer = StubAnalyzer(scores={"good": 8, "edge": 6, "weak": 5.9})
        report = ExtractionCoordinator(store, analyzer, threshold=6).extract(
            _history("good", "edge", "weak"), depth=5)
        assert report.processed == 3
        assert report.extracted == 2
        assert report.skipped == 1
        assert {a.content for a in store.all()} == {"good", "edge"}

    def test_trailing_window(self):
        store = RecordingStore()
        analyzer = StubAnalyzer(default=9)
        report = ExtractionCoordinator(store, analyzer).extract(_history("a", "b", "c", "d"), depth=2)
        assert analyzer.seen == ["c", "d"]
        assert report.processed == 2
        indexes = sorted(a.source_context["message_index"] for a in store.all())
        assert indexes == [2, 3]

    def test_zero_depth_processes_nothing(self):
        store = RecordingStore()
        analyzer = StubAnalyzer(default=9)
        report = ExtractionCoordinator(store, analyzer).extract(_history("a", "b", "c", "d"), depth=0)
        assert report.processed == 0
        assert analyzer.seen == []
        assert store.calls_to("save") == []

    def test_force_keeps_everything(self):
        store = RecordingStore()
        report = ExtractionCoordinator(store, StubAnalyzer(default=0)).extract(
            _history("x", "y"), depth=5, force=True)
        assert report.extracted == 2
        assert report.success_rate == 100.0

    def test_source_context(self):
        store = RecordingStore()
        ExtractionCoordinator(store, StubAnalyzer(default=9)).extract(
            _history("only"), depth=5, project={"name": "atlas"})
        [art] = store.all()
        assert art.source_context == {
            "message_index": 0, "role": "user", "timestamp": "t0", "project": "atlas",
        }
        assert art.artifact_type == "learning"
        assert art.context == {"stub": True}

    def test_unknown_project(self):
        store = RecordingStore()
        ExtractionCoordinator(store, StubAnalyzer(default=9)).extract(_history("only"), depth=5)
        assert store.all()[0].source_context["project"] == "unknown"

    def test_analyzer_failure_is_skipped(self):
        store = RecordingStore()
        analyzer = StubAnalyzer(default=9, fail_for={"broken"})
        report = ExtractionCoordinator(store, analyzer).extract(_history("ok", "broken", "fine"), depth=5)
        assert report.extracted == 2
        assert report.skipped == 1
        assert report.failed == 0

    def test_store_failure_is_skipped(self):
        store = RecordingStore(fail_on={"save"})
        report = ExtractionCoordinator(store, StubAnalyzer(default=9)).extract(_history("a", "b"), depth=5)
        assert report.extracted == 0
        assert report.skipped == 2

    def test_empty_save_counts_as_failed(self):
        class NullSaveStore(RecordingStore):
            def save(self, artifacts, project=None):
                return []

        report = ExtractionCoordinator(NullSaveStore(), StubAnalyzer(default=9)).extract(
            _history("a"), depth=5)
        assert report.failed == 1
        assert report.extracted == 0

    def test_empty_history(self):
        report = ExtractionCoordinator(RecordingStore(), StubAnalyzer()).extract(None)
        assert report.processed == 0
        assert report.success_rate == 0.0

    def test_accepts_message_objects(self):
        class Msg:
            def __init__(self, content):
                self.content = content
                self.role = "assistant"

        store = RecordingStore()
        ExtractionCoordinator(store, StubAnalyzer(default=9)).extract([Msg("hello there")], depth=5)
        [art] = store.all()
        assert art.source_context["role"] == "assistant"
        assert art.source_context["timestamp"]
