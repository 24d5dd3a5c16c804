"""Shared fixtures: a fake clock, a call-recording store, and a stub analyzer."""
import pytest

from kcurator.analyzer import Analysis, Analyzer
from kcurator.config import CuratorSettings
from kcurator.dispatcher import Dispatcher
from kcurator.errors import AnalyzerError, StoreError
from kcurator.store import Artifact
from kcurator.store_memory import InMemoryStore

NOW = 1_700_000_000.0
DAY = 86400

LONG = "Use docker compose to configure the redis service and restart it after edits."


class FakeClock:
    def __init__(self, t=NOW):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


class RecordingStore(InMemoryStore):
    """InMemoryStore that logs every call and can be told to fail.

    ``fail_on``: method names that raise StoreError.
    ``fail_query``: predicate on the Query; matching queries raise StoreError.
    """

    def __init__(self, artifacts=None, fail_on=(), fail_query=None):
        self.calls = []
        self.fail_on = set()
        self.fail_query = None
        super().__init__(artifacts)
        self.calls.clear()
        self.fail_on = set(fail_on)
        self.fail_query = fail_query

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise StoreError(f"{name} unavailable")

    def calls_to(self, name):
        return [c for c in self.calls if c[0] == name]

    def query(self, q):
        self._record("query", q)
        if self.fail_query is not None and self.fail_query(q):
            raise StoreError("query backend down")
        return super().query(q)

    def save(self, artifacts, project=None):
        self._record("save", len(artifacts))
        return super().save(artifacts, project)

    def delete(self, artifact_id):
        self._record("delete", artifact_id)
        return super().delete(artifact_id)

    def archive(self, artifact_id):
        self._record("archive", artifact_id)
        return super().archive(artifact_id)

    def update_relevance(self, artifact_id, score):
        self._record("update_relevance", artifact_id, score)
        return super().update_relevance(artifact_id, score)

    def rebuild_indexes(self):
        self._record("rebuild_indexes")
        return super().rebuild_indexes()


class StubAnalyzer(Analyzer):
    """Fixed scores by content; ``fail_for`` contents raise AnalyzerError."""

    def __init__(self, scores=None, default=7.0, artifact_type="learning", fail_for=()):
        self.scores = dict(scores or {})
        self.default = default
        self.artifact_type = artifact_type
        self.fail_for = set(fail_for)
        self.seen = []

    def analyze(self, text):
        self.seen.append(text)
        if text in self.fail_for:
            raise AnalyzerError(f"cannot analyze {text!r}")
        return Analysis(relevance_score=self.scores.get(text, self.default),
                        artifact_type=self.artifact_type, context={"stub": True})


def make(content=LONG, score=7.0, artifact_type="learning", created_at=NOW, project="", **context):
    return Artifact(
        content=content,
        artifact_type=artifact_type,
        relevance_score=score,
        created_at=created_at,
        context=dict(context),
        source_context={"project": project} if project else {},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def analyzer():
    return StubAnalyzer()


@pytest.fixture
def dispatcher(store, analyzer, clock):
    return Dispatcher(store, analyzer, settings=CuratorSettings(), clock=clock)
