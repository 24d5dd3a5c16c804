"""Tests for the ArtifactStore interface, InMemoryStore and SQLiteStore."""
import pytest

from kcurator.errors import StoreError
from kcurator.store import Artifact, ArtifactStore, Query, clamp_score
from kcurator.store_memory import InMemoryStore
from kcurator.store_sqlite import SQLiteStore

from conftest import NOW, DAY, make


class MinimalStore(ArtifactStore):
    """Implements only the required tier."""

    def __init__(self):
        self.rows = []

    def query(self, q):
        return list(self.rows)

    def save(self, artifacts, project=None):
        self.rows.extend(artifacts)
        return artifacts

    def delete(self, artifact_id):
        return False


class TestArtifact:
    def test_score_clamped(self):
        assert Artifact(content="x", relevance_score=15).relevance_score == 10.0
        assert Artifact(content="x", relevance_score=-3).relevance_score == 0.0

    def test_missing_score_stays_none(self):
        assert Artifact(content="x").relevance_score is None

    def test_clamp_score_handles_junk(self):
        assert clamp_score(None) == 0.0
        assert clamp_score("abc") == 0.0
        assert clamp_score(float("nan")) == 0.0
        assert clamp_score("7.5") == 7.5

    def test_size_is_utf8_bytes(self):
        assert Artifact(content="é").size == 2
        assert Artifact(content="abc").size == 3

    def test_empty_type_becomes_unknown(self):
        assert Artifact(content="x", artifact_type="").artifact_type == "unknown"

    def test_from_row_parses_json_columns(self):
        art = Artifact.from_row({
            "id": 3, "content": "c", "artifact_type": "code", "relevance_score": 6,
            "created_at": NOW, "context": '{"a": 1}', "source_context": "not json",
        })
        assert art.id == 3
        assert art.context == {"a": 1}
        assert art.source_context == {}

    def test_project_from_source_context(self):
        assert make(project="atlas").project == "atlas"
        assert make().project == ""


class TestQuery:
    def test_rejects_unknown_match_field(self):
        with pytest.raises(ValueError):
            Query(match="x", match_fields=("title",))

    def test_rejects_unknown_order(self):
        with pytest.raises(ValueError):
            Query(order_by="size")

    def test_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            Query(limit=-1)


class TestOptionalDefaults:
    def test_defaults(self):
        s = MinimalStore()
        assert s.archive(1) is False
        assert s.update_relevance(1, 5) is False
        assert s.rebuild_indexes() is True
        assert s.health() is True
        assert s.name == "MinimalStore"

    def test_all_delegates_to_query(self):
        s = MinimalStore()
        s.save([make()])
        assert len(s.all()) == 1


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request):
    if request.param == "memory":
        yield InMemoryStore()
    else:
        s = SQLiteStore(":memory:")
        yield s
        s.close()


class TestStoreContract:
    def test_save_assigns_ids(self, any_store):
        saved = any_store.save([make("first artifact"), make("second artifact")])
        assert len(saved) == 2
        assert saved[0].id is not None
        assert saved[0].id != saved[1].id

    def test_save_stamps_project(self, any_store):
        [saved] = any_store.save([make()], {"name": "atlas"})
        assert saved.project == "atlas"
        assert any_store.all()[0].project == "atlas"

    def test_match_is_case_insensitive(self, any_store):
        any_store.save([make("Docker Compose notes"), make("nginx reverse proxy")])
        rows = any_store.query(Query(match="docker"))
        assert [r.content for r in rows] == ["Docker Compose notes"]

    def test_match_folds_non_ascii_case(self, any_store):
        any_store.save([make("Über die Konfiguration von Redis"), make("ÉCOLE notes")])
        assert len(any_store.query(Query(match="über"))) == 1
        assert len(any_store.query(Query(match="Über"))) == 1
        assert [r.content for r in any_store.query(Query(match="école"))] == ["ÉCOLE notes"]

    def test_match_context_field(self, any_store):
        any_store.save([make("plain text", topic="Kubernetes")])
        assert any_store.query(Query(match="kubernetes")) == []
        assert len(any_store.query(Query(match="kubernetes", match_fields=("content", "context")))) == 1

    def test_type_filter_is_exact(self, any_store):
        any_store.save([make("a", artifact_type="code"), make("b", artifact_type="code_review")])
        rows = any_store.query(Query(artifact_type="code"))
        assert [r.content for r in rows] == ["a"]

    def test_order_by_relevance_missing_sorts_as_zero(self, any_store):
        any_store.save([make("low", score=2), make("none", score=None), make("high", score=9)])
        rows = any_store.query(Query(order_by="relevance_score", descending=True))
        assert [r.content for r in rows] == ["high", "low", "none"]

    def test_order_by_created_and_limit(self, any_store):
        any_store.save([
            make("old", created_at=NOW - 2 * DAY),
            make("new", created_at=NOW),
            make("mid", created_at=NOW - DAY),
        ])
        rows = any_store.query(Query(order_by="created_at", descending=True, limit=2))
        assert [r.content for r in rows] == ["new", "mid"]

    def test_created_before_is_strict(self, any_store):
        any_store.save([make("old", created_at=NOW - DAY), make("edge", created_at=NOW)])
        rows = any_store.query(Query(created_before=NOW))
        assert [r.content for r in rows] == ["old"]

    def test_delete(self, any_store):
        [a] = any_store.save([make()])
        assert any_store.delete(a.id) is True
        assert any_store.delete(a.id) is False
        assert any_store.all() == []

    def test_archive_hides_artifact(self, any_store):
        [a, b] = any_store.save([make("keep me"), make("archive me")])
        assert any_store.archive(b.id) is True
        assert any_store.archive(b.id) is False
        assert [r.content for r in any_store.all()] == ["keep me"]

    def test_update_relevance_clamps(self, any_store):
        [a] = any_store.save([make(score=3)])
        assert any_store.update_relevance(a.id, 42) is True
        assert any_store.all()[0].relevance_score == 10.0
        assert any_store.update_relevance(9999, 5) is False

    def test_rebuild_indexes(self, any_store):
        assert any_store.rebuild_indexes() is True


class TestInMemoryStore:
    def test_returns_copies(self):
        s = InMemoryStore([make("original")])
        rows = s.all()
        rows[0].content = "mutated"
        assert s.all()[0].content == "original"

    def test_inspection_helpers(self):
        s = InMemoryStore([make("a"), make("b")])
        ids = [a.id for a in s.all()]
        s.archive(ids[0])
        assert s.count() == 1
        assert s.archived_ids == [ids[0]]
        assert s.get(ids[1]) is not None
        assert s.get(ids[0]) is None

    def test_empty_store_is_truthy(self):
        assert InMemoryStore()


class TestSQLiteStore:
    def test_like_wildcards_are_literal(self):
        s = SQLiteStore(":memory:")
        s.save([make("100% coverage"), make("100 percent sure"), make("snake_case names"), make("snakeXcase")])
        assert [r.content for r in s.query(Query(match="100%"))] == ["100% coverage"]
        assert [r.content for r in s.query(Query(match="snake_case"))] == ["snake_case names"]

    def test_context_roundtrip(self):
        s = SQLiteStore(":memory:")
        s.save([make(topic="redis", tags=["cache"])])
        assert s.all()[0].context == {"topic": "redis", "tags": ["cache"]}

    def test_file_db_persists(self, tmp_path):
        path = tmp_path / "nested" / "k.db"
        s = SQLiteStore(str(path))
        s.save([make("persisted")])
        s.close()

        s2 = SQLiteStore(str(path))
        assert [r.content for r in s2.all()] == ["persisted"]
        s2.close()

    def test_errors_become_store_errors(self):
        s = SQLiteStore(":memory:")
        s.close()
        with pytest.raises(StoreError):
            s.all()
        assert s.health() is False

    def test_oversized_limit_is_a_store_error(self):
        s = SQLiteStore(":memory:")
        s.save([make("anything")])
        with pytest.raises(StoreError):
            s.query(Query(limit=10 ** 20))
