"""Tests for knowledge stats, graph views and backup snapshots."""
import datetime
import json

from kcurator.backup import create_snapshot, default_backup_name
from kcurator.graph import build_graph
from kcurator.stats import SessionStats, knowledge_stats
from kcurator.store_memory import InMemoryStore

from conftest import DAY, NOW, FakeClock, make


def _store():
    return InMemoryStore([
        make("docker compose redis service", score=9, artifact_type="configuration",
             created_at=NOW - DAY, project="atlas"),
        make("docker compose nginx proxy", score=8.5, artifact_type="configuration",
             created_at=NOW - 2 * DAY, project="atlas"),
        make("redis eviction policy tuning", score=6, artifact_type="learning",
             created_at=NOW - 10 * DAY, project="zephyr"),
        make("hi", score=1, artifact_type="conversation_extract", created_at=NOW - 30 * DAY),
    ])


class TestKnowledgeStats:
    def test_basic(self):
        s = knowledge_stats(_store(), SessionStats(clock=FakeClock()), now=NOW)
        assert s["basic"]["total_artifacts"] == 4
        assert s["basic"]["avg_relevance"] == 6.12
        assert s["basic"]["recent_artifacts"] == 2
        assert s["basic"]["storage_bytes"] == sum(len(c) for c in (
            "docker compose redis service", "docker compose nginx proxy",
            "redis eviction policy tuning", "hi"))

    def test_categories(self):
        s = knowledge_stats(_store(), SessionStats(clock=FakeClock()), now=NOW)
        assert s["categories"]["configuration"] == {"count": 2, "percent": 50.0}
        assert s["categories"]["learning"]["count"] == 1

    def test_quality_bands(self):
        q = knowledge_stats(_store(), SessionStats(clock=FakeClock()), now=NOW)["quality"]
        assert (q["high_value"], q["medium_value"], q["low_value"]) == (2, 1, 1)

    def test_usage_patterns(self):
        session = SessionStats(clock=FakeClock())
        session.record_search("Redis")
        session.record_search("redis ")
        session.record_search("docker")
        u = knowledge_stats(_store(), session, now=NOW)["usage"]
        assert u["top_search_term"] == "redis"
        assert u["top_search_count"] == 2
        assert u["active_projects"] == ["atlas", "zephyr"]

    def test_peak_hour(self):
        store = InMemoryStore([make(created_at=NOW), make(created_at=NOW + 60), make(created_at=NOW + 7200)])
        u = knowledge_stats(store, SessionStats(clock=FakeClock()), now=NOW)["usage"]
        assert u["peak_hour"] == datetime.datetime.fromtimestamp(NOW).hour

    def test_empty_store(self):
        s = knowledge_stats(InMemoryStore(), SessionStats(clock=FakeClock()), now=NOW)
        assert s["basic"]["avg_relevance"] == 0.0
        assert s["categories"] == {}
        assert s["usage"]["peak_hour"] is None
        assert s["usage"]["top_search_term"] is None
        assert s["recommendations"] == ["optimize", "extract"]

    def test_recommendations(self):
        store = InMemoryStore([make(score=1) for _ in range(12)])
        session = SessionStats(clock=FakeClock())
        session.last_optimization = NOW - DAY
        assert knowledge_stats(store, session, now=NOW)["recommendations"] == ["cleanup"]

        session.last_optimization = NOW - 8 * DAY
        assert "optimize" in knowledge_stats(store, session, now=NOW)["recommendations"]


class TestSessionStats:
    def test_snapshot(self):
        clock = FakeClock()
        s = SessionStats(clock=clock)
        s.record_search("x")
        clock.advance(5.5)
        snap = s.snapshot()
        assert snap["searches_performed"] == 1
        assert snap["session_started"] == NOW
        assert snap["uptime_sec"] == 5.5

    def test_blank_term_not_counted_as_term(self):
        s = SessionStats(clock=FakeClock())
        s.record_search("   ")
        assert s.searches_performed == 1
        assert not s.search_terms


class TestGraph:
    def test_relationships(self):
        g = build_graph(_store(), "relationships", 10)
        ids = {n["id"] for n in g["nodes"]}
        assert {"docker", "compose", "redis"} <= ids
        assert "nginx" not in ids  # appears once
        edge = {(e["source"], e["target"]): e["weight"] for e in g["edges"]}
        assert edge[("compose", "docker")] == 2
        assert edge[("docker", "redis")] == 1

    def test_relationships_respects_max_nodes(self):
        g = build_graph(_store(), "relationships", 1)
        assert len(g["nodes"]) == 1

    def test_categories(self):
        g = build_graph(_store(), "categories", 1)
        assert g["nodes"] == [{"id": "configuration", "weight": 2}]
        assert g["edges"] == []

    def test_timeline(self):
        g = build_graph(_store(), "timeline", 2)
        days = [n["id"] for n in g["nodes"]]
        assert len(days) == 2
        assert days == sorted(days)
        assert days[-1] == datetime.date.fromtimestamp(NOW - DAY).isoformat()

    def test_quality(self):
        g = build_graph(_store(), "quality")
        assert g["nodes"] == [
            {"id": "high", "weight": 2}, {"id": "medium", "weight": 1}, {"id": "low", "weight": 1},
        ]

    def test_unknown_kind(self):
        g = build_graph(_store(), "spiderweb")
        assert g["kind"] == "relationships"
        assert g["artifact_count"] == 4


class TestBackup:
    def test_snapshot_shape(self):
        snap = create_snapshot(_store(), "weekly")
        assert snap["name"] == "weekly"
        assert snap["projects"] == ["atlas", "zephyr"]
        meta = snap["metadata"]
        assert meta["version"] == "1.0"
        assert meta["artifact_count"] == 4
        assert meta["size_bytes"] > 0
        assert "context" in snap["artifacts"][0]
        json.dumps(snap)

    def test_without_context(self):
        snap = create_snapshot(_store(), include_context=False)
        for a in snap["artifacts"]:
            assert "context" not in a
            assert "source_context" not in a
        assert snap["name"].startswith("knowledge-backup-")

    def test_default_name(self):
        assert default_backup_name(datetime.date(2024, 3, 9)) == "knowledge-backup-2024-03-09"

    def test_snapshot_does_not_mutate_store(self):
        store = _store()
        create_snapshot(store, include_context=False)
        assert store.all()[0].source_context == {"project": "atlas"}
