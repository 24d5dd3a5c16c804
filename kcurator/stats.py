"""Statistics: per-session counters and store-wide knowledge analytics."""

from __future__ import annotations

import datetime
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Optional

from .store import ArtifactStore

WEEK = 7 * 86400
HIGH_VALUE = 8.0
MEDIUM_VALUE = 5.0
MIN_HEALTHY_ARTIFACTS = 10


@dataclass
class SessionStats:
    """Counters owned by one dispatcher. Never persisted."""

    clock: Callable[[], float] = field(default=time.time, repr=False)
    searches_performed: int = 0
    extractions_performed: int = 0
    optimizations_run: int = 0
    last_optimization: Optional[float] = None
    session_started: float = 0.0
    search_terms: Counter = field(default_factory=Counter)

    def __post_init__(self):
        if not self.session_started:
            self.session_started = self.clock()

    def record_search(self, term: str):
        self.searches_performed += 1
        normalized = " ".join((term or "").lower().split())
        if normalized:
            self.search_terms[normalized] += 1

    def snapshot(self) -> dict:
        return {
            "searches_performed": self.searches_performed,
            "extractions_performed": self.extractions_performed,
            "optimizations_run": self.optimizations_run,
            "last_optimization": self.last_optimization,
            "session_started": self.session_started,
            "uptime_sec": round(self.clock() - self.session_started, 3),
        }


def knowledge_stats(store: ArtifactStore, session: SessionStats, now: Optional[float] = None) -> dict:
    """Analytics over every live artifact plus session counters and recommendations."""
    _now = now if now is not None else session.clock()
    artifacts = store.all()
    total = len(artifacts)
    scores = [a.relevance_score or 0.0 for a in artifacts]
    avg = round(sum(scores) / total, 2) if total else 0.0

    basic = {
        "total_artifacts": total,
        "avg_relevance": avg,
        "recent_artifacts": sum(1 for a in artifacts if a.created_at > _now - WEEK),
        "storage_bytes": sum(a.size for a in artifacts),
    }

    categories = Counter(a.artifact_type or "unknown" for a in artifacts)
    category_stats = {
        k: {"count": v, "percent": round(v / total * 100, 1)}
        for k, v in categories.most_common()
    }

    quality = {
        "high_value": sum(1 for s in scores if s >= HIGH_VALUE),
        "medium_value": sum(1 for s in scores if MEDIUM_VALUE <= s < HIGH_VALUE),
        "low_value": sum(1 for s in scores if s < MEDIUM_VALUE),
        "overall_quality": avg,
    }

    top = session.search_terms.most_common(1)
    hours = Counter(datetime.datetime.fromtimestamp(a.created_at).hour for a in artifacts)
    usage = {
        "top_search_term": top[0][0] if top else None,
        "top_search_count": top[0][1] if top else 0,
        "active_projects": sorted({a.project for a in artifacts if a.project}),
        "peak_hour": hours.most_common(1)[0][0] if hours else None,
    }

    recommendations = []
    if quality["low_value"] > quality["high_value"]:
        recommendations.append("cleanup")
    last = session.last_optimization
    if last is None or _now - last > WEEK:
        recommendations.append("optimize")
    if total < MIN_HEALTHY_ARTIFACTS:
        recommendations.append("extract")

    return {
        "basic": basic,
        "categories": category_stats,
        "quality": quality,
        "usage": usage,
        "session": session.snapshot(),
        "recommendations": recommendations,
    }
