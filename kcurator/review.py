"""Review & cleanup: pick candidate artifacts, score them, optionally delete.

All store operations go through ArtifactStore; scoring is the pure
:func:`~kcurator.scoring.score_artifact`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import log, ScoringPolicy, REVIEW_BATCH_SIZE, STALE_DAYS, DUPLICATE_THRESHOLD
from .dedup import redundant_artifacts
from .freshness import age_days, freshness_score, stale_cutoff
from .scoring import Action, QualityReport, score_artifact, TOO_SHORT, LOW_RELEVANCE
from .store import Artifact, ArtifactStore, Query

REVIEW_POLICIES = ("recent", "low-quality", "duplicates", "outdated")
DEFAULT_POLICY = "recent"


@dataclass
class ReviewItem:
    artifact: Artifact
    report: QualityReport
    note: str = ""
    deleted: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.artifact.id,
            "artifact_type": self.artifact.artifact_type,
            "preview": _preview(self.artifact.content, 100),
            **self.report.to_dict(),
            "note": self.note,
            "deleted": self.deleted,
        }


@dataclass
class ReviewReport:
    policy: str
    batch_size: int
    auto_clean: bool = False
    items: list[ReviewItem] = field(default_factory=list)

    @property
    def deleted_ids(self) -> list:
        return [i.artifact.id for i in self.items if i.deleted]

    @property
    def average_quality(self) -> float:
        if not self.items:
            return 0.0
        return round(sum(i.report.quality for i in self.items) / len(self.items), 2)

    def to_dict(self) -> dict:
        return {
            "policy": self.policy,
            "batch_size": self.batch_size,
            "auto_clean": self.auto_clean,
            "reviewed": len(self.items),
            "average_quality": self.average_quality,
            "deleted_ids": self.deleted_ids,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class CleanupCandidate:
    artifact: Artifact
    quality: float
    reason: str

    @property
    def size(self) -> int:
        return self.artifact.size

    def to_dict(self) -> dict:
        return {
            "id": self.artifact.id,
            "preview": _preview(self.artifact.content, 60),
            "quality": self.quality,
            "size": self.size,
            "reason": self.reason,
        }


@dataclass
class CleanupReport:
    dry_run: bool
    aggressive: bool
    candidates: list[CleanupCandidate] = field(default_factory=list)
    deleted_ids: list = field(default_factory=list)

    @property
    def bytes_reclaimable(self) -> int:
        return sum(c.size for c in self.candidates)

    def to_dict(self) -> dict:
        return {
            "dry_run": self.dry_run,
            "aggressive": self.aggressive,
            "candidate_count": len(self.candidates),
            "bytes_reclaimable": self.bytes_reclaimable,
            "deleted_ids": list(self.deleted_ids),
            "candidates": [c.to_dict() for c in self.candidates],
        }


def _preview(text: str, n: int) -> str:
    text = text or ""
    return text[:n] + ("..." if len(text) > n else "")


def cleanup_reason(report: QualityReport) -> str:
    if TOO_SHORT in report.issues:
        return "content too short"
    if LOW_RELEVANCE in report.issues:
        return "low relevance"
    return "low quality score"


class ReviewEngine:
    """Candidate selection + scoring for the review and cleanup commands."""

    def __init__(self, store: ArtifactStore, policy: Optional[ScoringPolicy] = None,
                 stale_days: int = STALE_DAYS, duplicate_threshold: float = DUPLICATE_THRESHOLD,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.policy = policy
        self.stale_days = stale_days
        self.duplicate_threshold = duplicate_threshold
        self.clock = clock

    # ── Candidate selection ──

    def candidates(self, policy: str, limit: int) -> list[tuple[Artifact, str]]:
        """Artifacts selected by ``policy``, each with a short note."""
        if policy == "low-quality":
            rows = self.store.query(Query(order_by="relevance_score", descending=False, limit=limit))
            return [(a, "") for a in rows]
        if policy == "duplicates":
            dupes = redundant_artifacts(self.store.all(), self.duplicate_threshold)[:limit]
            return [(r.artifact, f"duplicate of {r.kept_id} ({r.similarity:.2f})") for r in dupes]
        if policy == "outdated":
            now = self.clock()
            rows = self.store.query(Query(
                created_before=stale_cutoff(self.stale_days, now),
                order_by="created_at", descending=False, limit=limit,
            ))
            return [(a, f"{age_days(a, now)} days old (freshness {freshness_score(a.created_at, now)})")
                    for a in rows]
        rows = self.store.query(Query(order_by="created_at", descending=True, limit=limit))
        return [(a, "") for a in rows]

    # ── Review ──

    def review(self, policy: str = DEFAULT_POLICY, batch_size: int = REVIEW_BATCH_SIZE,
               auto_clean: bool = False,
               on_item: Optional[Callable[[ReviewItem], None]] = None) -> ReviewReport:
        """Score a batch of candidates; in auto-clean mode delete DELETE-scored ones.

        Each item is reported (appended + ``on_item``) before it is deleted.
        """
        if policy not in REVIEW_POLICIES:
            log.info("unknown review policy %r, using %s", policy, DEFAULT_POLICY)
            policy = DEFAULT_POLICY

        report = ReviewReport(policy=policy, batch_size=batch_size, auto_clean=auto_clean)
        for artifact, note in self.candidates(policy, batch_size):
            item = ReviewItem(artifact=artifact, report=score_artifact(artifact, self.policy), note=note)
            report.items.append(item)
            if on_item is not None:
                on_item(item)

            if auto_clean and item.report.action is Action.DELETE:
                item.deleted = self.store.delete(artifact.id)
                log.info("review auto-clean: id=%s deleted=%s quality=%.1f",
                         artifact.id, item.deleted, item.report.quality)

        log.info("review %s: %d reviewed, avg quality %.2f, %d deleted",
                 policy, len(report.items), report.average_quality, len(report.deleted_ids))
        return report

    # ── Cleanup ──

    def cleanup_candidates(self, aggressive: bool = False) -> list[CleanupCandidate]:
        """Conservative: DELETE-scored only. Aggressive: DELETE and REVIEW."""
        wanted = {Action.DELETE, Action.REVIEW} if aggressive else {Action.DELETE}
        out = []
        for art in self.store.all():
            rep = score_artifact(art, self.policy)
            if rep.action in wanted:
                out.append(CleanupCandidate(artifact=art, quality=rep.quality, reason=cleanup_reason(rep)))
        out.sort(key=lambda c: c.quality)
        return out

    def cleanup(self, aggressive: bool = False, execute: bool = False) -> CleanupReport:
        """Dry run unless ``execute``; execute issues one delete per candidate."""
        report = CleanupReport(dry_run=not execute, aggressive=aggressive,
                               candidates=self.cleanup_candidates(aggressive))
        if execute:
            for c in report.candidates:
                if self.store.delete(c.artifact.id):
                    report.deleted_ids.append(c.artifact.id)
        log.info("cleanup (%s%s): %d candidates, %d deleted",
                 "execute" if execute else "dry run",
                 ", aggressive" if aggressive else "",
                 len(report.candidates), len(report.deleted_ids))
        return report
