"""Optimization pipeline: dedup → archive → rescore → reindex → clear cache.

Steps run strictly in order and are NOT transactional. When a step fails the
remaining steps are skipped, everything already done stays done, and
:class:`OptimizationError` carries the partial report.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .analyzer import Analyzer
from .config import log, ScoringPolicy, DUPLICATE_THRESHOLD
from .dedup import redundant_artifacts
from .errors import AnalyzerError, OptimizationError
from .scoring import Action, score_artifact
from .search import SearchCoordinator
from .store import ArtifactStore, clamp_score

STEPS = ("remove_duplicates", "archive_low_quality", "recalculate_scores",
         "rebuild_indexes", "clear_cache")


@dataclass
class OptimizationStep:
    name: str
    count: int = 0
    ok: bool = True
    error: str = ""


@dataclass
class OptimizationReport:
    started_at: float
    steps: list[OptimizationStep] = field(default_factory=list)
    finished_at: Optional[float] = None
    completed: bool = False

    def count(self, name: str) -> int:
        for s in self.steps:
            if s.name == name:
                return s.count
        return 0

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at) * 1000)

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "duration_ms": self.duration_ms,
            "steps": [vars(s).copy() for s in self.steps],
            "duplicates_removed": self.count("remove_duplicates"),
            "low_quality_archived": self.count("archive_low_quality"),
            "scores_updated": self.count("recalculate_scores"),
        }


class Optimizer:
    """Runs the fixed maintenance pipeline against one store."""

    def __init__(self, store: ArtifactStore, analyzer: Analyzer, search: SearchCoordinator,
                 policy: Optional[ScoringPolicy] = None,
                 duplicate_threshold: float = DUPLICATE_THRESHOLD,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.analyzer = analyzer
        self.search = search
        self.policy = policy
        self.duplicate_threshold = duplicate_threshold
        self.clock = clock

    def run(self) -> OptimizationReport:
        """Run every step in order.

        Raises:
            OptimizationError: a step failed; ``err.report`` lists what ran.
        """
        report = OptimizationReport(started_at=self.clock())
        for name in STEPS:
            step = OptimizationStep(name=name)
            report.steps.append(step)
            log.info("optimize: %s ...", name)
            try:
                step.count = getattr(self, f"_{name}")()
            except Exception as e:
                step.ok = False
                step.error = str(e)
                report.finished_at = self.clock()
                log.error("optimize: %s failed after %d completed step(s): %s",
                          name, len(report.steps) - 1, e)
                raise OptimizationError(f"optimization stopped at {name}: {e}", report) from e
            log.info("optimize: %s done (%d)", name, step.count)

        report.finished_at = self.clock()
        report.completed = True
        return report

    # ── Steps ──

    def _remove_duplicates(self) -> int:
        removed = 0
        for r in redundant_artifacts(self.store.all(), self.duplicate_threshold):
            if self.store.delete(r.artifact.id):
                removed += 1
        return removed

    def _archive_low_quality(self) -> int:
        archived = 0
        for art in self.store.all():
            if score_artifact(art, self.policy).action is Action.DELETE:
                if self.store.archive(art.id):
                    archived += 1
        return archived

    def _recalculate_scores(self) -> int:
        updated = 0
        for art in self.store.all():
            try:
                new_score = clamp_score(self.analyzer.analyze(art.content).relevance_score)
            except AnalyzerError as e:
                log.warning("optimize: rescoring %s skipped: %s", art.id, e)
                continue
            if art.relevance_score is not None and abs(new_score - art.relevance_score) < 1e-9:
                continue
            if self.store.update_relevance(art.id, new_score):
                updated += 1
        return updated

    def _rebuild_indexes(self) -> int:
        self.store.rebuild_indexes()
        return 1

    def _clear_cache(self) -> int:
        return self.search.clear_cache()
