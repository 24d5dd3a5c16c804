"""Extraction: run recent conversation messages through the analyzer and keep the good ones."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Optional

from .analyzer import Analyzer
from .config import log, EXTRACTION_THRESHOLD, EXTRACTION_DEPTH
from .store import Artifact, ArtifactStore


@dataclass
class ExtractionReport:
    depth: int
    force: bool
    processed: int = 0
    extracted: int = 0
    skipped: int = 0
    failed: int = 0
    saved_ids: list = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if not self.processed:
            return 0.0
        return round(self.extracted / self.processed * 100, 1)

    def to_dict(self) -> dict:
        return {
            "depth": self.depth,
            "force": self.force,
            "processed": self.processed,
            "extracted": self.extracted,
            "skipped": self.skipped,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "saved_ids": list(self.saved_ids),
        }


def _message_field(message, name: str, default=None):
    if isinstance(message, dict):
        return message.get(name, default)
    return getattr(message, name, default)


class ExtractionCoordinator:
    """Feeds a trailing window of messages through the analyzer into the store."""

    def __init__(self, store: ArtifactStore, analyzer: Analyzer,
                 threshold: float = EXTRACTION_THRESHOLD):
        self.store = store
        self.analyzer = analyzer
        self.threshold = threshold

    def extract(self, history: Optional[list], depth: int = EXTRACTION_DEPTH, force: bool = False,
                project: Optional[dict] = None) -> ExtractionReport:
        """Persist messages scoring >= threshold (all of them when ``force``).

        A message that fails to analyze or save is logged and counted as
        skipped; it never aborts the batch.
        """
        report = ExtractionReport(depth=depth, force=force)
        history = list(history or [])
        if not history:
            log.info("extract: no conversation history")
            return report
        if depth <= 0:
            log.info("extract: empty window (depth=%s)", depth)
            return report

        window = history[-depth:]
        offset = len(history) - len(window)
        project_name = (project or {}).get("name") or "unknown"

        for i, message in enumerate(window):
            report.processed += 1
            content = _message_field(message, "content", "") or ""
            try:
                analysis = self.analyzer.analyze(content)
                if not (force or analysis.relevance_score >= self.threshold):
                    report.skipped += 1
                    log.debug("extract: skipped message %d (score %.1f)", offset + i, analysis.relevance_score)
                    continue

                artifact = Artifact(
                    content=content,
                    artifact_type=analysis.artifact_type or "conversation_extract",
                    relevance_score=analysis.relevance_score,
                    context=dict(analysis.context or {}),
                    source_context={
                        "message_index": offset + i,
                        "role": _message_field(message, "role", "unknown"),
                        "timestamp": _message_field(message, "timestamp")
                        or datetime.datetime.now(datetime.timezone.utc).isoformat(),
                        "project": project_name,
                    },
                )
                saved = self.store.save([artifact], project)
            except Exception as e:
                log.warning("extract: message %d failed: %s", offset + i, e)
                report.skipped += 1
                continue

            if saved:
                report.extracted += 1
                report.saved_ids.extend(a.id for a in saved)
                log.info("extract: saved %s (score %.1f)", analysis.artifact_type, analysis.relevance_score)
            else:
                report.failed += 1
                log.warning("extract: store returned nothing for message %d", offset + i)

        return report
