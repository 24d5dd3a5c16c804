"""Quality scoring: relevance minus fixed penalties, banded into actions.

Pure and total: no I/O, no exceptions for any artifact. Review, cleanup and
optimization all batch this over many artifacts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .config import ScoringPolicy
from .store import Artifact

DEFAULT_POLICY = ScoringPolicy()

TOO_SHORT = "too_short"
LOW_RELEVANCE = "low_relevance"


class Status(str, Enum):
    GOOD = "GOOD"
    POOR = "POOR"


class Action(str, Enum):
    KEEP = "KEEP"
    REVIEW = "REVIEW"
    DELETE = "DELETE"


@dataclass(frozen=True)
class QualityReport:
    quality: float
    issues: frozenset = field(default_factory=frozenset)
    status: Status = Status.GOOD
    action: Action = Action.KEEP

    def to_dict(self) -> dict:
        return {
            "quality": self.quality,
            "issues": sorted(self.issues),
            "status": self.status.value,
            "action": self.action.value,
        }


def score_artifact(artifact: Artifact, policy: Optional[ScoringPolicy] = None) -> QualityReport:
    """Score one artifact.

    Scoring logic:
    - start from relevance (``policy.neutral_score`` when missing)
    - content shorter than ``min_length``: ``-short_penalty``, ``too_short``
    - relevance below ``low_relevance``: ``-low_relevance_penalty``, ``low_relevance``
    - floor at 0, then band: ``< delete_below`` DELETE, ``< review_below`` REVIEW, else KEEP
    """
    p = policy or DEFAULT_POLICY
    relevance = artifact.relevance_score
    if relevance is None:
        relevance = p.neutral_score

    quality = float(relevance)
    issues = set()
    status = Status.GOOD

    if len(artifact.content or "") < p.min_length:
        quality -= p.short_penalty
        issues.add(TOO_SHORT)
        status = Status.POOR

    if relevance < p.low_relevance:
        quality -= p.low_relevance_penalty
        issues.add(LOW_RELEVANCE)
        status = Status.POOR

    quality = max(0.0, quality)
    return QualityReport(
        quality=quality,
        issues=frozenset(issues),
        status=status,
        action=action_for(quality, p),
    )


def action_for(quality: float, policy: Optional[ScoringPolicy] = None) -> Action:
    p = policy or DEFAULT_POLICY
    if quality < p.delete_below:
        return Action.DELETE
    if quality < p.review_below:
        return Action.REVIEW
    return Action.KEEP
