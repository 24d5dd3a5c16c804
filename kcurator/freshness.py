"""Freshness: age-based decay used to pick stale artifacts for review.

Not used to re-rank search results.
"""

import time
from typing import Optional

from .store import Artifact

DAY = 86400


def freshness_score(created_at: Optional[float], now: Optional[float] = None) -> float:
    """Freshness scoring based on artifact age.

    Scoring logic:
    - Artifacts < 30 days old: 1.0 (full freshness)
    - 30-180 days: linear decay from 1.0 to 0.5
    - 180-365 days: linear decay from 0.5 to 0.2
    - > 365 days: 0.1 (very stale)
    - Unknown creation time: 0.5
    """
    if created_at is None:
        return 0.5
    _now = now if now is not None else time.time()
    age_days = (_now - created_at) / DAY

    if age_days < 0:
        return 1.0  # future date, treat as fresh
    if age_days <= 30:
        return 1.0
    if age_days <= 180:
        return round(1.0 - 0.5 * (age_days - 30) / 150, 3)
    if age_days <= 365:
        return round(0.5 - 0.3 * (age_days - 180) / 185, 3)
    return 0.1


def age_days(artifact: Artifact, now: Optional[float] = None) -> float:
    _now = now if now is not None else time.time()
    return round((_now - artifact.created_at) / DAY, 1)


def stale_cutoff(stale_days: int, now: Optional[float] = None) -> float:
    """Timestamp before which an artifact counts as stale."""
    _now = now if now is not None else time.time()
    return _now - stale_days * DAY
