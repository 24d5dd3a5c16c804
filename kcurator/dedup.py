"""Dedup: near-duplicate detection over stored artifacts (no API calls).

Similarity = keyword Jaccard, refined with SequenceMatcher once the keyword
overlap is meaningful. Pairs at or above the threshold are merged into
groups; each group keeps one artifact and marks the rest redundant.
"""

import re
from dataclasses import dataclass
from difflib import SequenceMatcher

from .config import DUPLICATE_THRESHOLD
from .store import Artifact

_MAX_COMPARE_CHARS = 2000


def extract_keywords(text: str) -> set:
    text_l = (text or "").lower()
    en = set(re.findall(r'[a-z][a-z0-9_\-]{2,}', text_l))
    cn = set(re.findall(r'[\u4e00-\u9fff]{2,6}', text_l))
    return en | cn


def similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    if a.strip().lower() == b.strip().lower():
        return 1.0
    ka, kb = extract_keywords(a), extract_keywords(b)
    if not ka or not kb:
        return 0.0
    jaccard = len(ka & kb) / len(ka | kb)
    if jaccard < 0.3:
        return jaccard
    ratio = SequenceMatcher(None, a[:_MAX_COMPARE_CHARS].lower(), b[:_MAX_COMPARE_CHARS].lower()).ratio()
    return 0.4 * jaccard + 0.6 * ratio


@dataclass(frozen=True)
class DuplicatePair:
    a: Artifact
    b: Artifact
    similarity: float


@dataclass(frozen=True)
class Redundant:
    """An artifact that duplicates ``kept_id`` and can be removed."""

    artifact: Artifact
    kept_id: object
    similarity: float


def find_duplicates(artifacts: list, threshold: float = DUPLICATE_THRESHOLD) -> list:
    """All pairs with similarity >= threshold, most similar first."""
    pairs = []
    for i in range(len(artifacts)):
        for j in range(i + 1, len(artifacts)):
            a, b = artifacts[i], artifacts[j]
            sim = similarity(a.content, b.content)
            if sim >= threshold:
                pairs.append(DuplicatePair(a=a, b=b, similarity=round(sim, 3)))
    pairs.sort(key=lambda p: p.similarity, reverse=True)
    return pairs


def _keeper_rank(art: Artifact):
    # highest relevance, then newest
    return (art.relevance_score or 0.0, art.created_at)


def redundant_artifacts(artifacts: list, threshold: float = DUPLICATE_THRESHOLD) -> list:
    """Group duplicate pairs transitively and return every non-keeper.

    Returns:
        List of :class:`Redundant`, ordered by descending similarity to the keeper.
    """
    pairs = find_duplicates(artifacts, threshold)
    if not pairs:
        return []

    parent = {}

    def find(x):
        parent.setdefault(x, x)
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    by_key = {}
    best_sim = {}
    for p in pairs:
        ka, kb = id(p.a), id(p.b)
        by_key[ka], by_key[kb] = p.a, p.b
        parent[find(ka)] = find(kb)
        best_sim[ka] = max(best_sim.get(ka, 0.0), p.similarity)
        best_sim[kb] = max(best_sim.get(kb, 0.0), p.similarity)

    groups = {}
    for k in by_key:
        groups.setdefault(find(k), []).append(by_key[k])

    out = []
    for members in groups.values():
        keeper = max(members, key=_keeper_rank)
        for m in members:
            if m is not keeper:
                out.append(Redundant(artifact=m, kept_id=keeper.id, similarity=best_sim[id(m)]))
    out.sort(key=lambda r: r.similarity, reverse=True)
    return out
