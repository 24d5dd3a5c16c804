"""Graph: structured relationship / category / timeline / quality views.

Returns nodes and edges only; drawing them is the caller's business.
"""

from __future__ import annotations

import datetime
from collections import Counter
from itertools import combinations

from .dedup import extract_keywords
from .stats import HIGH_VALUE, MEDIUM_VALUE
from .store import ArtifactStore

GRAPH_KINDS = ("relationships", "categories", "timeline", "quality")
DEFAULT_KIND = "relationships"

# too common in conversation text to say anything about a relationship
_STOP = {
    "the", "and", "for", "with", "that", "this", "you", "your", "are", "was", "use",
    "can", "not", "but", "have", "has", "from", "will", "all", "any", "then", "when",
    "into", "out", "its", "our", "how", "what", "which", "there", "here", "also",
}


def _relationships(artifacts: list, max_nodes: int) -> dict:
    doc_terms = [{k for k in extract_keywords(a.content) if k not in _STOP} for a in artifacts]
    freq = Counter(t for terms in doc_terms for t in terms)
    nodes = [t for t, n in freq.most_common() if n >= 2][:max_nodes]
    keep = set(nodes)

    edges = Counter()
    for terms in doc_terms:
        for a, b in combinations(sorted(terms & keep), 2):
            edges[(a, b)] += 1

    return {
        "nodes": [{"id": t, "weight": freq[t]} for t in nodes],
        "edges": [{"source": a, "target": b, "weight": w} for (a, b), w in edges.most_common()],
    }


def _categories(artifacts: list, max_nodes: int) -> dict:
    counts = Counter(a.artifact_type or "unknown" for a in artifacts)
    return {"nodes": [{"id": k, "weight": v} for k, v in counts.most_common(max_nodes)], "edges": []}


def _timeline(artifacts: list, max_nodes: int) -> dict:
    days = Counter(datetime.date.fromtimestamp(a.created_at).isoformat() for a in artifacts)
    latest = sorted(days)[-max_nodes:]
    return {"nodes": [{"id": d, "weight": days[d]} for d in latest], "edges": []}


def _quality(artifacts: list, max_nodes: int) -> dict:
    bands = Counter()
    for a in artifacts:
        s = a.relevance_score or 0.0
        bands["high" if s >= HIGH_VALUE else "medium" if s >= MEDIUM_VALUE else "low"] += 1
    return {"nodes": [{"id": b, "weight": bands[b]} for b in ("high", "medium", "low")][:max_nodes], "edges": []}


_BUILDERS = {
    "relationships": _relationships,
    "categories": _categories,
    "timeline": _timeline,
    "quality": _quality,
}


def build_graph(store: ArtifactStore, kind: str = DEFAULT_KIND, max_nodes: int = 20) -> dict:
    """Build one graph view; unknown kinds fall back to ``relationships``."""
    if kind not in _BUILDERS:
        kind = DEFAULT_KIND
    artifacts = store.all()
    graph = _BUILDERS[kind](artifacts, max(1, max_nodes))
    graph.update({"kind": kind, "max_nodes": max_nodes, "artifact_count": len(artifacts)})
    return graph
