"""In-memory store: implements ArtifactStore for tests and the shell.

No external dependencies. Stores everything in plain Python dicts.
"""

from __future__ import annotations

import copy
import itertools
import time
from typing import Optional

from .store import Artifact, ArtifactId, ArtifactStore, Query, clamp_score


class InMemoryStore(ArtifactStore):
    """Pure in-memory artifact store.

    Features:
        - Case-insensitive substring matching over content / type / context.
        - Integer ids assigned in insertion order.
        - Archived artifacts are kept aside and never returned by ``query``.
        - Deterministic: no randomness, no threads, no I/O.

    Example::

        store = InMemoryStore()
        [saved] = store.save([Artifact(content="Docker deployment guide", relevance_score=7)])
        assert store.query(Query(match="docker"))[0].id == saved.id
    """

    def __init__(self, artifacts: Optional[list[Artifact]] = None):
        self._rows: dict[ArtifactId, Artifact] = {}
        self._archived: dict[ArtifactId, Artifact] = {}
        self._ids = itertools.count(1)
        self.reindexed_at: Optional[float] = None
        if artifacts:
            self.save(artifacts)

    # ── Required ──

    def query(self, q: Query) -> list[Artifact]:
        """Filter, sort and cap the stored rows.

        Rows without a relevance score sort as 0. Ties keep insertion order.
        """
        needle = q.match.lower() if q.match else None
        rows = []
        for art in self._rows.values():
            if q.artifact_type is not None and art.artifact_type != q.artifact_type:
                continue
            if q.created_before is not None and not art.created_at < q.created_before:
                continue
            if needle is not None and not any(needle in self._field_text(art, f) for f in q.match_fields):
                continue
            rows.append(art)

        if q.order_by == "relevance_score":
            rows.sort(key=lambda a: a.relevance_score or 0.0, reverse=q.descending)
        else:
            rows.sort(key=lambda a: a.created_at, reverse=q.descending)

        if q.limit is not None:
            rows = rows[:q.limit]
        # callers get transient copies; the store owns the originals
        return [copy.deepcopy(a) for a in rows]

    def save(self, artifacts: list[Artifact], project: Optional[dict] = None) -> list[Artifact]:
        saved = []
        for art in artifacts:
            stored = copy.deepcopy(art)
            stored.id = next(self._ids)
            if project and project.get("name") and not stored.source_context.get("project"):
                stored.source_context["project"] = project["name"]
            self._rows[stored.id] = stored
            saved.append(copy.deepcopy(stored))
        return saved

    def delete(self, artifact_id: ArtifactId) -> bool:
        return self._rows.pop(artifact_id, None) is not None

    # ── Optional ──

    def archive(self, artifact_id: ArtifactId) -> bool:
        art = self._rows.pop(artifact_id, None)
        if art is None:
            return False
        self._archived[artifact_id] = art
        return True

    def update_relevance(self, artifact_id: ArtifactId, score: float) -> bool:
        art = self._rows.get(artifact_id)
        if art is None:
            return False
        art.relevance_score = clamp_score(score)
        return True

    def rebuild_indexes(self) -> bool:
        """No indexes to rebuild; records when it was asked to."""
        self.reindexed_at = time.time()
        return True

    # ── Inspection helpers (tests / shell) ──

    def get(self, artifact_id: ArtifactId) -> Optional[Artifact]:
        art = self._rows.get(artifact_id)
        return copy.deepcopy(art) if art else None

    @property
    def archived_ids(self) -> list[ArtifactId]:
        return list(self._archived)

    def count(self) -> int:
        return len(self._rows)

    @staticmethod
    def _field_text(art: Artifact, name: str) -> str:
        if name == "content":
            return (art.content or "").lower()
        if name == "artifact_type":
            return (art.artifact_type or "").lower()
        return art.context_text().lower()

    @property
    def name(self) -> str:
        return "InMemory"
