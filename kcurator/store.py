"""Storage interface for kcurator.

The curation engine needs an artifact store that can:
  - run a query descriptor (match / filter / order / limit)
  - save newly extracted artifacts
  - delete artifacts by id
  - optionally archive, rescore and reindex

Any system implementing ArtifactStore can be used (SQLite, Postgres, a
document store, etc.). The core never builds backend-specific queries; it
only describes what it wants with :class:`Query`.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Union

SCORE_MIN = 0.0
SCORE_MAX = 10.0

ArtifactId = Union[int, str]


def clamp_score(value) -> float:
    """Clamp a relevance score into the 0–10 domain (``None`` → 0)."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return SCORE_MIN
    if v != v:  # NaN
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, v))


@dataclass
class Artifact:
    """A unit of extracted knowledge.

    Attributes:
        content: The knowledge text itself.
        artifact_type: Category tag, e.g. ``"code"``, ``"documentation"``,
            ``"conversation_extract"``.
        relevance_score: Quality signal, clamped to 0–10. ``None`` means the
            analyzer never scored it.
        id: Store-assigned identifier (``None`` until saved).
        created_at: Unix timestamp of creation.
        context: Analyzer-supplied context mapping.
        source_context: Where it came from (message index, role, project …).
    """

    content: str
    artifact_type: str = "unknown"
    relevance_score: Optional[float] = None
    id: Optional[ArtifactId] = None
    created_at: float = field(default_factory=time.time)
    context: dict = field(default_factory=dict)
    source_context: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.relevance_score is not None:
            self.relevance_score = clamp_score(self.relevance_score)
        if not self.artifact_type:
            self.artifact_type = "unknown"

    @property
    def size(self) -> int:
        """Content size in UTF-8 bytes."""
        return len((self.content or "").encode("utf-8"))

    @property
    def project(self) -> str:
        return (self.source_context or {}).get("project") or ""

    def context_text(self) -> str:
        """Serialized context, used for pattern matching."""
        return json.dumps(self.context or {}, ensure_ascii=False, sort_keys=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "artifact_type": self.artifact_type,
            "relevance_score": self.relevance_score,
            "created_at": self.created_at,
            "context": dict(self.context or {}),
            "source_context": dict(self.source_context or {}),
        }

    @classmethod
    def from_row(cls, row: dict) -> "Artifact":
        """Build an artifact from a store row (dict-like)."""
        def _mapping(v):
            if isinstance(v, str):
                try:
                    v = json.loads(v) if v else {}
                except ValueError:
                    v = {}
            return v if isinstance(v, dict) else {}

        created = row.get("created_at")
        return cls(
            id=row.get("id"),
            content=row.get("content") or "",
            artifact_type=row.get("artifact_type") or "unknown",
            relevance_score=row.get("relevance_score"),
            created_at=float(created) if created is not None else time.time(),
            context=_mapping(row.get("context")),
            source_context=_mapping(row.get("source_context")),
        )


MATCH_FIELDS = ("content", "artifact_type", "context")
ORDER_FIELDS = ("relevance_score", "created_at")


@dataclass(frozen=True)
class Query:
    """Backend-neutral query descriptor.

    Attributes:
        match: Case-insensitive substring to look for, or ``None`` for all rows.
        match_fields: Fields the substring may match (any of them).
        artifact_type: Exact type filter, or ``None``.
        order_by: ``"relevance_score"`` or ``"created_at"``.
        descending: Sort direction.
        limit: Maximum rows, or ``None`` for no cap.
        created_before: Only rows created strictly before this timestamp.
    """

    match: Optional[str] = None
    match_fields: tuple = ("content",)
    artifact_type: Optional[str] = None
    order_by: str = "created_at"
    descending: bool = True
    limit: Optional[int] = None
    created_before: Optional[float] = None

    def __post_init__(self):
        bad = [f for f in self.match_fields if f not in MATCH_FIELDS]
        if bad:
            raise ValueError(f"unknown match field(s): {bad}")
        if self.order_by not in ORDER_FIELDS:
            raise ValueError(f"unknown order_by: {self.order_by}")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")


class ArtifactStore(ABC):
    """Abstract interface for artifact storage backends.

    Methods are divided into two tiers:

    1. **Required** (must implement): ``query``, ``save``, ``delete``.
    2. **Optional with sensible defaults**: ``archive``,
       ``update_relevance``, ``rebuild_indexes``, ``health``.

    Implementations should raise :class:`~kcurator.errors.StoreError` for
    backend failures so callers can decide between fallback and abort.
    """

    # ── Required ──

    @abstractmethod
    def query(self, q: Query) -> list[Artifact]:
        """Run a query descriptor.

        Args:
            q: What to match, filter, order by and how many rows to return.

        Returns:
            Matching artifacts in the requested order.
        """
        ...

    @abstractmethod
    def save(self, artifacts: list[Artifact], project: Optional[dict] = None) -> list[Artifact]:
        """Persist new artifacts.

        Args:
            artifacts: Artifacts without ids.
            project: Optional project context (``{"name": ...}``).

        Returns:
            The saved artifacts with ids assigned (empty if nothing saved).
        """
        ...

    @abstractmethod
    def delete(self, artifact_id: ArtifactId) -> bool:
        """Delete an artifact by id.

        Returns:
            ``True`` if a row was removed.
        """
        ...

    # ── Optional with sensible defaults ──

    def archive(self, artifact_id: ArtifactId) -> bool:
        """Move an artifact out of the searchable set.

        Backends without an archive return ``False`` (nothing archived).
        """
        return False

    def update_relevance(self, artifact_id: ArtifactId, score: float) -> bool:
        """Overwrite an artifact's relevance score.

        Returns:
            ``True`` if the score was written.
        """
        return False

    def rebuild_indexes(self) -> bool:
        """Rebuild search indexes. Backends without indexes leave this as a no-op."""
        return True

    def health(self) -> bool:
        """Check if the store is reachable."""
        return True

    def all(self) -> list[Artifact]:
        """Every live artifact, newest first."""
        return self.query(Query())

    # ── Metadata ──

    @property
    def name(self) -> str:
        """Human-readable store name."""
        return self.__class__.__name__
