"""SQLite store, the default persistent ArtifactStore.

Translates :class:`~kcurator.store.Query` descriptors into parameterized SQL.
All ``sqlite3`` failures surface as :class:`~kcurator.errors.StoreError`.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Optional

from .config import log
from .errors import StoreError
from .store import Artifact, ArtifactId, ArtifactStore, Query, clamp_score

_SCHEMA = """
CREATE TABLE IF NOT EXISTS extracted_artifacts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    artifact_type TEXT NOT NULL DEFAULT 'unknown',
    relevance_score REAL,
    created_at REAL NOT NULL,
    context TEXT NOT NULL DEFAULT '{}',
    source_context TEXT NOT NULL DEFAULT '{}',
    archived INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_artifacts_relevance ON extracted_artifacts(relevance_score);
CREATE INDEX IF NOT EXISTS idx_artifacts_created ON extracted_artifacts(created_at);
CREATE INDEX IF NOT EXISTS idx_artifacts_type ON extracted_artifacts(artifact_type);
"""

# sqlite's lower() folds ASCII only; py_lower uses str.lower like InMemoryStore
_COLUMNS = {
    "content": "py_lower(content)",
    "artifact_type": "py_lower(artifact_type)",
    "context": "py_lower(context)",
}


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _py_lower(text):
    return text.lower() if text is not None else None


def _dumps(mapping: dict) -> str:
    # same serialization as Artifact.context_text() so LIKE matches agree
    return json.dumps(mapping or {}, ensure_ascii=False, sort_keys=True)


class SQLiteStore(ArtifactStore):
    """Artifact store backed by a single SQLite file (or ``":memory:"``)."""

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("py_lower", 1, _py_lower, deterministic=True)
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"cannot open store at {db_path}: {e}") from e
        log.debug("sqlite store ready: %s", db_path)

    # ── Required ──

    def query(self, q: Query) -> list[Artifact]:
        sql = ["SELECT * FROM extracted_artifacts WHERE archived = 0"]
        params: list = []

        if q.match:
            ors = " OR ".join(f"{_COLUMNS[f]} LIKE ? ESCAPE '\\'" for f in q.match_fields)
            sql.append(f"AND ({ors})")
            needle = f"%{_escape_like(q.match.lower())}%"
            params.extend([needle] * len(q.match_fields))
        if q.artifact_type is not None:
            sql.append("AND artifact_type = ?")
            params.append(q.artifact_type)
        if q.created_before is not None:
            sql.append("AND created_at < ?")
            params.append(q.created_before)

        direction = "DESC" if q.descending else "ASC"
        if q.order_by == "relevance_score":
            sql.append(f"ORDER BY COALESCE(relevance_score, 0) {direction}, id ASC")
        else:
            sql.append(f"ORDER BY created_at {direction}, id ASC")

        if q.limit is not None:
            sql.append("LIMIT ?")
            params.append(q.limit)

        rows = self._execute(" ".join(sql), params).fetchall()
        return [Artifact.from_row(dict(r)) for r in rows]

    def save(self, artifacts: list[Artifact], project: Optional[dict] = None) -> list[Artifact]:
        saved = []
        try:
            for art in artifacts:
                source = dict(art.source_context or {})
                if project and project.get("name") and not source.get("project"):
                    source["project"] = project["name"]
                cur = self._conn.execute(
                    "INSERT INTO extracted_artifacts "
                    "(content, artifact_type, relevance_score, created_at, context, source_context) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (art.content, art.artifact_type, art.relevance_score, art.created_at,
                     _dumps(art.context), _dumps(source)),
                )
                saved.append(Artifact(
                    id=cur.lastrowid,
                    content=art.content,
                    artifact_type=art.artifact_type,
                    relevance_score=art.relevance_score,
                    created_at=art.created_at,
                    context=dict(art.context or {}),
                    source_context=source,
                ))
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StoreError(f"save failed: {e}") from e
        return saved

    def delete(self, artifact_id: ArtifactId) -> bool:
        cur = self._execute("DELETE FROM extracted_artifacts WHERE id = ?", [artifact_id], commit=True)
        return cur.rowcount > 0

    # ── Optional ──

    def archive(self, artifact_id: ArtifactId) -> bool:
        cur = self._execute(
            "UPDATE extracted_artifacts SET archived = 1 WHERE id = ? AND archived = 0",
            [artifact_id], commit=True,
        )
        return cur.rowcount > 0

    def update_relevance(self, artifact_id: ArtifactId, score: float) -> bool:
        cur = self._execute(
            "UPDATE extracted_artifacts SET relevance_score = ? WHERE id = ? AND archived = 0",
            [clamp_score(score), artifact_id], commit=True,
        )
        return cur.rowcount > 0

    def rebuild_indexes(self) -> bool:
        self._execute("REINDEX extracted_artifacts", [], commit=True)
        self._execute("ANALYZE extracted_artifacts", [], commit=True)
        return True

    def health(self) -> bool:
        try:
            self._conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False

    def close(self):
        self._conn.close()

    # ── Internal ──

    def _execute(self, sql: str, params: list, commit: bool = False) -> sqlite3.Cursor:
        try:
            cur = self._conn.execute(sql, params)
            if commit:
                self._conn.commit()
            return cur
        except (sqlite3.Error, OverflowError) as e:
            raise StoreError(f"query failed: {e}") from e

    @property
    def name(self) -> str:
        return f"SQLite ({self.db_path})"
