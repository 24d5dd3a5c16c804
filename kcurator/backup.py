"""Backup: assemble an in-memory snapshot of the knowledge base.

Writing the snapshot somewhere is left to the caller.
"""

import datetime
import json
from typing import Optional

from .store import ArtifactStore

SNAPSHOT_VERSION = "1.0"


def default_backup_name(today: Optional[datetime.date] = None) -> str:
    return f"knowledge-backup-{(today or datetime.date.today()).isoformat()}"


def create_snapshot(store: ArtifactStore, name: Optional[str] = None, include_context: bool = True) -> dict:
    """Snapshot every live artifact.

    Args:
        store: Store to read from.
        name: Backup name (defaults to ``knowledge-backup-YYYY-MM-DD``).
        include_context: When ``False``, ``context`` and ``source_context``
            are dropped from each artifact.

    Returns:
        ``{"name", "artifacts", "projects", "metadata"}``.
    """
    artifacts = store.all()
    rows = []
    for a in artifacts:
        row = a.to_dict()
        if not include_context:
            row.pop("context", None)
            row.pop("source_context", None)
        rows.append(row)

    snapshot = {
        "name": name or default_backup_name(),
        "artifacts": rows,
        "projects": sorted({a.project for a in artifacts if a.project}),
        "metadata": {
            "created": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "version": SNAPSHOT_VERSION,
            "include_context": include_context,
            "artifact_count": len(rows),
        },
    }
    snapshot["metadata"]["size_bytes"] = len(json.dumps(snapshot, ensure_ascii=False).encode("utf-8"))
    return snapshot
