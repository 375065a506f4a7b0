from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from usim.uploads.files import format_file_size


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class TemporaryUpload:
    """A file staged for one session until it is persisted or expires."""

    id: str
    session_id: str
    component_id: str
    original_filename: str
    stored_filename: str
    path: str  # relative to the upload root, e.g. temp/<id>.png
    mime_type: str
    size: int
    type: str  # image | audio | video | document | other
    expires_at: datetime
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "component_id": self.component_id,
            "original_filename": self.original_filename,
            "stored_filename": self.stored_filename,
            "size": self.size,
            "size_formatted": format_file_size(self.size),
            "mime_type": self.mime_type,
            "type": self.type,
            "metadata": dict(self.metadata),
            "expires_at": _to_iso(self.expires_at),
        }


class TemporaryUploadRepo:
    """
    SQLite repository for temporary upload records.

    One row per staged file; the bytes live on disk under the upload root.
    """

    def __init__(self, db_path: str | Path = "storage/uploads.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        return conn

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS temporary_uploads (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    component_id TEXT NOT NULL,
                    original_filename TEXT NOT NULL,
                    stored_filename TEXT NOT NULL,
                    path TEXT NOT NULL UNIQUE,
                    mime_type TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    type TEXT NOT NULL,
                    metadata TEXT,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_temporary_uploads_session ON temporary_uploads(session_id);
                CREATE INDEX IF NOT EXISTS idx_temporary_uploads_expires ON temporary_uploads(expires_at);
                """
            )

    @staticmethod
    def _row_to_upload(row: sqlite3.Row) -> TemporaryUpload:
        return TemporaryUpload(
            id=row["id"],
            session_id=row["session_id"],
            component_id=row["component_id"],
            original_filename=row["original_filename"],
            stored_filename=row["stored_filename"],
            path=row["path"],
            mime_type=row["mime_type"],
            size=int(row["size"]),
            type=row["type"],
            metadata=json.loads(row["metadata"] or "{}"),
            expires_at=_from_iso(row["expires_at"]),
            created_at=_from_iso(row["created_at"]),
        )

    def insert(self, upload: TemporaryUpload) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO temporary_uploads (
                    id, session_id, component_id, original_filename, stored_filename,
                    path, mime_type, size, type, metadata, expires_at, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    upload.id,
                    upload.session_id,
                    upload.component_id,
                    upload.original_filename,
                    upload.stored_filename,
                    upload.path,
                    upload.mime_type,
                    upload.size,
                    upload.type,
                    json.dumps(upload.metadata, ensure_ascii=False),
                    _to_iso(upload.expires_at),
                    _to_iso(upload.created_at),
                ),
            )

    def get(self, upload_id: str) -> TemporaryUpload | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM temporary_uploads WHERE id = ?", (upload_id,)).fetchone()
        return self._row_to_upload(row) if row else None

    def get_by_path(self, path: str) -> TemporaryUpload | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM temporary_uploads WHERE path = ?", (path,)).fetchone()
        return self._row_to_upload(row) if row else None

    def list_for_session(self, session_id: str) -> list[TemporaryUpload]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM temporary_uploads WHERE session_id = ? ORDER BY created_at",
                (session_id,),
            ).fetchall()
        return [self._row_to_upload(r) for r in rows]

    def expired(self, now: datetime) -> list[TemporaryUpload]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM temporary_uploads WHERE expires_at < ? ORDER BY expires_at",
                (_to_iso(now),),
            ).fetchall()
        return [self._row_to_upload(r) for r in rows]

    def delete(self, upload_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM temporary_uploads WHERE id = ?", (upload_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with self._conn() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM temporary_uploads").fetchone()
        return int(row["n"])
