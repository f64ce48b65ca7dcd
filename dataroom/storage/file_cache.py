"""SQLite-backed offline cache for data-room files.

Keeps a local copy of uploaded files with their metadata so the file list and
downloads keep working while the backend is unreachable. Nested metadata is
flattened into dotted keys in a side table, which is what `search_files`
matches against.
"""

import json
import logging
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from dataroom.settings import get_settings

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    size INTEGER NOT NULL,
    type TEXT NOT NULL,
    upload_date TEXT NOT NULL,
    category TEXT,
    subcategory TEXT,
    metadata TEXT,
    data BLOB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_files_category ON files (category);
CREATE INDEX IF NOT EXISTS idx_files_upload_date ON files (upload_date);
CREATE INDEX IF NOT EXISTS idx_files_name ON files (name);
CREATE TABLE IF NOT EXISTS metadata (
    file_id TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (file_id, key)
);
CREATE INDEX IF NOT EXISTS idx_metadata_value ON metadata (value);
"""


class StoredFile(BaseModel):
    """A file held in the local cache.

    Attributes:
        id: Cache key (the backend file_id once uploaded).
        name: File name.
        size: Size in bytes.
        type: MIME type or short type label.
        upload_date: When the file was cached.
        category: Data-room category, if known.
        subcategory: Finer grouping within the category.
        metadata: Arbitrary nested metadata, indexed for search.
        data: The file bytes.
    """

    id: str
    name: str
    size: int = Field(ge=0)
    type: str = "File"
    upload_date: datetime = Field(default_factory=datetime.now)
    category: str | None = None
    subcategory: str | None = None
    metadata: dict[str, Any] | None = None
    data: bytes = b""


class CacheStats(BaseModel):
    total_files: int
    total_size: int
    category_counts: dict[str, int]
    oldest_file: datetime | None = None
    newest_file: datetime | None = None


def flatten_metadata(metadata: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested metadata into dotted keys.

    Nested mappings recurse, lists are JSON-encoded, everything else is str().
    """
    flat: dict[str, str] = {}
    for key, value in metadata.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_metadata(value, full_key))
        elif isinstance(value, list | tuple):
            flat[full_key] = json.dumps(value, default=str)
        else:
            flat[full_key] = str(value)
    return flat


class FileCache:
    """Local file store with metadata search.

    Each call opens its own connection so the cache can be shared between
    NiceGUI request handlers.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info(f"File cache ready at {self._db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _row_to_file(row: sqlite3.Row) -> StoredFile:
        return StoredFile(
            id=row["id"],
            name=row["name"],
            size=row["size"],
            type=row["type"],
            upload_date=datetime.fromisoformat(row["upload_date"]),
            category=row["category"],
            subcategory=row["subcategory"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
            data=bytes(row["data"]),
        )

    @staticmethod
    def _write(conn: sqlite3.Connection, file: StoredFile) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO files
                (id, name, size, type, upload_date, category, subcategory, metadata, data)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                file.id,
                file.name,
                file.size,
                file.type,
                file.upload_date.isoformat(),
                file.category,
                file.subcategory,
                json.dumps(file.metadata, default=str) if file.metadata is not None else None,
                file.data,
            ),
        )
        conn.execute("DELETE FROM metadata WHERE file_id = ?", (file.id,))
        if file.metadata:
            conn.executemany(
                "INSERT OR REPLACE INTO metadata (file_id, key, value) VALUES (?, ?, ?)",
                [(file.id, k, v) for k, v in flatten_metadata(file.metadata).items()],
            )

    def save_file(self, file: StoredFile) -> None:
        """Insert or replace a file and re-index its metadata."""
        with self._connect() as conn:
            self._write(conn, file)
        logger.info(f"Cached file {file.name} ({file.size} bytes)")

    def get_file(self, file_id: str) -> StoredFile | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM files WHERE id = ?", (file_id,)).fetchone()
        return self._row_to_file(row) if row else None

    def get_all_files(self) -> list[StoredFile]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM files ORDER BY upload_date").fetchall()
        return [self._row_to_file(row) for row in rows]

    def update_file(self, file_id: str, **changes: Any) -> StoredFile:
        """Apply field changes to a cached file.

        Raises:
            KeyError: If no file with this id is cached.
        """
        existing = self.get_file(file_id)
        if existing is None:
            raise KeyError("File not found")
        updated = existing.model_copy(update=changes)
        # Re-validate so bad field values fail here rather than in SQLite
        updated = StoredFile.model_validate(updated.model_dump())
        self.save_file(updated)
        return updated

    def delete_file(self, file_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
            conn.execute("DELETE FROM metadata WHERE file_id = ?", (file_id,))
        logger.info(f"Removed cached file {file_id}")

    def search_files(self, query: str) -> list[StoredFile]:
        """Find files whose name or any metadata value contains the query."""
        escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM files
                WHERE lower(name) LIKE ? ESCAPE '\\'
                   OR id IN (
                       SELECT file_id FROM metadata WHERE lower(value) LIKE ? ESCAPE '\\'
                   )
                ORDER BY upload_date
                """,
                (pattern, pattern),
            ).fetchall()
        return [self._row_to_file(row) for row in rows]

    def get_files_by_category(self, category: str) -> list[StoredFile]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM files WHERE category = ? ORDER BY upload_date", (category,)
            ).fetchall()
        return [self._row_to_file(row) for row in rows]

    def export_data(self) -> list[StoredFile]:
        return self.get_all_files()

    def import_data(self, files: list[StoredFile]) -> None:
        """Save many files in one transaction."""
        with self._connect() as conn:
            for file in files:
                self._write(conn, file)
        logger.info(f"Imported {len(files)} files into cache")

    def clear_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM files")
            conn.execute("DELETE FROM metadata")
        logger.info("File cache cleared")

    def get_stats(self) -> CacheStats:
        """Summarise the cache: counts, total size, and date range."""
        files = self.get_all_files()
        counts: dict[str, int] = {}
        for file in files:
            category = file.category or UNCATEGORIZED
            counts[category] = counts.get(category, 0) + 1

        dates = sorted(file.upload_date for file in files)
        return CacheStats(
            total_files=len(files),
            total_size=sum(file.size for file in files),
            category_counts=counts,
            oldest_file=dates[0] if dates else None,
            newest_file=dates[-1] if dates else None,
        )


# Module-level singleton instance
_file_cache: FileCache | None = None


def get_file_cache() -> FileCache:
    """Get or create the file cache under the configured data directory.

    Returns:
        The FileCache instance.
    """
    global _file_cache
    if _file_cache is None:
        _file_cache = FileCache(get_settings().file_cache_db)
    return _file_cache
