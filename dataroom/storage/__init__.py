"""Offline persistence for data-room files.

Stores file bytes and searchable metadata in a local SQLite database.
"""

from dataroom.storage.file_cache import (
    UNCATEGORIZED,
    CacheStats,
    FileCache,
    StoredFile,
    flatten_metadata,
    get_file_cache,
)

__all__ = [
    "UNCATEGORIZED",
    "CacheStats",
    "FileCache",
    "StoredFile",
    "flatten_metadata",
    "get_file_cache",
]
