"""Unit tests for the SQLite offline file cache."""

from datetime import datetime
from pathlib import Path

import pytest
import pytest_check as check

from dataroom.storage import UNCATEGORIZED, FileCache, StoredFile, flatten_metadata


def stored(file_id: str, name: str, **fields) -> StoredFile:
    data = fields.pop("data", b"content")
    return StoredFile(id=file_id, name=name, size=len(data), data=data, **fields)


class TestFlattenMetadata:
    """Tests for the metadata index keys."""

    def test_nested_keys_dotted(self) -> None:
        """Nested mappings become dotted keys, lists are JSON, scalars str()."""
        flat = flatten_metadata(
            {"pdf": {"author": "Ada", "pages": 3}, "tags": ["q3", "finance"], "ok": True}
        )

        assert flat == {
            "pdf.author": "Ada",
            "pdf.pages": "3",
            "tags": '["q3", "finance"]',
            "ok": "True",
        }


class TestFileCache:
    """Tests for FileCache operations."""

    def test_save_and_get(self, file_cache: FileCache) -> None:
        """A saved file comes back with its bytes and metadata."""
        file_cache.save_file(
            stored("f-1", "report.pdf", category="Financial", metadata={"pdf": {"pages": 2}})
        )

        cached = file_cache.get_file("f-1")

        assert cached is not None
        assert cached.name == "report.pdf"
        assert cached.data == b"content"
        assert cached.category == "Financial"
        assert cached.metadata == {"pdf": {"pages": 2}}

    def test_get_missing(self, file_cache: FileCache) -> None:
        assert file_cache.get_file("nope") is None

    def test_save_replaces(self, file_cache: FileCache) -> None:
        """Saving the same id again replaces the row."""
        file_cache.save_file(stored("f-1", "old.pdf"))
        file_cache.save_file(stored("f-1", "new.pdf"))

        assert [f.name for f in file_cache.get_all_files()] == ["new.pdf"]

    def test_get_all_ordered_by_upload_date(self, file_cache: FileCache) -> None:
        file_cache.save_file(stored("b", "later.txt", upload_date=datetime(2025, 2, 1)))
        file_cache.save_file(stored("a", "earlier.txt", upload_date=datetime(2025, 1, 1)))

        assert [f.id for f in file_cache.get_all_files()] == ["a", "b"]

    def test_update_file(self, file_cache: FileCache) -> None:
        """Updates change fields and re-index metadata."""
        file_cache.save_file(stored("f-1", "report.pdf", metadata={"owner": "ada"}))

        updated = file_cache.update_file("f-1", category="Legal", metadata={"owner": "grace"})

        assert updated.category == "Legal"
        assert file_cache.search_files("grace")[0].id == "f-1"
        assert file_cache.search_files("ada") == []

    def test_update_missing_raises(self, file_cache: FileCache) -> None:
        with pytest.raises(KeyError):
            file_cache.update_file("nope", category="x")

    def test_delete_file(self, file_cache: FileCache) -> None:
        file_cache.save_file(stored("f-1", "report.pdf", metadata={"owner": "ada"}))

        file_cache.delete_file("f-1")

        assert file_cache.get_file("f-1") is None
        assert file_cache.search_files("ada") == []

    def test_search_by_name_and_metadata(self, file_cache: FileCache) -> None:
        """Search matches file names and nested metadata values, case-insensitively."""
        file_cache.save_file(stored("f-1", "Revenue.xlsx"))
        file_cache.save_file(
            stored("f-2", "notes.txt", metadata={"pdf": {"author": "Grace Hopper"}})
        )
        file_cache.save_file(stored("f-3", "other.txt"))

        assert [f.id for f in file_cache.search_files("revenue")] == ["f-1"]
        assert [f.id for f in file_cache.search_files("HOPPER")] == ["f-2"]

    def test_search_treats_wildcards_literally(self, file_cache: FileCache) -> None:
        """`%`, `_` and backslashes in the query match only themselves."""
        file_cache.save_file(stored("a", "report.pdf"))
        file_cache.save_file(stored("b", "q3_50%.xlsx"))
        file_cache.save_file(stored("c", "notes.txt", metadata={"path": "C:\\docs"}))

        check.equal([f.id for f in file_cache.search_files("%")], ["b"])
        check.equal([f.id for f in file_cache.search_files("_")], ["b"])
        check.equal([f.id for f in file_cache.search_files("3_5")], ["b"])
        check.equal([f.id for f in file_cache.search_files(":\\d")], ["c"])
        check.equal(file_cache.search_files("r%t"), [])

    def test_files_by_category(self, file_cache: FileCache) -> None:
        file_cache.save_file(stored("f-1", "a.pdf", category="Financial"))
        file_cache.save_file(stored("f-2", "b.pdf", category="Legal"))

        assert [f.id for f in file_cache.get_files_by_category("Legal")] == ["f-2"]

    def test_export_import_roundtrip(self, file_cache: FileCache, tmp_path: Path) -> None:
        """Exported files can be imported into another cache."""
        file_cache.save_file(stored("f-1", "a.pdf", metadata={"k": "v"}))
        other = FileCache(tmp_path / "other" / "cache.db")

        other.import_data(file_cache.export_data())

        assert other.get_file("f-1") == file_cache.get_file("f-1")
        assert other.search_files("v")[0].id == "f-1"

    def test_clear_all(self, file_cache: FileCache) -> None:
        file_cache.save_file(stored("f-1", "a.pdf"))

        file_cache.clear_all()

        assert file_cache.get_all_files() == []

    def test_stats(self, file_cache: FileCache) -> None:
        """Stats count categories, with uncategorised files grouped together."""
        file_cache.save_file(
            stored("f-1", "a.pdf", category="Financial", upload_date=datetime(2025, 1, 1))
        )
        file_cache.save_file(stored("f-2", "b.pdf", data=b"xx", upload_date=datetime(2025, 3, 1)))

        stats = file_cache.get_stats()

        assert stats.total_files == 2
        assert stats.total_size == len(b"content") + 2
        assert stats.category_counts == {"Financial": 1, UNCATEGORIZED: 1}
        assert stats.oldest_file == datetime(2025, 1, 1)
        assert stats.newest_file == datetime(2025, 3, 1)

    def test_empty_stats(self, file_cache: FileCache) -> None:
        stats = file_cache.get_stats()

        assert stats.total_files == 0
        assert stats.oldest_file is None
