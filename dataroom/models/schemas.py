"""Schemas for the data-room backend contracts.

Unknown fields are ignored so additions on the backend do not break parsing.
"""

from pydantic import BaseModel, ConfigDict, Field


class _BackendModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FileRecord(_BackendModel):
    """A file stored in the data room.

    Attributes:
        file_id: Backend identifier used by download and delete.
        file_name: Stored file name.
        original_name: Name the file was uploaded with.
        category: Category assigned during ingestion.
        num_records: Rows ingested into the vector index.
        file_size_bytes: Size of the stored file.
        point_ids: Vector-store point identifiers for this file.
        status: Ingestion status reported by the backend.
    """

    file_id: str
    file_name: str
    original_name: str = ""
    safe_name: str = ""
    category: str = ""
    num_records: int = 0
    num_sheets: int = 0
    file_size_bytes: int = Field(default=0, ge=0)
    download_url: str = ""
    point_ids: list[str] = Field(default_factory=list)
    ingestion_timestamp: str = ""
    last_accessed: str = ""
    status: str = ""


class DeleteResponse(_BackendModel):
    """Result of deleting a file from the data room."""

    message: str
    file_id: str
    file_name: str = ""
    deleted_records: int = 0
    timestamp: str = ""


class SourceDocument(_BackendModel):
    """A document cited by an answer."""

    file_id: str
    file_name: str
    download_url: str = ""
    category: str = ""
    chunk_point_id: str = ""


class ContextMatch(_BackendModel):
    """A retrieved chunk that contributed to an answer.

    Attributes:
        text: The chunk text.
        source_file: File the chunk came from.
        row_number: Spreadsheet row of the chunk, when tabular.
        sheet_name: Spreadsheet sheet of the chunk, when tabular.
        score: Similarity score between 0 and 1.
    """

    id: str
    text: str
    category: str = ""
    source_file: str = ""
    row_number: int | None = None
    sheet_name: str | None = None
    score: float | None = None


class QuestionResponse(_BackendModel):
    """Structured answer to a data-room question."""

    answer: str
    category: str | None = None
    sources: list[SourceDocument] = Field(default_factory=list)
    context: list[ContextMatch] = Field(default_factory=list)
    timestamp: str | None = None


class HealthResponse(_BackendModel):
    """Backend health payload."""

    status: str
    directories: bool = False
    environment: bool = False
    files_count: int = 0
    timestamp: str = ""
