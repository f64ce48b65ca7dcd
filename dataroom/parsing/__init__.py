"""File inspection utilities for data-room uploads.

Responsibilities:
    - Client-side upload validation (name, emptiness, 10MB limit)
    - File type classification and human-readable sizes
    - PDF metadata extraction with pypdf for the local cache index
"""

from dataroom.parsing.file_inspector import (
    detect_file_type,
    display_type,
    extract_pdf_metadata,
    format_file_size,
    validate_upload,
)

__all__ = [
    "detect_file_type",
    "display_type",
    "extract_pdf_metadata",
    "format_file_size",
    "validate_upload",
]
