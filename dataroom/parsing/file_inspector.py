"""File inspection for uploads using pypdf.

Validates files before they are sent to the data room, classifies them for
display, and extracts PDF metadata for the local cache index.
"""

import io
import logging
import mimetypes

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from dataroom.client.config import MAX_UPLOAD_SIZE
from dataroom.client.errors import InvalidUploadError

logger = logging.getLogger(__name__)

# Constants
PDF_MAGIC_BYTES = b"%PDF"
SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def detect_file_type(name: str, content_type: str | None = None) -> str:
    """Classify a file as image, audio, video, pdf, document, or file.

    The MIME type decides; when it is missing it is guessed from the name.
    """
    mime = (content_type or mimetypes.guess_type(name)[0] or "").lower()

    if mime.startswith("image/"):
        return "image"
    if mime.startswith("audio/"):
        return "audio"
    if mime.startswith("video/"):
        return "video"
    if "pdf" in mime:
        return "pdf"
    if "document" in mime or "text" in mime or "sheet" in mime or "excel" in mime:
        return "document"
    return "file"


def display_type(name: str, content_type: str | None = None) -> str:
    """Short type label: the MIME type, else the upper-cased extension."""
    if content_type:
        return content_type
    _, dot, ext = name.rpartition(".")
    return ext.upper() if dot and ext else "File"


def format_file_size(size: int) -> str:
    """Format a byte count, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {SIZE_UNITS[unit]}"


def validate_upload(name: str | None, content: bytes, max_size: int = MAX_UPLOAD_SIZE) -> str:
    """Validate a file before upload.

    Args:
        name: The file name.
        content: Raw file bytes.
        max_size: Largest accepted size in bytes.

    Returns:
        The validated file name.

    Raises:
        InvalidUploadError: If the name is missing, or the file is empty or too large.
    """
    if not name or not name.strip():
        raise InvalidUploadError("Filename is required")

    if not content:
        raise InvalidUploadError("Empty file provided")

    if len(content) > max_size:
        size_mb = len(content) / (1024 * 1024)
        limit_mb = max_size / (1024 * 1024)
        raise InvalidUploadError(
            f"File size ({size_mb:.1f}MB) exceeds maximum allowed ({limit_mb:g}MB)"
        )

    return name.strip()


def extract_pdf_metadata(content: bytes) -> dict[str, str | int]:
    """Extract document metadata from PDF bytes.

    Args:
        content: Raw bytes of the PDF file.

    Returns:
        Metadata fields (title, author, ..., pages). Empty when the bytes are
        not a readable PDF.
    """
    if not content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        return {}

    try:
        reader = PdfReader(io.BytesIO(content))
        pages = len(reader.pages)
    except PdfReadError as e:
        logger.warning(f"Corrupt or invalid PDF: {e}")
        return {}
    except Exception as e:
        logger.warning(f"Failed to read PDF: {e}")
        return {}

    metadata: dict[str, str | int] = {"pages": pages}

    try:
        if reader.metadata:
            # Standard PDF metadata fields
            for field, key in (
                ("/Title", "title"),
                ("/Author", "author"),
                ("/Subject", "subject"),
                ("/Creator", "creator"),
                ("/Producer", "producer"),
            ):
                value = reader.metadata.get(field)
                if value:
                    metadata[key] = str(value)

            # Handle dates (can be complex PDF date format)
            creation_date = reader.metadata.get("/CreationDate")
            if creation_date:
                metadata["creation_date"] = str(creation_date)

            mod_date = reader.metadata.get("/ModDate")
            if mod_date:
                metadata["modification_date"] = str(mod_date)
    except Exception as e:
        logger.warning(f"Failed to extract some metadata: {e}")

    return metadata
