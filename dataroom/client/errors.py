"""Exceptions raised by the data-room client."""


class DataRoomAPIError(Exception):
    """Raised when a data-room backend call fails.

    Attributes:
        status_code: HTTP status of the failed response, if any.
        detail: Human-readable failure description.
    """

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class BackendUnavailableError(DataRoomAPIError):
    """Raised when the backend is down or the connection to it fails."""

    def __init__(self, detail: str = "Backend service is unavailable") -> None:
        super().__init__(detail)


class FileConflictError(DataRoomAPIError):
    """Raised when an upload collides with an existing file name."""

    def __init__(self, file_name: str) -> None:
        super().__init__(f'A file with the name "{file_name}" already exists.', status_code=409)
        self.file_name = file_name


class InvalidUploadError(DataRoomAPIError):
    """Raised when a file is rejected by type or size."""

    def __init__(self, detail: str = "Invalid file type or file too large (max 10MB)") -> None:
        super().__init__(detail, status_code=400)


class StreamError(DataRoomAPIError):
    """Raised when the live question stream cannot be consumed."""
