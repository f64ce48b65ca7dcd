"""Data-room backend client.

Async httpx wrapper around the data-room REST API: health, upload, list,
metadata, download, categories, delete, questions, and the live question
stream.
"""

from dataroom.client.config import BackendConfig, get_backend_config
from dataroom.client.data_room import (
    DataRoomClient,
    close_data_room_client,
    get_data_room_client,
)
from dataroom.client.errors import (
    BackendUnavailableError,
    DataRoomAPIError,
    FileConflictError,
    InvalidUploadError,
    StreamError,
)

__all__ = [
    "BackendConfig",
    "BackendUnavailableError",
    "DataRoomAPIError",
    "DataRoomClient",
    "FileConflictError",
    "InvalidUploadError",
    "StreamError",
    "close_data_room_client",
    "get_backend_config",
    "get_data_room_client",
]
