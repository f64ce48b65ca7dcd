"""Async client for the data-room REST backend.

Every operation runs a cached health check first and fails fast with
`BackendUnavailableError` when the backend is down. A successful health
check is reused for `health_check_interval` seconds; a failed one is not
cached, so the next call checks again. A connection failure on any
request also drops the cached result and raises `BackendUnavailableError`.
"""

import logging
import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from dataroom.client.config import BackendConfig, get_backend_config
from dataroom.client.errors import (
    BackendUnavailableError,
    DataRoomAPIError,
    FileConflictError,
    InvalidUploadError,
    StreamError,
)
from dataroom.models.live import LiveEvent
from dataroom.models.schemas import (
    DeleteResponse,
    FileRecord,
    HealthResponse,
    QuestionResponse,
)
from dataroom.streaming.sse import iter_live_events

logger = logging.getLogger(__name__)

JSON_HEADERS = {"accept": "application/json"}

_file_list = TypeAdapter(list[FileRecord])
_category_list = TypeAdapter(list[str])


class DataRoomClient:
    """Client for the data-room file and question API.

    Wraps a single `httpx.AsyncClient` for connection reuse. Use it as an
    async context manager or call `aclose()` when done.
    """

    def __init__(
        self,
        config: BackendConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Optional backend configuration.
                    Loads from environment if not provided.
            transport: Optional transport, used to route requests in tests.
        """
        self._config = config or get_backend_config()
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=transport,
        )
        self._connected = False
        self._last_health_check: float | None = None
        self.last_health: HealthResponse | None = None

    async def __aenter__(self) -> "DataRoomClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        """Connectivity as of the last health check."""
        return self._connected

    async def check_health(self) -> bool:
        """Check whether the backend is reachable.

        Returns:
            True if the backend answered `/health` successfully. Never raises.
        """
        now = time.monotonic()
        if (
            self._connected
            and self._last_health_check is not None
            and now - self._last_health_check < self._config.health_check_interval
        ):
            logger.debug("Health check skipped (cached)")
            return True

        try:
            logger.info(f"Performing health check: {self._config.base_url}/health")
            response = await self._http.get("/health", headers=JSON_HEADERS)
            self._connected = response.is_success
            if self._connected:
                try:
                    self.last_health = HealthResponse.model_validate(response.json())
                except (ValueError, ValidationError) as e:
                    logger.warning(f"Health payload not understood: {e}")
                logger.info(f"Health check success: {self.last_health}")
            else:
                logger.error(f"Health check failed (bad response): {response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Health check failed (exception): {e}")
            self._connected = False

        self._last_health_check = now
        return self._connected

    async def _ensure_available(self) -> None:
        if not await self.check_health():
            raise BackendUnavailableError()

    def _mark_unreachable(self) -> None:
        """Drop the cached health result so the next call checks again."""
        self._connected = False
        self._last_health_check = None

    async def _send(self, method: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping httpx failures to client errors.

        Raises:
            BackendUnavailableError: If the connection fails.
            DataRoomAPIError: For any other httpx failure.
        """
        try:
            return await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{action} failed (connection): {e}")
            self._mark_unreachable()
            raise BackendUnavailableError(f"{action} failed: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"{action} failed (exception): {e}")
            raise DataRoomAPIError(f"{action} failed: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request after the health gate and raise on non-2xx.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            action: Action name used in logs and error messages.
            **kwargs: Passed through to httpx.

        Raises:
            BackendUnavailableError: If the health check or the connection fails.
            DataRoomAPIError: If the response status is not 2xx.
        """
        await self._ensure_available()
        response = await self._send(method, path, action, **kwargs)
        if not response.is_success:
            logger.error(f"{action} failed: {response.status_code} {response.text}")
            raise DataRoomAPIError(
                f"{action} failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    async def upload_file(
        self,
        name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> FileRecord:
        """Upload a file to the data room.

        Args:
            name: File name to store.
            content: File bytes.
            content_type: MIME type, if known.

        Returns:
            The backend's record for the ingested file.

        Raises:
            FileConflictError: 409, a file with this name already exists.
            InvalidUploadError: 400, wrong type or too large.
            DataRoomAPIError: Any other failure.
        """
        logger.info(f"Uploading file: {name} ({len(content)} bytes)")
        await self._ensure_available()

        files = {"file": (name, content, content_type or "application/octet-stream")}
        response = await self._send("POST", "/upload", "Upload", files=files, headers=JSON_HEADERS)

        if not response.is_success:
            logger.error(f"Upload failed: {response.status_code} {response.text}")
            if response.status_code == 409:
                raise FileConflictError(name)
            if response.status_code == 400:
                raise InvalidUploadError()
            raise DataRoomAPIError(
                f"Upload failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        record = FileRecord.model_validate(response.json())
        logger.info(f"Upload success: {record.file_id}")
        return record

    async def ask_question(self, question: str) -> QuestionResponse:
        """Ask a question against the ingested documents."""
        logger.info(f"Asking question: {question!r}")
        response = await self._request(
            "POST",
            "/question",
            "Question",
            json={"question": question},
            headers=JSON_HEADERS,
        )
        answer = QuestionResponse.model_validate(response.json())
        logger.info(f"Question answered ({len(answer.sources)} sources)")
        return answer

    async def list_files(self) -> list[FileRecord]:
        """Fetch all files in the data room."""
        logger.info("Fetching all files")
        response = await self._request("GET", "/files", "Get files", headers=JSON_HEADERS)
        files = _file_list.validate_python(response.json())
        logger.info(f"Files fetched: {len(files)}")
        return files

    async def get_file_metadata(self, file_id: str) -> FileRecord:
        """Fetch the record for a single file."""
        logger.info(f"Fetching file metadata: {file_id}")
        response = await self._request(
            "GET", f"/file/{file_id}", "Get file metadata", headers=JSON_HEADERS
        )
        return FileRecord.model_validate(response.json())

    async def download_file(self, file_id: str) -> bytes:
        """Download a file's bytes."""
        logger.info(f"Downloading file: {file_id}")
        response = await self._request(
            "GET",
            f"/download/{file_id}",
            "Download",
            headers={"accept": "application/octet-stream"},
        )
        logger.info(f"Download success: {file_id} ({len(response.content)} bytes)")
        return response.content

    async def list_categories(self) -> list[str]:
        """Fetch the category names known to the backend."""
        logger.info("Fetching categories")
        response = await self._request("GET", "/categories", "Get categories", headers=JSON_HEADERS)
        categories = _category_list.validate_python(response.json())
        logger.info(f"Categories fetched: {len(categories)}")
        return categories

    async def delete_file(self, file_id: str) -> DeleteResponse:
        """Delete a file and its ingested records."""
        logger.info(f"Deleting file: {file_id}")
        response = await self._request(
            "DELETE", f"/delete/{file_id}", "Delete", headers=JSON_HEADERS
        )
        result = DeleteResponse.model_validate(response.json())
        logger.info(f"File deleted: {result.file_id} ({result.deleted_records} records)")
        return result

    async def stream_question(
        self,
        question: str,
        session_id: str | None = None,
    ) -> AsyncIterator[LiveEvent]:
        """Stream live processing events for a question.

        The stream ends after a `complete` or `error` event; the response is
        closed then, or whenever the caller stops iterating.

        Args:
            question: The user's question.
            session_id: Live-stream session; a new one is generated if omitted.

        Yields:
            Decoded live events in arrival order.

        Raises:
            BackendUnavailableError: If the health check fails.
            StreamError: If the stream cannot be opened or breaks mid-way.
        """
        session_id = session_id or str(uuid.uuid4())
        logger.info(f"Opening live stream {session_id} for question: {question!r}")
        await self._ensure_available()

        timeout = httpx.Timeout(self._config.timeout, read=self._config.stream_timeout)
        try:
            async with self._http.stream(
                "GET",
                f"/question-live-stream/{session_id}",
                params={"question": question},
                headers={"Accept": "text/event-stream"},
                timeout=timeout,
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode(errors="replace")
                    logger.error(f"Live stream failed: {response.status_code} {body}")
                    raise StreamError(
                        f"Live stream failed: {response.status_code} - {body}",
                        status_code=response.status_code,
                    )

                async for event in iter_live_events(response.aiter_lines()):
                    yield event
                    if event.is_terminal:
                        logger.info(f"Live stream {session_id} finished with {event.type}")
                        return
        except httpx.HTTPError as e:
            logger.error(f"Live stream {session_id} broke: {e}")
            if isinstance(e, httpx.TransportError):
                self._mark_unreachable()
            raise StreamError(f"Connection failed: {e}") from e

        logger.warning(f"Live stream {session_id} closed without a terminal event")


# Module-level singleton instance
_client: DataRoomClient | None = None


def get_data_room_client() -> DataRoomClient:
    """Get or create the shared data-room client.

    Returns:
        The DataRoomClient instance.
    """
    global _client
    if _client is None:
        _client = DataRoomClient()
    return _client


async def close_data_room_client() -> None:
    """Close and drop the shared client, if one was created."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
