"""Pytest fixtures and shared test configuration.

Fixtures:
    - backend_config: Backend settings pointing at a fake host
    - make_client: Factory for DataRoomClient instances backed by httpx.MockTransport
    - file_cache: FileCache in a temporary directory
    - mock_session_id: Consistent session ID for tests

Backend traffic never leaves the process: every client is routed through a
handler function that plays the data-room API.
"""

import asyncio
import json
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from dataroom.client import BackendConfig, DataRoomClient
from dataroom.storage import FileCache

BACKEND_URL = "http://backend.test"

Handler = Callable[[httpx.Request], httpx.Response]

HEALTHY = {
    "status": "healthy",
    "directories": True,
    "environment": True,
    "files_count": 2,
    "timestamp": "2025-08-01T12:00:00",
}


def sse_body(*payloads: dict[str, Any] | str) -> str:
    """Encode payloads as an SSE body; strings are sent as raw data lines."""
    chunks = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        chunks.append(f"data: {data}\n\n")
    return "".join(chunks)


class TrackedStream(httpx.AsyncByteStream):
    """Response body that records when httpx closes it.

    With `hang=True` the body stays open after its content, like a live
    stream waiting for the next event.
    """

    def __init__(self, body: str, hang: bool = False) -> None:
        self.body = body.encode()
        self.hang = hang
        self.drained = asyncio.Event()
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self.body
        self.drained.set()
        if self.hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def file_payload(file_id: str = "f-1", name: str = "report.pdf", **fields: Any) -> dict[str, Any]:
    return {
        "file_id": file_id,
        "file_name": name,
        "original_name": name,
        "category": "Financial",
        "num_records": 12,
        "file_size_bytes": 2048,
        **fields,
    }


@pytest.fixture
def backend_config() -> BackendConfig:
    """Backend settings for the fake data-room host."""
    return BackendConfig(base_url=BACKEND_URL, health_check_interval=30)


@pytest.fixture
async def make_client(
    backend_config: BackendConfig,
) -> AsyncGenerator[Callable[[Handler], DataRoomClient]]:
    """Create clients that send every request to a handler function.

    Yields:
        Factory taking a handler and returning a DataRoomClient.
    """
    clients: list[DataRoomClient] = []

    def factory(handler: Handler) -> DataRoomClient:
        client = DataRoomClient(config=backend_config, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


@pytest.fixture
def file_cache(tmp_path: Path) -> FileCache:
    """Empty file cache in a temporary directory."""
    return FileCache(tmp_path / "cache.db")


@pytest.fixture
def mock_session_id() -> str:
    """Generate consistent session ID for testing.

    Returns:
        Predictable session ID for test assertions.
    """
    return "test-session-12345"
