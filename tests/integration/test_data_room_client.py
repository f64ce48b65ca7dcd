"""Integration tests for DataRoomClient against a mock data-room backend.

Requests go through httpx.MockTransport, so the full request/response path
(headers, multipart bodies, status handling, SSE framing) is exercised
without a network.
"""

import json
from collections.abc import Callable

import httpx
import pytest
import pytest_check as check

from dataroom.client import (
    BackendConfig,
    BackendUnavailableError,
    DataRoomAPIError,
    DataRoomClient,
    FileConflictError,
    InvalidUploadError,
    StreamError,
)
from tests.conftest import HEALTHY, Handler, TrackedStream, file_payload, sse_body

ClientFactory = Callable[[Handler], DataRoomClient]


def backend(
    routes: dict[tuple[str, str], httpx.Response],
    calls: list[httpx.Request] | None = None,
) -> Handler:
    """Handler serving a healthy /health plus the given (method, path) routes."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path == "/health":
            return httpx.Response(200, json=HEALTHY)
        key = (request.method, request.url.path)
        if key in routes:
            return routes[key]
        return httpx.Response(404, text="not found")

    return handler


def paths(calls: list[httpx.Request]) -> list[str]:
    return [request.url.path for request in calls]


class TestHealthCheck:
    """Tests for the cached health gate."""

    async def test_healthy_backend_reports_connected(self, make_client: ClientFactory) -> None:
        """A 200 from /health marks the client connected and keeps the payload."""
        client = make_client(backend({}))

        assert await client.check_health() is True
        check.is_true(client.is_connected)
        check.equal(client.last_health.status, "healthy")
        check.equal(client.last_health.files_count, 2)

    async def test_success_is_cached_within_interval(self, make_client: ClientFactory) -> None:
        """A second check inside the interval does not hit the network."""
        calls: list[httpx.Request] = []
        client = make_client(backend({}, calls))

        await client.check_health()
        await client.check_health()

        assert paths(calls) == ["/health"]

    async def test_failure_is_not_cached(self, make_client: ClientFactory) -> None:
        """After a failed check, the next call checks again."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="down")

        client = make_client(handler)

        assert await client.check_health() is False
        assert await client.check_health() is False
        assert len(calls) == 2
        check.is_false(client.is_connected)

    async def test_transport_error_returns_false(self, make_client: ClientFactory) -> None:
        """Connection errors are reported as unhealthy, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        assert await client.check_health() is False

    async def test_operations_fail_fast_when_unhealthy(self, make_client: ClientFactory) -> None:
        """Every operation raises BackendUnavailableError before its own request."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        client = make_client(handler)

        with pytest.raises(BackendUnavailableError) as exc_info:
            await client.list_files()

        assert exc_info.value.detail == "Backend service is unavailable"
        assert paths(calls) == ["/health"]

    async def test_health_requests_json(self, make_client: ClientFactory) -> None:
        """Health checks ask for JSON."""
        calls: list[httpx.Request] = []
        client = make_client(backend({}, calls))

        await client.check_health()

        assert calls[0].headers["accept"] == "application/json"


class TestConnectionLoss:
    """Tests for a backend that goes away inside the cached health window."""

    def dropping_backend(self, calls: list[httpx.Request]) -> tuple[Handler, dict[str, bool]]:
        """Healthy backend whose every request fails once `down` is set."""
        status = {"down": False}

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if status["down"]:
                raise httpx.ConnectError("backend went away", request=request)
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            return httpx.Response(200, json=[])

        return handler, status

    async def test_connection_error_maps_to_unavailable(
        self, make_client: ClientFactory
    ) -> None:
        """A dropped connection raises BackendUnavailableError without a status."""
        calls: list[httpx.Request] = []
        handler, status = self.dropping_backend(calls)
        client = make_client(handler)
        await client.list_files()
        status["down"] = True

        with pytest.raises(BackendUnavailableError) as exc_info:
            await client.list_files()

        check.is_none(exc_info.value.status_code)
        check.is_in("backend went away", exc_info.value.detail)
        check.is_false(client.is_connected)

    async def test_next_call_checks_health_again(self, make_client: ClientFactory) -> None:
        """After a dropped connection the cached health result is not reused."""
        calls: list[httpx.Request] = []
        handler, status = self.dropping_backend(calls)
        client = make_client(handler)
        await client.list_files()
        status["down"] = True
        with pytest.raises(BackendUnavailableError):
            await client.list_files()

        with pytest.raises(BackendUnavailableError) as exc_info:
            await client.list_categories()

        assert exc_info.value.detail == "Backend service is unavailable"
        assert paths(calls) == ["/health", "/files", "/files", "/health"]

    async def test_upload_connection_error(self, make_client: ClientFactory) -> None:
        calls: list[httpx.Request] = []
        handler, status = self.dropping_backend(calls)
        client = make_client(handler)
        await client.check_health()
        status["down"] = True

        with pytest.raises(BackendUnavailableError, match="Upload failed"):
            await client.upload_file("a.txt", b"x")

    async def test_other_httpx_errors_are_wrapped(self, make_client: ClientFactory) -> None:
        """Non-transport httpx failures still surface as DataRoomAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            raise httpx.DecodingError("bad gzip", request=request)

        client = make_client(handler)

        with pytest.raises(DataRoomAPIError) as exc_info:
            await client.list_files()

        assert not isinstance(exc_info.value, BackendUnavailableError)
        assert exc_info.value.detail == "Get files failed: bad gzip"
        assert client.is_connected


class TestUpload:
    """Tests for upload_file status mapping."""

    async def test_upload_sends_multipart_file(self, make_client: ClientFactory) -> None:
        """The file goes in the `file` multipart field and the record is parsed."""
        calls: list[httpx.Request] = []
        routes = {("POST", "/upload"): httpx.Response(200, json=file_payload("f-9", "q3.xlsx"))}
        client = make_client(backend(routes, calls))

        record = await client.upload_file("q3.xlsx", b"sheet-bytes", "application/vnd.ms-excel")

        check.equal(record.file_id, "f-9")
        check.equal(record.category, "Financial")
        upload = calls[-1]
        body = upload.read()
        check.is_in(b'name="file"; filename="q3.xlsx"', body)
        check.is_in(b"sheet-bytes", body)
        check.is_in("multipart/form-data", upload.headers["content-type"])

    async def test_conflict_maps_to_file_conflict(self, make_client: ClientFactory) -> None:
        """409 raises FileConflictError naming the file."""
        routes = {("POST", "/upload"): httpx.Response(409, text="exists")}
        client = make_client(backend(routes))

        with pytest.raises(FileConflictError) as exc_info:
            await client.upload_file("dup.pdf", b"%PDF")

        assert str(exc_info.value) == 'A file with the name "dup.pdf" already exists.'
        assert exc_info.value.status_code == 409

    async def test_bad_request_maps_to_invalid_upload(self, make_client: ClientFactory) -> None:
        """400 raises InvalidUploadError with the size/type message."""
        routes = {("POST", "/upload"): httpx.Response(400, text="bad")}
        client = make_client(backend(routes))

        with pytest.raises(InvalidUploadError) as exc_info:
            await client.upload_file("big.bin", b"x")

        assert exc_info.value.detail == "Invalid file type or file too large (max 10MB)"

    async def test_other_failures_include_status_and_body(self, make_client: ClientFactory) -> None:
        """Other statuses raise a generic error with status and body."""
        routes = {("POST", "/upload"): httpx.Response(500, text="disk full")}
        client = make_client(backend(routes))

        with pytest.raises(DataRoomAPIError) as exc_info:
            await client.upload_file("a.txt", b"x")

        assert exc_info.value.detail == "Upload failed: 500 - disk full"
        assert exc_info.value.status_code == 500


class TestFileOperations:
    """Tests for list, metadata, download, categories, delete, question."""

    async def test_list_files(self, make_client: ClientFactory) -> None:
        """GET /files returns parsed records; unknown fields are ignored."""
        payload = [file_payload("a"), file_payload("b", "b.csv", extra_field=True)]
        client = make_client(backend({("GET", "/files"): httpx.Response(200, json=payload)}))

        files = await client.list_files()

        assert [f.file_id for f in files] == ["a", "b"]
        assert files[1].file_name == "b.csv"

    async def test_get_file_metadata(self, make_client: ClientFactory) -> None:
        """GET /file/{id} returns one record."""
        routes = {("GET", "/file/f-1"): httpx.Response(200, json=file_payload(num_sheets=3))}
        client = make_client(backend(routes))

        record = await client.get_file_metadata("f-1")

        assert record.num_sheets == 3

    async def test_download_returns_bytes(self, make_client: ClientFactory) -> None:
        """GET /download/{id} asks for octet-stream and returns raw bytes."""
        calls: list[httpx.Request] = []
        routes = {("GET", "/download/f-1"): httpx.Response(200, content=b"\x00\x01binary")}
        client = make_client(backend(routes, calls))

        data = await client.download_file("f-1")

        assert data == b"\x00\x01binary"
        assert calls[-1].headers["accept"] == "application/octet-stream"

    async def test_list_categories(self, make_client: ClientFactory) -> None:
        routes = {("GET", "/categories"): httpx.Response(200, json=["Financial", "Legal"])}
        client = make_client(backend(routes))

        assert await client.list_categories() == ["Financial", "Legal"]

    async def test_delete_file(self, make_client: ClientFactory) -> None:
        """DELETE /delete/{id} returns the deletion summary."""
        payload = {"message": "deleted", "file_id": "f-1", "deleted_records": 12}
        routes = {("DELETE", "/delete/f-1"): httpx.Response(200, json=payload)}
        client = make_client(backend(routes))

        result = await client.delete_file("f-1")

        check.equal(result.deleted_records, 12)
        check.equal(result.message, "deleted")

    async def test_ask_question_posts_json(self, make_client: ClientFactory) -> None:
        """POST /question sends the question and parses the structured answer."""
        calls: list[httpx.Request] = []
        answer = {
            "answer": "Revenue was $4.2M.",
            "category": "Financial",
            "sources": [{"file_id": "f-1", "file_name": "q3.xlsx"}],
            "context": [{"id": "c1", "text": "Revenue 4.2M", "row_number": 7, "score": 0.91}],
        }
        routes = {("POST", "/question"): httpx.Response(200, json=answer)}
        client = make_client(backend(routes, calls))

        response = await client.ask_question("What was revenue?")

        assert json.loads(calls[-1].read()) == {"question": "What was revenue?"}
        check.equal(response.answer, "Revenue was $4.2M.")
        check.equal(response.sources[0].file_name, "q3.xlsx")
        check.equal(response.context[0].row_number, 7)
        check.is_none(response.context[0].sheet_name)

    async def test_non_success_raises_with_action(self, make_client: ClientFactory) -> None:
        """Failures name the action, the status, and the body."""
        client = make_client(backend({("GET", "/files"): httpx.Response(502, text="gateway")}))

        with pytest.raises(DataRoomAPIError) as exc_info:
            await client.list_files()

        assert exc_info.value.detail == "Get files failed: 502 - gateway"
        assert exc_info.value.status_code == 502


class TestStreamQuestion:
    """Tests for the live question stream."""

    def stream_handler(
        self,
        body: str,
        calls: list[httpx.Request],
        status_code: int = 200,
    ) -> Handler:
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            return httpx.Response(
                status_code,
                text=body,
                headers={"content-type": "text/event-stream"},
            )

        return handler

    async def test_stream_request_shape(
        self, make_client: ClientFactory, mock_session_id: str
    ) -> None:
        """The stream is a GET on the session path with the question as a query param."""
        calls: list[httpx.Request] = []
        body = sse_body({"type": "connected"}, {"type": "complete"})
        client = make_client(self.stream_handler(body, calls))

        events = [e async for e in client.stream_question("Total revenue?", mock_session_id)]

        request = calls[-1]
        check.equal(request.url.path, f"/question-live-stream/{mock_session_id}")
        check.equal(request.url.params["question"], "Total revenue?")
        check.equal(request.headers["accept"], "text/event-stream")
        check.equal([e.type for e in events], ["connected", "complete"])

    async def test_stream_generates_session_id(self, make_client: ClientFactory) -> None:
        """Without a session id, a fresh one is used in the path."""
        calls: list[httpx.Request] = []
        client = make_client(self.stream_handler(sse_body({"type": "complete"}), calls))

        [e async for e in client.stream_question("q")]

        session_id = calls[-1].url.path.rsplit("/", 1)[-1]
        assert len(session_id) == 36

    async def test_stream_stops_at_terminal_event(self, make_client: ClientFactory) -> None:
        """Events after `error` are not yielded."""
        calls: list[httpx.Request] = []
        body = sse_body(
            {"type": "step_started", "step": "vector_search"},
            {"type": "error", "message": "Index offline"},
            {"type": "answer_chunk", "content": "late"},
        )
        client = make_client(self.stream_handler(body, calls))

        events = [e async for e in client.stream_question("q")]

        assert [e.type for e in events] == ["step_started", "error"]

    async def test_stream_skips_malformed_payloads(self, make_client: ClientFactory) -> None:
        """Non-JSON data and untyped payloads are dropped."""
        calls: list[httpx.Request] = []
        body = sse_body("not json", {"no_type": True}, {"type": "answer_chunk", "content": "Hi"})
        body += ": keep-alive\n\n" + sse_body({"type": "complete"})
        client = make_client(self.stream_handler(body, calls))

        events = [e async for e in client.stream_question("q")]

        assert [e.type for e in events] == ["answer_chunk", "complete"]
        assert events[0].data["content"] == "Hi"

    async def test_stream_non_success_raises(self, make_client: ClientFactory) -> None:
        """A non-2xx stream response raises StreamError with the status."""
        calls: list[httpx.Request] = []
        client = make_client(self.stream_handler("no such session", calls, status_code=404))

        with pytest.raises(StreamError) as exc_info:
            [e async for e in client.stream_question("q")]

        assert exc_info.value.status_code == 404
        assert "no such session" in exc_info.value.detail

    async def test_stream_transport_error_raises(self, make_client: ClientFactory) -> None:
        """A broken connection surfaces as StreamError without a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            raise httpx.ReadError("connection reset", request=request)

        client = make_client(handler)

        with pytest.raises(StreamError) as exc_info:
            [e async for e in client.stream_question("q")]

        assert exc_info.value.status_code is None
        assert exc_info.value.detail.startswith("Connection failed:")

    def tracked_handler(self, stream: TrackedStream) -> Handler:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            return httpx.Response(
                200, stream=stream, headers={"content-type": "text/event-stream"}
            )

        return handler

    async def test_response_closed_after_terminal_event(
        self, make_client: ClientFactory
    ) -> None:
        """The response is closed once `complete` arrives, even with data left."""
        stream = TrackedStream(
            sse_body({"type": "complete"}, {"type": "answer_chunk", "content": "late"}),
            hang=True,
        )
        client = make_client(self.tracked_handler(stream))

        events = [e async for e in client.stream_question("q")]

        assert [e.type for e in events] == ["complete"]
        assert stream.closed

    async def test_response_closed_when_consumer_stops(
        self, make_client: ClientFactory
    ) -> None:
        """Closing the iterator early closes the HTTP response."""
        body = sse_body({"type": "connected"}, {"type": "step_started", "step": "x"})
        stream = TrackedStream(body, hang=True)
        client = make_client(self.tracked_handler(stream))

        events = client.stream_question("q")
        async for event in events:
            assert event.type == "connected"
            break
        check.is_false(stream.closed)

        await events.aclose()

        assert stream.closed

    async def test_stream_transport_error_drops_cached_health(
        self, make_client: ClientFactory
    ) -> None:
        """A broken stream connection makes the next call check health again."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if request.url.path == "/health":
                return httpx.Response(200, json=HEALTHY)
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(StreamError):
            [e async for e in client.stream_question("q")]

        assert not client.is_connected
        await client.check_health()
        assert [r.url.path for r in calls].count("/health") == 2

    async def test_stream_requires_healthy_backend(self, make_client: ClientFactory) -> None:
        """The stream is not opened when the health check fails."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        client = make_client(handler)

        with pytest.raises(BackendUnavailableError):
            [e async for e in client.stream_question("q")]


class TestClientLifecycle:
    """Tests for the shared client accessor."""

    async def test_singleton_and_close(self) -> None:
        """get_data_room_client reuses one instance until it is closed."""
        import dataroom.client.data_room as data_room_module

        data_room_module._client = None
        first = data_room_module.get_data_room_client()
        second = data_room_module.get_data_room_client()

        assert first is second

        await data_room_module.close_data_room_client()
        assert data_room_module._client is None

    async def test_context_manager_closes_http_client(
        self, backend_config: BackendConfig
    ) -> None:
        """Leaving the async context closes the underlying httpx client."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=HEALTHY))

        async with DataRoomClient(config=backend_config, transport=transport) as client:
            assert await client.check_health() is True

        assert client._http.is_closed
