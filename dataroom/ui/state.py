"""Per-page state for the NiceGUI views.

The classes here own what each page shows and the calls behind its
controls; the page modules only render them. Keeping NiceGUI out of this
module lets the flows run in tests against a mock backend.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import Any

from dataroom.agent import AgentService
from dataroom.agent.chat_agent import CONTEXT_PROMPTS
from dataroom.agent.quick_replies import (
    canned_quick_reply,
    default_quick_replies,
    describe_question_error,
    document_quick_replies,
    error_quick_replies,
    welcome_reply,
)
from dataroom.client import BackendUnavailableError, DataRoomAPIError, DataRoomClient
from dataroom.models import ChatMessage, ChatReply, QuickReply
from dataroom.models.live import StepStatus
from dataroom.models.schemas import DeleteResponse, FileRecord
from dataroom.parsing import detect_file_type, display_type, extract_pdf_metadata, validate_upload
from dataroom.storage import FileCache, StoredFile
from dataroom.streaming import initial_state, reduce_event
from dataroom.ui.formatting import filter_categories, group_files_by_category

logger = logging.getLogger(__name__)

STREAM_ENDED_MESSAGE = "The answer stream ended before an answer was received."

# Quick-reply actions that turn into a data-room question
QUESTION_ACTIONS = {
    "financial_summary": "Summarize the financial performance across my documents",
    "total_revenue": "What is the total revenue?",
    "revenue_trends": "How has revenue changed over time?",
    "customer_query": "Show me customer data",
    "summary_query": "Summarize my documents",
}


def cached_record(stored: StoredFile) -> FileRecord:
    """FileRecord view of a locally cached file."""
    return FileRecord(
        file_id=stored.id,
        file_name=stored.name,
        original_name=stored.name,
        category=stored.category or "",
        file_size_bytes=stored.size,
        ingestion_timestamp=stored.upload_date.isoformat(),
        status="cached",
    )


class DataRoomState:
    """Files and categories shown on the data-room page.

    Falls back to the local cache when the backend is unreachable.
    """

    def __init__(self, client: DataRoomClient, cache: FileCache) -> None:
        self._client = client
        self._cache = cache
        self.files: list[FileRecord] = []
        self.categories: list[str] = []
        self.backend_online = False
        self.loading = False
        self.search = ""

    @property
    def offline(self) -> bool:
        return not self.backend_online

    async def refresh(self) -> None:
        """Reload files and categories from the backend, or from the cache."""
        self.loading = True
        try:
            self.backend_online = await self._client.check_health()
            if self.backend_online:
                try:
                    self.files = await self._client.list_files()
                    self.categories = await self._client.list_categories()
                    return
                except BackendUnavailableError as e:
                    logger.error(f"Backend dropped during refresh: {e}")
                    self.backend_online = False

            logger.warning("Backend unavailable, showing cached files")
            self.files = [cached_record(stored) for stored in self._cache.get_all_files()]
            self.categories = sorted({f.category for f in self.files if f.category})
        finally:
            self.loading = False

    async def upload(
        self, name: str | None, content: bytes, content_type: str | None = None
    ) -> FileRecord:
        """Validate, upload, and cache a file.

        Raises:
            InvalidUploadError: If the file fails local validation.
            DataRoomAPIError: If the backend rejects the upload.
        """
        name = validate_upload(name, content, self._client.config.max_upload_size)
        record = await self._client.upload_file(name, content, content_type)

        metadata: dict[str, Any] = {
            "category": record.category,
            "num_records": record.num_records,
            "num_sheets": record.num_sheets,
        }
        if detect_file_type(name, content_type) == "pdf":
            if pdf := extract_pdf_metadata(content):
                metadata["pdf"] = pdf

        self._cache.save_file(
            StoredFile(
                id=record.file_id,
                name=record.file_name or name,
                size=len(content),
                type=display_type(name, content_type),
                category=record.category or None,
                metadata=metadata,
                data=content,
            )
        )
        self.files = [f for f in self.files if f.file_id != record.file_id] + [record]
        if record.category and record.category not in self.categories:
            self.categories.append(record.category)
        return record

    async def download(self, record: FileRecord) -> bytes:
        """File bytes from the backend, or from the cache when it is down."""
        try:
            return await self._client.download_file(record.file_id)
        except BackendUnavailableError:
            cached = self._cache.get_file(record.file_id)
            if cached is None or not cached.data:
                raise
            logger.info(f"Serving {record.file_name} from the local cache")
            return cached.data

    async def delete(self, record: FileRecord) -> DeleteResponse:
        result = await self._client.delete_file(record.file_id)
        self._cache.delete_file(record.file_id)
        self.files = [f for f in self.files if f.file_id != record.file_id]
        return result

    def metadata_for(self, record: FileRecord) -> dict[str, Any]:
        """Metadata tree for a file: backend fields plus cached metadata."""
        metadata: dict[str, Any] = record.model_dump(
            exclude={"file_id", "point_ids", "download_url"}
        )
        cached = self._cache.get_file(record.file_id)
        if cached and cached.metadata:
            metadata["cached"] = cached.metadata
        return metadata

    def grouped(self) -> dict[str, list[FileRecord]]:
        """Files grouped by category and filtered by the search text."""
        grouped = group_files_by_category(self.files, self.categories)
        if not self.search.strip():
            return grouped
        metadata = {record.file_id: self.metadata_for(record) for record in self.files}
        return filter_categories(grouped, self.search, metadata)


class DocumentChat:
    """Conversation with the data room, answered over the live stream."""

    def __init__(self, client: DataRoomClient) -> None:
        self._client = client
        self.session_id = uuid.uuid4().hex
        self.messages: list[ChatMessage] = []
        self.is_busy = False
        self.expanded: set[str] = set()
        self._answer_task: asyncio.Task[Any] | None = None
        self._add_assistant(welcome_reply())

    def _add_user(self, text: str) -> ChatMessage:
        message = ChatMessage(role="user", content=text)
        self.messages.append(message)
        return message

    def _add_assistant(self, reply: ChatReply, **fields: Any) -> ChatMessage:
        message = ChatMessage(
            role="assistant",
            content=reply.content,
            quick_replies=reply.quick_replies,
            **fields,
        )
        self.messages.append(message)
        return message

    def reset(self) -> None:
        self.session_id = uuid.uuid4().hex
        self.messages.clear()
        self.expanded.clear()
        self._add_assistant(welcome_reply())

    def close(self) -> None:
        """Cancel the answer in progress; its live stream closes with it."""
        if self._answer_task is not None and not self._answer_task.done():
            logger.info("Cancelling answer in progress")
            self._answer_task.cancel()

    def set_details(self, message: ChatMessage, expanded: bool) -> None:
        if expanded:
            self.expanded.add(message.id)
        else:
            self.expanded.discard(message.id)

    async def ask(
        self,
        question: str,
        on_update: Callable[[ChatMessage], None] | None = None,
    ) -> ChatMessage:
        """Ask a question and stream the answer into a new assistant message.

        Args:
            question: The user's question.
            on_update: Called with the assistant message after every event.

        Returns:
            The finished assistant message (answer or error).
        """
        self._add_user(question)
        return await self._answer(question, on_update)

    async def retry(
        self,
        message: ChatMessage,
        on_update: Callable[[ChatMessage], None] | None = None,
    ) -> ChatMessage | None:
        """Replace a failed answer with a fresh attempt at the same question."""
        if not message.is_error or not message.question:
            return None
        self.messages = [m for m in self.messages if m.id != message.id]
        return await self._answer(message.question, on_update)

    async def _answer(
        self,
        question: str,
        on_update: Callable[[ChatMessage], None] | None,
    ) -> ChatMessage:
        stream_id = uuid.uuid4().hex
        message = ChatMessage(
            role="assistant",
            content="",
            live=initial_state(stream_id),
            question=question,
        )
        self.messages.append(message)
        self.is_busy = True
        self._answer_task = asyncio.current_task()
        try:
            async for event in self._client.stream_question(question, stream_id):
                message.live = reduce_event(message.live, event)
                message.content = message.live.partial_answer
                if on_update:
                    on_update(message)
        except DataRoomAPIError as e:
            logger.error(f"Question failed: {e}")
            self._fail(message, describe_question_error(e))
        else:
            self._settle(message)
        finally:
            self.is_busy = False
            self._answer_task = None

        if on_update:
            on_update(message)
        return message

    def _settle(self, message: ChatMessage) -> None:
        live = message.live
        if live is None:
            return
        if live.status == StepStatus.FAILED:
            self._fail(message, live.error or "Processing failed")
        elif live.result is not None:
            message.content = live.result.answer
            message.document_response = live.result
            message.quick_replies = document_quick_replies(live.result)
        elif live.status == StepStatus.COMPLETED and live.partial_answer:
            message.content = live.partial_answer
            message.quick_replies = default_quick_replies()
        else:
            self._fail(message, STREAM_ENDED_MESSAGE)

    @staticmethod
    def _fail(message: ChatMessage, text: str) -> None:
        message.is_error = True
        message.content = text
        message.quick_replies = error_quick_replies()

    async def quick_reply(
        self,
        source: ChatMessage,
        reply: QuickReply,
        on_update: Callable[[ChatMessage], None] | None = None,
    ) -> ChatMessage | None:
        """Handle a quick-reply button under `source`.

        Returns:
            The new assistant message, or None when the action only changed
            how `source` is displayed.
        """
        action = reply.action
        if action in ("show_sources", "show_context"):
            self.expanded.add(source.id)
            return None
        if action == "retry" and source.is_error and source.question:
            return await self.retry(source, on_update)
        if action == "category_query" and source.document_response:
            category = source.document_response.category or "this category"
            return await self.ask(f"Tell me more about {category}", on_update)
        if action in QUESTION_ACTIONS:
            self._add_user(reply.text)
            return await self._answer(QUESTION_ACTIONS[action], on_update)

        self._add_user(reply.text)
        if action == "list_files":
            return await self._list_files()
        return self._add_assistant(canned_quick_reply(action))

    async def _list_files(self) -> ChatMessage:
        try:
            files = await self._client.list_files()
        except DataRoomAPIError as e:
            logger.error(f"Listing files failed: {e}")
            return self._add_assistant(
                ChatReply(content=describe_question_error(e), quick_replies=error_quick_replies()),
                is_error=True,
            )

        if not files:
            content = (
                "You haven't uploaded any documents yet. "
                "Add files in the Data Room to get started."
            )
        else:
            lines = [f"You have {len(files)} document{'s' if len(files) != 1 else ''}:", ""]
            lines += [
                f"- **{f.original_name or f.file_name}** ({f.category or 'Uncategorized'})"
                for f in files
            ]
            content = "\n".join(lines)
        reply = ChatReply(content=content, quick_replies=default_quick_replies())
        return self._add_assistant(reply)


class GeneralChat:
    """Free-form LLM conversation for the chatbot page."""

    def __init__(self, agent: AgentService) -> None:
        self._agent = agent
        self.session_id = uuid.uuid4().hex
        self.messages: list[ChatMessage] = []
        self.context = "general"
        self.is_busy = False

    @property
    def contexts(self) -> list[str]:
        return list(CONTEXT_PROMPTS)

    def reset(self) -> None:
        self.session_id = uuid.uuid4().hex
        self.messages.clear()

    def add_user_message(self, text: str) -> ChatMessage:
        message = ChatMessage(role="user", content=text)
        self.messages.append(message)
        self.is_busy = True
        return message

    async def send(self, text: str) -> ChatMessage:
        """Send a message and append the assistant's reply."""
        self.add_user_message(text)
        return await self.respond(text)

    async def respond(self, text: str) -> ChatMessage:
        """Answer the latest user message."""
        self.is_busy = True
        try:
            if self.context == "general":
                reply = await self._agent.get_chat_response_with_quick_replies(
                    text, self.session_id
                )
            else:
                content = await self._agent.get_contextual_response(
                    text, self.session_id, self.context
                )
                reply = ChatReply(content=content, quick_replies=default_quick_replies())
        finally:
            self.is_busy = False

        message = ChatMessage(
            role="assistant",
            content=reply.content,
            quick_replies=reply.quick_replies,
        )
        self.messages.append(message)
        return message
