"""Document assistant: questions about the data room, answered live."""

from collections.abc import Awaitable

from nicegui import ui

from dataroom.client import DataRoomAPIError, get_data_room_client
from dataroom.models import ChatMessage, QuickReply
from dataroom.models.live import LiveProcessingState, StepStatus
from dataroom.models.schemas import QuestionResponse, SourceDocument
from dataroom.streaming import progress_fraction
from dataroom.ui.formatting import (
    CONTEXT_PREVIEW_COUNT,
    format_score,
    format_timestamp,
    markdown_to_html,
    truncate,
)
from dataroom.ui.layout import navbar, page_setup, render_avatar, render_typing, require_auth
from dataroom.ui.state import DocumentChat

STEP_ICONS = {
    StepStatus.PENDING: ("radio_button_unchecked", "text-gray-300"),
    StepStatus.RUNNING: ("autorenew", "text-pink-600 animate-spin"),
    StepStatus.COMPLETED: ("check_circle", "text-green-600"),
    StepStatus.FAILED: ("error", "text-red-600"),
}


def render_live_panel(live: LiveProcessingState) -> None:
    """Pipeline progress while an answer is being prepared."""
    with ui.column().classes("w-full gap-1 bg-white rounded-lg border px-3 py-2"):
        ui.label("AI is analyzing your documents...").classes("text-xs text-gray-500")
        ui.linear_progress(value=progress_fraction(live), show_value=False).props(
            "color=pink rounded size=6px"
        )
        for step in live.steps:
            icon, color = STEP_ICONS[step.status]
            with ui.row().classes("items-center gap-2 no-wrap"):
                ui.icon(icon).classes(f"text-base {color}")
                ui.label(step.label).classes("text-xs text-gray-700")
                if step.message:
                    ui.label(step.message).classes("text-xs text-gray-400 truncate")
                if step.progress is not None and step.status == StepStatus.RUNNING:
                    ui.label(f"{step.progress}%").classes("text-xs text-gray-400")
                if step.duration_ms is not None:
                    ui.label(f"{step.duration_ms} ms").classes("text-xs text-gray-400")


@ui.page("/assistant")
def document_chat_page() -> None:
    """Chat with the data room, with live pipeline status and sources."""
    auth = require_auth()
    if auth is None:
        return
    page_setup("Document Assistant")
    navbar(auth, "/assistant")

    client = get_data_room_client()
    chat = DocumentChat(client)
    # Leaving the page ends any answer still streaming
    ui.context.client.on_disconnect(chat.close)

    input_field: ui.textarea
    send_btn: ui.button

    def on_update(_: ChatMessage) -> None:
        messages_view.refresh()

    async def run(action: Awaitable[ChatMessage | None]) -> None:
        send_btn.disable()
        try:
            message = await action
        finally:
            send_btn.enable()
        if message is not None and message.is_error:
            ui.notify(message.content, type="negative")
        messages_view.refresh()

    async def send_message() -> None:
        text = input_field.value.strip()
        if not text or chat.is_busy:
            return
        input_field.value = ""
        await run(chat.ask(text, on_update))

    async def on_quick_reply(source: ChatMessage, reply: QuickReply) -> None:
        if chat.is_busy:
            return
        await run(chat.quick_reply(source, reply, on_update))

    async def on_retry(message: ChatMessage) -> None:
        if chat.is_busy:
            return
        await run(chat.retry(message, on_update))

    async def download_source(source: SourceDocument) -> None:
        try:
            data = await client.download_file(source.file_id)
        except DataRoomAPIError as e:
            ui.notify(e.detail, type="negative")
            return
        ui.download.content(data, source.file_name)

    def new_chat() -> None:
        chat.reset()
        messages_view.refresh()

    def render_sources(message: ChatMessage, response: QuestionResponse) -> None:
        title = f"Document Sources ({len(response.sources)})"
        with ui.expansion(
            title,
            icon="source",
            value=message.id in chat.expanded,
            on_value_change=lambda e, m=message: chat.set_details(m, e.value),
        ).classes("w-full bg-white rounded-lg border text-sm").props("dense"):
            with ui.row().classes("items-center gap-2"):
                if response.category:
                    ui.badge(response.category).props("outline color=purple")
                if response.timestamp:
                    ui.label(format_timestamp(response.timestamp)).classes("text-xs text-gray-400")

            for source in response.sources:
                with ui.row().classes("w-full items-center gap-2 no-wrap"):
                    ui.icon("description").classes("text-pink-600")
                    ui.label(source.file_name).classes("flex-grow text-sm")
                    if source.category:
                        ui.label(source.category).classes("text-xs text-gray-400")
                    ui.button(
                        icon="download", on_click=lambda s=source: download_source(s)
                    ).props("flat round dense size=sm")

            if response.context:
                ui.label("Relevant context").classes("text-xs font-semibold text-gray-500 mt-2")
            for match in response.context[:CONTEXT_PREVIEW_COUNT]:
                with ui.column().classes("w-full gap-1 bg-gray-50 rounded-lg p-2"):
                    with ui.row().classes("items-center gap-1"):
                        if match.source_file:
                            ui.label(match.source_file).classes("text-xs font-medium")
                        if match.row_number:
                            ui.badge(f"Row {match.row_number}").props("outline")
                        if match.sheet_name:
                            ui.badge(match.sheet_name).props("outline color=blue")
                        if score := format_score(match.score):
                            ui.badge(score).props("outline color=green")
                    ui.label(truncate(match.text)).classes("text-xs text-gray-600")
            hidden = len(response.context) - CONTEXT_PREVIEW_COUNT
            if hidden > 0:
                ui.label(f"... and {hidden} more context matches").classes(
                    "text-xs text-gray-400 italic"
                )

    def render_message(message: ChatMessage) -> None:
        is_user = message.role == "user"
        align = "justify-end" if is_user else "justify-start"
        if is_user:
            bubble = "message-user"
        elif message.is_error:
            bubble = "message-error"
        else:
            bubble = "message-assistant"

        with ui.row().classes(f"w-full {align} gap-3 items-end no-wrap"):
            if not is_user:
                render_avatar(False)
            with ui.column().classes("max-w-[75%] gap-2"):
                live = message.live
                streaming = live is not None and not live.is_finished and not message.is_error
                retryable = message.is_error and bool(message.question)
                if streaming:
                    render_live_panel(live)
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    if not message.content and not is_user:
                        render_typing()
                    elif is_user:
                        content = message.content.replace("\n", "<br>")
                        ui.html(content, sanitize=False).classes("text-sm leading-relaxed")
                    else:
                        ui.html(markdown_to_html(message.content), sanitize=False).classes(
                            "text-sm leading-relaxed"
                        )
                if message.document_response is not None:
                    render_sources(message, message.document_response)
                if retryable:
                    ui.button(
                        "Retry", icon="refresh", on_click=lambda m=message: on_retry(m)
                    ).props("outline dense no-caps color=negative size=sm")
                if message.quick_replies and not streaming and not retryable:
                    with ui.row().classes("gap-2"):
                        for reply in message.quick_replies:
                            ui.button(
                                reply.text,
                                on_click=lambda m=message, r=reply: on_quick_reply(m, r),
                            ).props("outline rounded dense no-caps size=sm color=pink")
                ui.label(message.time_label).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )
            if is_user:
                render_avatar(True)

    @ui.refreshable
    def messages_view() -> None:
        for message in chat.messages:
            render_message(message)

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full p-4 md:p-8"),
        ui.column().classes("w-full max-w-4xl mx-auto app-container").style(
            "height: calc(100vh - 8rem)"
        ),
    ):
        with ui.row().classes("w-full brand-gradient px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("travel_explore").classes("text-white text-3xl")
                ui.label("Document Assistant").classes("text-lg font-semibold text-white")
            ui.button(icon="add", on_click=new_chat).props("flat round color=white").tooltip(
                "New conversation"
            )

        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            with ui.column().classes("w-full gap-4"):
                messages_view()

        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t no-wrap"):
            with ui.element("div").classes("flex-grow input-box px-3 py-2"):
                input_field = (
                    ui.textarea(placeholder="Ask about your documents...")
                    .props("autogrow borderless dense rows=1")
                    .classes("w-full")
                    .on("keydown.enter.prevent", send_message)
                )
            send_btn = (
                ui.button(icon="send", on_click=send_message)
                .props("round unelevated")
                .classes("send-btn")
            )
