"""General LLM chatbot page."""

from nicegui import ui

from dataroom.agent import get_agent_service
from dataroom.models import ChatMessage, QuickReply
from dataroom.ui.formatting import markdown_to_html
from dataroom.ui.layout import navbar, page_setup, render_avatar, render_typing, require_auth
from dataroom.ui.state import GeneralChat


@ui.page("/chatbot")
def chat_page() -> None:
    """Free-form chat with quick replies and a persona selector."""
    auth = require_auth()
    if auth is None:
        return
    page_setup("Chatbot")
    navbar(auth, "/chatbot")

    agent = get_agent_service()
    chat = GeneralChat(agent)

    input_field: ui.textarea
    send_btn: ui.button

    def render_message(message: ChatMessage, is_last: bool) -> None:
        is_user = message.role == "user"
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"

        with ui.row().classes(f"w-full {align} gap-3 items-end no-wrap"):
            if not is_user:
                render_avatar(False)
            with ui.column().classes("max-w-[70%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    # Render markdown for assistant, plain text for user
                    if is_user:
                        content = message.content.replace("\n", "<br>")
                    else:
                        content = markdown_to_html(message.content)
                    ui.html(content, sanitize=False).classes("text-sm leading-relaxed")
                if is_last and message.quick_replies and not chat.is_busy:
                    with ui.row().classes("gap-2"):
                        for reply in message.quick_replies:
                            ui.button(
                                reply.text, on_click=lambda r=reply: on_quick_reply(r)
                            ).props("outline rounded dense no-caps size=sm color=pink")
                ui.label(message.time_label).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )
            if is_user:
                render_avatar(True)

    @ui.refreshable
    def messages_view() -> None:
        if not chat.messages:
            with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                ui.icon("forum").classes("text-5xl text-gray-300")
                ui.label("Start a conversation").classes("text-lg text-gray-400")
                if not agent.is_configured:
                    ui.label("Demo mode: set GROQ_API_KEY for live answers").classes(
                        "text-xs text-gray-400"
                    )
            return
        for index, message in enumerate(chat.messages):
            render_message(message, index == len(chat.messages) - 1)
        if chat.is_busy:
            with ui.row().classes("w-full justify-start gap-3 items-end"):
                render_avatar(False)
                with ui.element("div").classes("message-assistant px-4 py-3"):
                    render_typing()

    async def send(text: str) -> None:
        if not text or chat.is_busy:
            return
        send_btn.disable()
        chat.add_user_message(text)
        messages_view.refresh()
        try:
            await chat.respond(text)
        finally:
            send_btn.enable()
            messages_view.refresh()

    async def send_message() -> None:
        text = input_field.value.strip()
        input_field.value = ""
        await send(text)

    async def on_quick_reply(reply: QuickReply) -> None:
        await send(reply.text)

    def new_chat() -> None:
        chat.reset()
        messages_view.refresh()

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 8rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full brand-gradient px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("smart_toy").classes("text-white text-3xl")
                ui.label("AI Chatbot").classes("text-lg font-semibold text-white")
            with ui.row().classes("items-center gap-3"):
                ui.select(
                    {name: name.title() for name in chat.contexts},
                    value=chat.context,
                ).bind_value(chat, "context").props("dense outlined dark options-dense").classes(
                    "w-36"
                )
                ui.button(icon="add", on_click=new_chat).props("flat round color=white")

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5 gap-4"),
        ):
            messages_view()

        # Input
        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t no-wrap"):
            with ui.element("div").classes("flex-grow input-box px-3 py-2"):
                input_field = (
                    ui.textarea(placeholder="Type a message...")
                    .props("autogrow borderless dense rows=1")
                    .classes("w-full")
                    .on("keydown.enter.prevent", send_message)
                )
            send_btn = (
                ui.button(icon="send", on_click=send_message)
                .props("round unelevated")
                .classes("send-btn")
            )
