"""Quick-reply suggestions for both chat surfaces.

The LLM is asked to answer in two sections::

    RESPONSE: <answer text>
    QUICK_REPLIES: [{"id": ..., "text": ..., "action": ...}, ...]

`parse_response_with_quick_replies` splits that back apart and falls back to
default buttons whenever the second section is missing or malformed.
"""

import json
import logging

import httpx
from pydantic import ValidationError

from dataroom.client.errors import BackendUnavailableError, StreamError
from dataroom.models import ChatReply, QuickReply
from dataroom.models.schemas import QuestionResponse

logger = logging.getLogger(__name__)

RESPONSE_MARKER = "RESPONSE:"
QUICK_REPLIES_MARKER = "QUICK_REPLIES:"
MAX_QUICK_REPLIES = 3

QUICK_REPLY_INSTRUCTIONS = f"""You must format your response EXACTLY as follows:

{RESPONSE_MARKER} [Your main response here - be helpful and informative]

{QUICK_REPLIES_MARKER} [
  {{"id": "btn1", "text": "📊 Button Text 1", "action": "action1"}},
  {{"id": "btn2", "text": "🎯 Button Text 2", "action": "action2"}},
  {{"id": "btn3", "text": "💡 Button Text 3", "action": "action3"}}
]

Important rules:
- Always include both {RESPONSE_MARKER} and {QUICK_REPLIES_MARKER} sections
- Quick replies must be valid JSON array
- Use emojis in button text to make them more engaging
- Limit to {MAX_QUICK_REPLIES} buttons maximum
- Make button actions relevant to the conversation context"""


def build_quick_replies(*items: tuple[str, str, str]) -> list[QuickReply]:
    return [QuickReply(id=id_, text=text, action=action) for id_, text, action in items]


def default_quick_replies() -> list[QuickReply]:
    return build_quick_replies(
        ("more", "📖 Tell me more", "more_info"),
        ("help", "❓ Need help?", "help"),
        ("continue", "▶️ Continue", "continue"),
    )


def error_quick_replies() -> list[QuickReply]:
    return build_quick_replies(
        ("retry", "🔄 Try Again", "retry"),
        ("help", "❓ Get Help", "help"),
    )


def _parse_quick_replies(raw: str) -> list[QuickReply]:
    raw = raw.strip()
    end = raw.rfind("]")
    if end != -1:
        raw = raw[: end + 1]

    items = json.loads(raw)
    if not isinstance(items, list):
        raise ValueError("Quick replies is not an array")

    replies: list[QuickReply] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            replies.append(QuickReply.model_validate(item))
        except ValidationError:
            continue
    return replies[:MAX_QUICK_REPLIES]


def parse_response_with_quick_replies(text: str) -> ChatReply:
    """Split an LLM answer into content and quick replies.

    Args:
        text: Raw completion text using the RESPONSE/QUICK_REPLIES layout.

    Returns:
        ChatReply with the answer content and up to three quick replies.
    """
    before_replies, has_replies, replies_part = text.partition(QUICK_REPLIES_MARKER)
    _, has_response, response_part = before_replies.partition(RESPONSE_MARKER)

    if has_response:
        content = response_part.strip()
    else:
        content = before_replies.strip() or text.strip()

    if not has_replies:
        return ChatReply(content=content, quick_replies=default_quick_replies())

    try:
        quick_replies = _parse_quick_replies(replies_part)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        logger.info(f"Could not parse quick replies JSON: {e}")
        quick_replies = default_quick_replies()

    return ChatReply(content=content, quick_replies=quick_replies)


def document_quick_replies(response: QuestionResponse | None) -> list[QuickReply]:
    """Follow-up buttons for a data-room answer."""
    if response is None:
        return []

    replies: list[QuickReply] = []
    if response.sources:
        replies.append(QuickReply(id="sources", text="Show sources", action="show_sources"))
    if response.context:
        replies.append(QuickReply(id="context", text="More details", action="show_context"))
    if response.category:
        replies.append(
            QuickReply(
                id="category",
                text=f"More about {response.category}",
                action="category_query",
            )
        )
    replies.append(QuickReply(id="continue", text="Ask another question", action="continue"))
    return replies


WELCOME_MESSAGE = (
    "Hello! I'm your AI assistant with access to your DataRoom documents. "
    "I can answer questions about your uploaded files, analyze financial data, "
    "and help you find specific information across all your documents. "
    "What would you like to know?"
)

HELP_MESSAGE = """I can help you with:

• Answering questions about your uploaded documents
• Analyzing financial data and trends
• Finding specific information across all files
• Comparing data between different documents
• Summarizing key insights from your data

Try asking specific questions like:
• "What was our revenue last quarter?"
• "Show me customer data"
• "Summarize financial performance\""""


def welcome_reply() -> ChatReply:
    return ChatReply(
        content=WELCOME_MESSAGE,
        quick_replies=build_quick_replies(
            ("example1", "What's in my documents?", "list_files"),
            ("example2", "Financial summary", "financial_summary"),
            ("example3", "Show me revenue data", "revenue_query"),
        ),
    )


def canned_quick_reply(action: str) -> ChatReply:
    """Scripted reply for a document-chat quick-reply action."""
    if action == "help":
        return ChatReply(
            content=HELP_MESSAGE,
            quick_replies=build_quick_replies(
                ("example1", "Revenue analysis", "revenue_query"),
                ("example2", "Customer data", "customer_query"),
                ("example3", "Document summary", "summary_query"),
            ),
        )
    if action == "list_files":
        return ChatReply(content="Let me check what documents you have uploaded...")
    if action == "financial_summary":
        return ChatReply(content="Analyzing your financial documents...")
    if action == "revenue_query":
        return ChatReply(
            content=(
                "What specific revenue information would you like to know? For example:\n"
                "• Total revenue for a specific period\n"
                "• Revenue by product or category\n"
                "• Revenue trends over time"
            ),
            quick_replies=build_quick_replies(
                ("total_revenue", "Total revenue", "total_revenue"),
                ("revenue_trends", "Revenue trends", "revenue_trends"),
            ),
        )
    if action == "retry":
        return ChatReply(
            content="Please try asking your question again. I'm ready to help!",
            quick_replies=build_quick_replies(("help", "What can you do?", "help")),
        )
    return ChatReply(
        content="I'm ready to answer questions about your documents. What would you like to know?",
        quick_replies=build_quick_replies(("help", "What can you do?", "help")),
    )


def describe_question_error(exc: Exception) -> str:
    """User-facing message for a failed data-room question."""
    if isinstance(exc, BackendUnavailableError):
        return (
            "The AI service is currently unavailable. "
            "Please check your connection and try again."
        )
    if isinstance(exc, httpx.TransportError) or (
        isinstance(exc, StreamError) and exc.status_code is None
    ):
        return "Unable to connect to the AI service. Please check your internet connection."
    message = str(exc)
    if message:
        return f"Error: {message}"
    return "I encountered an error while processing your question."
