"""Pydantic models for conversation state and backend payloads.

Provides type safety and validation for everything the UI renders.

Models:
    - QuickReply: Suggested follow-up button
    - ChatReply: Assistant text with its quick replies
    - ChatMessage: Individual message in a conversation
    - schemas: Data-room backend contracts (files, questions, health)
    - live: Live-stream events and pipeline state
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from dataroom.models.live import LiveProcessingState
from dataroom.models.schemas import QuestionResponse


class QuickReply(BaseModel):
    """A suggested reply rendered as a button under a message.

    Attributes:
        id: Stable button identifier.
        text: Button label, sent as the user's message when clicked.
        action: Action key interpreted by the chat handler.
    """

    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class ChatReply(BaseModel):
    """Assistant response text paired with its quick replies."""

    content: str
    quick_replies: list[QuickReply] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """A single chat message in the conversation.

    Attributes:
        role: The speaker, user or assistant.
        content: The message text.
        timestamp: When the message was created.
        document_response: Structured answer from the data room, if any.
        is_error: Whether the message reports a failure.
        quick_replies: Suggested follow-ups.
        live: Pipeline state while the answer is streaming.
        question: Question to resend when the user retries a failed answer.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    document_response: QuestionResponse | None = None
    is_error: bool = False
    quick_replies: list[QuickReply] = Field(default_factory=list)
    live: LiveProcessingState | None = None
    question: str | None = None

    @property
    def time_label(self) -> str:
        return self.timestamp.strftime("%I:%M %p")
