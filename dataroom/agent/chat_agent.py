"""Agno agent service for general chat against Groq-hosted models.

Core module for the chatbot page's conversation handling.

Design notes:

1. **SQLite Storage** - Agno's Agent has no default persistence. Without explicit
   storage, session_id is ignored and every request is stateless. The shared
   SqliteDb gives each browser tab its own multi-turn history.

2. **One agent per profile and prompt** - Agno binds the model settings and
   system message at construction, so agents are built lazily for each
   (profile, system prompt) pair and reused. All of them share one storage,
   so history follows the session_id, not the agent.

3. **Profiles** - `text` for regular answers, `json` for structured output,
   and `advanced` (a faster model with a longer budget) for the technical and
   business contexts.

4. **Mock mode** - Without a Groq API key the service still answers, using
   canned replies, so the UI stays usable in development.

5. **Apologies, not exceptions** - Provider failures are logged and turned into
   a polite apology so a chat turn never crashes the page.
"""

import logging
import zlib
from collections.abc import AsyncGenerator
from typing import Any, Literal

from agno.agent import Agent
from agno.db.sqlite import SqliteDb
from agno.models.groq import Groq

from dataroom.agent.config import AgentConfig, get_agent_config
from dataroom.agent.quick_replies import (
    QUICK_REPLY_INSTRUCTIONS,
    build_quick_replies,
    default_quick_replies,
    error_quick_replies,
    parse_response_with_quick_replies,
)
from dataroom.models import ChatReply
from dataroom.settings import get_settings

logger = logging.getLogger(__name__)

Profile = Literal["text", "json", "advanced"]

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Provide clear, concise, and helpful responses."
)
QUICK_REPLY_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Provide clear responses and suggest 2-3 "
    "relevant quick reply buttons for the user."
)

CONTEXT_PROMPTS: dict[str, str] = {
    "technical": (
        "You are a technical expert. Provide detailed, accurate technical information "
        "with examples and best practices."
    ),
    "creative": (
        "You are a creative assistant. Help with brainstorming, creative writing, "
        "and innovative solutions."
    ),
    "educational": (
        "You are an educational tutor. Explain concepts clearly with examples and "
        "encourage learning."
    ),
    "business": (
        "You are a business consultant. Provide strategic insights and practical "
        "business advice."
    ),
    "general": (
        "You are a helpful AI assistant. Provide clear, comprehensive, and useful responses."
    ),
}
ADVANCED_CONTEXTS = frozenset({"technical", "business"})

EMPTY_RESPONSE = "I apologize, but I couldn't generate a response. Please try again."
FAILED_RESPONSE = (
    "I apologize, but I'm having trouble processing your request. Please try again later."
)

MOCK_RESPONSES = (
    "That's a great question! I'd be happy to help you with that.",
    "I understand what you're looking for. Let me provide some guidance.",
    "Interesting point! Here's what I think about that.",
    "Based on your question, here are some suggestions.",
    "Great question! Let me break this down for you.",
)
MOCK_HELP_RESPONSE = (
    "I'm here to help! I can assist with various tasks including answering questions, "
    "providing information, and offering suggestions. What specific area would you "
    "like help with?"
)


def mock_response(message: str) -> str:
    """Canned reply used when no API key is configured.

    The same message always gets the same reply.
    """
    if "help" in message.lower():
        return MOCK_HELP_RESPONSE
    return MOCK_RESPONSES[zlib.crc32(message.encode()) % len(MOCK_RESPONSES)]


def mock_reply_with_quick_replies(message: str) -> ChatReply:
    if "help" in message.lower():
        replies = build_quick_replies(
            ("coding", "💻 Coding help", "coding"),
            ("writing", "✍️ Writing help", "writing"),
            ("general", "🎯 General questions", "general"),
        )
    else:
        replies = build_quick_replies(
            ("more", "📖 Tell me more", "more_info"),
            ("examples", "📝 Show examples", "examples"),
            ("help", "❓ Get help", "help"),
        )
    return ChatReply(content=mock_response(message), quick_replies=replies)


class AgentService:
    """Service for the Groq-backed chat agents.

    Wraps Agno's Agent with:
    - Persistent SQLite storage for session history
    - Model profiles for text, JSON, and advanced reasoning
    - Quick-reply prompting and parsing
    - Mock replies when no API key is set
    """

    def __init__(self, config: AgentConfig | None = None) -> None:
        """Initialize the agent service.

        Args:
            config: Optional agent configuration.
                    Loads from environment if not provided.
        """
        self._config = config or get_agent_config()
        self._agents: dict[tuple[Profile, str], Agent] = {}
        self._storage = self._create_storage() if self._config.is_configured else None
        if not self._config.is_configured:
            logger.warning("GROQ_API_KEY is not set. Using mock responses.")

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def _create_storage(self) -> SqliteDb:
        """Create SQLite storage for session persistence.

        Returns:
            Configured SqliteDb instance.
        """
        settings = get_settings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return SqliteDb(
            db_file=str(settings.sessions_db),
            session_table="chat_sessions",
        )

    def _create_model(self, profile: Profile) -> Groq:
        """Build the Groq model for a profile."""
        if profile == "advanced":
            return Groq(
                id=self._config.advanced_model_name,
                api_key=self._config.api_key,
                temperature=0.6,
                max_tokens=2048,
                top_p=0.9,
            )
        if profile == "json":
            return Groq(
                id=self._config.model_name,
                api_key=self._config.api_key,
                temperature=0.5,
                max_tokens=self._config.max_tokens,
                top_p=self._config.top_p,
                response_format={"type": "json_object"},
            )
        return Groq(
            id=self._config.model_name,
            api_key=self._config.api_key,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            top_p=self._config.top_p,
        )

    def _get_agent(self, profile: Profile, system_prompt: str) -> Agent:
        key = (profile, system_prompt)
        agent = self._agents.get(key)
        if agent is None:
            agent = Agent(
                model=self._create_model(profile),
                db=self._storage,
                system_message=system_prompt,
                # History config: replay the last N messages of this session
                add_history_to_context=True,
                num_history_messages=self._config.history_messages,
                markdown=profile != "json",
            )
            self._agents[key] = agent
        return agent

    async def _run(
        self, profile: Profile, system_prompt: str, message: str, session_id: str
    ) -> str:
        agent = self._get_agent(profile, system_prompt)
        response = await agent.arun(message, session_id=session_id)
        return response.content or ""

    async def get_chat_response(
        self,
        message: str,
        session_id: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        response_type: Literal["text", "json"] = "text",
        profile: Profile | None = None,
    ) -> str:
        """Get a complete response for a message.

        Args:
            message: The user's message.
            session_id: Session identifier for history tracking.
            system_prompt: System message for the agent.
            response_type: "json" requests a JSON object response.
            profile: Explicit model profile; overrides response_type.

        Returns:
            Response text, or an apology if the provider failed.
        """
        if not self.is_configured:
            return mock_response(message)

        profile = profile or ("json" if response_type == "json" else "text")
        try:
            content = await self._run(profile, system_prompt, message, session_id)
        except Exception as e:
            logger.error(f"Error calling Groq ({profile}): {e}")
            return FAILED_RESPONSE

        logger.info(f"Groq response for session {session_id}: {len(content)} chars")
        return content or EMPTY_RESPONSE

    async def get_chat_response_with_quick_replies(
        self,
        message: str,
        session_id: str,
        system_prompt: str = QUICK_REPLY_SYSTEM_PROMPT,
    ) -> ChatReply:
        """Get a response with up to three suggested quick replies."""
        if not self.is_configured:
            return mock_reply_with_quick_replies(message)

        prompt = f"{system_prompt}\n\n{QUICK_REPLY_INSTRUCTIONS}"
        try:
            content = await self._run("text", prompt, message, session_id)
        except Exception as e:
            logger.error(f"Error calling Groq (quick replies): {e}")
            return ChatReply(content=FAILED_RESPONSE, quick_replies=error_quick_replies())

        reply = parse_response_with_quick_replies(content)
        if not reply.content:
            reply.content = EMPTY_RESPONSE
        if not reply.quick_replies:
            reply.quick_replies = default_quick_replies()
        return reply

    async def get_contextual_response(
        self,
        message: str,
        session_id: str,
        context: str = "general",
    ) -> str:
        """Answer in the voice of a context persona.

        Technical and business contexts use the advanced model profile.
        Unknown contexts fall back to general.
        """
        if context not in CONTEXT_PROMPTS:
            context = "general"
        profile: Profile = "advanced" if context in ADVANCED_CONTEXTS else "text"
        return await self.get_chat_response(
            message,
            session_id,
            system_prompt=CONTEXT_PROMPTS[context],
            profile=profile,
        )

    async def stream_response(
        self,
        message: str,
        session_id: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> AsyncGenerator[str]:
        """Stream response chunks for a message.

        Yields:
            Response text chunks as they arrive.
        """
        if not self.is_configured:
            yield mock_response(message)
            return

        try:
            agent = self._get_agent("text", system_prompt)
            response_stream: Any = agent.arun(message, session_id=session_id, stream=True)
            async for chunk in response_stream:
                if hasattr(chunk, "content") and chunk.content:
                    yield chunk.content
        except Exception as e:
            logger.error(f"Error streaming from Groq: {e}")
            yield f"\n\n[Error: {e}]"


# Module-level singleton instance
_agent_service: AgentService | None = None


def get_agent_service() -> AgentService:
    """Get or create the global agent service.

    Returns:
        The AgentService instance.
    """
    global _agent_service
    if _agent_service is None:
        _agent_service = AgentService()
    return _agent_service
