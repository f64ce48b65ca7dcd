"""Agent configuration with environment variable loading.

Pydantic-based configuration for the Groq-backed chat agent.
A missing API key is allowed: the agent then answers with mock replies.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_MODEL = "meta-llama/llama-4-maverick-17b-128e-instruct"
DEFAULT_ADVANCED_MODEL = "llama-3.1-8b-instant"


class AgentConfig(BaseModel):
    """Configuration for the Groq chat agent.

    Attributes:
        api_key: Groq API key (None runs the agent in mock mode).
        model_name: Model used for regular and quick-reply chat.
        advanced_model_name: Model used for technical and business contexts.
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = creative).
        max_tokens: Maximum tokens in generated response.
        top_p: Nucleus sampling threshold.
        history_messages: Prior messages replayed into each request.
    """

    api_key: str | None = Field(
        default_factory=lambda: os.getenv("GROQ_API_KEY", os.getenv("LLM_API_KEY", "")),
        description="API key for the Groq provider",
    )
    model_name: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", DEFAULT_MODEL),
        description="Model to use",
    )
    advanced_model_name: str = Field(
        default_factory=lambda: os.getenv("LLM_ADVANCED_MODEL", DEFAULT_ADVANCED_MODEL),
        description="Model used for advanced reasoning contexts",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    max_tokens: int = Field(
        default=1024,
        ge=1,
        le=128000,
        description="Maximum tokens in generated response",
    )
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    history_messages: int = Field(default=20, ge=0)

    @field_validator("api_key")
    @classmethod
    def normalize_api_key(cls, v: str | None) -> str | None:
        """Strip the API key; blank values mean no key is configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None


def get_agent_config() -> AgentConfig:
    """Create agent configuration from environment.

    Returns:
        Configured AgentConfig instance.
    """
    return AgentConfig()
