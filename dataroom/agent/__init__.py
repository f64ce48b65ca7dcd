"""Agno agent logic for LLM chat.

Responsibilities:
    - Agent initialization with Groq-hosted models
    - Conversation history per browser session
    - Quick-reply prompting and parsing for both chat surfaces
    - Persona (contextual) prompts and model profiles

Leverages the Agno framework for agent lifecycle management.
Maintains clean separation from the UI layer.
"""

from dataroom.agent.chat_agent import AgentService, get_agent_service
from dataroom.agent.config import AgentConfig, get_agent_config

__all__ = ["AgentConfig", "AgentService", "get_agent_config", "get_agent_service"]
