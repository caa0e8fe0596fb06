"""Completion service backends (OpenAI assistants and chat, Anthropic chat)."""

from promptgraph.llm.backends import (
    AnthropicChatBackend,
    AssistantHandle,
    AssistantsBackend,
    ChatBackend,
    LLMCallResult,
    OpenAIAssistantsBackend,
    OpenAIChatBackend,
)
from promptgraph.llm.factory import get_assistants_backend, get_chat_backend

__all__ = [
    "AnthropicChatBackend",
    "AssistantHandle",
    "AssistantsBackend",
    "ChatBackend",
    "LLMCallResult",
    "OpenAIAssistantsBackend",
    "OpenAIChatBackend",
    "get_assistants_backend",
    "get_chat_backend",
]
