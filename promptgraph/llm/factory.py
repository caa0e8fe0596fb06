"""Model backend factory.

Resolves model IDs to the appropriate backend implementation.
"""

import logging
from typing import Union

from promptgraph.config import ASSISTANT_MODEL
from promptgraph.llm.backends import (
    AnthropicChatBackend,
    OpenAIAssistantsBackend,
    OpenAIChatBackend,
)

logger = logging.getLogger(__name__)

OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4", "chatgpt-")


def get_chat_backend(model_id: str, api_key: str) -> Union[OpenAIChatBackend, AnthropicChatBackend]:
    """Get the plain-completion backend for a model ID.

    Args:
        model_id: Full model identifier (e.g. 'gpt-3.5-turbo', 'claude-sonnet-4-6')
        api_key: Completion service key. Claude models read ANTHROPIC_API_KEY
                 instead, since the key belongs to a different account.

    Raises:
        ValueError: If model_id is not recognized
    """
    if model_id.startswith(OPENAI_PREFIXES):
        return OpenAIChatBackend(api_key=api_key, model_id=model_id)
    elif model_id.startswith("claude-"):
        return AnthropicChatBackend(model_id=model_id)
    else:
        raise ValueError(
            f"Unknown model: '{model_id}'. "
            f"Expected a model ID starting with one of {OPENAI_PREFIXES + ('claude-',)}."
        )


def get_assistants_backend(api_key: str, model_id: str = ASSISTANT_MODEL) -> OpenAIAssistantsBackend:
    """Get the job-model backend. Only OpenAI offers assistants with file search."""
    if not model_id.startswith(OPENAI_PREFIXES):
        raise ValueError(f"Assistant model must be an OpenAI model, got '{model_id}'")
    return OpenAIAssistantsBackend(api_key=api_key, model_id=model_id)
