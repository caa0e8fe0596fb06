"""LLM backend abstraction for the completion service.

Two kinds of backend exist:

- AssistantsBackend: the asynchronous job model. A thread holds the
  conversation, an assistant holds model + instructions + document search,
  and a run binds the two and is polled until it reaches a terminal status.
- ChatBackend: a single request/response completion. Used directly for
  document-less prompts and as the fallback when a job does not complete.

Backends only talk to the provider. Polling policy, fallback and
placeholder handling live in executor.job_client.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from promptgraph.config import (
    ASSISTANT_INSTRUCTIONS,
    ASSISTANT_MODEL,
    ASSISTANT_NAME,
    FALLBACK_MODEL,
)
from promptgraph.documents.store import DocumentHandle
from promptgraph.errors import MalformedResponseError

logger = logging.getLogger(__name__)

# Each HTTP call is short: job creation and status checks return
# immediately, plain completions are small.
DEFAULT_TIMEOUT = httpx.Timeout(connect=30.0, read=120.0, write=30.0, pool=30.0)
DEFAULT_MAX_TOKENS = 4096


@dataclass
class LLMCallResult:
    """Normalized response from a chat backend."""

    content: str
    model_id: str
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0


@dataclass
class AssistantHandle:
    """A per-call assistant.

    vector_store_id is set only when a vector store was created for this
    assistant and must be deleted along with it.
    """

    id: str
    vector_store_id: Optional[str] = None


@runtime_checkable
class AssistantsBackend(Protocol):
    """Protocol for job-model (thread / assistant / run) backends."""

    async def create_thread(self, prompt: str) -> str: ...

    async def create_assistant(self, document: DocumentHandle) -> AssistantHandle: ...

    async def create_run(self, thread_id: str, assistant_id: str) -> str: ...

    async def retrieve_run(self, thread_id: str, run_id: str) -> str:
        """Current run status string."""
        ...

    async def latest_message(self, thread_id: str) -> Any:
        """Newest message in the thread, or None if there is none."""
        ...

    async def delete_assistant(self, assistant_id: str) -> None: ...

    async def delete_vector_store(self, vector_store_id: str) -> None: ...


@runtime_checkable
class ChatBackend(Protocol):
    """Protocol for single-shot completion backends."""

    @property
    def model_id(self) -> str: ...

    async def complete(self, prompt: str, *, label: str = "") -> LLMCallResult: ...


class OpenAIAssistantsBackend:
    """OpenAI Assistants API (beta threads/runs) with file_search."""

    def __init__(self, api_key: str, model_id: str = ASSISTANT_MODEL, client: Any = None):
        self._model_id = model_id
        if client is None:
            from openai import AsyncOpenAI

            client = AsyncOpenAI(api_key=api_key, timeout=DEFAULT_TIMEOUT)
        self._client = client

    @property
    def model_id(self) -> str:
        return self._model_id

    async def create_thread(self, prompt: str) -> str:
        thread = await self._client.beta.threads.create(
            messages=[{"role": "user", "content": prompt}],
        )
        return thread.id

    async def create_assistant(self, document: DocumentHandle) -> AssistantHandle:
        """Create an assistant whose file_search sees exactly one document.

        A vector store id is used as is. A bare file id gets a vector store
        of its own, owned by the returned handle.
        """
        owned_store_id = None
        if document.is_vector_store:
            store_id = document.external_id
        else:
            store = await self._client.vector_stores.create(
                name=f"{ASSISTANT_NAME} - {document.name or document.external_id}",
                file_ids=[document.external_id],
            )
            store_id = owned_store_id = store.id
            logger.info(f"Created vector store {store_id} for {document.external_id}")

        try:
            assistant = await self._client.beta.assistants.create(
                name=ASSISTANT_NAME,
                instructions=ASSISTANT_INSTRUCTIONS,
                model=self._model_id,
                tools=[{"type": "file_search"}],
                tool_resources={"file_search": {"vector_store_ids": [store_id]}},
            )
        except Exception:
            if owned_store_id is not None:
                await self._delete_store_quietly(owned_store_id)
            raise
        return AssistantHandle(id=assistant.id, vector_store_id=owned_store_id)

    async def create_run(self, thread_id: str, assistant_id: str) -> str:
        run = await self._client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=assistant_id,
        )
        return run.id

    async def retrieve_run(self, thread_id: str, run_id: str) -> str:
        run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        return run.status

    async def latest_message(self, thread_id: str) -> Any:
        page = await self._client.beta.threads.messages.list(
            thread_id=thread_id,
            order="desc",
            limit=1,
        )
        data = getattr(page, "data", None)
        if not data:
            return None
        return data[0]

    async def delete_assistant(self, assistant_id: str) -> None:
        await self._client.beta.assistants.delete(assistant_id)

    async def delete_vector_store(self, vector_store_id: str) -> None:
        await self._client.vector_stores.delete(vector_store_id)

    async def _delete_store_quietly(self, vector_store_id: str) -> None:
        try:
            await self.delete_vector_store(vector_store_id)
        except Exception as e:
            logger.warning(f"Could not delete vector store {vector_store_id}: {e}")


class OpenAIChatBackend:
    """OpenAI chat completions."""

    def __init__(self, api_key: str, model_id: str = FALLBACK_MODEL, client: Any = None):
        self._model_id = model_id
        if client is None:
            from openai import AsyncOpenAI

            client = AsyncOpenAI(api_key=api_key, timeout=DEFAULT_TIMEOUT)
        self._client = client

    @property
    def model_id(self) -> str:
        return self._model_id

    async def complete(self, prompt: str, *, label: str = "") -> LLMCallResult:
        start_time = time.time()
        logger.info(f"[{label}] OpenAI chat {self._model_id}: {len(prompt):,} chars")

        response = await self._client.chat.completions.create(
            model=self._model_id,
            messages=[{"role": "user", "content": prompt}],
        )
        duration_ms = int((time.time() - start_time) * 1000)

        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedResponseError(f"[{label}] Response has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise MalformedResponseError(f"[{label}] Message content is not text: {content!r}")

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) if usage else 0
        output_tokens = getattr(usage, "completion_tokens", 0) if usage else 0

        logger.info(
            f"[{label}] Chat completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(content):,} chars"
        )
        return LLMCallResult(
            content=content,
            model_id=self._model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )


class AnthropicChatBackend:
    """Anthropic Claude messages API as a plain completion backend.

    Requires ANTHROPIC_API_KEY unless a key is passed explicitly.
    """

    def __init__(
        self,
        model_id: str = "claude-sonnet-4-6",
        api_key: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: Any = None,
    ):
        self._model_id = model_id
        self._max_tokens = max_tokens
        if client is None:
            from anthropic import AsyncAnthropic

            api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise RuntimeError(
                    "ANTHROPIC_API_KEY not set. Set the environment variable to use Claude models."
                )
            client = AsyncAnthropic(api_key=api_key, timeout=DEFAULT_TIMEOUT)
        self._client = client

    @property
    def model_id(self) -> str:
        return self._model_id

    async def complete(self, prompt: str, *, label: str = "") -> LLMCallResult:
        start_time = time.time()
        logger.info(f"[{label}] Anthropic {self._model_id}: {len(prompt):,} chars")

        response = await self._client.messages.create(
            model=self._model_id,
            max_tokens=self._max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "text":
                raw_text += block.text
        if not raw_text.strip():
            raise MalformedResponseError(f"[{label}] Empty response from {self._model_id}")

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "input_tokens", 0) if usage else 0
        output_tokens = getattr(usage, "output_tokens", 0) if usage else 0

        logger.info(
            f"[{label}] Anthropic completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(raw_text):,} chars"
        )
        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )
