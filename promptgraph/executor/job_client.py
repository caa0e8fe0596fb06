"""Completion job client: one prompt, one document, one answer.

This is the atomic unit of execution. Every node fan-out call flows
through `CompletionJobClient.complete()`, which hides the service's job
model behind a single awaitable:

    with a document:    thread -> assistant -> run -> poll -> newest message
                        (timeout / failed run / service error -> fallback)
    without a document: one plain chat completion

The fallback is a plain completion of the prompt prefixed with a note that
it concerns a document. If the fallback fails too, that failure is what
the caller sees.

Cosmetic response-shape problems never fail a call: they turn into a
placeholder string.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from promptgraph.config import FALLBACK_MODEL, MAX_POLL_ATTEMPTS, POLL_INTERVAL_SECONDS
from promptgraph.credentials import CredentialProvider
from promptgraph.documents.store import DocumentHandle
from promptgraph.errors import (
    CompletionError,
    JobFailedError,
    JobTimeoutError,
    MalformedResponseError,
    MissingCredentialError,
)
from promptgraph.executor.schemas import PollAction, next_action
from promptgraph.llm.backends import AssistantHandle, AssistantsBackend, ChatBackend
from promptgraph.llm.factory import get_assistants_backend, get_chat_backend

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "The following question is about a document: "

NO_RESPONSE_PLACEHOLDER = "Sorry, I could not generate a response for this document."
UNEXPECTED_FORMAT_PLACEHOLDER = "Sorry, I could not generate a response in the expected format."
INVALID_API_RESPONSE_PLACEHOLDER = (
    "Sorry, I could not generate a response due to an invalid API response format."
)

AssistantsFactory = Callable[[str], AssistantsBackend]
ChatFactory = Callable[[str], ChatBackend]


def _default_chat_factory(api_key: str) -> ChatBackend:
    return get_chat_backend(FALLBACK_MODEL, api_key)


def extract_message_text(message: Any) -> str:
    """Pull the text payload out of a thread message.

    Raises:
        MalformedResponseError: carrying the placeholder to show instead
    """
    if message is None:
        raise MalformedResponseError(
            "No messages found in thread",
            placeholder=NO_RESPONSE_PLACEHOLDER,
        )
    content = getattr(message, "content", None)
    if not isinstance(content, (list, tuple)) or not content:
        raise MalformedResponseError(
            f"Message content is invalid: {content!r}",
            placeholder=NO_RESPONSE_PLACEHOLDER,
        )
    part = content[0]
    text = getattr(part, "text", None)
    value = getattr(text, "value", None)
    if getattr(part, "type", None) != "text" or not isinstance(value, str):
        raise MalformedResponseError(
            f"Unexpected content format: {part!r}",
            placeholder=UNEXPECTED_FORMAT_PLACEHOLDER,
        )
    return value


class CompletionJobClient:
    """Drives a prompt to a final answer against the completion service."""

    def __init__(
        self,
        credentials: CredentialProvider,
        assistants_factory: AssistantsFactory = get_assistants_backend,
        chat_factory: ChatFactory = _default_chat_factory,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.credentials = credentials
        self.assistants_factory = assistants_factory
        self.chat_factory = chat_factory
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self._sleep = sleep

    async def complete(
        self,
        prompt: str,
        document: Optional[DocumentHandle] = None,
        *,
        label: str = "",
    ) -> str:
        """Complete a prompt, optionally against one document.

        Returns:
            The answer text (or a placeholder when the answer was unreadable)

        Raises:
            MissingCredentialError: no API key is configured
            CompletionError: the plain completion (or the fallback) failed
        """
        api_key = self.credentials.current()
        if not api_key:
            raise MissingCredentialError()

        if document is None:
            return await self._plain_completion(api_key, prompt, label=label or "plain")

        label = label or f"doc {document.name or document.id}"
        try:
            return await self._run_job(api_key, prompt, document, label)
        except Exception as e:
            logger.warning(
                f"[{label}] Assistant job did not complete ({type(e).__name__}: {e}), "
                f"falling back to plain completion"
            )
        return await self._plain_completion(
            api_key,
            FALLBACK_PREFIX + prompt,
            label=f"{label} fallback",
        )

    # --- Job path ---

    async def _run_job(
        self,
        api_key: str,
        prompt: str,
        document: DocumentHandle,
        label: str,
    ) -> str:
        backend = self.assistants_factory(api_key)

        thread_id = await backend.create_thread(prompt)
        assistant = await backend.create_assistant(document)
        logger.info(f"[{label}] Thread {thread_id}, assistant {assistant.id}")
        try:
            run_id = await backend.create_run(thread_id, assistant.id)
            logger.info(f"[{label}] Run {run_id} submitted")
            await self._poll_until_terminal(backend, thread_id, run_id, label)
            message = await backend.latest_message(thread_id)
        finally:
            await self._discard_assistant(backend, assistant, label)

        try:
            return extract_message_text(message)
        except MalformedResponseError as e:
            logger.error(f"[{label}] {e}")
            return e.placeholder or UNEXPECTED_FORMAT_PLACEHOLDER

    async def _poll_until_terminal(
        self,
        backend: AssistantsBackend,
        thread_id: str,
        run_id: str,
        label: str,
    ) -> None:
        """Poll the run until the transition table says stop.

        One initial status check, then at most max_poll_attempts further
        checks, each after poll_interval seconds.

        Raises:
            JobFailedError: terminal status other than completed
            JobTimeoutError: still running after the last attempt
        """
        status = await backend.retrieve_run(thread_id, run_id)
        attempts = 0
        while True:
            action = next_action(status)
            if action == PollAction.EXTRACT:
                logger.info(f"[{label}] Run {run_id} completed after {attempts} polls")
                return
            if action == PollAction.FAIL:
                raise JobFailedError(status)
            if attempts >= self.max_poll_attempts:
                raise JobTimeoutError(attempts, status)

            logger.debug(f"[{label}] Run status: {status} - waiting...")
            await self._sleep(self.poll_interval)
            status = await backend.retrieve_run(thread_id, run_id)
            attempts += 1

    async def _discard_assistant(
        self,
        backend: AssistantsBackend,
        assistant: AssistantHandle,
        label: str,
    ) -> None:
        """Delete the per-call assistant and any vector store made for it.

        Best effort: failures are logged, never raised.
        """
        try:
            await backend.delete_assistant(assistant.id)
        except Exception as e:
            logger.warning(f"[{label}] Could not delete assistant {assistant.id}: {e}")
        if assistant.vector_store_id is None:
            return
        try:
            await backend.delete_vector_store(assistant.vector_store_id)
        except Exception as e:
            logger.warning(
                f"[{label}] Could not delete vector store {assistant.vector_store_id}: {e}"
            )

    # --- Plain path ---

    async def _plain_completion(self, api_key: str, prompt: str, *, label: str) -> str:
        try:
            backend = self.chat_factory(api_key)
            result = await backend.complete(prompt, label=label)
        except MalformedResponseError as e:
            logger.error(f"[{label}] {e}")
            return e.placeholder or INVALID_API_RESPONSE_PLACEHOLDER
        except CompletionError:
            raise
        except Exception as e:
            raise CompletionError(f"Completion request failed: {e}") from e
        return result.content
