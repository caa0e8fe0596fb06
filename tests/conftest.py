"""Shared fakes for the completion service."""

import asyncio
from types import SimpleNamespace
from typing import Optional

import pytest

from promptgraph.credentials import StaticCredentialProvider
from promptgraph.documents.store import DocumentHandle, DocumentStore
from promptgraph.executor.job_client import CompletionJobClient
from promptgraph.graph.store import GraphStore
from promptgraph.llm.backends import AssistantHandle, LLMCallResult


def text_message(value):
    """A thread message shaped like the service's."""
    return SimpleNamespace(
        role="assistant",
        content=[SimpleNamespace(type="text", text=SimpleNamespace(value=value))],
    )


class FakeAssistantsBackend:
    """Scripted job backend.

    statuses: run statuses returned by successive retrieve_run calls; the
    last one repeats forever.
    """

    def __init__(
        self,
        statuses=("completed",),
        message=None,
        fail_on: Optional[str] = None,
    ):
        self.statuses = list(statuses)
        self.message = message if message is not None else text_message("document answer")
        self.fail_on = fail_on
        self.calls: list[tuple] = []
        self.retrieve_count = 0
        self.deleted: list[str] = []
        self.deleted_vector_stores: list[str] = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    async def create_thread(self, prompt):
        self._record("create_thread", prompt)
        return "thread_1"

    async def create_assistant(self, document: DocumentHandle):
        self._record("create_assistant", document.external_id)
        if document.is_vector_store:
            return AssistantHandle(id="asst_1")
        return AssistantHandle(id="asst_1", vector_store_id="vs_tmp_1")

    async def create_run(self, thread_id, assistant_id):
        self._record("create_run", thread_id, assistant_id)
        return "run_1"

    async def retrieve_run(self, thread_id, run_id):
        self._record("retrieve_run", thread_id, run_id)
        index = min(self.retrieve_count, len(self.statuses) - 1)
        self.retrieve_count += 1
        return self.statuses[index]

    async def latest_message(self, thread_id):
        self._record("latest_message", thread_id)
        return self.message

    async def delete_assistant(self, assistant_id):
        self.deleted.append(assistant_id)

    async def delete_vector_store(self, vector_store_id):
        self.deleted_vector_stores.append(vector_store_id)
        if self.fail_on == "delete_vector_store":
            raise RuntimeError("delete_vector_store exploded")


class FakeChatBackend:
    """Echoing chat backend; optionally raises."""

    model_id = "fake-chat"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt, *, label=""):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return LLMCallResult(content=f"plain: {prompt}", model_id=self.model_id)


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class ScriptedJobClient:
    """Stands in for CompletionJobClient in scheduler tests.

    answers: prompt -> text, or an exception instance to raise.
    delays: document id -> seconds to wait before answering.
    """

    def __init__(self, answers=None, delays=None):
        self.answers = answers or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, str]] = []
        self.events: list[str] = []

    async def complete(self, prompt, document=None, *, label=""):
        self.calls.append((prompt, document.id if document else None))
        self.events.append(f"start:{prompt}")
        await asyncio.sleep(self.delays.get(document.id if document else None, 0))
        self.events.append(f"end:{prompt}")
        answer = self.answers.get(prompt, f"{prompt} @ {document.id if document else '-'}")
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def documents():
    docs = DocumentStore()
    docs.attach("file-aaa", name="alpha.pdf", doc_id="d1")
    docs.attach("file-bbb", name="beta.pdf", doc_id="d2")
    docs.attach("vs_ccc", name="gamma.pdf", doc_id="d3")
    return docs


@pytest.fixture
def credentials():
    return StaticCredentialProvider("sk-test")


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_job_client(credentials, sleep):
    """Build a real CompletionJobClient over fake backends."""

    def _make(assistants=None, chat=None, max_poll_attempts=60, creds=None):
        assistants = assistants or FakeAssistantsBackend()
        chat = chat or FakeChatBackend()
        return CompletionJobClient(
            creds or credentials,
            assistants_factory=lambda api_key: assistants,
            chat_factory=lambda api_key: chat,
            poll_interval=1.0,
            max_poll_attempts=max_poll_attempts,
            sleep=sleep,
        )

    return _make
