"""Tests for flow execution order, fan-out and failure propagation."""

import pytest

from promptgraph.documents.store import DocumentStore
from promptgraph.errors import CompletionError
from promptgraph.executor.scheduler import ExecutionScheduler
from promptgraph.graph.schemas import NodeStatus
from promptgraph.notifications import CollectingNotifier, NotificationLevel

from conftest import ScriptedJobClient


def _node(store, prompt):
    node_id = store.add_node()
    store.update_node_prompt(node_id, prompt)
    return node_id


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def job_client():
    return ScriptedJobClient()


@pytest.fixture
def scheduler(store, documents, job_client, notifier):
    return ExecutionScheduler(store, documents, job_client, notifier)


class TestRunPreconditions:

    @pytest.mark.asyncio
    async def test_empty_graph_reports_missing_node(self, scheduler, store, notifier, job_client):
        report = await scheduler.execute_flow()

        assert not report.started
        assert notifier.messages(NotificationLevel.ERROR) == [
            "Please add at least one node to the canvas"
        ]
        assert job_client.calls == []

    @pytest.mark.asyncio
    async def test_no_documents_aborts_before_any_mutation(self, store, job_client, notifier):
        a = _node(store, "A")
        before = store.get_node(a).model_dump()
        scheduler = ExecutionScheduler(store, DocumentStore(), job_client, notifier)

        report = await scheduler.execute_flow()

        assert not report.started
        assert notifier.messages() == ["Please upload at least one PDF first"]
        assert store.get_node(a).model_dump() == before
        assert job_client.calls == []

    @pytest.mark.asyncio
    async def test_pure_cycle_has_no_start_node(self, scheduler, store, notifier, job_client):
        a, b = _node(store, "A"), _node(store, "B")
        store.connect(a, b)
        store.connect(b, a)

        report = await scheduler.execute_flow()

        assert not report.started
        assert "Please add at least one node to the canvas" in notifier.messages()
        assert job_client.calls == []

    @pytest.mark.asyncio
    async def test_empty_prompt_start_node_is_untouched(self, scheduler, store, notifier, job_client):
        empty = store.add_node()
        store.update_node_prompt(empty, "   ")
        child = _node(store, "child")
        store.connect(empty, child)

        report = await scheduler.execute_flow()

        assert report.started
        assert report.skipped == [empty]
        assert store.get_node(empty).status == NodeStatus.IDLE
        assert store.get_node(child).status == NodeStatus.IDLE
        assert job_client.calls == []
        [notification] = notifier.notifications
        assert notification.message == "Please enter a prompt in all nodes"
        assert notification.node_id == empty


class TestFanOut:

    @pytest.mark.asyncio
    async def test_one_result_per_document_in_attachment_order(self, store, documents, notifier):
        # d1 finishes last, d3 first.
        job_client = ScriptedJobClient(delays={"d1": 0.03, "d2": 0.02, "d3": 0.0})
        scheduler = ExecutionScheduler(store, documents, job_client, notifier)
        a = _node(store, "A")

        report = await scheduler.execute_flow()

        node = store.get_node(a)
        assert report.succeeded == [a]
        assert node.status == NodeStatus.SUCCEEDED
        assert [r.document_id for r in node.results] == ["d1", "d2", "d3"]
        assert [r.text for r in node.results] == ["A @ d1", "A @ d2", "A @ d3"]
        assert job_client.events[:3] == ["start:A", "start:A", "start:A"]

    @pytest.mark.asyncio
    async def test_node_is_processing_while_its_calls_are_in_flight(self, store, documents, notifier):
        seen = []

        class ObservingClient:
            async def complete(self, prompt, document=None, *, label=""):
                seen.append(store.get_node(a).status)
                return "ok"

        scheduler = ExecutionScheduler(store, documents, ObservingClient(), notifier)
        a = _node(store, "A")

        await scheduler.execute_flow()

        assert seen == [NodeStatus.PROCESSING] * 3
        assert store.get_node(a).status == NodeStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_one_document_failing_fails_the_node(self, store, documents, notifier):
        class PartialClient:
            async def complete(self, prompt, document=None, *, label=""):
                if document.id == "d2":
                    raise CompletionError("d2 unreadable")
                return "fine"

        scheduler = ExecutionScheduler(store, documents, PartialClient(), notifier)
        a = _node(store, "A")

        report = await scheduler.execute_flow()

        node = store.get_node(a)
        assert report.failed == [a]
        assert node.status == NodeStatus.FAILED
        assert node.error == "d2 unreadable"
        assert node.results == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, store, documents, notifier):
        class BrokenClient:
            async def complete(self, prompt, document=None, *, label=""):
                raise KeyError("boom")

        scheduler = ExecutionScheduler(store, documents, BrokenClient(), notifier)
        a = _node(store, "A")

        await scheduler.execute_flow()

        node = store.get_node(a)
        assert node.status == NodeStatus.FAILED
        assert "alpha.pdf" in node.error


class TestTraversal:

    @pytest.mark.asyncio
    async def test_child_starts_only_after_parent_resolved(self, scheduler, store, job_client):
        a, b = _node(store, "A"), _node(store, "B")
        store.connect(a, b)

        await scheduler.execute_flow()

        last_parent_end = max(i for i, e in enumerate(job_client.events) if e == "end:A")
        first_child_start = job_client.events.index("start:B")
        assert last_parent_end < first_child_start

    @pytest.mark.asyncio
    async def test_failure_halts_only_its_branch(self, store, documents, notifier):
        job_client = ScriptedJobClient(answers={"B": CompletionError("B broke")})
        scheduler = ExecutionScheduler(store, documents, job_client, notifier)
        a, b, c, d = (_node(store, p) for p in ("A", "B", "C", "D"))
        store.connect(a, b)
        store.connect(b, c)
        store.connect(a, d)

        report = await scheduler.execute_flow()

        assert store.get_node(a).status == NodeStatus.SUCCEEDED
        assert len(store.get_node(a).results) == 3
        assert store.get_node(b).status == NodeStatus.FAILED
        assert store.get_node(b).error == "B broke"
        assert store.get_node(c).status == NodeStatus.IDLE
        assert store.get_node(d).status == NodeStatus.SUCCEEDED
        assert report.failed == [b]
        assert c not in report.executed
        errors = [n for n in notifier.notifications if n.level == NotificationLevel.ERROR]
        assert [(n.node_id, n.message) for n in errors] == [(b, "B broke")]

    @pytest.mark.asyncio
    async def test_nothing_left_processing(self, store, documents, notifier):
        job_client = ScriptedJobClient(answers={"B": CompletionError("nope")})
        scheduler = ExecutionScheduler(store, documents, job_client, notifier)
        a, b = _node(store, "A"), _node(store, "B")
        store.connect(a, b)

        await scheduler.execute_flow()

        assert not any(n.is_processing for n in store.nodes)

    @pytest.mark.asyncio
    async def test_start_nodes_run_in_creation_order(self, scheduler, store, job_client):
        first, second = _node(store, "first"), _node(store, "second")

        report = await scheduler.execute_flow()

        assert report.start_node_ids == [first, second]
        assert [prompt for prompt, _ in job_client.calls] == ["first"] * 3 + ["second"] * 3

    @pytest.mark.asyncio
    async def test_diamond_target_runs_once_per_path(self, scheduler, store, job_client):
        s, a, b, c = (_node(store, p) for p in ("S", "A", "B", "C"))
        store.connect(s, a)
        store.connect(s, b)
        store.connect(a, c)
        store.connect(b, c)

        report = await scheduler.execute_flow()

        assert report.executed == [s, a, c, b, c]
        assert store.get_node(c).status == NodeStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, scheduler, store, notifier):
        s, a, b = (_node(store, p) for p in ("S", "A", "B"))
        store.connect(s, a)
        store.connect(a, b)
        store.connect(b, a)

        report = await scheduler.execute_flow()

        assert report.executed == [s, a, b]
        assert report.skipped == [a]
        assert notifier.messages(NotificationLevel.WARNING)

    @pytest.mark.asyncio
    async def test_execute_node_directly(self, scheduler, store):
        a, b = _node(store, "A"), _node(store, "B")
        store.connect(a, b)

        assert await scheduler.execute_node(b) is True
        assert store.get_node(b).status == NodeStatus.SUCCEEDED
        assert store.get_node(a).status == NodeStatus.IDLE

    @pytest.mark.asyncio
    async def test_removed_node_is_skipped(self, scheduler):
        assert await scheduler.execute_node("missing") is False
