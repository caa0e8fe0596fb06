"""Top-level flow execution: walks the graph from its start nodes.

The scheduler is the entry point behind the "run" action. It:

1. Checks run preconditions (documents attached, a start node exists)
2. Executes each start node in turn, depth first
3. Fans each node's prompt out across all documents in parallel
4. Writes results / errors into the graph store
5. Descends into a node's outgoing edges only after it succeeded

A child never starts before its parent has fully resolved. A failed node
halts its own branch; other branches keep going. Failures are reported
through the notifier, never raised to the caller.

A node reachable along several paths runs once per path, last write wins.
An edge leading back to a node already on the current path is skipped,
so cyclic graphs terminate.
"""

import asyncio
import logging
import time
from typing import Optional

from promptgraph.documents.store import DocumentHandle, DocumentStore
from promptgraph.errors import (
    CompletionError,
    EmptyPromptError,
    NoDocumentsError,
    NoStartNodeError,
    PreconditionError,
)
from promptgraph.executor.job_client import CompletionJobClient
from promptgraph.executor.schemas import RunReport
from promptgraph.graph.schemas import NodeResult
from promptgraph.graph.store import GraphStore
from promptgraph.notifications import LoggingNotifier, NotificationLevel, Notifier

logger = logging.getLogger(__name__)


class ExecutionScheduler:
    """Runs a prompt graph against the attached documents."""

    def __init__(
        self,
        store: GraphStore,
        documents: DocumentStore,
        job_client: CompletionJobClient,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.documents = documents
        self.job_client = job_client
        self.notifier = notifier or LoggingNotifier()

    async def execute_flow(self) -> RunReport:
        """Execute every start node and everything downstream of it."""
        start_time = time.time()
        report = RunReport()

        try:
            documents, start_node_ids = self._check_run_preconditions()
        except PreconditionError as e:
            self.notifier.notify(NotificationLevel.ERROR, str(e))
            return report

        report.started = True
        report.start_node_ids = start_node_ids
        logger.info(
            f"Starting flow run: {len(start_node_ids)} start nodes, "
            f"{len(self.store.nodes)} nodes, {len(documents)} documents"
        )

        for node_id in start_node_ids:
            await self.execute_node(node_id, report=report)

        report.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Flow run finished in {report.duration_ms}ms: "
            f"{len(report.succeeded)} succeeded, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped"
        )
        return report

    async def execute_node(
        self,
        node_id: str,
        *,
        report: Optional[RunReport] = None,
        path: tuple[str, ...] = (),
    ) -> bool:
        """Execute one node, then (on success) everything downstream.

        Returns True if this node succeeded.
        """
        report = report if report is not None else RunReport()
        node = self.store.get_node(node_id)
        if node is None:
            logger.warning(f"Node {node_id} no longer exists, skipping")
            report.skipped.append(node_id)
            return False

        if not node.has_prompt:
            self.notifier.notify(
                NotificationLevel.ERROR, str(EmptyPromptError(node_id)), node_id=node_id
            )
            report.skipped.append(node_id)
            return False

        documents = self.documents.list_attached()
        prompt = node.prompt
        report.executed.append(node_id)
        logger.info(f"Executing node {node_id} against {len(documents)} documents")

        try:
            self.store.set_node_processing(node_id, True)
            try:
                results = await self._fan_out(prompt, documents)
            except CompletionError as e:
                message = str(e) or "An error occurred"
                logger.error(f"Node {node_id} failed: {message}")
                self.store.set_node_error(node_id, message)
                self.notifier.notify(NotificationLevel.ERROR, message, node_id=node_id)
                report.failed.append(node_id)
                return False
            self.store.update_node_results(node_id, results)
        finally:
            self.store.set_node_processing(node_id, False)

        report.succeeded.append(node_id)
        await self._execute_children(node_id, report, path + (node_id,))
        return True

    async def _execute_children(
        self,
        node_id: str,
        report: RunReport,
        path: tuple[str, ...],
    ) -> None:
        for edge in self.store.outgoing_edges(node_id):
            if edge.target in path:
                self.notifier.notify(
                    NotificationLevel.WARNING,
                    f"Skipping edge {node_id} -> {edge.target}: it closes a cycle",
                    node_id=edge.target,
                )
                report.skipped.append(edge.target)
                continue
            await self.execute_node(edge.target, report=report, path=path)

    async def _fan_out(
        self,
        prompt: str,
        documents: list[DocumentHandle],
    ) -> list[NodeResult]:
        """Complete the prompt against every document concurrently.

        Results come back in attachment order regardless of completion
        order. Every call settles before this returns; the first failure
        in attachment order is raised.

        Raises:
            CompletionError: at least one document failed
        """
        outcomes = await asyncio.gather(
            *(self.job_client.complete(prompt, doc) for doc in documents),
            return_exceptions=True,
        )

        results: list[NodeResult] = []
        for doc, outcome in zip(documents, outcomes):
            if isinstance(outcome, CompletionError):
                raise outcome
            if isinstance(outcome, BaseException):
                raise CompletionError(
                    f"Unexpected error on document '{doc.name}': {outcome}"
                ) from outcome
            results.append(NodeResult(document_id=doc.id, text=outcome))
        return results

    def _check_run_preconditions(self) -> tuple[list[DocumentHandle], list[str]]:
        documents = self.documents.list_attached()
        if not documents:
            raise NoDocumentsError()
        start_nodes = self.store.start_nodes()
        if not start_nodes:
            raise NoStartNodeError()
        return documents, [n.id for n in start_nodes]
