"""Graph store: the live node/edge collections plus the saved-flow catalog.

All mutation happens here, synchronously and without I/O apart from the
catalog storage write that follows every catalog change. The scheduler
only touches node state through set_node_processing, set_node_error and
update_node_results.

Execution runs on a single event loop, so the store needs no locking. A
multi-threaded caller must serialize access itself.
"""

import logging
from typing import Any, Iterable, Optional

from promptgraph.errors import FlowNotFoundError, NodeNotFoundError
from promptgraph.graph.catalog_storage import CatalogStorage, InMemoryCatalogStorage
from promptgraph.graph.schemas import (
    Edge,
    Flow,
    FlowCatalogSnapshot,
    FlowSummary,
    Node,
    NodeResult,
    NodeStatus,
    Position,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)


class GraphStore:
    """Authoritative in-process graph and flow catalog."""

    def __init__(self, storage: Optional[CatalogStorage] = None):
        self.storage = storage or InMemoryCatalogStorage()
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}

        snapshot = self.storage.load()
        self._flows: dict[str, Flow] = {f.id: f for f in snapshot.flows}
        self.current_flow_id: Optional[str] = snapshot.current_flow_id
        if self.current_flow_id not in self._flows:
            self.current_flow_id = None

    # --- Reads ---

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_node_validated(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self._edges.values() if e.source == node_id]

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self._edges.values() if e.target == node_id]

    def start_nodes(self) -> list[Node]:
        """Nodes with no incoming edge, in creation order."""
        targets = {e.target for e in self._edges.values()}
        return [n for n in self._nodes.values() if n.id not in targets]

    # --- Node edits (presentation layer) ---

    def add_node(self, position: Optional[Position] = None) -> str:
        node = Node(position=position or Position())
        self._nodes[node.id] = node
        logger.debug(f"Added node {node.id} at ({node.position.x}, {node.position.y})")
        return node.id

    def update_node_prompt(self, node_id: str, prompt: str) -> Node:
        node = self.get_node_validated(node_id)
        return self._replace(node, prompt=prompt)

    def update_node_position(self, node_id: str, position: Position) -> Node:
        node = self.get_node_validated(node_id)
        return self._replace(node, position=position)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        if self._nodes.pop(node_id, None) is None:
            return False
        incident = [
            e.id for e in self._edges.values()
            if e.source == node_id or e.target == node_id
        ]
        for edge_id in incident:
            del self._edges[edge_id]
        logger.debug(f"Removed node {node_id} and {len(incident)} incident edges")
        return True

    def clear(self) -> None:
        """Empty the canvas. The flow catalog is untouched."""
        self._nodes.clear()
        self._edges.clear()

    # --- Edges ---

    def connect(self, source_id: str, target_id: str) -> str:
        """Add a source -> target edge. Duplicates and cycles are accepted."""
        self.get_node_validated(source_id)
        self.get_node_validated(target_id)
        edge = Edge(source=source_id, target=target_id)
        self._edges[edge.id] = edge
        logger.debug(f"Connected {source_id} -> {target_id} ({edge.id})")
        return edge.id

    def remove_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    # --- Execution state (scheduler only) ---

    def set_node_processing(self, node_id: str, processing: bool) -> None:
        """Enter processing (dropping old results and error), or leave it.

        Leaving processing only resets a node that is still processing;
        a node that already succeeded or failed keeps its outcome.
        """
        node = self._node_for_update(node_id)
        if node is None:
            return
        if processing:
            self._replace(node, status=NodeStatus.PROCESSING, results=[], error=None)
        elif node.status == NodeStatus.PROCESSING:
            self._replace(node, status=NodeStatus.IDLE)

    def set_node_error(self, node_id: str, message: str) -> None:
        node = self._node_for_update(node_id)
        if node is None:
            return
        self._replace(
            node,
            status=NodeStatus.FAILED,
            results=[],
            error=message or "An error occurred",
        )

    def update_node_results(self, node_id: str, results: Iterable[NodeResult]) -> None:
        """Replace a node's results wholesale and mark it succeeded."""
        node = self._node_for_update(node_id)
        if node is None:
            return
        self._replace(node, status=NodeStatus.SUCCEEDED, results=list(results), error=None)

    # --- Flow catalog ---

    def list_flows(self) -> list[Flow]:
        return list(self._flows.values())

    def list_flow_summaries(self) -> list[FlowSummary]:
        return [
            FlowSummary(
                id=f.id,
                name=f.name,
                node_count=len(f.nodes),
                edge_count=len(f.edges),
                created_at=f.created_at,
                updated_at=f.updated_at,
            )
            for f in self._flows.values()
        ]

    def get_flow(self, flow_id: str) -> Optional[Flow]:
        return self._flows.get(flow_id)

    def get_flow_validated(self, flow_id: str) -> Flow:
        flow = self._flows.get(flow_id)
        if flow is None:
            raise FlowNotFoundError(flow_id)
        return flow

    @property
    def current_flow(self) -> Optional[Flow]:
        if self.current_flow_id is None:
            return None
        return self._flows.get(self.current_flow_id)

    def save_flow(self, name: str) -> Flow:
        """Snapshot the live graph as a new catalog entry."""
        now = utc_now()
        flow = Flow(
            id=new_id(),
            name=name,
            nodes=[n.model_copy(deep=True) for n in self._nodes.values()],
            edges=[e.model_copy(deep=True) for e in self._edges.values()],
            created_at=now,
            updated_at=now,
        )
        self._commit_catalog({**self._flows, flow.id: flow}, flow.id)
        logger.info(
            f"Saved flow '{name}' ({flow.id}): "
            f"{len(flow.nodes)} nodes, {len(flow.edges)} edges"
        )
        return flow

    def resave_flow(self, flow_id: str, name: Optional[str] = None) -> Flow:
        """Overwrite an existing flow with the live graph."""
        existing = self.get_flow_validated(flow_id)
        flow = Flow(
            id=existing.id,
            name=name or existing.name,
            nodes=[n.model_copy(deep=True) for n in self._nodes.values()],
            edges=[e.model_copy(deep=True) for e in self._edges.values()],
            created_at=existing.created_at,
            updated_at=utc_now(),
        )
        self._commit_catalog({**self._flows, flow.id: flow}, flow.id)
        logger.info(f"Re-saved flow '{flow.name}' ({flow.id})")
        return flow

    def load_flow(self, flow_id: str) -> Optional[Flow]:
        """Replace the live graph with a saved flow. No-op if absent."""
        flow = self._flows.get(flow_id)
        if flow is None:
            logger.warning(f"Cannot load flow {flow_id}: not in catalog")
            return None

        nodes = {}
        for saved in flow.nodes:
            node = saved.model_copy(deep=True)
            if node.status == NodeStatus.PROCESSING:
                # Saved mid-run; that job is gone.
                node = Node(**{**node.model_dump(), "status": NodeStatus.IDLE})
            nodes[node.id] = node
        edges = {e.id: e.model_copy(deep=True) for e in flow.edges}

        self._commit_catalog(self._flows, flow.id)
        self._nodes = nodes
        self._edges = edges
        logger.info(f"Loaded flow '{flow.name}' ({flow.id})")
        return flow

    def delete_flow(self, flow_id: str) -> bool:
        """Remove a catalog entry. The live graph is untouched."""
        if flow_id not in self._flows:
            logger.warning(f"Cannot delete flow {flow_id}: not in catalog")
            return False
        flows = {fid: f for fid, f in self._flows.items() if fid != flow_id}
        current = None if self.current_flow_id == flow_id else self.current_flow_id
        self._commit_catalog(flows, current)
        logger.info(f"Deleted flow {flow_id}")
        return True

    def catalog_snapshot(self) -> FlowCatalogSnapshot:
        return _snapshot(self._flows, self.current_flow_id)

    # --- Internals ---

    def _commit_catalog(self, flows: dict[str, Flow], current_flow_id: Optional[str]) -> None:
        """Write the new catalog, then adopt it.

        If storage raises, the in-memory catalog is left as it was.
        """
        self.storage.save(_snapshot(flows, current_flow_id))
        self._flows = flows
        self.current_flow_id = current_flow_id

    def _node_for_update(self, node_id: str) -> Optional[Node]:
        node = self._nodes.get(node_id)
        if node is None:
            logger.warning(f"Node {node_id} disappeared during execution, update dropped")
        return node

    def _replace(self, node: Node, **changes: Any) -> Node:
        """Swap in a re-validated copy of the node with changes applied."""
        updated = Node(**{**node.model_dump(), **changes})
        self._nodes[node.id] = updated
        return updated


def _snapshot(flows: dict[str, Flow], current_flow_id: Optional[str]) -> FlowCatalogSnapshot:
    return FlowCatalogSnapshot(
        flows=[f.model_copy(deep=True) for f in flows.values()],
        current_flow_id=current_flow_id,
    )
