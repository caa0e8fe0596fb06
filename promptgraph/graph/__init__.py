"""In-memory prompt graph and saved-flow catalog."""

from promptgraph.graph.catalog_storage import (
    CatalogStorage,
    InMemoryCatalogStorage,
    JsonFileCatalogStorage,
)
from promptgraph.graph.schemas import (
    Edge,
    Flow,
    FlowCatalogSnapshot,
    Node,
    NodeResult,
    NodeStatus,
    Position,
)
from promptgraph.graph.store import GraphStore

__all__ = [
    "CatalogStorage",
    "InMemoryCatalogStorage",
    "JsonFileCatalogStorage",
    "Edge",
    "Flow",
    "FlowCatalogSnapshot",
    "Node",
    "NodeResult",
    "NodeStatus",
    "Position",
    "GraphStore",
]
