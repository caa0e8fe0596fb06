"""Graph editing routes: nodes, edges, rendered results.

Endpoints:
    GET    /v1/graph                        Live nodes and edges
    DELETE /v1/graph                        Clear the canvas
    POST   /v1/graph/nodes                  Add a node
    PATCH  /v1/graph/nodes/{node_id}        Edit prompt and/or position
    DELETE /v1/graph/nodes/{node_id}        Remove node (and incident edges)
    GET    /v1/graph/nodes/{node_id}/rendered   Results rendered as HTML
    POST   /v1/graph/edges                  Connect two nodes
    DELETE /v1/graph/edges/{edge_id}        Remove an edge
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from promptgraph.api.session import get_session
from promptgraph.errors import NodeNotFoundError
from promptgraph.formatting.text_formatter import format_node_results
from promptgraph.graph.schemas import Position

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/graph", tags=["graph"])


class AddNodeRequest(BaseModel):
    position: Optional[Position] = None


class UpdateNodeRequest(BaseModel):
    prompt: Optional[str] = None
    position: Optional[Position] = None


class ConnectRequest(BaseModel):
    source: str
    target: str


@router.get("")
async def get_graph():
    """Current nodes and edges."""
    store = get_session().store
    return {
        "nodes": [n.model_dump() for n in store.nodes],
        "edges": [e.model_dump() for e in store.edges],
        "current_flow_id": store.current_flow_id,
    }


@router.delete("")
async def clear_graph():
    """Drop all live nodes and edges. Saved flows are kept."""
    get_session().store.clear()
    return {"cleared": True}


@router.post("/nodes")
async def add_node(request: Optional[AddNodeRequest] = None):
    """Add an empty prompt node."""
    store = get_session().store
    position = request.position if request else None
    node_id = store.add_node(position)
    return store.get_node_validated(node_id).model_dump()


@router.patch("/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest):
    """Edit a node's prompt and/or canvas position."""
    store = get_session().store
    try:
        if request.prompt is not None:
            store.update_node_prompt(node_id, request.prompt)
        if request.position is not None:
            store.update_node_position(node_id, request.position)
        return store.get_node_validated(node_id).model_dump()
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/nodes/{node_id}")
async def remove_node(node_id: str):
    """Remove a node and every edge that touches it."""
    if not get_session().store.remove_node(node_id):
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return {"node_id": node_id, "deleted": True}


@router.get("/nodes/{node_id}/rendered")
async def get_rendered_results(node_id: str):
    """A node's per-document results, cleaned and rendered to HTML."""
    node = get_session().store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return {
        "node_id": node_id,
        "status": node.status,
        "error": node.error,
        "results": format_node_results(node),
    }


@router.post("/edges")
async def connect_nodes(request: ConnectRequest):
    """Connect source -> target."""
    store = get_session().store
    try:
        edge_id = store.connect(request.source, request.target)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return store.get_edge(edge_id).model_dump()


@router.delete("/edges/{edge_id}")
async def remove_edge(edge_id: str):
    """Remove one edge."""
    if not get_session().store.remove_edge(edge_id):
        raise HTTPException(status_code=404, detail=f"Edge not found: {edge_id}")
    return {"edge_id": edge_id, "deleted": True}
