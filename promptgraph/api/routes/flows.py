"""Saved-flow routes.

Endpoints:
    GET    /v1/flows                   List saved flows
    POST   /v1/flows                   Save the live graph as a new flow
    GET    /v1/flows/{flow_id}         Full flow snapshot
    PUT    /v1/flows/{flow_id}         Overwrite a flow with the live graph
    POST   /v1/flows/{flow_id}/load    Replace the live graph with a flow
    DELETE /v1/flows/{flow_id}         Delete a flow
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from promptgraph.api.session import get_session
from promptgraph.errors import FlowNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


class SaveFlowRequest(BaseModel):
    name: str = Field(min_length=1)


class ResaveFlowRequest(BaseModel):
    name: Optional[str] = None


@router.get("")
async def list_flows():
    """List saved flows (summaries only)."""
    store = get_session().store
    summaries = store.list_flow_summaries()
    return {
        "flows": summaries,
        "count": len(summaries),
        "current_flow_id": store.current_flow_id,
    }


@router.post("")
async def save_flow(request: SaveFlowRequest):
    """Snapshot the live graph under a name."""
    flow = get_session().store.save_flow(request.name)
    return flow.model_dump()


@router.get("/{flow_id}")
async def get_flow(flow_id: str):
    """Get a saved flow with its nodes and edges."""
    try:
        return get_session().store.get_flow_validated(flow_id).model_dump()
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{flow_id}")
async def resave_flow(flow_id: str, request: Optional[ResaveFlowRequest] = None):
    """Overwrite a saved flow with the live graph."""
    name = request.name if request else None
    try:
        return get_session().store.resave_flow(flow_id, name=name).model_dump()
    except FlowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{flow_id}/load")
async def load_flow(flow_id: str):
    """Replace the live graph with a saved flow."""
    store = get_session().store
    flow = store.load_flow(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail=str(FlowNotFoundError(flow_id)))
    return {
        "flow_id": flow.id,
        "name": flow.name,
        "nodes": [n.model_dump() for n in store.nodes],
        "edges": [e.model_dump() for e in store.edges],
    }


@router.delete("/{flow_id}")
async def delete_flow(flow_id: str):
    """Delete a saved flow. The live graph is untouched."""
    if not get_session().store.delete_flow(flow_id):
        raise HTTPException(status_code=404, detail=str(FlowNotFoundError(flow_id)))
    return {"flow_id": flow_id, "deleted": True}
