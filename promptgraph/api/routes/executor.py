"""Execution routes.

Endpoints:
    POST /v1/executor/run         Run the live graph against attached documents
    POST /v1/executor/generate    Complete a single prompt (optionally on one document)

A run executes inside the request: the response carries the run report,
the notifications raised during the run, and the resulting node states.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from promptgraph.api.session import get_session
from promptgraph.errors import CompletionError, MissingCredentialError
from promptgraph.formatting.text_formatter import format_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/executor", tags=["executor"])


class GenerateRequest(BaseModel):
    prompt: str
    document_id: Optional[str] = None


@router.post("/run")
async def run_flow():
    """Execute the live graph.

    Only one run per session at a time; a second request while a run is
    in flight gets 409.
    """
    session = get_session()
    if session.running:
        logger.warning("DUPLICATE RUN BLOCKED: a flow run is already in progress")
        raise HTTPException(status_code=409, detail="A flow run is already in progress")

    session.running = True
    session.notifier.drain()
    try:
        report = await session.scheduler.execute_flow()
    finally:
        session.running = False

    return {
        "report": report,
        "notifications": session.notifier.drain(),
        "nodes": [n.model_dump() for n in session.store.nodes],
    }


@router.post("/generate")
async def generate(request: GenerateRequest):
    """Complete one prompt, against one attached document if given."""
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")

    session = get_session()
    document = None
    if request.document_id:
        document = session.documents.get(request.document_id)
        if document is None:
            raise HTTPException(
                status_code=404, detail=f"Document not found: {request.document_id}"
            )

    try:
        text = await session.job_client.complete(request.prompt, document)
    except MissingCredentialError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CompletionError as e:
        logger.error(f"Generate failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return {"text": text, "html": format_text(text)}
