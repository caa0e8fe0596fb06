"""Attached-document routes.

Endpoints:
    GET    /v1/documents               Documents attached to this session
    POST   /v1/documents               Attach an already-uploaded document
    DELETE /v1/documents/{doc_id}      Detach a document
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from promptgraph.api.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class AttachDocumentRequest(BaseModel):
    external_id: str = Field(min_length=1, description="Service file id or vector store id")
    name: str = ""


@router.get("")
async def list_documents():
    """List attached documents in attachment order."""
    docs = get_session().documents.list_attached()
    return {"documents": docs, "count": len(docs)}


@router.post("")
async def attach_document(request: AttachDocumentRequest):
    """Attach a document the completion service already holds."""
    handle = get_session().documents.attach(request.external_id, name=request.name)
    return handle.model_dump()


@router.delete("/{doc_id}")
async def detach_document(doc_id: str):
    """Detach a document from the session."""
    if not get_session().documents.detach(doc_id):
        raise HTTPException(status_code=404, detail=f"Document not found: {doc_id}")
    return {"doc_id": doc_id, "deleted": True}
