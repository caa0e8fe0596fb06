"""Attached-document registry.

Documents are uploaded to the completion service elsewhere; by the time
one is attached here it only needs the service-side id (a file id or a
vector store id). Attachment order is the order results come back in.
"""

import logging
import uuid
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class DocumentHandle(BaseModel):
    """Opaque reference to a document the service already ingested."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    external_id: str = Field(description="Service-side file id (file-...) or vector store id (vs_...)")
    name: str = ""

    @property
    def is_vector_store(self) -> bool:
        return self.external_id.startswith("vs_")


class DocumentStore:
    """Ordered list of documents available for a run."""

    def __init__(self):
        self._documents: dict[str, DocumentHandle] = {}

    def attach(self, external_id: str, name: str = "", doc_id: Optional[str] = None) -> DocumentHandle:
        handle = DocumentHandle(
            id=doc_id or str(uuid.uuid4()),
            external_id=external_id,
            name=name or external_id,
        )
        self._documents[handle.id] = handle
        logger.info(f"Attached document {handle.id}: '{handle.name}' ({external_id})")
        return handle

    def detach(self, doc_id: str) -> bool:
        if self._documents.pop(doc_id, None) is None:
            return False
        logger.info(f"Detached document {doc_id}")
        return True

    def get(self, doc_id: str) -> Optional[DocumentHandle]:
        return self._documents.get(doc_id)

    def list_attached(self) -> list[DocumentHandle]:
        return list(self._documents.values())
