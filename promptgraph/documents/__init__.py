"""Documents attached to the current session."""

from promptgraph.documents.store import DocumentHandle, DocumentStore

__all__ = ["DocumentHandle", "DocumentStore"]
