"""The single client session the API serves.

One graph store, one set of attached documents, one credential, one
scheduler. Routes reach it through get_session(); tests (or an embedding
application) install their own with init_session().
"""

import logging
from typing import Optional

from promptgraph.config import FLOWS_PATH, OPENAI_API_KEY_ENV
from promptgraph.credentials import EnvCredentialProvider, StaticCredentialProvider
from promptgraph.documents.store import DocumentStore
from promptgraph.executor.job_client import CompletionJobClient
from promptgraph.executor.scheduler import ExecutionScheduler
from promptgraph.graph.catalog_storage import JsonFileCatalogStorage
from promptgraph.graph.store import GraphStore
from promptgraph.notifications import CollectingNotifier

logger = logging.getLogger(__name__)


class Session:
    """Everything one user works with, wired together."""

    def __init__(
        self,
        store: GraphStore,
        documents: DocumentStore,
        credentials: StaticCredentialProvider,
        job_client: CompletionJobClient,
        notifier: Optional[CollectingNotifier] = None,
    ):
        self.store = store
        self.documents = documents
        self.credentials = credentials
        self.job_client = job_client
        self.notifier = notifier or CollectingNotifier()
        self.scheduler = ExecutionScheduler(store, documents, job_client, self.notifier)
        self.running = False

    @classmethod
    def from_config(cls) -> "Session":
        """Default session: flow catalog on disk, API key from the environment."""
        credentials = StaticCredentialProvider(
            EnvCredentialProvider(OPENAI_API_KEY_ENV).current()
        )
        store = GraphStore(storage=JsonFileCatalogStorage(FLOWS_PATH))
        return cls(
            store=store,
            documents=DocumentStore(),
            credentials=credentials,
            job_client=CompletionJobClient(credentials),
        )


# Global session instance
_session: Optional[Session] = None


def init_session(session: Session) -> None:
    """Install the session routes will use."""
    global _session
    _session = session


def get_session() -> Session:
    """Get the global session, creating the default one on first use."""
    global _session
    if _session is None:
        _session = Session.from_config()
        logger.info(
            f"Session initialized: {len(_session.store.list_flows())} saved flows, "
            f"API key {'set' if _session.credentials.current() else 'missing'}"
        )
    return _session
