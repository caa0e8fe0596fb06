"""promptgraph API - prompt flow graphs over uploaded documents.

Serves one client session: graph editing, the saved-flow catalog, the
attached-document list, and the run action.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from promptgraph import __version__
from promptgraph.api.routes import documents, executor, flows, graph, settings
from promptgraph.api.session import get_session
from promptgraph.config import LOG_LEVEL

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: load the flow catalog
    logger.info("Loading session...")
    session = get_session()
    logger.info(f"Loaded {len(session.store.list_flows())} saved flows")
    if not session.credentials.current():
        logger.warning("No API key configured; runs will fail until one is set")
    logger.info("promptgraph API ready")
    yield
    # Shutdown
    logger.info("Shutting down promptgraph API")


# Create FastAPI app
app = FastAPI(
    title="promptgraph API",
    description="""
## Prompt flow graphs

Wire prompt nodes into a directed graph and run it: each node's prompt is
answered once per attached document, and downstream nodes run after their
parents finish.

### Key Endpoints

- `POST /v1/graph/nodes` - Add a prompt node
- `POST /v1/graph/edges` - Connect two nodes
- `POST /v1/flows` - Save the graph as a named flow
- `POST /v1/documents` - Attach an uploaded document
- `POST /v1/executor/run` - Run the flow
""",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /v1 prefix
app.include_router(graph.router, prefix="/v1")
app.include_router(flows.router, prefix="/v1")
app.include_router(documents.router, prefix="/v1")
app.include_router(executor.router, prefix="/v1")
app.include_router(settings.router, prefix="/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "promptgraph API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "graph": "/v1/graph",
            "flows": "/v1/flows",
            "documents": "/v1/documents",
            "executor": "/v1/executor",
            "settings": "/v1/settings",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    session = get_session()
    return {
        "status": "healthy",
        "nodes": len(session.store.nodes),
        "edges": len(session.store.edges),
        "flows_saved": len(session.store.list_flows()),
        "documents_attached": len(session.documents.list_attached()),
        "api_key_configured": bool(session.credentials.current()),
        "run_in_progress": session.running,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "promptgraph.api.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
    )
