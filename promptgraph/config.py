"""Runtime settings, read once from the environment."""

import os
from pathlib import Path

# Completion service
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
ASSISTANT_MODEL = os.environ.get("PROMPTGRAPH_ASSISTANT_MODEL", "gpt-4o")
FALLBACK_MODEL = os.environ.get("PROMPTGRAPH_FALLBACK_MODEL", "gpt-3.5-turbo")
ASSISTANT_NAME = "PDF Analysis Assistant"
ASSISTANT_INSTRUCTIONS = (
    "You are a helpful assistant that answers questions based on the "
    "provided PDF documents. Please provide answers in a clear format "
    "without citation markers like [4:0 source]."
)

# Job polling: one status check per interval, bounded attempt count
POLL_INTERVAL_SECONDS = float(os.environ.get("PROMPTGRAPH_POLL_INTERVAL", "1.0"))
MAX_POLL_ATTEMPTS = int(os.environ.get("PROMPTGRAPH_MAX_POLL_ATTEMPTS", "60"))

# Flow catalog file (load-all at startup, save-all on change)
FLOWS_PATH = Path(
    os.environ.get(
        "PROMPTGRAPH_FLOWS_PATH",
        str(Path.home() / ".promptgraph" / "flows.json"),
    )
)

LOG_LEVEL = os.environ.get("PROMPTGRAPH_LOG_LEVEL", "INFO").upper()
