"""Persistence for the flow catalog.

Load everything once at startup, write everything back on every change.
The file is a serialized FlowCatalogSnapshot; its exact layout is not a
compatibility surface.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from promptgraph.graph.schemas import FlowCatalogSnapshot

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogStorage(Protocol):
    def load(self) -> FlowCatalogSnapshot: ...

    def save(self, snapshot: FlowCatalogSnapshot) -> None: ...


class JsonFileCatalogStorage:
    """Flow catalog kept in a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> FlowCatalogSnapshot:
        if not self.path.exists():
            logger.info(f"No flow catalog at {self.path}, starting empty")
            return FlowCatalogSnapshot()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            snapshot = FlowCatalogSnapshot.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load flow catalog from {self.path}: {e}")
            return FlowCatalogSnapshot()
        logger.info(f"Loaded {len(snapshot.flows)} flows from {self.path}")
        return snapshot

    def save(self, snapshot: FlowCatalogSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(snapshot.model_dump_json(indent=2))
            f.write("\n")
        tmp_path.replace(self.path)
        logger.debug(f"Saved {len(snapshot.flows)} flows to {self.path}")


class InMemoryCatalogStorage:
    """Keeps the last saved snapshot in memory."""

    def __init__(self, snapshot: Optional[FlowCatalogSnapshot] = None):
        self.snapshot = snapshot or FlowCatalogSnapshot()
        self.save_count = 0

    def load(self) -> FlowCatalogSnapshot:
        return self.snapshot.model_copy(deep=True)

    def save(self, snapshot: FlowCatalogSnapshot) -> None:
        self.snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1
