"""Graph data model: prompt nodes, edges, and saved flows.

A node's execution state is a single status field rather than a set of
independent flags. The validator keeps the payload consistent with it:

    idle        no error, no results
    processing  no error, no results
    succeeded   results (one per attached document), no error
    failed      error message, no results
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class NodeStatus(str, Enum):
    """Node execution states."""
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Position(BaseModel):
    """Canvas coordinate. Irrelevant to execution."""

    x: float = 0.0
    y: float = 0.0


class NodeResult(BaseModel):
    """One document's answer to a node's prompt."""

    document_id: str
    text: str


class Node(BaseModel):
    """A prompt vertex and its execution state."""

    id: str = Field(default_factory=new_id)
    type: Literal["prompt"] = "prompt"
    position: Position = Field(default_factory=Position)
    prompt: str = ""
    status: NodeStatus = NodeStatus.IDLE
    results: list[NodeResult] = Field(
        default_factory=list,
        description="Per-document results of the latest successful execution, in attachment order",
    )
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_state(self) -> "Node":
        if self.status == NodeStatus.FAILED:
            if not self.error:
                raise ValueError("failed node must carry an error message")
        elif self.error is not None:
            raise ValueError(f"{self.status.value} node cannot carry an error")
        if self.results and self.status != NodeStatus.SUCCEEDED:
            raise ValueError(f"{self.status.value} node cannot carry results")
        return self

    @property
    def is_processing(self) -> bool:
        return self.status == NodeStatus.PROCESSING

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt.strip())


class Edge(BaseModel):
    """Directed execution-order link: source runs before target."""

    id: str = Field(default_factory=new_id)
    source: str
    target: str


class Flow(BaseModel):
    """Named snapshot of the whole graph."""

    id: str = Field(default_factory=new_id)
    name: str
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class FlowSummary(BaseModel):
    """Lightweight flow listing entry."""

    id: str
    name: str
    node_count: int
    edge_count: int
    created_at: str
    updated_at: str


class FlowCatalogSnapshot(BaseModel):
    """Persisted shape of the flow catalog."""

    flows: list[Flow] = Field(default_factory=list)
    current_flow_id: Optional[str] = None
