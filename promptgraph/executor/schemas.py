"""Executor-side schemas: job run statuses, the poll transition table, run reports.

The poll loop is a state machine. Every status the service can report maps
to exactly one action; anything not in the table is treated as a failure
so a new provider status can never make the loop spin.
"""

from enum import Enum

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Statuses a service-side run can report."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


class PollAction(str, Enum):
    """What the job client does after observing a status."""
    POLL = "poll"
    EXTRACT = "extract"
    FAIL = "fail"


RUN_TRANSITIONS: dict[RunStatus, PollAction] = {
    RunStatus.QUEUED: PollAction.POLL,
    RunStatus.IN_PROGRESS: PollAction.POLL,
    RunStatus.CANCELLING: PollAction.POLL,
    RunStatus.COMPLETED: PollAction.EXTRACT,
    # No function tools are registered, so nothing can satisfy requires_action.
    RunStatus.REQUIRES_ACTION: PollAction.FAIL,
    RunStatus.CANCELLED: PollAction.FAIL,
    RunStatus.FAILED: PollAction.FAIL,
    RunStatus.INCOMPLETE: PollAction.FAIL,
    RunStatus.EXPIRED: PollAction.FAIL,
}


def next_action(status: str) -> PollAction:
    """Map a raw status string to the poll action."""
    try:
        return RUN_TRANSITIONS[RunStatus(status)]
    except ValueError:
        return PollAction.FAIL


class RunReport(BaseModel):
    """Summary of one execute_flow() call."""

    started: bool = Field(
        default=False,
        description="False when a run-level precondition aborted the run",
    )
    start_node_ids: list[str] = Field(default_factory=list)
    executed: list[str] = Field(
        default_factory=list,
        description="Node ids in execution order; a node reached twice appears twice",
    )
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list,
        description="Nodes not run: empty prompt, or an edge closing a cycle",
    )
    duration_ms: int = 0
