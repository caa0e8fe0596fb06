"""Exception taxonomy for the execution engine.

Completion errors are raised by the job client and caught at the node
boundary by the scheduler. Precondition errors abort a whole run (or, for
an empty prompt, one branch) before anything is mutated. Lookup errors come
from the graph store.
"""

from typing import Optional


class PromptGraphError(Exception):
    """Base class for all promptgraph errors."""


# --- Completion job client ---


class CompletionError(PromptGraphError):
    """A prompt could not be completed against the service."""


class MissingCredentialError(CompletionError):
    def __init__(self, message: str = "Please add your OpenAI API key in settings before proceeding."):
        super().__init__(message)


class JobTimeoutError(CompletionError):
    """The job never reached a terminal status within the poll budget."""

    def __init__(self, attempts: int, last_status: str):
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(
            f"Assistant run timed out after {attempts} polls (last status: {last_status})"
        )


class JobFailedError(CompletionError):
    """The job reached a terminal status other than completed."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Run failed with status: {status}")


class MalformedResponseError(CompletionError):
    """The service answered, but not in the expected shape.

    Carries the user-safe text to show instead, when the caller recovers.
    """

    def __init__(self, message: str, placeholder: Optional[str] = None):
        self.placeholder = placeholder
        super().__init__(message)


# --- Scheduler preconditions ---


class PreconditionError(PromptGraphError):
    """A run (or a node) cannot start."""


class EmptyPromptError(PreconditionError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__("Please enter a prompt in all nodes")


class NoStartNodeError(PreconditionError):
    def __init__(self):
        super().__init__("Please add at least one node to the canvas")


class NoDocumentsError(PreconditionError):
    def __init__(self):
        super().__init__("Please upload at least one PDF first")


# --- Graph store ---


class FlowNotFoundError(PromptGraphError, LookupError):
    def __init__(self, flow_id: str):
        self.flow_id = flow_id
        super().__init__(f"Flow not found: {flow_id}")


class NodeNotFoundError(PromptGraphError, LookupError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")
