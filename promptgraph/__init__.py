"""promptgraph - prompt flow graphs executed against uploaded documents.

A flow is a directed graph of prompt nodes. Running it sends each node's
prompt, once per attached document, to the completion service and writes
the per-document answers back into the graph before moving downstream.
"""

__version__ = "0.1.0"
