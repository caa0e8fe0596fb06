"""Execution engine for prompt graphs.

Architecture (bottom-up):
- schemas: run statuses, the poll transition table, run reports
- job_client: one prompt against one document, submit -> poll -> interpret -> fall back
- scheduler: start-node discovery, per-document fan-out, depth-first propagation
"""
