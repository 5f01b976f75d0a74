"""
Observability for workflow runs: structured logging with run-scoped trace
context (run_id, flow_id) propagated through a ContextVar.
"""

from forgeflow.observability.logging import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)

__all__ = [
    "configure_logging",
    "get_trace_context",
    "set_trace_context",
    "clear_trace_context",
]
