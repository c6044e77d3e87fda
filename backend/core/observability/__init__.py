"""Observability for the compliance core: JSON logs with trace/tenant
context and in-process counters for validation, detection and signing.
"""
import uuid
from typing import Optional

from . import logging as logging_module
from . import metrics


def generate_trace_id() -> str:
    """Generate a new trace ID for request/worker context."""
    return str(uuid.uuid4())


def bind_context(*, trace_id: Optional[str] = None, tenant_id: Optional[str] = None) -> str:
    """Attach trace/tenant IDs to log records emitted by this thread.

    Returns the trace ID in use (generated when none is given).
    """
    trace_id = trace_id or generate_trace_id()
    logging_module.set_trace_id(trace_id)
    logging_module.set_tenant_id(tenant_id or "unknown")
    return trace_id


def init_observability(enable_metrics: bool = True) -> None:
    """Initialize all observability components."""
    logging_module.init_logging()
    if enable_metrics:
        metrics.init_metrics()


__all__ = [
    "logging_module",
    "metrics",
    "generate_trace_id",
    "bind_context",
    "init_observability",
]
