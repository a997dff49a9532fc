"""Per-request trace id kept in a ContextVar so concurrent requests stay isolated."""
from __future__ import annotations

import contextvars
import time
import uuid
from typing import Optional

_trace_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "studio_trace_id", default=None
)


def get_trace_id() -> Optional[str]:
    """Return the trace id bound to the current request, if any."""
    return _trace_id_var.get()


def set_trace_id(trace_id: Optional[str]) -> None:
    """Bind ``trace_id`` to the current context; a falsy value unbinds it."""
    _trace_id_var.set(trace_id or None)


def clear_trace_id() -> None:
    _trace_id_var.set(None)


def generate_trace_id() -> str:
    """
    Build a new trace id.

    Returns:
        16 hex chars of a uuid4 followed by the last 6 digits of the epoch seconds
    """
    return f"{uuid.uuid4().hex[:16]}{str(int(time.time()))[-6:]}"
