"""
config_store.observability.context

Operation-scoped logging context.

Responsibilities:
- Generate/propagate request IDs for calls arriving from the boundary layer.
- Bind tenant and request metadata into structlog contextvars.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


@contextmanager
def operation_context(
    *, tenant_id: str, request_id: str | None = None, **extra: Any
) -> Iterator[str]:
    """
    Bind tenant/request identifiers for every log line emitted inside the block.
    Yields the effective request id.
    """

    # Prefer a caller-provided request id for trace continuity; otherwise generate one.
    rid = request_id or str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(tenant_id=tenant_id, request_id=rid, **extra):
        yield rid


# --- Module Notes -----------------------------------------------------------
# bound_contextvars restores the previous values on exit, so nested operations
# (service -> store) do not leak context into sibling tasks.
