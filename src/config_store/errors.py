"""
config_store.errors

Error taxonomy for the storage core.

Responsibilities:
- Define the exceptions callers translate into user-facing responses.
- Carry structured context (failing operation index, field violations).
- Never embed bound parameter values in messages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class StoreError(Exception):
    """
    Base class for every failure surfaced by the core.

    `operation_index` / `operation_label` are filled by the transaction
    coordinator when the failing step of a batch is known.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.operation_index: int | None = None
        self.operation_label: str | None = None

    def __str__(self) -> str:
        base = super().__str__()
        if self.operation_index is None:
            return base
        label = f" ({self.operation_label})" if self.operation_label else ""
        return f"{base} [operation #{self.operation_index}{label}]"


class StoreConnectionError(StoreError):
    """Pool exhausted, engine unreachable, or connection dropped mid-statement."""


class StatementTimeoutError(StoreConnectionError):
    """A caller-supplied (or configured) time bound elapsed before completion."""


class QueryError(StoreError):
    """Malformed statement or constraint violation."""

    def __init__(self, intent: str, reason: str | None = None) -> None:
        message = f"{intent} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.intent = intent


class InvalidIdentifierError(StoreError, ValueError):
    """Tenant id or cache name is not usable as a SQL identifier."""


class CacheNameConflictError(StoreError):
    """A table with the requested cache name already exists."""


class CacheNotFoundError(StoreError):
    """Eviction targeted a cache table that does not exist."""


class TransactionMisuseError(StoreError):
    """
    A transactional connection was used out of order (overlapping statements,
    or a nested transaction on the same tenant from inside one).
    """


class ViolationKind(enum.StrEnum):
    required = "REQUIRED"
    read_only = "READ_ONLY"
    malformed = "MALFORMED"
    mismatch = "MISMATCH"


@dataclass(frozen=True, slots=True)
class FieldViolation:
    # `field` uses the wire (camelCase) name so the boundary can echo it back.
    field: str
    kind: ViolationKind
    message: str


class EntryValidationError(StoreError):
    """
    Raised by the validation gate before any write; rendered as 422 upstream.
    """

    def __init__(self, violations: list[FieldViolation]) -> None:
        summary = ", ".join(f"{v.field}: {v.kind.value}" for v in violations)
        super().__init__(f"validation failed ({summary})")
        self.violations = violations


# --- Module Notes -----------------------------------------------------------
# The core never retries. Retry/backoff and HTTP status mapping are caller concerns.
