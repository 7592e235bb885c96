"""
config_store.db.executor

Query/Mutation Executor: run one parameterized statement in a tenant namespace.

Responsibilities:
- Accept SQL text (bound parameters only) or SQLAlchemy Core statements.
- Return typed results: rows for SELECT, generated id for INSERT, counts otherwise.
- Translate driver failures into QueryError / StoreConnectionError.
- Bound every call with a timeout that releases the connection on expiry.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError, StatementError
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql import Executable
from sqlalchemy.sql.elements import TextClause

from config_store.db.models import Base
from config_store.db.pools import TenantPool, TenantPoolRegistry
from config_store.errors import QueryError, StatementTimeoutError, StoreConnectionError
from config_store.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Statement = str | Executable
Params = Mapping[str, Any] | Sequence[Mapping[str, Any]] | None


@dataclass(frozen=True, slots=True)
class ResultSet:
    # Ordered rows; each row maps column name -> typed value.
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        row = self.first()
        return next(iter(row.values())) if row else None


@dataclass(frozen=True, slots=True)
class InsertResult:
    generated_id: Any
    rowcount: int = 1


@dataclass(frozen=True, slots=True)
class RowsAffected:
    # Zero means "matched nothing"; the executor does not interpret it further.
    count: int


ExecutionResult = ResultSet | InsertResult | RowsAffected

_LEADING_NOISE_RE = re.compile(r"^(\s+|--[^\n]*\n|/\*.*?\*/|\()+", re.S)
_TARGET_RE = re.compile(
    r"\b(?:from|into|update|table|join)\s+((?:\"?[A-Za-z_][\w$]*\"?\.)?\"?[A-Za-z_][\w$]*\"?)",
    re.I,
)


def statement_kind(statement: Statement) -> str:
    if isinstance(statement, TextClause):
        return statement_kind(statement.text)
    if isinstance(statement, str):
        head = _LEADING_NOISE_RE.sub("", statement)
        word = head.split(None, 1)[0] if head.strip() else ""
        return word.upper() or "EMPTY"
    for kind in ("select", "insert", "update", "delete"):
        if getattr(statement, f"is_{kind}", False):
            return kind.upper()
    return type(statement).__name__.upper()


def statement_target(statement: Statement) -> str | None:
    table = getattr(statement, "table", None)
    if table is not None and getattr(table, "name", None):
        return table.name
    froms = getattr(statement, "get_final_froms", None)
    if callable(froms):
        names = [getattr(f, "name", None) for f in froms()]
        if any(names):
            return ",".join(n for n in names if n)
    match = _TARGET_RE.search(str(statement))
    return match.group(1).replace('"', "") if match else None


def describe_statement(statement: Statement) -> str:
    """
    Short, value-free intent such as "INSERT config_data", used in logs and errors.
    """

    kind = statement_kind(statement)
    target = statement_target(statement)
    return f"{kind} {target}" if target else kind


def _rowid_is_key(target: str | None) -> bool:
    # lastrowid names the row only when the table's key is an integer autoincrement.
    if target is None:
        return False
    table = Base.metadata.tables.get(target.rsplit(".", 1)[-1])
    return table is not None and table.autoincrement_column is not None


@contextmanager
def translate_db_errors(intent: str) -> Iterator[None]:
    # Driver messages can echo bound values, so only the driver error class is kept.
    try:
        yield
    except DBAPIError as exc:
        if exc.connection_invalidated:
            raise StoreConnectionError(f"connection lost during {intent}") from exc
        raise QueryError(intent, type(exc.orig).__name__) from exc
    except StatementError as exc:
        raise QueryError(intent, type(exc.orig).__name__ if exc.orig else None) from exc


async def bounded(awaitable: Awaitable[T], timeout: float | None, intent: str) -> T:
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except TimeoutError as exc:
        raise StatementTimeoutError(f"{intent} exceeded {timeout}s") from exc


def _as_executable(statement: Statement) -> Executable:
    return text(statement) if isinstance(statement, str) else statement


def _to_result(kind: str, target: str | None, result: CursorResult[Any]) -> ExecutionResult:
    if kind == "INSERT":
        if result.returns_rows:
            row = result.first()
            return InsertResult(generated_id=row[0] if row is not None else None)
        generated: Any = None
        if result.context.isinsert and not result.context.executemany:
            pk = result.inserted_primary_key
            generated = pk[0] if pk else None
        if (
            generated is None
            and result.context.dialect.postfetch_lastrowid
            and _rowid_is_key(target)
        ):
            generated = result.lastrowid
        return InsertResult(generated_id=generated, rowcount=result.rowcount)
    if result.returns_rows:
        return ResultSet(rows=[dict(row) for row in result.mappings()])
    return RowsAffected(count=max(result.rowcount, 0))


async def run_statement(
    conn: AsyncConnection, statement: Statement, params: Params = None
) -> ExecutionResult:
    """
    Execute on an already checked-out connection; shared by the executor and
    transaction scopes.
    """

    kind = statement_kind(statement)
    target = statement_target(statement)
    intent = f"{kind} {target}" if target else kind
    with translate_db_errors(intent):
        if params is None:
            result = await conn.execute(_as_executable(statement))
        elif isinstance(params, Mapping):
            result = await conn.execute(_as_executable(statement), dict(params))
        else:
            result = await conn.execute(_as_executable(statement), [dict(p) for p in params])
        return _to_result(kind, target, result)


class QueryExecutor:
    """
    Runs single statements, each in its own short transaction on a pooled connection.
    """

    def __init__(
        self, registry: TenantPoolRegistry, *, default_timeout: float | None = None
    ) -> None:
        self._registry = registry
        self._default_timeout = default_timeout

    async def execute(
        self,
        tenant_id: str,
        statement: Statement,
        params: Params = None,
        *,
        timeout: float | None = None,
    ) -> ExecutionResult:
        intent = describe_statement(statement)
        pool = await self._registry.get_pool(tenant_id)
        effective = timeout if timeout is not None else self._default_timeout
        try:
            # Checkout wait counts against the same bound as the statement.
            return await bounded(self._execute(pool, statement, params, intent), effective, intent)
        except (QueryError, StoreConnectionError) as exc:
            log.warning(
                "statement_failed",
                tenant_id=tenant_id,
                intent=intent,
                error=type(exc).__name__,
            )
            raise

    async def _execute(
        self, pool: TenantPool, statement: Statement, params: Params, intent: str
    ) -> ExecutionResult:
        async with pool.connect() as conn:
            with translate_db_errors(intent):
                async with conn.begin():
                    result = await run_statement(conn, statement, params)
        log.debug("statement_executed", tenant_id=pool.tenant_id, intent=intent)
        return result


# --- Module Notes -----------------------------------------------------------
# No retries here: a QueryError or StoreConnectionError always reaches the caller,
# who owns retry policy. Not-found is a zero count, never an exception.
# Text INSERTs into tables keyed by a string id report generated_id=None on every
# backend; append "RETURNING id" to get the key back.
